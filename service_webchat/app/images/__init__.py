"""
Workgroup image resolution.
"""

from .image_resolver import ImageResolver

__all__ = ["ImageResolver"]
