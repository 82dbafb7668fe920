"""
Adapters package for the web chat settings service.

Contains the HTTP client for the remote workgroup service and access to the
static blank image. These adapters encapsulate:

- Base URLs and request shapes
- Retry policies and circuit breakers
- Error handling that maps to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .workgroup_client import WorkgroupSettingsClient
from .blank_image import BlankImageProvider

__all__ = [
    "WorkgroupSettingsClient",
    "BlankImageProvider",
]
