"""
Domain types shared across the service.
"""

from .models import SettingSlot, SettingsBundle, SettingType, WorkgroupId

__all__ = [
    "SettingSlot",
    "SettingsBundle",
    "SettingType",
    "WorkgroupId",
]
