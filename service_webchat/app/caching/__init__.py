"""
Settings caching package.

Holds the cache-aside store of workgroup settings bundles. Entries are
populated on first lookup and dropped on workgroup change events; remote
failures never leave an entry behind.
"""

from .settings_cache import SettingsCache, get_settings_cache, reset_settings_cache

__all__ = [
    "SettingsCache",
    "get_settings_cache",
    "reset_settings_cache",
]
