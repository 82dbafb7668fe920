"""
Resolves workgroup image settings to bytes, never failing the caller.
"""

import base64
import binascii
from typing import Optional, Union, TYPE_CHECKING

from shared.logging import get_logger
from shared.errors import AssetUnavailableError, ValidationError
from ..adapters.blank_image import BlankImageProvider
from ..caching.settings_cache import SettingsCache
from ..domain.models import WorkgroupId

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


def decode_image_value(value: str) -> bytes:
    """Decode a base64 image value; embedded whitespace is ignored."""
    return base64.b64decode("".join(value.split()), validate=True)


class ImageResolver:
    """Looks up image settings through the settings cache.

    Every failure path (missing workgroup, missing setting, undecodable value,
    lookup error) answers with the blank image instead.
    """

    def __init__(self, settings_cache: SettingsCache, blank_images: BlankImageProvider,
                 metrics: Optional["MetricsCollector"] = None):
        self.settings_cache = settings_cache
        self.blank_images = blank_images
        self.metrics = metrics
        self.logger = get_logger("webchat.image_resolver")

    async def resolve_image(self, image_name: str,
                            workgroup_id: Union[WorkgroupId, str, None]) -> bytes:
        """Return the decoded image bytes, or the blank image."""
        workgroup = self._coerce_workgroup(image_name, workgroup_id)
        if workgroup is None:
            return self._blank_image("missing_workgroup")

        try:
            slot = await self.settings_cache.get(workgroup, image_name)
        except Exception as e:
            self.logger.error("Could not retrieve image", image_name=image_name,
                              workgroup=str(workgroup), error=str(e))
            return self._blank_image("lookup_error")

        if slot is None or slot.value is None or not slot.value.strip():
            return self._blank_image("not_set")

        try:
            return decode_image_value(slot.value)
        except (binascii.Error, ValueError) as e:
            self.logger.error("Could not decode image", image_name=image_name,
                              workgroup=str(workgroup), error=str(e))
            return self._blank_image("decode_error")

    def _coerce_workgroup(self, image_name: str,
                          workgroup_id: Union[WorkgroupId, str, None]) -> Optional[WorkgroupId]:
        if isinstance(workgroup_id, WorkgroupId):
            return workgroup_id
        if not workgroup_id:
            self.logger.error("Workgroup must be specified to retrieve image", image_name=image_name)
            return None
        try:
            return WorkgroupId.parse(workgroup_id)
        except ValidationError as e:
            self.logger.error("Invalid workgroup for image", image_name=image_name,
                              workgroup=workgroup_id, error=e.message)
            return None

    def _blank_image(self, reason: str) -> bytes:
        if self.metrics:
            self.metrics.increment_counter("image_fallbacks_total", reason=reason)
        try:
            return self.blank_images.get_default_image_bytes()
        except AssetUnavailableError as e:
            self.logger.error("Error getting blank image bytes", error=e.message, **e.details)
            return b""
