"""
Static blank image used when a workgroup image cannot be served.
"""

from pathlib import Path
from typing import Optional, Union

from shared.logging import get_logger
from shared.errors import AssetUnavailableError


class BlankImageProvider:
    """Reads the default blank image from the static asset directory."""

    def __init__(self, image_path: Union[str, Path]):
        self.image_path = Path(image_path)
        self.logger = get_logger("webchat.blank_image")
        self._bytes: Optional[bytes] = None

    def get_default_image_bytes(self) -> bytes:
        """Return the blank image bytes.

        Raises:
            AssetUnavailableError: if the file cannot be read.
        """
        if self._bytes is None:
            try:
                self._bytes = self.image_path.read_bytes()
            except OSError as e:
                self.logger.error("Error reading blank image", path=str(self.image_path), error=str(e))
                raise AssetUnavailableError(str(self.image_path), f"Blank image unreadable: {e}") from e
        return self._bytes
