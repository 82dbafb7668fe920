"""
Unit tests for the blank image provider.
"""

import pytest

from service_webchat.app.adapters.blank_image import BlankImageProvider
from service_webchat.app.main import DEFAULT_BLANK_IMAGE
from shared.errors import AssetUnavailableError


def test_reads_image_bytes(blank_image_file, blank_bytes):
    """Test reading the asset."""
    assert BlankImageProvider(blank_image_file).get_default_image_bytes() == blank_bytes


def test_bytes_kept_after_first_read(blank_image_file, blank_bytes):
    """Test that the asset is read once."""
    provider = BlankImageProvider(blank_image_file)
    provider.get_default_image_bytes()
    blank_image_file.unlink()

    assert provider.get_default_image_bytes() == blank_bytes


def test_missing_image_raises(tmp_path):
    """Test unreadable asset."""
    with pytest.raises(AssetUnavailableError) as exc_info:
        BlankImageProvider(tmp_path / "absent.gif").get_default_image_bytes()

    assert exc_info.value.code == "ASSET_UNAVAILABLE"


def test_packaged_blank_image_is_a_gif():
    """Test the bundled default asset."""
    assert BlankImageProvider(DEFAULT_BLANK_IMAGE).get_default_image_bytes().startswith(b"GIF89a")
