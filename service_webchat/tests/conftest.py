"""
Shared fixtures for the web chat settings service tests.
"""

import asyncio
from typing import Dict, List, Optional

import pytest

from service_webchat.app.caching.settings_cache import reset_settings_cache
from service_webchat.app.domain.models import SettingSlot, SettingsBundle, WorkgroupId
from shared.errors import WorkgroupServiceError

BLANK_BYTES = b"GIF89a-blank"


class FakeSettingsClient:
    """In-memory stand-in for the workgroup service client."""

    def __init__(self, bundles: Optional[Dict[str, Dict[str, Optional[str]]]] = None,
                 error: Optional[Exception] = None):
        self.bundles = bundles or {}
        self.error = error
        self.calls: List[WorkgroupId] = []
        self.gate: Optional[asyncio.Event] = None

    async def fetch(self, workgroup_id: WorkgroupId) -> SettingsBundle:
        self.calls.append(workgroup_id)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        values = self.bundles.get(str(workgroup_id), {})
        return SettingsBundle.from_slots(
            workgroup_id,
            [SettingSlot(key=key, value=value) for key, value in values.items()]
        )


@pytest.fixture
def workgroup():
    """Workgroup address used across tests."""
    return WorkgroupId.parse("support@workgroup.example.com")


@pytest.fixture
def fake_client(workgroup):
    """Client serving a single image setting."""
    return FakeSettingsClient({str(workgroup): {"img1": "aGVsbG8=", "title": "Support"}})


@pytest.fixture
def failing_client():
    """Client whose every fetch fails."""
    return FakeSettingsClient(error=WorkgroupServiceError("Workgroup service unavailable"))


@pytest.fixture
def blank_image_file(tmp_path):
    """Blank image on disk."""
    path = tmp_path / "blank.gif"
    path.write_bytes(BLANK_BYTES)
    return path


@pytest.fixture(autouse=True)
def _reset_process_cache():
    yield
    reset_settings_cache()


@pytest.fixture
def client_factory():
    """Build FakeSettingsClient instances inside a test."""
    return FakeSettingsClient


@pytest.fixture
def blank_bytes():
    """Contents of the blank image fixture."""
    return BLANK_BYTES
