"""
Unit tests for the web chat settings service.
"""

import time

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from service_webchat.app.adapters.blank_image import BlankImageProvider
from service_webchat.app.caching.settings_cache import SettingsCache, get_settings_cache
from service_webchat.app.main import WebchatService, create_app
from service_webchat.app.notifications.change_notifier import WorkgroupChangeNotifier
from shared.config import get_config


class TestWebchatService:
    """Test cases for WebchatService."""

    @pytest.fixture
    def notifier(self):
        """Change notifier shared by service and cache."""
        return WorkgroupChangeNotifier()

    @pytest.fixture
    def webchat_service(self, fake_client, notifier, blank_image_file):
        """Service wired to the fake workgroup client."""
        return WebchatService(
            get_config("webchat", 8080),
            notifier=notifier,
            settings_cache=SettingsCache(fake_client, notifier),
            blank_images=BlankImageProvider(blank_image_file)
        )

    @pytest.fixture
    def client(self, webchat_service):
        """Test client with startup and shutdown events."""
        with TestClient(webchat_service.app) as test_client:
            yield test_client

    def test_root_endpoint(self, client):
        """Test root endpoint."""
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "webchat"
        assert "/images/{image_name}" in data["endpoints"]

    def test_image_endpoint(self, client):
        """Test serving a stored image."""
        response = client.get("/images/img1", params={"workgroup": "support@workgroup.example.com"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        assert response.content == b"hello"

    def test_image_endpoint_without_workgroup(self, client, fake_client, blank_bytes):
        """Test blank image when no workgroup is given."""
        response = client.get("/images/img1")

        assert response.status_code == 200
        assert response.content == blank_bytes
        assert fake_client.calls == []

    def test_image_endpoint_unknown_image(self, client, blank_bytes):
        """Test blank image for an unset image."""
        response = client.get("/images/missing", params={"workgroup": "support@workgroup.example.com"})

        assert response.status_code == 200
        assert response.content == blank_bytes

    def test_setting_endpoint(self, client):
        """Test reading a single setting."""
        response = client.get("/workgroups/support@workgroup.example.com/settings/title")

        assert response.status_code == 200
        assert response.json() == {
            "workgroup": "support@workgroup.example.com",
            "key": "title",
            "value": "Support",
            "type": 0
        }

    def test_setting_endpoint_not_found(self, client):
        """Test missing setting."""
        response = client.get("/workgroups/support@workgroup.example.com/settings/missing")

        assert response.status_code == 404
        data = response.json()
        assert data["code"] == "SETTING_NOT_FOUND"
        assert data["details"]["key"] == "missing"
        assert data["request_id"]

    def test_setting_endpoint_invalid_workgroup(self, client):
        """Test malformed workgroup address."""
        response = client.get("/workgroups/a@/settings/title")

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_change_webhook_invalidates(self, client, webchat_service, fake_client, workgroup):
        """Test that a change notification forces a refetch."""
        client.get("/workgroups/support@workgroup.example.com/settings/title")
        assert webchat_service.settings_cache.contains(workgroup)

        response = client.post("/workgroups/support@workgroup.example.com/changed")

        assert response.status_code == 202
        assert response.json()["subscribers"] == 1

        _wait_until_evicted(webchat_service.settings_cache, workgroup)

        client.get("/workgroups/support@workgroup.example.com/settings/title")
        assert len(fake_client.calls) == 2

    def test_health_reports_cache(self, client):
        """Test health endpoint."""
        client.get("/images/img1", params={"workgroup": "support@workgroup.example.com"})

        response = client.get("/health")

        assert response.status_code == 200
        dependencies = response.json()["dependencies"]
        assert dependencies["settings_cache"]["entries"] == 1
        assert dependencies["invalidation_consumer"] == "ok"

    def test_metrics_endpoint(self, client):
        """Test Prometheus exposition."""
        client.get("/images/img1")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert 'image_fallbacks_total{reason="missing_workgroup"} 1.0' in response.text

    def test_request_id_echoed(self, client):
        """Test request correlation header."""
        response = client.get("/", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"

    def test_kafka_feed_disabled_by_default(self, webchat_service):
        """Test default notification sources."""
        assert webchat_service.change_consumer is None

    def test_change_webhook_after_restart(self, webchat_service, fake_client, workgroup):
        """Test that invalidation keeps working across application lifespans."""
        for _ in range(2):
            with TestClient(webchat_service.app) as client:
                client.get("/workgroups/support@workgroup.example.com/settings/title")
                assert webchat_service.settings_cache.contains(workgroup)

                response = client.post("/workgroups/support@workgroup.example.com/changed")
                assert response.json()["subscribers"] == 1
                assert client.get("/health").json()["dependencies"]["invalidation_consumer"] == "ok"

                _wait_until_evicted(webchat_service.settings_cache, workgroup)

        assert len(fake_client.calls) == 2

    def test_workgroup_with_resource(self, client, fake_client):
        """Test addresses carrying a resource part."""
        fake_client.bundles["support@workgroup.example.com/desk"] = {"title": "Desk"}

        response = client.get("/workgroups/support@workgroup.example.com/desk/settings/title")

        assert response.status_code == 200
        assert response.json()["workgroup"] == "support@workgroup.example.com/desk"
        assert response.json()["value"] == "Desk"

        response = client.post("/workgroups/support@workgroup.example.com/desk/changed")

        assert response.status_code == 202
        assert response.json()["workgroup"] == "support@workgroup.example.com/desk"


def _wait_until_evicted(cache, workgroup_id, timeout=2.0):
    deadline = time.monotonic() + timeout
    while cache.contains(workgroup_id) and time.monotonic() < deadline:
        time.sleep(0.01)
    assert not cache.contains(workgroup_id)


def test_services_sharing_process_cache_share_notifier(fake_client, blank_image_file, workgroup):
    """Test that every service publishes to the notifier the shared cache follows."""
    shared_cache = get_settings_cache(lambda: SettingsCache(fake_client))
    config = get_config("webchat", 8080)
    first = WebchatService(config, blank_images=BlankImageProvider(blank_image_file))
    second = WebchatService(config, blank_images=BlankImageProvider(blank_image_file))

    assert first.settings_cache is shared_cache
    assert second.settings_cache is shared_cache
    assert second.notifier is first.notifier

    with TestClient(first.app):
        pass

    with TestClient(second.app) as client:
        client.get("/workgroups/support@workgroup.example.com/settings/title")
        response = client.post("/workgroups/support@workgroup.example.com/changed")

        assert response.json()["subscribers"] == 1
        _wait_until_evicted(shared_cache, workgroup)


def test_create_app_uses_process_wide_cache():
    """Test the default application factory."""
    app = create_app()

    assert isinstance(app, FastAPI)
    assert WebchatService().settings_cache is WebchatService().settings_cache
