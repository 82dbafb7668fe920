"""
Unit tests for workgroup settings models.
"""

import pytest

from service_webchat.app.domain.models import SettingSlot, SettingsBundle, SettingType, WorkgroupId
from shared.errors import ValidationError


class TestWorkgroupId:
    """Test cases for WorkgroupId."""

    def test_parse_full_address(self):
        """Test parsing local, domain and resource."""
        workgroup_id = WorkgroupId.parse("Support@Workgroup.Example.com/desk")

        assert workgroup_id.local == "support"
        assert workgroup_id.domain == "workgroup.example.com"
        assert workgroup_id.resource == "desk"
        assert str(workgroup_id) == "support@workgroup.example.com/desk"

    def test_parse_domain_only(self):
        """Test parsing a bare domain."""
        workgroup_id = WorkgroupId.parse("workgroup.example.com")

        assert workgroup_id.local is None
        assert workgroup_id.resource is None
        assert str(workgroup_id) == "workgroup.example.com"

    def test_equality_by_value(self):
        """Test that equal addresses are equal keys."""
        first = WorkgroupId.parse("support@workgroup.example.com")
        second = WorkgroupId.parse("SUPPORT@workgroup.example.com")

        assert first == second
        assert hash(first) == hash(second)
        assert {first: "cached"}[second] == "cached"

    def test_resource_is_case_sensitive(self):
        """Test that resources keep their case."""
        assert WorkgroupId.parse("a@b/Desk") != WorkgroupId.parse("a@b/desk")

    def test_bare_drops_resource(self):
        """Test bare address."""
        workgroup_id = WorkgroupId.parse("support@workgroup.example.com/desk")

        assert workgroup_id.bare() == WorkgroupId.parse("support@workgroup.example.com")

    @pytest.mark.parametrize("address", [None, "", "   ", "@example.com", "a@", "a@b@c", "a@b/", "a@bad domain",
                                         42, ["a@b"], {"workgroup": "a@b"}])
    def test_parse_rejects_malformed(self, address):
        """Test malformed addresses."""
        with pytest.raises(ValidationError):
            WorkgroupId.parse(address)


class TestSettingsBundle:
    """Test cases for SettingsBundle."""

    @pytest.fixture
    def bundle(self):
        """Bundle with image and text settings."""
        return SettingsBundle.from_slots(
            WorkgroupId.parse("support@workgroup.example.com"),
            [
                SettingSlot("logo", "aGVsbG8=", SettingType.IMAGE),
                SettingSlot("title", "Support", SettingType.TEXT),
                SettingSlot("banner", None, SettingType.IMAGE),
            ]
        )

    def test_get_setting(self, bundle):
        """Test lookup by key."""
        assert bundle.get_setting("title").value == "Support"
        assert bundle.get_setting("missing") is None

    def test_unset_slot_is_present(self, bundle):
        """Test that an unset key is still a slot."""
        slot = bundle.get_setting("banner")

        assert "banner" in bundle
        assert slot.value is None
        assert slot.has_value is False

    def test_settings_of_type(self, bundle):
        """Test filtering by setting type."""
        image_keys = {slot.key for slot in bundle.settings_of_type(SettingType.IMAGE)}

        assert image_keys == {"logo", "banner"}
        assert len(bundle) == 3

    def test_later_duplicates_win(self):
        """Test duplicate keys in a payload."""
        bundle = SettingsBundle.from_slots(
            WorkgroupId.parse("workgroup.example.com"),
            [SettingSlot("title", "Old"), SettingSlot("title", "New")]
        )

        assert len(bundle) == 1
        assert bundle.get_setting("title").value == "New"
