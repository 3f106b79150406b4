import hashlib
import plistlib
from datetime import datetime, timezone
from pathlib import Path

import pytest

from bundlesign.src.core.errors import ProfileDeserializeError
from bundlesign.src.profiles.provisioning_profile import ProvisioningProfile
from tests.conftest import profile_payload

LOCATION = Path("/profiles/example.mobileprovision")


def profile_with_pattern(pattern: str) -> ProvisioningProfile:
    return ProvisioningProfile.from_plist(profile_payload(app_id=pattern), LOCATION)


@pytest.mark.parametrize(
    "bundle_identifier, expected",
    [
        ("com.example.App", True),
        ("com.example.App.Extension", True),
        ("com.other.App", False),
        ("com.example", False),
    ],
)
def test_wildcard_pattern(bundle_identifier, expected):
    profile = profile_with_pattern("TEAM123.com.example.*")
    assert profile.is_suitable_for(bundle_identifier) is expected


@pytest.mark.parametrize(
    "bundle_identifier, expected",
    [
        ("com.example.App", True),
        ("com.example.App.Extension", False),
        ("com.example.Other", False),
        ("com.example", False),
    ],
)
def test_exact_pattern(bundle_identifier, expected):
    profile = profile_with_pattern("TEAM123.com.example.App")
    assert profile.is_suitable_for(bundle_identifier) is expected


def test_team_wildcard_matches_everything():
    profile = profile_with_pattern("TEAM123.*")
    assert profile.is_suitable_for("com.example.App")
    assert profile.is_suitable_for("anything")


def test_wildcard_only_allowed_last():
    profile = profile_with_pattern("TEAM123.com.*.App")
    assert not profile.is_suitable_for("com.example.App")


def test_pattern_without_bundle_part():
    assert not profile_with_pattern("TEAM123").is_suitable_for("com.example.App")


def test_fields_from_plist():
    certificate = b"\x30\x03\x02\x01\x01"
    payload = profile_payload(
        team="TEAM123",
        devices=["DEVICE-1", "DEVICE-2"],
        platforms=["iOS", "xrOS"],
        certificates=[certificate],
        expires=datetime(2027, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
    )
    profile = ProvisioningProfile.from_plist(payload, LOCATION)

    assert profile.team_identifier == "TEAM123"
    assert profile.provisioned_device_ids == ["DEVICE-1", "DEVICE-2"]
    assert profile.platform_names == ["iOS", "xrOS"]
    assert profile.expiration_date == datetime(2027, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert profile.uuid == "11111111-2222-3333-4444-555555555555"
    assert profile.contains_certificate(hashlib.sha1(certificate).hexdigest())
    assert not profile.contains_certificate("00" * 20)


def test_missing_device_list_means_unrestricted():
    profile = ProvisioningProfile.from_plist(profile_payload(devices=None), LOCATION)
    assert profile.provisioned_device_ids is None


def test_not_a_plist():
    with pytest.raises(ProfileDeserializeError) as excinfo:
        ProvisioningProfile.from_plist(b"definitely not a plist", LOCATION)
    assert excinfo.value.location == LOCATION


def test_missing_required_key():
    raw = plistlib.loads(profile_payload())
    del raw["Entitlements"]

    with pytest.raises(ProfileDeserializeError):
        ProvisioningProfile.from_plist(plistlib.dumps(raw), LOCATION)


def test_wrong_value_type():
    raw = plistlib.loads(profile_payload())
    raw["TeamIdentifier"] = "TEAM123"

    with pytest.raises(ProfileDeserializeError):
        ProvisioningProfile.from_plist(plistlib.dumps(raw), LOCATION)


def test_top_level_array():
    with pytest.raises(ProfileDeserializeError):
        ProvisioningProfile.from_plist(plistlib.dumps(["a"]), LOCATION)
