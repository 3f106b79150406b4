import plistlib

import pytest

from bundlesign.src.core.entitlements import generate_entitlements, write_entitlements
from bundlesign.src.core.errors import EntitlementsWriteError


def test_generated_entitlements():
    entitlements = generate_entitlements("TEAM123", "com.example.App")

    assert entitlements.to_dict() == {
        "application-identifier": "TEAM123.com.example.App",
        "com.apple.developer.team-identifier": "TEAM123",
        "get-task-allow": True,
    }


def test_written_as_xml_plist(tmp_path):
    location = write_entitlements(generate_entitlements("TEAM123", "com.example.App"), tmp_path)

    assert location.parent == tmp_path
    assert location.suffix == ".xcent"
    data = location.read_bytes()
    assert data.startswith(b"<?xml")
    assert plistlib.loads(data)["application-identifier"] == "TEAM123.com.example.App"


def test_unwritable_directory(tmp_path):
    with pytest.raises(EntitlementsWriteError):
        write_entitlements(generate_entitlements("T", "a.b"), tmp_path / "missing")
