from pathlib import Path

import pytest
from asn1crypto import cms

from bundlesign.src.core.errors import HostPlatformNotSupportedError, ProfileExtractError
from bundlesign.src.core.platforms import TargetOS
from bundlesign.src.core.tool_invoker import ToolOutput
from bundlesign.src.core.toolchain import (
    DarwinToolchain,
    PortableToolchain,
    default_profiles_directory,
    select_toolchain,
)
from bundlesign.src.profiles.dummy_project import DummyProject
from bundlesign.src.utils.config_loader import SigningConfig
from tests.conftest import profile_payload


class RecordingInvoker:
    def __init__(self, stdout: str = ""):
        self.stdout = stdout
        self.calls = []

    async def run(self, executable, arguments, cwd=None, merge_stderr=False):
        self.calls.append((executable, list(arguments), cwd, merge_stderr))
        return ToolOutput([executable, *arguments], 0, self.stdout, "")


def signed_profile(payload: bytes) -> bytes:
    signed_data = cms.SignedData(
        {
            "version": "v1",
            "digest_algorithms": [],
            "encap_content_info": {"content_type": "data", "content": payload},
            "signer_infos": [],
        }
    )
    return cms.ContentInfo({"content_type": "signed_data", "content": signed_data}).dump()


@pytest.mark.asyncio
async def test_darwin_identity_listing():
    invoker = RecordingInvoker("listing")
    toolchain = DarwinToolchain(invoker)

    assert await toolchain.list_identities() == "listing"
    assert invoker.calls == [
        ("/usr/bin/security", ["find-identity", "-p", "codesigning", "-v"], None, False)
    ]


@pytest.mark.asyncio
async def test_darwin_certificate_lookup_by_name():
    invoker = RecordingInvoker()
    await DarwinToolchain(invoker).find_certificates("Apple Development: Jane Doe (ABCD1234)")

    assert invoker.calls[0][1] == [
        "find-certificate", "-c", "Apple Development: Jane Doe (ABCD1234)", "-p", "-a"
    ]


@pytest.mark.asyncio
async def test_darwin_profile_decode():
    invoker = RecordingInvoker("<plist/>")
    payload = await DarwinToolchain(invoker).decode_profile(Path("/p/x.mobileprovision"))

    assert payload == b"<plist/>"
    assert invoker.calls[0][:2] == (
        "/usr/bin/openssl",
        ["smime", "-verify", "-in", "/p/x.mobileprovision", "-noverify", "-inform", "der"],
    )


@pytest.mark.asyncio
async def test_darwin_sign_with_entitlements():
    invoker = RecordingInvoker()
    config = SigningConfig(codesign_path="/opt/codesign")
    await DarwinToolchain(invoker, config).sign(
        Path("/b/App.app"), "AB" * 20, Path("/tmp/e.xcent")
    )

    assert invoker.calls[0][:2] == (
        "/opt/codesign",
        [
            "--entitlements", "/tmp/e.xcent", "--generate-entitlement-der",
            "--force", "--deep", "--sign", "AB" * 20, "/b/App.app",
        ],
    )


@pytest.mark.asyncio
async def test_darwin_sign_without_entitlements_and_ad_hoc():
    invoker = RecordingInvoker()
    toolchain = DarwinToolchain(invoker)
    await toolchain.sign(Path("/b/lib.dylib"), "AB" * 20)
    await toolchain.sign_ad_hoc(Path("/b/tool"))

    assert invoker.calls[0][1] == ["--force", "--deep", "--sign", "AB" * 20, "/b/lib.dylib"]
    assert invoker.calls[1][1] == ["--force", "-s", "-", "/b/tool"]


@pytest.mark.asyncio
async def test_darwin_auto_provision(tmp_path):
    invoker = RecordingInvoker("build output")
    project = DummyProject(tmp_path, tmp_path / "Dummy.xcodeproj", "App")

    output = await DarwinToolchain(invoker).auto_provision(project, "DEVICE-1", TargetOS.TVOS)

    assert output == "build output"
    executable, arguments, cwd, merge_stderr = invoker.calls[0]
    assert executable == "xcodebuild"
    assert arguments == [
        "-project", str(tmp_path / "Dummy.xcodeproj"),
        "-scheme", "App",
        "-sdk", "appletvos",
        "-destination", "id=DEVICE-1",
        "-allowProvisioningUpdates",
        "-allowProvisioningDeviceRegistration",
        "build",
    ]
    assert cwd == tmp_path
    assert merge_stderr


def test_profiles_directory(tmp_path):
    assert DarwinToolchain(RecordingInvoker()).profiles_directory() == default_profiles_directory()
    config = SigningConfig(profiles_dir=tmp_path)
    assert PortableToolchain(config).profiles_directory() == tmp_path


@pytest.mark.asyncio
async def test_portable_decodes_signed_profile(tmp_path):
    payload = profile_payload()
    location = tmp_path / "x.mobileprovision"
    location.write_bytes(signed_profile(payload))

    assert await PortableToolchain().decode_profile(location) == payload


@pytest.mark.asyncio
async def test_portable_rejects_garbage(tmp_path):
    location = tmp_path / "x.mobileprovision"
    location.write_bytes(b"not der")

    with pytest.raises(ProfileExtractError):
        await PortableToolchain().decode_profile(location)


@pytest.mark.asyncio
async def test_portable_cannot_sign(tmp_path):
    toolchain = PortableToolchain(platform="linux")

    with pytest.raises(HostPlatformNotSupportedError) as excinfo:
        await toolchain.sign(tmp_path, "AB" * 20)
    assert excinfo.value.platform == "linux"

    with pytest.raises(HostPlatformNotSupportedError):
        await toolchain.list_identities()


def test_select_toolchain():
    config = SigningConfig()
    assert isinstance(select_toolchain(config, RecordingInvoker(), "darwin"), DarwinToolchain)
    portable = select_toolchain(config, RecordingInvoker(), "linux")
    assert isinstance(portable, PortableToolchain)
    assert portable.name == "linux"
