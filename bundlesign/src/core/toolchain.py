"""Host-specific access to the keystore, signer, and provisioning tools.

Every component of the engine talks to the host through a `SigningToolchain`
picked once at start-up by `select_toolchain`, instead of branching on the
host platform inline.
"""

import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from asn1crypto.cms import ContentInfo

from bundlesign.src.core.errors import (
    HostPlatformNotSupportedError,
    ProfileExtractError,
)
from bundlesign.src.core.platforms import TargetOS
from bundlesign.src.core.tool_invoker import ToolInvoker
from bundlesign.src.profiles.dummy_project import DummyProject
from bundlesign.src.utils.config_loader import SigningConfig

PROFILE_EXTENSION = "mobileprovision"


def default_profiles_directory() -> Path:
    return (
        Path.home() / "Library" / "Developer" / "Xcode" / "UserData"
        / "Provisioning Profiles"
    )


class SigningToolchain(ABC):
    """Capabilities the signing engine needs from the host"""

    name = "abstract"

    @abstractmethod
    async def list_identities(self) -> str:
        """Raw identity listing, one `<sha1> "<name>"` entry per line"""

    @abstractmethod
    async def find_certificates(self, name: str) -> str:
        """Concatenated PEM certificates whose keystore label matches `name`"""

    @abstractmethod
    async def decode_profile(self, path: Path) -> bytes:
        """Plist payload of a signed provisioning profile"""

    @abstractmethod
    async def sign(
        self, path: Path, identity_id: str, entitlements: Optional[Path] = None
    ) -> None:
        pass

    @abstractmethod
    async def sign_ad_hoc(self, path: Path) -> None:
        pass

    @abstractmethod
    async def auto_provision(
        self, project: DummyProject, device_id: str, target_os: TargetOS
    ) -> str:
        """Build `project` letting the build tool create profiles; returns its output"""

    @abstractmethod
    def profiles_directory(self) -> Path:
        pass


class DarwinToolchain(SigningToolchain):
    """macOS host: `security`, `codesign`, `openssl` and `xcodebuild`"""

    name = "macOS"

    def __init__(self, invoker: ToolInvoker, config: Optional[SigningConfig] = None):
        self.invoker = invoker
        self.config = config or SigningConfig()

    async def list_identities(self) -> str:
        output = await self.invoker.run(
            self.config.security_path, ["find-identity", "-p", "codesigning", "-v"]
        )
        return output.stdout

    async def find_certificates(self, name: str) -> str:
        output = await self.invoker.run(
            self.config.security_path, ["find-certificate", "-c", name, "-p", "-a"]
        )
        return output.stdout

    async def decode_profile(self, path: Path) -> bytes:
        # The signer is not checked against a trust store; the embedded
        # certificates are matched against the signing identity instead.
        output = await self.invoker.run(
            self.config.openssl_path,
            ["smime", "-verify", "-in", str(path), "-noverify", "-inform", "der"],
        )
        return output.stdout.encode("utf-8")

    async def sign(
        self, path: Path, identity_id: str, entitlements: Optional[Path] = None
    ) -> None:
        arguments = []
        if entitlements:
            arguments.extend(
                ["--entitlements", str(entitlements), "--generate-entitlement-der"]
            )
        arguments.extend(["--force", "--deep", "--sign", identity_id, str(path)])
        await self.invoker.run(self.config.codesign_path, arguments)

    async def sign_ad_hoc(self, path: Path) -> None:
        await self.invoker.run(
            self.config.codesign_path, ["--force", "-s", "-", str(path)]
        )

    async def auto_provision(
        self, project: DummyProject, device_id: str, target_os: TargetOS
    ) -> str:
        output = await self.invoker.run(
            self.config.xcodebuild_path,
            [
                "-project", str(project.xcodeproj),
                "-scheme", project.scheme,
                "-sdk", target_os.sdk_name,
                "-destination", f"id={device_id}",
                "-allowProvisioningUpdates",
                "-allowProvisioningDeviceRegistration",
                "build",
            ],
            cwd=project.directory,
            merge_stderr=True,
        )
        return output.stdout

    def profiles_directory(self) -> Path:
        return self.config.profiles_dir or default_profiles_directory()


class PortableToolchain(SigningToolchain):
    """Any other host: profiles can be read, nothing can be signed"""

    def __init__(self, config: Optional[SigningConfig] = None, platform: str = sys.platform):
        self.config = config or SigningConfig()
        self.name = platform

    def _unsupported(self, operation: str) -> HostPlatformNotSupportedError:
        return HostPlatformNotSupportedError(operation, self.name)

    async def list_identities(self) -> str:
        raise self._unsupported("Listing code signing identities")

    async def find_certificates(self, name: str) -> str:
        raise self._unsupported("Looking up signing certificates")

    async def decode_profile(self, path: Path) -> bytes:
        """Read a provisioning profile without the macOS security command"""
        try:
            with open(path, "rb") as f:
                content_info = ContentInfo.load(f.read())
            signed_data = content_info["content"]
            payload = signed_data["encap_content_info"]["content"].native
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise ProfileExtractError(path, str(e))
        if not isinstance(payload, bytes):
            raise ProfileExtractError(path, "Signed data carries no plist payload")
        return payload

    async def sign(
        self, path: Path, identity_id: str, entitlements: Optional[Path] = None
    ) -> None:
        raise self._unsupported("Code signing")

    async def sign_ad_hoc(self, path: Path) -> None:
        raise self._unsupported("Ad-hoc code signing")

    async def auto_provision(
        self, project: DummyProject, device_id: str, target_os: TargetOS
    ) -> str:
        raise self._unsupported("Automatic provisioning")

    def profiles_directory(self) -> Path:
        return self.config.profiles_dir or default_profiles_directory()


def select_toolchain(
    config: SigningConfig, invoker: ToolInvoker, platform: str = sys.platform
) -> SigningToolchain:
    """Pick the toolchain for the host the process runs on"""
    if platform == "darwin":
        return DarwinToolchain(invoker, config)
    return PortableToolchain(config, platform)
