from pathlib import Path
from typing import Optional

from rich.markup import escape

from bundlesign.logger import get_console
from bundlesign.src.core.certificate_store import CertificateStore
from bundlesign.src.core.entitlements import generate_entitlements, write_entitlements
from bundlesign.src.core.errors import (
    CodeSignError,
    DynamicLibraryEnumerationError,
    ProfileMissingTeamIdentifierError,
    ToolInvocationError,
    UnsupportedTargetError,
)
from bundlesign.src.core.identity import Identity
from bundlesign.src.core.identity_catalog import IdentityCatalog
from bundlesign.src.core.platforms import TargetOS
from bundlesign.src.core.toolchain import SigningToolchain
from bundlesign.src.profiles.profile_generator import ProfileGenerator
from bundlesign.src.profiles.profile_matcher import MatchQuery, ProfileMatcher
from bundlesign.src.profiles.profile_repository import ProfileRepository

EMBEDDED_PROFILE_NAME = "embedded.mobileprovision"
LIBRARIES_DIRECTORY = "Libraries"


class CodeSigningCoordinator:
    """Signs bundles and finds (or creates) the provisioning profiles they need"""

    def __init__(
        self,
        toolchain: SigningToolchain,
        catalog: Optional[IdentityCatalog] = None,
        certificates: Optional[CertificateStore] = None,
        repository: Optional[ProfileRepository] = None,
        matcher: Optional[ProfileMatcher] = None,
        generator: Optional[ProfileGenerator] = None,
    ):
        self.console = get_console()
        self.toolchain = toolchain
        self.catalog = catalog or IdentityCatalog(toolchain)
        self.certificates = certificates or CertificateStore(toolchain)
        self.repository = repository or ProfileRepository(toolchain)
        self.matcher = matcher or ProfileMatcher()
        self.generator = generator or ProfileGenerator(toolchain)

    async def resolve_identity(self, short_name: str) -> Identity:
        return await self.catalog.resolve(short_name)

    async def team_identifier_from_bundle(self, bundle: Path) -> str:
        """Team identifier of the profile already embedded in `bundle`"""
        profile = await self.repository.load(bundle / EMBEDDED_PROFILE_NAME)
        if not profile.team_identifier:
            raise ProfileMissingTeamIdentifierError(
                "The embedded provisioning profile is missing the 'TeamIdentifier' entry"
            )
        return profile.team_identifier

    async def sign_file(
        self, path: Path, identity: Identity, entitlements: Optional[Path] = None
    ) -> None:
        self.console.log(f"[blue]Signing:[/] {escape(str(path))}")
        try:
            await self.toolchain.sign(path, identity.id, entitlements)
        except ToolInvocationError as e:
            self.console.log(f"[red]Codesign failed for {escape(str(path))}")
            raise CodeSignError(f"Failed to sign '{path}': {e.message}", details=e.details) from e

    async def sign_ad_hoc(self, path: Path) -> None:
        self.console.log(f"[blue]Ad-hoc signing:[/] {escape(str(path))}")
        try:
            await self.toolchain.sign_ad_hoc(path)
        except ToolInvocationError as e:
            raise CodeSignError(f"Failed to ad-hoc sign '{path}': {e.message}", details=e.details) from e

    async def sign_bundle(
        self,
        bundle: Path,
        identity: Identity,
        bundle_identifier: str,
        target_os: TargetOS,
        entitlements: Optional[Path] = None,
    ) -> None:
        """Sign a bundle's dynamic libraries, then the bundle itself.

        Without an entitlements file, targets that need provisioning get
        generated entitlements based on the bundle's embedded profile.
        """
        self.console.log(f"[yellow]Codesigning app bundle {escape(bundle.name)}")

        # Libraries must carry signatures before the bundle referencing them is signed
        for library in self._dynamic_libraries(bundle):
            await self.sign_file(library, identity)

        generated: Optional[Path] = None
        if entitlements is None and target_os.requires_provisioning:
            team_identifier = await self.team_identifier_from_bundle(bundle)
            generated = write_entitlements(
                generate_entitlements(team_identifier, bundle_identifier)
            )
            entitlements = generated

        try:
            await self.sign_file(bundle, identity, entitlements)
        finally:
            if generated is not None:
                generated.unlink(missing_ok=True)

        self.console.log(f"[green]Signed {escape(bundle.name)} with {escape(str(identity))}")

    def _dynamic_libraries(self, bundle: Path):
        libraries_directory = bundle / LIBRARIES_DIRECTORY
        if not libraries_directory.is_dir():
            return []
        try:
            return sorted(
                entry for entry in libraries_directory.iterdir() if entry.suffix == ".dylib"
            )
        except OSError as e:
            raise DynamicLibraryEnumerationError(
                f"Failed to enumerate dynamic libraries in '{libraries_directory}'",
                details=str(e),
            )

    async def locate_profile(
        self,
        bundle_identifier: str,
        device_id: str,
        target_os: TargetOS,
        identity: Identity,
    ) -> Optional[Path]:
        """An installed profile usable for the query, if there is one"""
        query = MatchQuery(bundle_identifier, device_id, target_os, identity)
        candidates = await self.repository.load_all()
        return self.matcher.best_match(query, candidates).location

    async def locate_or_generate_profile(
        self,
        bundle_identifier: str,
        device_id: str,
        target_os: TargetOS,
        identity: Identity,
    ) -> Path:
        """Find a suitable installed profile, generating one when none exists"""
        if not target_os.requires_provisioning:
            raise UnsupportedTargetError(
                f"{target_os.value} bundles do not use provisioning profiles"
            )

        location = await self.locate_profile(bundle_identifier, device_id, target_os, identity)
        if location is not None:
            self.console.log(f"[green]Found suitable provisioning profile:[/] {escape(str(location))}")
            return location

        team_identifier = await self.certificates.team_identifier(identity)
        return await self.generator.generate(
            bundle_identifier, team_identifier, device_id, target_os
        )
