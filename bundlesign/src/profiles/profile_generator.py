import shutil
import tempfile
from pathlib import Path

from rich.markup import escape

from bundlesign.logger import get_console
from bundlesign.src.core.errors import (
    AutoProvisioningError,
    DummyProjectError,
    GeneratedProfileNotFoundError,
    ToolInvocationError,
    XcodebuildOutputParseError,
)
from bundlesign.src.core.platforms import TargetOS
from bundlesign.src.core.toolchain import PROFILE_EXTENSION, SigningToolchain
from bundlesign.src.parsers.xcodebuild_output import parse_generated_profile_id
from bundlesign.src.profiles.dummy_project import DummyProject, write_dummy_project

BUNDLE_ID_TAKEN_MARKER = "Failed Registering Bundle Identifier"


class ProfileGenerator:
    """Creates a provisioning profile by letting the build tool provision a dummy app"""

    def __init__(self, toolchain: SigningToolchain):
        self.console = get_console()
        self.toolchain = toolchain

    def predicted_location(self, profile_id: str) -> Path:
        return self.toolchain.profiles_directory() / f"{profile_id}.{PROFILE_EXTENSION}"

    async def generate(
        self,
        bundle_identifier: str,
        team_identifier: str,
        device_id: str,
        target_os: TargetOS,
    ) -> Path:
        """Generate a profile and return where it was installed"""
        self.console.log(f"[yellow]Generating provisioning profile for {escape(bundle_identifier)}")

        try:
            directory = Path(tempfile.mkdtemp(prefix="DummyProject-"))
        except OSError as e:
            raise DummyProjectError(
                bundle_identifier, "Failed to create a temporary project directory", str(e)
            )

        try:
            project = write_dummy_project(
                directory, bundle_identifier, team_identifier, target_os
            )
            output = await self._run_auto_provisioning(
                project, bundle_identifier, device_id, target_os
            )

            try:
                profile_id = parse_generated_profile_id(output)
            except ValueError as e:
                raise XcodebuildOutputParseError(bundle_identifier, str(e), details=output)

            location = self.predicted_location(profile_id)
            if not location.exists():
                raise GeneratedProfileNotFoundError(bundle_identifier, location)
        finally:
            shutil.rmtree(directory, ignore_errors=True)

        self.console.log(f"[green]Generated provisioning profile:[/] {escape(str(location))}")
        return location

    async def _run_auto_provisioning(
        self,
        project: DummyProject,
        bundle_identifier: str,
        device_id: str,
        target_os: TargetOS,
    ) -> str:
        try:
            return await self.toolchain.auto_provision(project, device_id, target_os)
        except ToolInvocationError as e:
            # Show the build log; it is usually the only clue to what went wrong
            self.console.log(f"[red]{escape(e.output.strip())}")
            if BUNDLE_ID_TAKEN_MARKER in e.output:
                raise AutoProvisioningError(
                    bundle_identifier,
                    f"Bundle identifier '{bundle_identifier}' is already taken. Change "
                    "your bundle identifier to a unique string and try again",
                    details=e.output,
                )
            raise AutoProvisioningError(bundle_identifier, e.message, details=e.output)
