import asyncio
from pathlib import Path
from typing import List, Tuple

from bundlesign.logger import log_debug
from bundlesign.src.core.errors import (
    ProfileEnumerationError,
    ProfileExtractError,
    ToolInvocationError,
)
from bundlesign.src.core.toolchain import PROFILE_EXTENSION, SigningToolchain
from bundlesign.src.profiles.provisioning_profile import ProvisioningProfile

# Upper bound on decoder processes running at once; each holds several fds
MAX_CONCURRENT_DECODES = 8


class ProfileRepository:
    """Reads the provisioning profiles installed on the host.

    Nothing is cached: every query decodes the files on disk again.
    """

    def __init__(self, toolchain: SigningToolchain, max_concurrent: int = MAX_CONCURRENT_DECODES):
        self.toolchain = toolchain
        self.max_concurrent = max_concurrent

    @property
    def directory(self) -> Path:
        return self.toolchain.profiles_directory()

    async def load(self, location: Path) -> ProvisioningProfile:
        """Decode a single profile file"""
        try:
            payload = await self.toolchain.decode_profile(location)
        except ToolInvocationError as e:
            raise ProfileExtractError(location, e.details) from e
        return ProvisioningProfile.from_plist(payload, location)

    async def load_all(self) -> List[Tuple[Path, ProvisioningProfile]]:
        """Decode every installed profile, in directory listing order"""
        directory = self.directory
        try:
            files = [
                entry
                for entry in directory.iterdir()
                if entry.suffix == f".{PROFILE_EXTENSION}"
            ]
        except FileNotFoundError:
            log_debug(f"No provisioning profile directory at {directory}")
            return []
        except OSError as e:
            raise ProfileEnumerationError(directory, str(e))

        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def load_bounded(location: Path) -> ProvisioningProfile:
            async with semaphore:
                return await self.load(location)

        profiles = await asyncio.gather(*(load_bounded(file) for file in files))
        return list(zip(files, profiles))
