from typing import List

from rich.markup import escape

from bundlesign.logger import get_console
from bundlesign.src.core.errors import IdentityEnumerationError, IdentityNotFoundError, ToolInvocationError
from bundlesign.src.core.identity import Identity
from bundlesign.src.core.toolchain import SigningToolchain
from bundlesign.src.parsers.identity_list import parse_identity_list


class IdentityCatalog:
    """Enumerates and resolves code signing identities from the host keystore"""

    def __init__(self, toolchain: SigningToolchain):
        self.console = get_console()
        self.toolchain = toolchain

    async def enumerate(self) -> List[Identity]:
        """List every valid code signing identity, freshly fetched each call"""
        try:
            output = await self.toolchain.list_identities()
        except ToolInvocationError as e:
            raise IdentityEnumerationError(
                "Failed to enumerate code signing identities", details=e.details
            ) from e
        return parse_identity_list(output)

    async def matches(self, short_name: str) -> List[Identity]:
        """Identities whose id equals `short_name` or whose name contains it"""
        identities = await self.enumerate()
        return [
            identity
            for identity in identities
            if identity.id == short_name or short_name in identity.display_name
        ]

    async def resolve(self, short_name: str) -> Identity:
        """Resolve a short identity hint to one identity.

        Ambiguity does not block the user: the first match in listing order
        wins and a warning names the one that was picked.
        """
        matching = await self.matches(short_name)
        if not matching:
            raise IdentityNotFoundError(short_name)

        identity = matching[0]
        if len(matching) > 1:
            self.console.log(
                f"[warning]Warning:[/] Multiple identities matched short name "
                f"'{escape(short_name)}', using {escape(str(identity))}"
            )
        return identity
