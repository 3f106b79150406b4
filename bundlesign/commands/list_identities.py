import asyncio

from rich.table import Table

from bundlesign.commands.context import build_toolchain
from bundlesign.logger import get_console
from bundlesign.src.core.identity_catalog import IdentityCatalog
from bundlesign.src.core.tool_invoker import ProcessScope


async def list_identities() -> int:
    console = get_console()
    async with ProcessScope() as scope:
        identities = await IdentityCatalog(build_toolchain(scope)).enumerate()

    if not identities:
        console.print("[yellow]No valid code signing identities found[/]")
        return 0

    table = Table(title="Available identities")
    table.add_column("Identity", style="cyan")
    table.add_column("Name")
    for identity in identities:
        table.add_row(identity.id, identity.display_name)
    console.print(table)
    return 0


def run_list_identities_command(args) -> int:
    """Entry point for the list-identities command from CLI"""
    return asyncio.run(list_identities())
