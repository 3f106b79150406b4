import asyncio
import hashlib
import json
import plistlib

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from bundlesign.commands.context import build_toolchain
from bundlesign.logger import get_console
from bundlesign.src.core.tool_invoker import ProcessScope
from bundlesign.src.profiles.profile_repository import ProfileRepository
from bundlesign.src.profiles.provisioning_profile import ProvisioningProfile

BINARY_KEYS = ("DeveloperCertificates", "DER-Encoded-Profile")


def print_profile_summary(console: Console, profile: ProvisioningProfile) -> None:
    """Print the fields used when matching the profile"""
    table = Table(title=profile.name or "Provisioning profile", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("UUID", profile.uuid or "-")
    table.add_row("Team", ", ".join(profile.team_identifiers))
    table.add_row("App identifier", profile.application_identifier_pattern)
    table.add_row("Expires", str(profile.expiration_date))
    table.add_row("Platforms", ", ".join(profile.platform_names))
    if not profile.provisioned_device_ids:
        table.add_row("Devices", "not device restricted")
    else:
        table.add_row("Devices", str(len(profile.provisioned_device_ids)))
    for certificate in profile.embedded_certificates:
        table.add_row("Certificate", hashlib.sha1(certificate).hexdigest().upper())
    console.print(table)


def print_profile_contents(console: Console, data: dict) -> None:
    """Print the full profile contents, excluding binary data"""
    console.print("\n[bold]Full Profile Contents:[/bold]")
    filtered_data = data.copy()
    for key in BINARY_KEYS:
        if key in filtered_data:
            filtered_data[key] = "<binary data removed>"
    console.print_json(json.dumps(filtered_data, default=str))


async def inspect_profile(args) -> int:
    console = get_console()
    async with ProcessScope() as scope:
        toolchain = build_toolchain(scope)
        profile = await ProfileRepository(toolchain).load(args.profile)
        payload = await toolchain.decode_profile(args.profile)

    print_profile_summary(console, profile)
    print_profile_contents(console, plistlib.loads(payload))
    return 0


def run_inspect_profile_command(args) -> int:
    """Entry point for the inspect-profile command from CLI"""
    if not args.profile.exists():
        get_console().print(f"[red]Error:[/] {escape(str(args.profile))} does not exist")
        return 1
    return asyncio.run(inspect_profile(args))
