import asyncio

from rich.markup import escape

from bundlesign.commands.context import build_toolchain, identity_hint
from bundlesign.logger import get_console
from bundlesign.src.core.coordinator import CodeSigningCoordinator
from bundlesign.src.core.tool_invoker import ProcessScope
from bundlesign.src.utils.config_loader import get_signing_config


def verify_bundle_exists(args, console) -> bool:
    if not args.bundle.exists():
        console.print(f"[red]Error:[/] Bundle not found: {escape(str(args.bundle))}")
        return False
    if args.entitlements and not args.entitlements.exists():
        console.print(
            f"[red]Error:[/] Entitlements file not found: {escape(str(args.entitlements))}"
        )
        return False
    return True


async def sign(args) -> int:
    console = get_console()
    config = get_signing_config()

    async with ProcessScope() as scope:
        coordinator = CodeSigningCoordinator(build_toolchain(scope, config))

        if args.ad_hoc:
            await coordinator.sign_ad_hoc(args.bundle)
            return 0

        identity = await coordinator.resolve_identity(identity_hint(args, config))
        console.print(f"[blue]Using identity[/] {escape(str(identity))}")
        await coordinator.sign_bundle(
            args.bundle,
            identity,
            args.bundle_id,
            args.platform,
            args.entitlements,
        )
    return 0


def run_sign_command(args) -> int:
    """Entry point for the sign command from CLI"""
    if not verify_bundle_exists(args, get_console()):
        return 1
    return asyncio.run(sign(args))
