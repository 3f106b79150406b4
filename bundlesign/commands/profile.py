import asyncio

from rich.markup import escape

from bundlesign.commands.context import build_toolchain, identity_hint
from bundlesign.logger import get_console
from bundlesign.src.core.coordinator import CodeSigningCoordinator
from bundlesign.src.core.tool_invoker import ProcessScope
from bundlesign.src.utils.config_loader import get_signing_config


async def locate_profile(args) -> int:
    console = get_console()
    config = get_signing_config()

    async with ProcessScope() as scope:
        coordinator = CodeSigningCoordinator(build_toolchain(scope, config))
        identity = await coordinator.resolve_identity(identity_hint(args, config))

        if args.generate:
            location = await coordinator.locate_or_generate_profile(
                args.bundle_id, args.device, args.platform, identity
            )
        else:
            location = await coordinator.locate_profile(
                args.bundle_id, args.device, args.platform, identity
            )

    if location is None:
        console.print(
            f"[yellow]No installed provisioning profile matches {escape(args.bundle_id)}[/]"
        )
        return 1

    # Plain output so the path can be captured by scripts
    print(location)
    return 0


def run_profile_command(args) -> int:
    """Entry point for the profile command from CLI"""
    return asyncio.run(locate_profile(args))
