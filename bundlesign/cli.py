import argparse
import sys
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme
from rich_argparse import RichHelpFormatter
from bundlesign.arguments import (
    add_inspect_arguments,
    add_profile_arguments,
    add_sign_arguments,
)
from bundlesign.logger import get_console, set_verbose
from bundlesign.src.core.errors import SigningError
from bundlesign.src.constants.cli_constants import (
    __version__,
    get_banner_text,
    APP_DESCRIPTION,
)


class BundleSignHelpFormatter(RichHelpFormatter):
    """Formatter for the bundlesign CLI that enhances the output with rich styling."""

    def __init__(self, prog):
        super().__init__(prog, max_help_position=30, width=100)
        self.console = Console(
            theme=Theme(
                {
                    "command": "bold cyan",
                    "argument": "green",
                    "option": "yellow",
                    "version": "blue",
                    "title": "bold magenta",
                }
            )
        )


def display_banner():
    """Display the banner above the help text."""
    console = Console()
    version_info = Text(f"v{__version__}", style="version")
    tagline = Text(APP_DESCRIPTION, style="italic")

    panel = Panel.fit(
        Text.assemble(get_banner_text(), "\n", tagline, "\n", version_info),
        border_style="green",
        padding=(1, 2),
    )
    console.print(panel)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bundlesign",
        description=f"bundlesign: {APP_DESCRIPTION}",
        formatter_class=BundleSignHelpFormatter,
    )
    parser.add_argument(
        "--version", action="version", version=f"bundlesign {__version__}"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show why each provisioning profile was skipped and every tool invocation",
    )

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser(
        "list-identities",
        help="List available code signing identities",
        formatter_class=BundleSignHelpFormatter,
    )

    sign_parser = subparsers.add_parser(
        "sign",
        help="Sign a bundle",
        formatter_class=BundleSignHelpFormatter,
        description="Sign a bundle and its dynamic libraries with a keystore identity.",
    )
    add_sign_arguments(sign_parser)

    profile_parser = subparsers.add_parser(
        "profile",
        help="Locate or generate a provisioning profile",
        formatter_class=BundleSignHelpFormatter,
        description="Find an installed provisioning profile for an app and device, "
        "generating one through Xcode when none matches.",
    )
    add_profile_arguments(profile_parser)

    inspect_parser = subparsers.add_parser(
        "inspect-profile",
        help="Show the contents of a provisioning profile",
        formatter_class=BundleSignHelpFormatter,
    )
    add_inspect_arguments(inspect_parser)

    return parser


def dispatch(args) -> int:
    if args.command == "list-identities":
        from bundlesign.commands.list_identities import run_list_identities_command

        return run_list_identities_command(args)
    elif args.command == "sign":
        from bundlesign.commands.sign import run_sign_command

        return run_sign_command(args)
    elif args.command == "profile":
        from bundlesign.commands.profile import run_profile_command

        return run_profile_command(args)
    elif args.command == "inspect-profile":
        from bundlesign.commands.inspect_profile import run_inspect_profile_command

        return run_inspect_profile_command(args)
    return 1


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if not argv or "-h" in argv or "--help" in argv:
        display_banner()

    load_dotenv()
    parser = create_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    set_verbose(args.verbose)
    console = get_console()
    try:
        return dispatch(args)
    except SigningError as e:
        console.print(f"[red]Error:[/] {escape(e.message)}")
        if args.verbose and e.details:
            console.print(escape(e.details))
        return 1
    except ValueError as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        return 1
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
