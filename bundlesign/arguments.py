import argparse
from pathlib import Path

from bundlesign.src.core.platforms import TargetOS


def _target_os(value: str) -> TargetOS:
    try:
        return TargetOS.parse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def add_identity_argument(parser, required: bool = False):
    """Add the short identity hint option."""
    parser.add_argument(
        "--identity",
        "-i",
        required=required,
        help="Identity id or a substring of its name [default: from config]",
    )


def add_target_arguments(parser):
    """Add bundle identifier and platform options shared by sign and profile."""
    parser.add_argument(
        "--bundle-id",
        required=True,
        help="Bundle identifier of the app, e.g. com.example.App",
    )
    parser.add_argument(
        "--platform",
        type=_target_os,
        default=TargetOS.IOS,
        help="Target platform (iOS, tvOS, visionOS, macOS, ...) [default: iOS]",
    )


def add_sign_arguments(parser):
    """Add all arguments of the sign command."""
    parser.add_argument("bundle", type=Path, help="Path to the bundle or file to sign")
    add_identity_argument(parser)
    add_target_arguments(parser)
    parser.add_argument(
        "--entitlements",
        type=Path,
        help="Entitlements file to use verbatim [default: generated when required]",
    )
    parser.add_argument(
        "--ad-hoc",
        action="store_true",
        help="Sign ad-hoc instead of with an identity [default: disabled]",
    )


def add_profile_arguments(parser):
    """Add all arguments of the profile command."""
    add_identity_argument(parser)
    add_target_arguments(parser)
    parser.add_argument(
        "--device",
        required=True,
        help="Identifier (UDID) of the device the app will run on",
    )
    parser.add_argument(
        "--no-generate",
        action="store_false",
        dest="generate",
        help="Only look for installed profiles, never generate one [default: generate]",
    )


def add_inspect_arguments(parser):
    parser.add_argument("profile", type=Path, help="Path to a .mobileprovision file")
