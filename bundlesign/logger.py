from rich.console import Console
from rich.markup import escape
from rich.theme import Theme
from functools import lru_cache

_verbose = False


@lru_cache(maxsize=1)
def get_console() -> Console:
    """Get or create the shared Console instance"""
    return Console(
        theme=Theme({"warning": "yellow", "error": "bold red", "debug": "dim"}),
        log_path=False,
    )


def set_verbose(enabled: bool) -> None:
    """Toggle per-candidate debug output"""
    global _verbose
    _verbose = enabled


def log_debug(message: str) -> None:
    """Log a dim line, only shown in verbose mode"""
    if _verbose:
        get_console().log(f"[debug]{escape(message)}[/]")
