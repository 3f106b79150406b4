from rich.text import Text

__version__ = "0.1.0"

APP_DESCRIPTION = "Code signing identities and provisioning profiles, resolved."


def get_banner_text() -> Text:
    return Text("bundlesign", style="bold cyan")
