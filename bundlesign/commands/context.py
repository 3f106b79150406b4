from typing import Optional

from bundlesign.src.core.tool_invoker import ProcessScope, ToolInvoker
from bundlesign.src.core.toolchain import SigningToolchain, select_toolchain
from bundlesign.src.utils.config_loader import SigningConfig, get_signing_config


def build_toolchain(scope: ProcessScope, config: Optional[SigningConfig] = None) -> SigningToolchain:
    """Toolchain for this host whose subprocesses belong to `scope`"""
    return select_toolchain(config or get_signing_config(), ToolInvoker(scope))


def identity_hint(args, config: SigningConfig) -> str:
    """Identity short name from the command line, falling back to the config"""
    hint = getattr(args, "identity", None) or config.identity
    if not hint:
        raise ValueError(
            "No signing identity given. Pass --identity or set [signing] identity "
            "in the config file."
        )
    return hint
