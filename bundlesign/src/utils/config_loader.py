import os
from dataclasses import dataclass
from pathlib import Path
import toml
from typing import Dict, Any, Optional


DEFAULT_TOOL_PATHS = {
    "security": "/usr/bin/security",
    "codesign": "/usr/bin/codesign",
    "openssl": "/usr/bin/openssl",
    "xcodebuild": "xcodebuild",
}


@dataclass
class SigningConfig:
    """Settings the signing engine reads at start-up"""

    identity: Optional[str] = None
    profiles_dir: Optional[Path] = None
    security_path: str = DEFAULT_TOOL_PATHS["security"]
    codesign_path: str = DEFAULT_TOOL_PATHS["codesign"]
    openssl_path: str = DEFAULT_TOOL_PATHS["openssl"]
    xcodebuild_path: str = DEFAULT_TOOL_PATHS["xcodebuild"]


def get_config_path() -> Path:
    """Return the path to the configuration file."""
    env_path = os.environ.get("BUNDLESIGN_CONFIG")
    if env_path:
        return Path(env_path)
    return Path.home() / ".bundlesign" / "config.toml"


def load_config() -> Dict[str, Any]:
    """Load configuration from TOML file."""
    config_path = get_config_path()
    if not config_path.exists():
        return {}

    try:
        return toml.load(config_path)
    except Exception as e:
        raise ValueError(f"Failed to load config from {config_path}: {e}")


def get_signing_config() -> SigningConfig:
    """Build the signing configuration; environment variables win over the file."""
    config = load_config()
    signing = config.get("signing", {})
    tools = config.get("tools", {})

    identity = os.environ.get("BUNDLESIGN_IDENTITY") or signing.get("identity")
    profiles_dir = os.environ.get("BUNDLESIGN_PROFILES_DIR") or signing.get(
        "profiles_dir"
    )

    return SigningConfig(
        identity=identity,
        profiles_dir=Path(profiles_dir).expanduser() if profiles_dir else None,
        security_path=tools.get("security", DEFAULT_TOOL_PATHS["security"]),
        codesign_path=tools.get("codesign", DEFAULT_TOOL_PATHS["codesign"]),
        openssl_path=tools.get("openssl", DEFAULT_TOOL_PATHS["openssl"]),
        xcodebuild_path=tools.get("xcodebuild", DEFAULT_TOOL_PATHS["xcodebuild"]),
    )
