import os
import plistlib
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from bundlesign.src.core.errors import EntitlementsWriteError


@dataclass(frozen=True)
class Entitlements:
    """Minimal entitlements for a bundle signed against a provisioning profile"""

    application_identifier: str
    team_identifier: str
    get_task_allow: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "application-identifier": self.application_identifier,
            "com.apple.developer.team-identifier": self.team_identifier,
            "get-task-allow": self.get_task_allow,
        }

    def dumps(self) -> bytes:
        return plistlib.dumps(self.to_dict(), fmt=plistlib.FMT_XML, sort_keys=False)


def generate_entitlements(team_identifier: str, bundle_identifier: str) -> Entitlements:
    """Entitlements for a debuggable build of `bundle_identifier`"""
    return Entitlements(
        application_identifier=f"{team_identifier}.{bundle_identifier}",
        team_identifier=team_identifier,
        get_task_allow=True,
    )


def write_entitlements(
    entitlements: Entitlements, directory: Optional[Path] = None
) -> Path:
    """Write the entitlements to a private temporary `.xcent` file"""
    try:
        fd, path = tempfile.mkstemp(
            prefix="entitlements-", suffix=".xcent", dir=str(directory) if directory else None
        )
        with os.fdopen(fd, "wb") as f:
            f.write(entitlements.dumps())
    except OSError as e:
        raise EntitlementsWriteError(f"Failed to write entitlements: {e}")
    return Path(path)
