import hashlib
import plistlib
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from xml.parsers.expat import ExpatError

from bundlesign.src.core.errors import ProfileDeserializeError


def _string_list(raw: Dict[str, Any], key: str) -> List[str]:
    value = raw[key]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise TypeError(f"'{key}' must be an array of strings")
    return list(value)


@dataclass(frozen=True)
class ProvisioningProfile:
    """The fields of a provisioning profile's plist used for matching"""

    team_identifiers: List[str]
    expiration_date: datetime
    provisioned_device_ids: Optional[List[str]]  # None: not device restricted
    platform_names: List[str]
    application_identifier_pattern: str
    embedded_certificates: List[bytes]
    name: Optional[str] = None
    uuid: Optional[str] = None
    app_id_name: Optional[str] = None

    @classmethod
    def from_plist(cls, data: bytes, location: Path) -> "ProvisioningProfile":
        try:
            raw = plistlib.loads(data)
        except (plistlib.InvalidFileException, ExpatError, ValueError, TypeError) as e:
            raise ProfileDeserializeError(location, str(e))
        if not isinstance(raw, dict):
            raise ProfileDeserializeError(location, "Profile payload is not a dictionary")

        try:
            return cls.from_dict(raw)
        except (KeyError, TypeError) as e:
            raise ProfileDeserializeError(location, f"Invalid profile contents: {e}")

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ProvisioningProfile":
        expiration = raw["ExpirationDate"]
        if not isinstance(expiration, datetime):
            raise TypeError("'ExpirationDate' must be a date")
        if expiration.tzinfo is None:
            # plist dates are UTC
            expiration = expiration.replace(tzinfo=timezone.utc)

        entitlements = raw["Entitlements"]
        if not isinstance(entitlements, dict):
            raise TypeError("'Entitlements' must be a dictionary")
        pattern = entitlements["application-identifier"]
        if not isinstance(pattern, str):
            raise TypeError("'application-identifier' must be a string")

        certificates = raw["DeveloperCertificates"]
        if not isinstance(certificates, list) or not all(
            isinstance(certificate, bytes) for certificate in certificates
        ):
            raise TypeError("'DeveloperCertificates' must be an array of data")

        return cls(
            team_identifiers=_string_list(raw, "TeamIdentifier"),
            expiration_date=expiration,
            provisioned_device_ids=(
                _string_list(raw, "ProvisionedDevices")
                if "ProvisionedDevices" in raw
                else None
            ),
            platform_names=_string_list(raw, "Platform"),
            application_identifier_pattern=pattern,
            embedded_certificates=list(certificates),
            name=raw.get("Name"),
            uuid=raw.get("UUID"),
            app_id_name=raw.get("AppIDName"),
        )

    @property
    def team_identifier(self) -> Optional[str]:
        return self.team_identifiers[0] if self.team_identifiers else None

    def is_suitable_for(self, bundle_identifier: str) -> bool:
        """Whether the application identifier pattern covers `bundle_identifier`.

        The team segment is dropped; `*` may only be the last pattern segment,
        where it matches any remaining suffix of the bundle identifier.
        """
        bundle_parts = bundle_identifier.split(".")
        pattern_parts = self.application_identifier_pattern.split(".")[1:]

        if not pattern_parts or len(bundle_parts) < len(pattern_parts):
            return False
        if "*" in pattern_parts[:-1]:
            return False
        if len(bundle_parts) != len(pattern_parts) and pattern_parts[-1] != "*":
            return False

        return all(
            bundle_part == pattern_part or pattern_part == "*"
            for bundle_part, pattern_part in zip(bundle_parts, pattern_parts)
        )

    def contains_certificate(self, sha1_hex: str) -> bool:
        target = sha1_hex.upper()
        return any(
            hashlib.sha1(certificate).hexdigest().upper() == target
            for certificate in self.embedded_certificates
        )
