from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from bundlesign.logger import log_debug
from bundlesign.src.core.identity import Identity
from bundlesign.src.core.platforms import TargetOS
from bundlesign.src.profiles.provisioning_profile import ProvisioningProfile

# Skip profiles that would expire while a signing run is still in progress
PROFILE_EXPIRATION_BUFFER = timedelta(minutes=12)


@dataclass(frozen=True)
class MatchQuery:
    bundle_identifier: str
    device_id: str
    target_os: TargetOS
    identity: Identity


@dataclass(frozen=True)
class MatchResult:
    location: Optional[Path] = None

    @classmethod
    def not_found(cls) -> "MatchResult":
        return cls(None)

    @property
    def found(self) -> bool:
        return self.location is not None


class ProfileMatcher:
    """Picks an installed profile usable for a bundle, device and identity"""

    def rejection_reasons(
        self,
        query: MatchQuery,
        profile: ProvisioningProfile,
        now: Optional[datetime] = None,
    ) -> List[str]:
        """Every rule `profile` fails for `query`; empty when it is usable"""
        now = now or datetime.now(timezone.utc)
        reasons = []

        devices = profile.provisioned_device_ids
        if devices and query.device_id not in devices:
            reasons.append(f"device '{query.device_id}' is not provisioned")
        if profile.expiration_date <= now + PROFILE_EXPIRATION_BUFFER:
            reasons.append(f"expires at {profile.expiration_date}")
        if query.target_os.profile_platform_name not in profile.platform_names:
            reasons.append(f"does not cover platform {query.target_os.value}")
        if not profile.is_suitable_for(query.bundle_identifier):
            reasons.append(
                f"app identifier '{profile.application_identifier_pattern}' does not "
                f"cover '{query.bundle_identifier}'"
            )
        if not profile.contains_certificate(query.identity.id):
            reasons.append("does not embed the identity's certificate")
        return reasons

    def best_match(
        self,
        query: MatchQuery,
        candidates: Sequence[Tuple[Path, ProvisioningProfile]],
        now: Optional[datetime] = None,
    ) -> MatchResult:
        """First usable candidate in enumeration order, or not-found.

        Several usable profiles are not ranked against each other.
        """
        now = now or datetime.now(timezone.utc)
        for location, profile in candidates:
            reasons = self.rejection_reasons(query, profile, now)
            if not reasons:
                return MatchResult(location)
            log_debug(f"Skipping provisioning profile {location.name}: {'; '.join(reasons)}")
        return MatchResult.not_found()
