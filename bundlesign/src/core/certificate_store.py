import hashlib
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from asn1crypto import pem, x509
from rich.markup import escape

from bundlesign.logger import get_console
from bundlesign.src.core.errors import (
    CertificateLookupError,
    CertificateParseError,
    MissingTeamIdentifierError,
    NoValidCertificateError,
    ToolInvocationError,
)
from bundlesign.src.core.identity import Identity
from bundlesign.src.core.toolchain import SigningToolchain

# Warn when a certificate in use is this close to expiring
CERTIFICATE_EXPIRY_WARNING_MARGIN = timedelta(hours=24)

PEM_CERTIFICATE_MARKER = "-----BEGIN CERTIFICATE-----"


@dataclass(frozen=True)
class Certificate:
    """The parts of an X.509 certificate the signing engine reasons about"""

    der: bytes
    subject: List[List[Tuple[str, str]]]  # RDN sets in order
    not_before: datetime
    not_after: datetime

    @classmethod
    def from_der(cls, der: bytes) -> "Certificate":
        try:
            parsed = x509.Certificate.load(der)
            validity = parsed["tbs_certificate"]["validity"]
            subject = [
                [(attribute["type"].native, attribute["value"].native) for attribute in rdn]
                for rdn in parsed.subject.chosen
            ]
            not_before = validity["not_before"].native
            not_after = validity["not_after"].native
        except (ValueError, TypeError, KeyError) as e:
            raise CertificateParseError(f"Malformed certificate: {e}")
        return cls(der=der, subject=subject, not_before=not_before, not_after=not_after)

    @classmethod
    def from_pem(cls, text: str) -> "Certificate":
        try:
            object_name, _, der = pem.unarmor(text.strip().encode("ascii"))
        except (ValueError, UnicodeEncodeError) as e:
            raise CertificateParseError(f"Malformed PEM certificate: {e}", details=text)
        if object_name != "CERTIFICATE":
            raise CertificateParseError(
                f"Expected a CERTIFICATE PEM block, got {object_name}", details=text
            )
        return cls.from_der(der)

    @property
    def sha1_hex(self) -> str:
        return hashlib.sha1(self.der).hexdigest().upper()

    def organizational_units(self) -> List[str]:
        return [
            str(value)
            for rdn in self.subject
            for attribute_type, value in rdn
            if attribute_type == "organizational_unit_name"
        ]


def split_pem_bundle(output: str) -> List[str]:
    """Split concatenated PEM certificates at their BEGIN markers"""
    return [
        PEM_CERTIFICATE_MARKER + part
        for part in output.split(PEM_CERTIFICATE_MARKER)
        if part.strip()
    ]


class CertificateStore:
    """Loads and validates the certificates behind signing identities"""

    def __init__(self, toolchain: SigningToolchain):
        self.console = get_console()
        self.toolchain = toolchain

    async def load_certificates(self, identity: Identity) -> List[Certificate]:
        """Every certificate stored under the identity's display name.

        A keystore can hold several certificates under one label across
        renewals, so a malformed entry only drops that entry.
        """
        try:
            output = await self.toolchain.find_certificates(identity.display_name)
        except ToolInvocationError as e:
            raise CertificateLookupError(
                f"Failed to locate signing certificate for identity {identity}",
                details=e.details,
            ) from e

        chunks = split_pem_bundle(output)
        certificates = []
        for chunk in chunks:
            try:
                certificates.append(Certificate.from_pem(chunk))
            except CertificateParseError as e:
                self.console.log(
                    f"[warning]Warning:[/] Skipping malformed certificate for "
                    f"{escape(str(identity))}: {escape(e.message)}"
                )

        if chunks and not certificates:
            raise CertificateParseError(
                f"Failed to parse any signing certificate for identity {identity}",
                details=output,
            )
        return certificates

    async def latest_valid(
        self, identity: Identity, now: Optional[datetime] = None
    ) -> Certificate:
        """The most recently issued certificate that has not expired"""
        now = now or datetime.now(timezone.utc)
        certificates = await self.load_certificates(identity)

        valid = [certificate for certificate in certificates if certificate.not_after > now]
        if not valid:
            raise NoValidCertificateError(
                f"No unexpired certificate found for code signing identity {identity}"
            )

        for certificate in valid:
            if certificate.not_after <= now + CERTIFICATE_EXPIRY_WARNING_MARGIN:
                self.console.log(
                    f"[warning]Warning:[/] The certificate with SHA-1 hash "
                    f"'{certificate.sha1_hex}' for identity "
                    f"'{escape(identity.display_name)}' expires soon; not valid "
                    f"after {certificate.not_after}"
                )

        return max(valid, key=lambda certificate: certificate.not_before)

    async def team_identifier(
        self, identity: Identity, now: Optional[datetime] = None
    ) -> str:
        """Team identifier from the signing certificate's organizational unit"""
        certificate = await self.latest_valid(identity, now)
        units = certificate.organizational_units()
        if not units:
            raise MissingTeamIdentifierError(
                f"Failed to locate team identifier in signing certificate for "
                f"identity {identity}"
            )
        return units[0]
