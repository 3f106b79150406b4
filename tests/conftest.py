import asyncio
import plistlib
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from bundlesign.logger import get_console
from bundlesign.src.core.errors import ToolInvocationError
from bundlesign.src.core.toolchain import SigningToolchain

_KEY = ec.generate_private_key(ec.SECP256R1())


def make_certificate(
    common_name: str = "Apple Development: Jane Doe (ABCD1234)",
    team: Optional[str] = "TEAM123",
    not_before: Optional[datetime] = None,
    not_after: Optional[datetime] = None,
) -> bytes:
    """DER of a self-signed certificate shaped like an Apple signing certificate"""
    now = datetime.now(timezone.utc)
    attributes = [x509.NameAttribute(NameOID.COMMON_NAME, common_name)]
    if team:
        attributes.append(x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, team))
    attributes.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Example Corp"))
    name = x509.Name(attributes)

    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(_KEY.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before or now - timedelta(days=1))
        .not_valid_after(not_after or now + timedelta(days=300))
        .sign(_KEY, hashes.SHA256())
    )
    return certificate.public_bytes(serialization.Encoding.DER)


def to_pem(der: bytes) -> str:
    certificate = x509.load_der_x509_certificate(der)
    return certificate.public_bytes(serialization.Encoding.PEM).decode("ascii")


def profile_payload(
    team: str = "TEAM123",
    app_id: str = "TEAM123.com.example.*",
    expires: Optional[datetime] = None,
    devices: Optional[Sequence[str]] = ("DEVICE-1",),
    platforms: Sequence[str] = ("iOS",),
    certificates: Sequence[bytes] = (),
    uuid: str = "11111111-2222-3333-4444-555555555555",
) -> bytes:
    """Plist payload of a provisioning profile"""
    expires = expires or datetime.now(timezone.utc) + timedelta(days=30)
    data = {
        "AppIDName": "Example",
        "Name": "Example Profile",
        "UUID": uuid,
        "TeamIdentifier": [team],
        "ExpirationDate": expires.astimezone(timezone.utc).replace(tzinfo=None),
        "Platform": list(platforms),
        "Entitlements": {"application-identifier": app_id, "get-task-allow": True},
        "DeveloperCertificates": list(certificates),
    }
    if devices is not None:
        data["ProvisionedDevices"] = list(devices)
    return plistlib.dumps(data)


class FakeToolchain(SigningToolchain):
    """In-memory host: canned tool output, recorded signing calls"""

    name = "fake"

    def __init__(self, profiles_dir: Path):
        self.profiles_dir = profiles_dir
        self.identities_output = ""
        self.identities_error: Optional[Exception] = None
        self.certificates_output = ""
        self.certificates_error: Optional[Exception] = None
        self.profile_payloads: Dict[str, bytes] = {}
        self.decoding = 0
        self.max_decoding = 0
        self.auto_provision_output = ""
        self.auto_provision_error: Optional[Exception] = None
        self.generated_profile: Optional[str] = None
        self.sign_error: Optional[Exception] = None
        self.certificate_queries: List[str] = []
        self.provision_calls = []
        self.project_files: List[str] = []
        self.signed = []
        self.ad_hoc_signed: List[Path] = []

    async def list_identities(self) -> str:
        if self.identities_error:
            raise self.identities_error
        return self.identities_output

    async def find_certificates(self, name: str) -> str:
        self.certificate_queries.append(name)
        if self.certificates_error:
            raise self.certificates_error
        return self.certificates_output

    async def decode_profile(self, path: Path) -> bytes:
        self.decoding += 1
        self.max_decoding = max(self.max_decoding, self.decoding)
        try:
            # Yield so other pending decodes get a chance to start
            await asyncio.sleep(0.001)
        finally:
            self.decoding -= 1
        if path.name not in self.profile_payloads:
            raise ToolInvocationError(
                ["openssl", "smime", "-verify", "-in", str(path)], 1, "", "unable to load"
            )
        return self.profile_payloads[path.name]

    async def sign(self, path: Path, identity_id: str, entitlements: Optional[Path] = None) -> None:
        if self.sign_error:
            raise self.sign_error
        contents = entitlements.read_bytes() if entitlements else None
        self.signed.append((path, identity_id, entitlements, contents))

    async def sign_ad_hoc(self, path: Path) -> None:
        self.ad_hoc_signed.append(path)

    async def auto_provision(self, project, device_id, target_os) -> str:
        self.provision_calls.append((project, device_id, target_os))
        self.project_files = sorted(
            str(path.relative_to(project.directory))
            for path in project.directory.rglob("*")
            if path.is_file()
        )
        if self.auto_provision_error:
            raise self.auto_provision_error
        if self.generated_profile:
            (self.profiles_dir / self.generated_profile).write_bytes(b"profile")
        return self.auto_provision_output

    def profiles_directory(self) -> Path:
        return self.profiles_dir

    def install_profile(self, file_name: str, payload: bytes) -> Path:
        location = self.profiles_dir / file_name
        location.write_bytes(b"signed container")
        self.profile_payloads[file_name] = payload
        return location


@pytest.fixture
def toolchain(tmp_path) -> FakeToolchain:
    profiles_dir = tmp_path / "Provisioning Profiles"
    profiles_dir.mkdir()
    return FakeToolchain(profiles_dir)


@pytest.fixture
def captured_log():
    """Returns a function giving everything logged so far, whitespace-normalised"""
    console = get_console()
    console.begin_capture()
    chunks = []

    def read() -> str:
        chunks.append(console.end_capture())
        console.begin_capture()
        return " ".join("".join(chunks).split())

    yield read
    console.end_capture()
