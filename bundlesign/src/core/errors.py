from pathlib import Path
from typing import List, Optional


class SigningError(Exception):
    """Base class for every failure raised by the signing engine.

    `details` carries diagnostic text (captured tool output, raw parser
    input) that is too long for the one-line message.
    """

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message


# Enumeration / lookup failures


class ToolInvocationError(SigningError):
    """An external tool could not be launched or exited non-zero"""

    def __init__(
        self,
        command: List[str],
        returncode: Optional[int],
        stdout: str = "",
        stderr: str = "",
        reason: Optional[str] = None,
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        summary = reason or f"exited with status {returncode}"
        message = f"Command failed: {' '.join(self.command)} ({summary})"
        super().__init__(
            message,
            details=f"{message}\nStdout: {stdout}\nStderr: {stderr}",
        )

    @property
    def output(self) -> str:
        """Stdout and stderr together, for substring checks"""
        return f"{self.stdout}\n{self.stderr}"


class HostPlatformNotSupportedError(SigningError):
    def __init__(self, operation: str, platform: str):
        self.operation = operation
        self.platform = platform
        super().__init__(f"{operation} is not supported on {platform}")


class IdentityEnumerationError(SigningError):
    pass


class CertificateLookupError(SigningError):
    pass


class ProfileEnumerationError(SigningError):
    def __init__(self, directory: Path, details: Optional[str] = None):
        self.directory = directory
        super().__init__(
            f"Failed to enumerate provisioning profiles in '{directory}'", details
        )


class ProfileExtractError(SigningError):
    def __init__(self, location: Path, details: Optional[str] = None):
        self.location = location
        super().__init__(f"Failed to extract plist data from '{location}'", details)


class DynamicLibraryEnumerationError(SigningError):
    pass


# Parse failures


class IdentityParseError(SigningError):
    def __init__(self, line: str, output: str):
        self.line = line
        self.output = output
        super().__init__(f"Failed to parse identity list line: {line!r}", output)


class CertificateParseError(SigningError):
    pass


class ProfileDeserializeError(SigningError):
    def __init__(self, location: Path, details: Optional[str] = None):
        self.location = location
        super().__init__(
            f"Failed to deserialize plist data from '{location}'", details
        )


# Validation failures


class IdentityNotFoundError(SigningError):
    def __init__(self, short_name: str):
        self.short_name = short_name
        super().__init__(
            f"Identity short name '{short_name}' didn't match any known identities. "
            "Run 'bundlesign list-identities' to list available identities."
        )


class NoValidCertificateError(SigningError):
    pass


class MissingTeamIdentifierError(SigningError):
    pass


class ProfileMissingTeamIdentifierError(SigningError):
    pass


class UnsupportedTargetError(SigningError):
    pass


# Fallback exhaustion


class ProfileGenerationError(SigningError):
    """Generating a fresh provisioning profile failed at `stage`"""

    stage = "generation"

    def __init__(
        self, bundle_identifier: str, reason: str, details: Optional[str] = None
    ):
        self.bundle_identifier = bundle_identifier
        self.reason = reason
        super().__init__(
            f"Failed to generate a provisioning profile for '{bundle_identifier}' "
            f"during {self.stage}: {reason}",
            details,
        )


class DummyProjectError(ProfileGenerationError):
    stage = "project generation"


class AutoProvisioningError(ProfileGenerationError):
    stage = "tool invocation"


class XcodebuildOutputParseError(ProfileGenerationError):
    stage = "output parsing"


class GeneratedProfileNotFoundError(ProfileGenerationError):
    stage = "file lookup"

    def __init__(self, bundle_identifier: str, predicted_location: Path):
        self.predicted_location = predicted_location
        super().__init__(
            bundle_identifier,
            f"expected the generated profile at '{predicted_location}'",
        )


# Signing


class CodeSignError(SigningError):
    pass


class EntitlementsWriteError(SigningError):
    pass
