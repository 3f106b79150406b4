from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    """A code signing identity held in the host keystore.

    `id` is the hex SHA-1 of the certificate's DER encoding, exactly as the
    keystore prints it. Display names are not guaranteed to be unique.
    """

    id: str
    display_name: str

    def __str__(self) -> str:
        return f"'{self.display_name}' ({self.id})"
