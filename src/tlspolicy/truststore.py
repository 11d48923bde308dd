"""Trust pools built from PEM bundles."""

from __future__ import annotations

import base64
import binascii
import logging
import re
import ssl
from dataclasses import dataclass

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from .errors import TrustStoreError

logger = logging.getLogger(__name__)

_PEM_BLOCK = re.compile(
    rb"-----BEGIN (?P<label>[A-Z0-9 ]+)-----\r?\n(?P<body>.*?)-----END (?P=label)-----",
    re.DOTALL,
)


@dataclass(frozen=True, slots=True)
class TrustPool:
    """Set of CA certificates used to validate a peer's chain."""

    certificates: tuple[x509.Certificate, ...] = ()

    def __len__(self) -> int:
        return len(self.certificates)

    def to_pem(self) -> str:
        """Return the pool as a PEM bundle."""
        return "".join(
            cert.public_bytes(serialization.Encoding.PEM).decode("ascii")
            for cert in self.certificates
        )

    def install(self, context: ssl.SSLContext) -> None:
        """Trust this pool's certificates in an SSL context."""
        # An empty pool trusts nothing; loading empty cadata is an error.
        if self.certificates:
            context.load_verify_locations(cadata=self.to_pem())


def parse_pem_bundle(data: bytes, source: str = "<bytes>") -> TrustPool:
    """
    Collect every parsable certificate from PEM data.

    Blocks that are not CERTIFICATE blocks are ignored. Certificate blocks
    that fail to decode are dropped; a warning reports how many.
    """
    certificates: list[x509.Certificate] = []
    dropped = 0
    for match in _PEM_BLOCK.finditer(data):
        if match.group("label") != b"CERTIFICATE":
            continue
        try:
            der = base64.b64decode(match.group("body"), validate=False)
            certificates.append(x509.load_der_x509_certificate(der))
        except (binascii.Error, ValueError):
            dropped += 1

    if dropped:
        logger.warning(
            "Dropped unparsable certificates from trust bundle",
            extra={"path": source, "dropped": dropped, "kept": len(certificates)},
        )

    return TrustPool(certificates=tuple(certificates))


def load_trust_pool(file_path: str) -> TrustPool:
    """
    Read a PEM bundle from disk into a TrustPool.

    Raises:
        TrustStoreError: If the file cannot be read
    """
    try:
        with open(file_path, "rb") as f:
            data = f.read()
    except OSError as exc:
        raise TrustStoreError(file_path, str(exc)) from exc

    return parse_pem_bundle(data, source=file_path)
