"""Certificate suppliers consulted on every TLS handshake."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from .errors import CertLoadError
from .types import KeyPair


@runtime_checkable
class CertificateSupplier(Protocol):
    """Source of the key pair to present for a handshake."""

    def supply(self) -> KeyPair:
        """Return the current key pair, raising CertLoadError on failure."""
        ...


def _public_key_der(key) -> bytes:
    return key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


@dataclass(frozen=True, slots=True)
class FileCertificateSupplier:
    """
    Read a certificate and private key from disk on each call.

    Nothing is cached: every call re-reads both files, so replacing them on
    disk takes effect at the next handshake. Calls share no mutable state
    and may run concurrently.
    """

    cert_path: str
    key_path: str

    def supply(self) -> KeyPair:
        """Load and cross-check the key pair."""
        cert_pem = self._read(self.cert_path)
        key_pem = self._read(self.key_path)

        try:
            chain = tuple(x509.load_pem_x509_certificates(cert_pem))
        except ValueError as exc:
            raise CertLoadError(
                f"Malformed certificate in {self.cert_path}: {exc}",
                path=self.cert_path,
            ) from exc

        try:
            private_key = serialization.load_pem_private_key(key_pem, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise CertLoadError(
                f"Malformed private key in {self.key_path}: {exc}",
                path=self.key_path,
            ) from exc

        certificate = chain[0]
        if _public_key_der(certificate.public_key()) != _public_key_der(
            private_key.public_key()
        ):
            raise CertLoadError(
                f"Private key in {self.key_path} does not match certificate "
                f"in {self.cert_path}",
                path=self.key_path,
            )

        return KeyPair(
            certificate=certificate,
            chain=chain,
            private_key=private_key,
            cert_path=self.cert_path,
            key_path=self.key_path,
        )

    @staticmethod
    def _read(path: str) -> bytes:
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as exc:
            raise CertLoadError(f"Cannot read {path}: {exc}", path=path) from exc
