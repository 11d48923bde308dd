"""Shared transport policy types."""

from __future__ import annotations

import logging
import ssl
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

from .errors import CertLoadError

logger = logging.getLogger(__name__)


class ClientAuthMode(Enum):
    """Server requirement level for client-presented certificates."""

    NONE = "NoClientCert"
    REQUEST = "RequestClientCert"
    REQUIRE_ANY = "RequireClientCert"
    VERIFY_IF_GIVEN = "VerifyClientCertIfGiven"
    REQUIRE_AND_VERIFY = "RequireAndVerifyClientCert"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ClientAuthMode":
        """
        Map a configured ``clientAuth`` string to a mode.

        Matching is exact and case-sensitive. Empty or absent input, and any
        string that is not one of the recognized names, resolves to NONE.
        """
        if not value:
            return cls.NONE
        mode = _CLIENT_AUTH_NAMES.get(value)
        if mode is None:
            logger.warning(
                "Unrecognized clientAuth value, client certificates not required",
                extra={"client_auth": value},
            )
            return cls.NONE
        return mode

    @property
    def verify_mode(self) -> ssl.VerifyMode:
        """OpenSSL verify mode used on the server side for this mode."""
        return _VERIFY_MODES[self]


_CLIENT_AUTH_NAMES: dict[str, ClientAuthMode] = {
    "RequestClientCert": ClientAuthMode.REQUEST,
    "RequireClientCert": ClientAuthMode.REQUIRE_ANY,
    "VerifyClientCertIfGiven": ClientAuthMode.VERIFY_IF_GIVEN,
    "RequireAndVerifyClientCert": ClientAuthMode.REQUIRE_AND_VERIFY,
}

# OpenSSL cannot request a certificate without verifying it, so the two
# unverified modes share the verify mode of their verified counterparts.
_VERIFY_MODES: dict[ClientAuthMode, ssl.VerifyMode] = {
    ClientAuthMode.NONE: ssl.CERT_NONE,
    ClientAuthMode.REQUEST: ssl.CERT_OPTIONAL,
    ClientAuthMode.REQUIRE_ANY: ssl.CERT_REQUIRED,
    ClientAuthMode.VERIFY_IF_GIVEN: ssl.CERT_OPTIONAL,
    ClientAuthMode.REQUIRE_AND_VERIFY: ssl.CERT_REQUIRED,
}


TLS_VERSION_NAMES: dict[int, str] = {
    0x0300: "SSLv3",
    0x0301: "TLS 1.0",
    0x0302: "TLS 1.1",
    0x0303: "TLS 1.2",
    0x0304: "TLS 1.3",
}


def to_tls_version(value: int) -> ssl.TLSVersion:
    """Translate a TLS wire version id (e.g. 0x0303) to ``ssl.TLSVersion``."""
    try:
        return ssl.TLSVersion(value)
    except ValueError as exc:
        raise ValueError(f"Unsupported TLS protocol version 0x{value:04x}") from exc


@dataclass(frozen=True, slots=True)
class KeyPair:
    """
    Certificate chain and matching private key read for one handshake.

    The parsed objects are what ``supply`` validated. The ``ssl`` module can
    only load key material from files, so ``install`` reads ``cert_path`` and
    ``key_path`` again. If the files are rotated between ``supply`` and
    ``install`` the newer pair is installed; OpenSSL still rejects a
    certificate whose key does not match, which surfaces as ``CertLoadError``.
    """

    certificate: x509.Certificate
    chain: tuple[x509.Certificate, ...]
    private_key: PrivateKeyTypes
    cert_path: str
    key_path: str

    def install(self, context: ssl.SSLContext) -> None:
        """Load this key pair into an SSL context."""
        try:
            context.load_cert_chain(certfile=self.cert_path, keyfile=self.key_path)
        except (OSError, ssl.SSLError) as exc:
            raise CertLoadError(
                f"Failed to install key pair from {self.cert_path}: {exc}",
                path=self.cert_path,
            ) from exc
