"""Transport policy building and SSL context materialization."""

from __future__ import annotations

import functools
import logging
import ssl
from dataclasses import dataclass
from typing import Optional

from .ciphers import openssl_cipher_string
from .config import RawConfig, load_config
from .errors import CertLoadError
from .supplier import CertificateSupplier, FileCertificateSupplier
from .truststore import TrustPool, load_trust_pool
from .types import ClientAuthMode, to_tls_version

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TransportPolicy:
    """
    Resolved TLS parameters for a listener or an outgoing connection.

    Built once by ``build_policy`` and never mutated. ``None`` means the
    setting was not configured and the TLS stack default applies.

    Server side uses the certificate supplier, client pool, and client-auth
    mode. Client side uses the root pool, server name, and skip flag. Cipher
    restrictions and version bounds apply to both.
    """

    certificate_supplier: Optional[CertificateSupplier] = None
    server_name: Optional[str] = None
    skip_verification: bool = False
    cipher_suites: Optional[tuple[int, ...]] = None
    prefer_server_cipher_order: bool = False
    min_version: Optional[int] = None
    max_version: Optional[int] = None
    root_pool: Optional[TrustPool] = None
    client_pool: Optional[TrustPool] = None
    client_auth: ClientAuthMode = ClientAuthMode.NONE

    @property
    def tls_enabled(self) -> bool:
        """Whether a listener using this policy can present a certificate."""
        return self.certificate_supplier is not None

    def server_context(self) -> ssl.SSLContext:
        """
        Create the listening SSL context.

        The key pair is not loaded here. Each handshake asks the certificate
        supplier for a fresh key pair and switches to a context holding it.
        """
        cipher_list = self._cipher_list()
        context = self._new_server_context(cipher_list)
        if self.certificate_supplier is not None:
            context.sni_callback = functools.partial(self._select_certificate, cipher_list)
        return context

    def client_context(self) -> ssl.SSLContext:
        """
        Create an SSL context for outgoing connections.

        Pass ``server_hostname=policy.server_name or host`` when wrapping.
        """
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        self._apply_common(context, self._cipher_list())
        if self.skip_verification:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        elif self.root_pool is not None:
            self.root_pool.install(context)
        else:
            context.load_default_certs(ssl.Purpose.SERVER_AUTH)
        return context

    def _new_server_context(self, cipher_list: Optional[str]) -> ssl.SSLContext:
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        self._apply_common(context, cipher_list)
        if self.prefer_server_cipher_order:
            context.options |= ssl.OP_CIPHER_SERVER_PREFERENCE
        else:
            context.options &= ~ssl.OP_CIPHER_SERVER_PREFERENCE

        context.verify_mode = self.client_auth.verify_mode
        if self.client_pool is not None:
            self.client_pool.install(context)
        elif context.verify_mode != ssl.CERT_NONE:
            context.load_default_certs(ssl.Purpose.CLIENT_AUTH)
        return context

    def _cipher_list(self) -> Optional[str]:
        if self.cipher_suites is None:
            return None
        cipher_list = openssl_cipher_string(self.cipher_suites)
        if cipher_list is None:
            logger.warning(
                "No allowed cipher suite below TLS 1.3 is available, restricting to TLS 1.3",
                extra={"cipher_suites": [f"0x{suite:04x}" for suite in self.cipher_suites]},
            )
        return cipher_list

    def _apply_common(self, context: ssl.SSLContext, cipher_list: Optional[str]) -> None:
        if self.min_version is not None:
            context.minimum_version = to_tls_version(self.min_version)
        if self.max_version is not None:
            context.maximum_version = to_tls_version(self.max_version)
        if cipher_list is not None:
            context.set_ciphers(cipher_list)
        elif self.cipher_suites is not None:
            # Only TLS 1.3 suites remain allowed.
            if context.minimum_version < ssl.TLSVersion.TLSv1_3:
                context.minimum_version = ssl.TLSVersion.TLSv1_3

    def _select_certificate(
        self,
        cipher_list: Optional[str],
        connection: ssl.SSLObject | ssl.SSLSocket,
        server_name: Optional[str],
        _context: ssl.SSLContext,
    ) -> Optional[int]:
        supplier = self.certificate_supplier
        if supplier is None:
            return None
        try:
            key_pair = supplier.supply()
            handshake_context = self._new_server_context(cipher_list)
            key_pair.install(handshake_context)
        except CertLoadError as exc:
            logger.warning(
                "Certificate load failed, aborting handshake",
                extra={"server_name": server_name, "path": exc.path, "error": str(exc)},
            )
            return ssl.ALERT_DESCRIPTION_INTERNAL_ERROR
        connection.context = handshake_context
        return None


def build_policy(raw: RawConfig) -> TransportPolicy:
    """
    Build a TransportPolicy from a loaded policy file.

    Each setting is applied only when present. Trust bundles are read now;
    the server key pair is read on every handshake.

    Args:
        raw: Loaded policy file

    Returns:
        TransportPolicy instance

    Raises:
        CertLoadError: If a certificate path is set without a key path
        TrustStoreError: If a trust bundle cannot be read
    """
    spec = raw.security_policy

    supplier: Optional[CertificateSupplier] = None
    if raw.cert_path:
        if not raw.key_path:
            raise CertLoadError(
                f"tlsKeyPath is required when tlsCertPath is set ({raw.cert_path})",
                path=raw.cert_path,
            )
        supplier = FileCertificateSupplier(cert_path=raw.cert_path, key_path=raw.key_path)

    root_pool: Optional[TrustPool] = None
    if spec.trusted_roots_path:
        root_pool = load_trust_pool(spec.trusted_roots_path)

    client_pool: Optional[TrustPool] = None
    if spec.trusted_client_roots_path:
        client_pool = load_trust_pool(spec.trusted_client_roots_path)

    if spec.skip_verification:
        logger.warning("Certificate verification disabled by insecureSkipVerify")

    policy = TransportPolicy(
        certificate_supplier=supplier,
        server_name=spec.server_name or None,
        skip_verification=spec.skip_verification,
        cipher_suites=tuple(spec.allowed_cipher_suites)
        if spec.allowed_cipher_suites
        else None,
        prefer_server_cipher_order=spec.prefer_server_cipher_order,
        min_version=spec.min_protocol_version or None,
        max_version=spec.max_protocol_version or None,
        root_pool=root_pool,
        client_pool=client_pool,
        client_auth=ClientAuthMode.parse(spec.client_auth_mode),
    )

    logger.info(
        "Transport policy built",
        extra={
            "tls_enabled": policy.tls_enabled,
            "client_auth": policy.client_auth.value,
            "root_cas": len(root_pool) if root_pool is not None else None,
            "client_cas": len(client_pool) if client_pool is not None else None,
        },
    )
    return policy


def load_policy(config_path: str) -> TransportPolicy:
    """Load a policy file and build its TransportPolicy."""
    return build_policy(load_config(config_path))


def load_policy_and_paths(
    config_path: str,
) -> tuple[TransportPolicy, Optional[str], Optional[str]]:
    """Load and build a policy, also returning the certificate and key paths."""
    raw = load_config(config_path)
    return build_policy(raw), raw.cert_path, raw.key_path
