"""TLS Policy - declarative transport security for HTTP listeners."""

from .__version__ import __version__
from .config import RawConfig, SecurityPolicySpec, load_config
from .errors import (
    CertLoadError,
    PolicyIOError,
    PolicyParseError,
    TLSPolicyError,
    TrustStoreError,
)
from .listener import PolicyHTTPServer, serve
from .policy import TransportPolicy, build_policy, load_policy, load_policy_and_paths
from .supplier import CertificateSupplier, FileCertificateSupplier
from .truststore import TrustPool, load_trust_pool
from .types import ClientAuthMode, KeyPair

__all__ = [
    "RawConfig",
    "SecurityPolicySpec",
    "load_config",
    "TransportPolicy",
    "build_policy",
    "load_policy",
    "load_policy_and_paths",
    "CertificateSupplier",
    "FileCertificateSupplier",
    "KeyPair",
    "ClientAuthMode",
    "TrustPool",
    "load_trust_pool",
    "PolicyHTTPServer",
    "serve",
    "TLSPolicyError",
    "PolicyIOError",
    "PolicyParseError",
    "CertLoadError",
    "TrustStoreError",
    "__version__",
]
