"""Transport policy errors."""

from __future__ import annotations


class TLSPolicyError(Exception):
    """Base exception for policy loading, building, and key material errors."""

    def __init__(self, message: str, *, path: str | None = None):
        """Initialize error with message and the file involved, if any."""
        super().__init__(message)
        self.message = message
        self.path = path


class PolicyIOError(TLSPolicyError):
    """Policy file could not be read."""

    def __init__(self, path: str, reason: str):
        """Initialize read error."""
        super().__init__(f"Cannot read policy file {path}: {reason}", path=path)


class PolicyParseError(TLSPolicyError):
    """Policy file is malformed or holds values of the wrong type."""

    def __init__(self, path: str, reason: str):
        """Initialize parse error."""
        super().__init__(f"Invalid policy file {path}: {reason}", path=path)


class CertLoadError(TLSPolicyError):
    """Certificate or private key could not be loaded for a handshake."""

    def __init__(self, message: str, *, path: str | None = None):
        """Initialize certificate load error."""
        super().__init__(message, path=path)


class TrustStoreError(TLSPolicyError):
    """Trust bundle could not be read."""

    def __init__(self, path: str, reason: str):
        """Initialize trust store error."""
        super().__init__(f"Cannot read trust bundle {path}: {reason}", path=path)
