"""Policy file loading."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import PolicyIOError, PolicyParseError

# Strict: YAML strings, floats and booleans are not coerced to ids.
Uint16 = Annotated[int, Field(ge=0, le=0xFFFF, strict=True)]


class _PolicyModel(BaseModel):
    """Base for policy file sections."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # A key written with no value means the same as an absent key.
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class SecurityPolicySpec(_PolicyModel):
    """The ``tlsConfig`` section of a policy file."""

    trusted_roots_path: Optional[str] = Field(
        default=None, alias="rootCAs", description="PEM bundle of root CAs"
    )
    server_name: Optional[str] = Field(
        default=None, alias="serverName", description="Name used for verification"
    )
    client_auth_mode: Optional[str] = Field(
        default=None, alias="clientAuth", description="Client certificate policy"
    )
    trusted_client_roots_path: Optional[str] = Field(
        default=None, alias="clientCAs", description="PEM bundle of client CAs"
    )
    skip_verification: bool = Field(
        default=False,
        alias="insecureSkipVerify",
        strict=True,
        description="Disable certificate chain verification (insecure)",
    )
    allowed_cipher_suites: Optional[tuple[Uint16, ...]] = Field(
        default=None, alias="cipherSuites", description="IANA cipher suite ids"
    )
    prefer_server_cipher_order: bool = Field(
        default=False,
        alias="preferServerCipherSuites",
        strict=True,
        description="Prefer the server's cipher order",
    )
    min_protocol_version: Optional[Uint16] = Field(
        default=None, alias="minVersion", description="Minimum TLS version, 0 = unset"
    )
    max_protocol_version: Optional[Uint16] = Field(
        default=None, alias="maxVersion", description="Maximum TLS version, 0 = unset"
    )


class RawConfig(_PolicyModel):
    """Top-level structure of a policy file."""

    cert_path: Optional[str] = Field(
        default=None, alias="tlsCertPath", description="Server certificate PEM"
    )
    key_path: Optional[str] = Field(
        default=None, alias="tlsKeyPath", description="Server private key PEM"
    )
    security_policy: SecurityPolicySpec = Field(
        default_factory=SecurityPolicySpec, alias="tlsConfig"
    )


def parse_config(content: str | bytes, source: str = "<string>") -> RawConfig:
    """
    Parse YAML policy text into a RawConfig.

    Args:
        content: YAML document
        source: Name used in error messages

    Returns:
        RawConfig instance

    Raises:
        PolicyParseError: If YAML is invalid or values have the wrong type
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise PolicyParseError(source, str(exc)) from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise PolicyParseError(
            source, f"expected a mapping at top level, got {type(data).__name__}"
        )

    try:
        return RawConfig.model_validate(data)
    except ValidationError as exc:
        raise PolicyParseError(source, str(exc)) from exc


def load_config(file_path: str) -> RawConfig:
    """
    Load a policy file.

    Cross-field rules are not checked here; the builder enforces them.

    Args:
        file_path: Path to YAML policy file

    Returns:
        RawConfig instance

    Raises:
        PolicyIOError: If the file cannot be read
        PolicyParseError: If the file content is invalid
    """
    path = Path(file_path)
    try:
        content = path.read_bytes()
    except OSError as exc:
        raise PolicyIOError(file_path, str(exc)) from exc

    return parse_config(content, source=file_path)
