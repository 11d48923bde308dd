"""Settings-driven HTTP listener runner."""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import TLSPolicyError
from .listener import HealthHandler, PolicyHTTPServer, serve
from .policy import TransportPolicy, load_policy

logger = logging.getLogger(__name__)


class RunnerSettings(BaseSettings):
    """
    Runner configuration.

    Configuration sources:
    1) Explicit parameters
    2) Environment variables (TLSPOLICY_*)
    3) .env file
    4) Defaults
    """

    web_config_file: Optional[str] = Field(
        default=None, description="Path to the TLS policy YAML file"
    )
    listen_addr: str = Field(
        default="127.0.0.1:9443", description="HTTP listen address (host:port)"
    )
    log_level: str = Field(default="INFO", description="Root log level")

    model_config = SettingsConfigDict(
        env_prefix="TLSPOLICY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("listen_addr")
    @classmethod
    def _validate_listen_addr(cls, value: str) -> str:
        host, sep, port = value.rpartition(":")
        if not sep or not port.isdigit() or int(port) > 65535:
            raise ValueError(f"Invalid listen_addr '{value}'. Use host:port format.")
        return value

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level '{value}'")
        return level

    @property
    def listen_host(self) -> str:
        return self.listen_addr.rpartition(":")[0].strip("[]")

    @property
    def listen_port(self) -> int:
        return int(self.listen_addr.rpartition(":")[2])


def load_runner_settings(
    web_config_file: Optional[str] = None, **overrides: Any
) -> RunnerSettings:
    """Load runner settings with optional overrides."""
    if web_config_file:
        overrides["web_config_file"] = web_config_file
    return RunnerSettings(**overrides)


def get_policy(config_path: str) -> TransportPolicy:
    """
    Load and build a policy, terminating the process on failure.

    Raises:
        SystemExit: If the policy file cannot be loaded or built
    """
    try:
        return load_policy(config_path)
    except TLSPolicyError as exc:
        logger.error(
            "Transport policy failed to load",
            extra={"path": exc.path, "error": str(exc)},
        )
        raise SystemExit(1) from exc


def create_server(settings: RunnerSettings) -> PolicyHTTPServer:
    """Bind an HTTP server with the configured policy attached, if any."""
    policy = get_policy(settings.web_config_file) if settings.web_config_file else None
    return PolicyHTTPServer(
        (settings.listen_host, settings.listen_port),
        HealthHandler,
        policy=policy,
    )


def run(web_config_file: Optional[str] = None) -> None:
    """Sync entrypoint for the runner."""
    settings = load_runner_settings(web_config_file=web_config_file)
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    server = create_server(settings)
    try:
        serve(server)
    except KeyboardInterrupt:
        logger.info("Shutdown requested")
    finally:
        server.server_close()


if __name__ == "__main__":
    run()
