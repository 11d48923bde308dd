"""Plaintext or TLS listener startup for HTTP servers."""

from __future__ import annotations

import logging
import ssl
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional

from .policy import TransportPolicy

logger = logging.getLogger(__name__)


class PolicyHTTPServer(ThreadingHTTPServer):
    """
    Threading HTTP server with an optional transport policy attached.

    Each connection runs on its own thread. In TLS mode the handshake runs on
    that thread too, so a slow certificate load stalls only its connection
    and a failed handshake drops only its connection.
    """

    daemon_threads = True

    def __init__(
        self,
        server_address: tuple[str, int],
        handler_class: type[BaseHTTPRequestHandler],
        *,
        policy: Optional[TransportPolicy] = None,
        bind_and_activate: bool = True,
    ) -> None:
        """Initialize server with an optional transport policy."""
        self.policy = policy
        self._tls_context: Optional[ssl.SSLContext] = None
        super().__init__(server_address, handler_class, bind_and_activate)

    @property
    def tls_enabled(self) -> bool:
        """Whether accepted connections are wrapped in TLS."""
        return self._tls_context is not None

    @property
    def bound_addr(self) -> str:
        """Bound listen address as host:port."""
        host, port = self.server_address[:2]
        return f"{host}:{port}"

    def enable_tls(self, context: ssl.SSLContext) -> None:
        """Wrap every connection accepted from now on with ``context``."""
        self._tls_context = context

    def finish_request(self, request: Any, client_address: Any) -> None:
        """Run the TLS handshake, if enabled, then hand off to the handler."""
        if self._tls_context is None:
            super().finish_request(request, client_address)
            return

        tls_request = self._tls_context.wrap_socket(
            request, server_side=True, do_handshake_on_connect=False
        )
        try:
            try:
                tls_request.do_handshake()
            except (ssl.SSLError, OSError) as exc:
                logger.warning(
                    "TLS handshake failed",
                    extra={"client_address": client_address, "error": str(exc)},
                )
                return
            super().finish_request(tls_request, client_address)
        finally:
            self.shutdown_request(tls_request)


def serve(server: PolicyHTTPServer) -> None:
    """
    Serve in TLS mode when the server carries a policy with a certificate
    supplier, plaintext otherwise.

    Blocks until ``server.shutdown()`` is called. Errors from the listening
    loop propagate unchanged; the listener is not restarted.
    """
    if server.policy is not None and server.policy.tls_enabled:
        server.enable_tls(server.policy.server_context())
        logger.info(
            "Listening with TLS",
            extra={
                "listen_addr": server.bound_addr,
                "client_auth": server.policy.client_auth.value,
            },
        )
    else:
        logger.info("Listening without TLS", extra={"listen_addr": server.bound_addr})

    server.serve_forever()


class HealthHandler(BaseHTTPRequestHandler):
    """Answer every GET with 200 OK."""

    def do_GET(self) -> None:
        body = b"OK\n"
        self.send_response(200)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug(format % args, extra={"client_address": self.client_address})
