"""IANA cipher-suite ids and their OpenSSL names."""

from __future__ import annotations

import logging
import ssl
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

# TLS 1.0-1.2 suites, keyed by IANA id.
CIPHER_SUITES: dict[int, str] = {
    0x0005: "RC4-SHA",
    0x000A: "DES-CBC3-SHA",
    0x002F: "AES128-SHA",
    0x0035: "AES256-SHA",
    0x003C: "AES128-SHA256",
    0x009C: "AES128-GCM-SHA256",
    0x009D: "AES256-GCM-SHA384",
    0xC007: "ECDHE-ECDSA-RC4-SHA",
    0xC009: "ECDHE-ECDSA-AES128-SHA",
    0xC00A: "ECDHE-ECDSA-AES256-SHA",
    0xC011: "ECDHE-RSA-RC4-SHA",
    0xC012: "ECDHE-RSA-DES-CBC3-SHA",
    0xC013: "ECDHE-RSA-AES128-SHA",
    0xC014: "ECDHE-RSA-AES256-SHA",
    0xC023: "ECDHE-ECDSA-AES128-SHA256",
    0xC027: "ECDHE-RSA-AES128-SHA256",
    0xC02B: "ECDHE-ECDSA-AES128-GCM-SHA256",
    0xC02C: "ECDHE-ECDSA-AES256-GCM-SHA384",
    0xC02F: "ECDHE-RSA-AES128-GCM-SHA256",
    0xC030: "ECDHE-RSA-AES256-GCM-SHA384",
    0xCCA8: "ECDHE-RSA-CHACHA20-POLY1305",
    0xCCA9: "ECDHE-ECDSA-CHACHA20-POLY1305",
}

# TLS 1.3 suites are always enabled by OpenSSL and cannot be restricted here.
TLS13_CIPHER_SUITES: dict[int, str] = {
    0x1301: "TLS_AES_128_GCM_SHA256",
    0x1302: "TLS_AES_256_GCM_SHA384",
    0x1303: "TLS_CHACHA20_POLY1305_SHA256",
}


def openssl_cipher_string(suite_ids: Iterable[int]) -> Optional[str]:
    """
    Build an OpenSSL cipher list from IANA suite ids, preserving order.

    Suites the local TLS library does not offer are skipped. Returns None
    when no TLS 1.2-and-below suite remains, which leaves only TLS 1.3.
    """
    names: list[str] = []
    for suite_id in suite_ids:
        name = CIPHER_SUITES.get(suite_id)
        if name is not None:
            if name not in names and _available(name):
                names.append(name)
        elif suite_id in TLS13_CIPHER_SUITES:
            logger.debug(
                "TLS 1.3 cipher suite cannot be restricted, skipping",
                extra={"cipher_suite": TLS13_CIPHER_SUITES[suite_id]},
            )
        else:
            logger.warning(
                "Unknown cipher suite id, skipping",
                extra={"cipher_suite_id": f"0x{suite_id:04x}"},
            )

    return ":".join(names) or None


def _available(name: str) -> bool:
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    try:
        context.set_ciphers(name)
    except ssl.SSLError:
        logger.warning(
            "Cipher suite not offered by the local TLS library, skipping",
            extra={"cipher_suite": name},
        )
        return False
    return True
