"""Shared pytest fixtures: an on-the-fly PKI written to tmp_path."""

from __future__ import annotations

import datetime
import ipaddress
from dataclasses import dataclass
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID


def _key_pem(key: ec.EllipticCurvePrivateKey) -> bytes:
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )


def _cert_pem(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(serialization.Encoding.PEM)


def _name(common_name: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])


def _key_usage(*, ca: bool) -> x509.KeyUsage:
    return x509.KeyUsage(
        digital_signature=True,
        content_commitment=False,
        key_encipherment=False,
        data_encipherment=False,
        key_agreement=not ca,
        key_cert_sign=ca,
        crl_sign=ca,
        encipher_only=False,
        decipher_only=False,
    )


@dataclass
class Pki:
    """CA plus a localhost leaf, written as PEM files."""

    ca_key: ec.EllipticCurvePrivateKey
    ca_cert: x509.Certificate
    ca_path: str
    cert_path: str
    key_path: str
    other_key_path: str
    leaf_cert: x509.Certificate | None = None

    def issue(self, common_name: str) -> tuple[x509.Certificate, bytes, bytes]:
        """Issue a new leaf; returns (certificate, cert PEM, key PEM)."""
        key = ec.generate_private_key(ec.SECP256R1())
        now = datetime.datetime.now(datetime.timezone.utc)
        cert = (
            x509.CertificateBuilder()
            .subject_name(_name(common_name))
            .issuer_name(self.ca_cert.subject)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - datetime.timedelta(days=1))
            .not_valid_after(now + datetime.timedelta(days=30))
            .add_extension(
                x509.BasicConstraints(ca=False, path_length=None), critical=True
            )
            .add_extension(_key_usage(ca=False), critical=True)
            .add_extension(
                x509.ExtendedKeyUsage(
                    [ExtendedKeyUsageOID.SERVER_AUTH, ExtendedKeyUsageOID.CLIENT_AUTH]
                ),
                critical=False,
            )
            .add_extension(
                x509.SubjectAlternativeName(
                    [
                        x509.DNSName("localhost"),
                        x509.IPAddress(ipaddress.ip_address("127.0.0.1")),
                    ]
                ),
                critical=False,
            )
            .add_extension(
                x509.SubjectKeyIdentifier.from_public_key(key.public_key()),
                critical=False,
            )
            .add_extension(
                x509.AuthorityKeyIdentifier.from_issuer_public_key(
                    self.ca_key.public_key()
                ),
                critical=False,
            )
            .sign(self.ca_key, hashes.SHA256())
        )
        return cert, _cert_pem(cert), _key_pem(key)

    def write_leaf(self, common_name: str) -> x509.Certificate:
        """Replace the leaf files on disk with a newly issued leaf."""
        cert, cert_pem, key_pem = self.issue(common_name)
        Path(self.key_path).write_bytes(key_pem)
        Path(self.cert_path).write_bytes(cert_pem)
        self.leaf_cert = cert
        return cert

    def write_client(self, common_name: str) -> tuple[str, str]:
        """Issue a client leaf and write it beside the server files."""
        _, cert_pem, key_pem = self.issue(common_name)
        directory = Path(self.cert_path).parent
        cert_path = directory / f"{common_name}.pem"
        key_path = directory / f"{common_name}-key.pem"
        cert_path.write_bytes(cert_pem)
        key_path.write_bytes(key_pem)
        return str(cert_path), str(key_path)


def _make_ca(ca_name: str) -> tuple[ec.EllipticCurvePrivateKey, x509.Certificate]:
    key = ec.generate_private_key(ec.SECP256R1())
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(_name(ca_name))
        .issuer_name(_name(ca_name))
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=365))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(_key_usage(ca=True), critical=True)
        .add_extension(
            x509.SubjectKeyIdentifier.from_public_key(key.public_key()),
            critical=False,
        )
        .sign(key, hashes.SHA256())
    )
    return key, cert


def _write_pki(directory: Path, ca_name: str) -> Pki:
    directory.mkdir(parents=True, exist_ok=True)
    ca_key, ca_cert = _make_ca(ca_name)
    ca_path = directory / "ca.pem"
    ca_path.write_bytes(_cert_pem(ca_cert))

    other_key_path = directory / "other-key.pem"
    other_key_path.write_bytes(_key_pem(ec.generate_private_key(ec.SECP256R1())))

    pki = Pki(
        ca_key=ca_key,
        ca_cert=ca_cert,
        ca_path=str(ca_path),
        cert_path=str(directory / "server.pem"),
        key_path=str(directory / "server-key.pem"),
        other_key_path=str(other_key_path),
    )
    pki.write_leaf("localhost")
    return pki


@pytest.fixture
def pki(tmp_path: Path) -> Pki:
    """Write a CA, a localhost leaf, its key, and an unrelated key."""
    return _write_pki(tmp_path, "tlspolicy test CA")


@pytest.fixture
def foreign_pki(tmp_path: Path) -> Pki:
    """A second, unrelated CA and leaf."""
    return _write_pki(tmp_path / "foreign", "tlspolicy foreign CA")


@pytest.fixture
def write_policy(tmp_path: Path):
    """Write YAML policy text to a file and return its path."""

    def _write(content: str, name: str = "web-config.yml") -> str:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return str(path)

    return _write
