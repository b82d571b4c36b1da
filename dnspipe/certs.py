"""Certificate loading and self-signed certificate generation."""

from __future__ import annotations

import secrets
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID


def load_cert_pool(certs: Iterable[str | Path]) -> list[x509.Certificate]:
    """Read PEM certificates from the given files.

    Raises OSError if a file cannot be read and ValueError if a file holds
    no certificate.
    """
    pool: list[x509.Certificate] = []
    for cert in certs:
        data = Path(cert).read_bytes()
        try:
            parsed = x509.load_pem_x509_certificates(data)
        except ValueError as exc:
            raise ValueError(f"no certificate was successfully parsed in {cert}") from exc
        if not parsed:
            raise ValueError(f"no certificate was successfully parsed in {cert}")
        pool.extend(parsed)
    return pool


def _add_years(when: datetime, years: int) -> datetime:
    try:
        return when.replace(year=when.year + years)
    except ValueError:  # 29 February
        return when.replace(year=when.year + years, month=3, day=1)


def generate_certificate(dns_name: str) -> tuple[bytes, bytes]:
    """Create a self-signed ECDSA P-256 server certificate for ``dns_name``.

    Returns ``(certificate_pem, private_key_pem)``. Meant for tests.
    """
    key = ec.generate_private_key(ec.SECP256R1())
    now = datetime.now(timezone.utc)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, dns_name)])
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(secrets.randbelow((1 << 128) - 1) + 1)
        .not_valid_before(now)
        .not_valid_after(_add_years(now, 10))
        .add_extension(x509.SubjectAlternativeName([x509.DNSName(dns_name)]), critical=False)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=True,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=False,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False)
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    cert_pem = cert.public_bytes(serialization.Encoding.PEM)
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    return cert_pem, key_pem