import ipaddress
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID
from pydantic import BaseModel, ConfigDict, Field

__all__ = ["CertificateOptions", "Credentials", "issue_credentials"]

logger = logging.getLogger(__name__)


class CertificateOptions(BaseModel):
    """Options for the certificates issued to a TLS temp server.

    Attributes:
        common_name (str): The common name of the server certificate.
        alt_names (list[str]): Host names and IP addresses the certificate is valid for.
        days (int): How long the certificates are valid for.
        organization (str): The organization name of the certificate authority.
    """

    common_name: str = "localhost"
    alt_names: list[str] = Field(
        default_factory=lambda: ["localhost", "127.0.0.1", "::1"]
    )
    days: int = Field(default=365, gt=0)
    organization: str = "tempserver"

    model_config = ConfigDict(extra="forbid")


@dataclass(frozen=True)
class Credentials:
    """PEM encoded TLS material of a server.

    Attributes:
        key (bytes): The private key of the server certificate.
        cert (bytes): The server certificate.
        ca_cert (bytes): The certificate of the authority that signed `cert`,
            for clients to trust.
    """

    key: bytes
    cert: bytes
    ca_cert: bytes


def _general_name(name: str) -> x509.GeneralName:
    try:
        return x509.IPAddress(ipaddress.ip_address(name))
    except ValueError:
        return x509.DNSName(name)


def _pem_key(key: ec.EllipticCurvePrivateKey) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def issue_credentials(
    options: CertificateOptions | dict[str, Any] | None = None,
) -> Credentials:
    """Issue a certificate authority and a server certificate signed by it.

    Args:
        options (CertificateOptions | dict | None): The certificate options.

    Returns:
        Credentials: The PEM encoded server key, server certificate and CA certificate.
    """
    if options is None:
        options = CertificateOptions()
    elif not isinstance(options, CertificateOptions):
        options = CertificateOptions.model_validate(options)

    not_before = datetime.now(timezone.utc) - timedelta(minutes=5)
    not_after = not_before + timedelta(days=options.days)

    ca_key = ec.generate_private_key(ec.SECP256R1())
    ca_name = x509.Name(
        [
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, options.organization),
            x509.NameAttribute(NameOID.COMMON_NAME, f"{options.organization} CA"),
        ]
    )
    ca_cert = (
        x509.CertificateBuilder()
        .subject_name(ca_name)
        .issuer_name(ca_name)
        .public_key(ca_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=True, path_length=0), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(
            x509.SubjectKeyIdentifier.from_public_key(ca_key.public_key()),
            critical=False,
        )
        .sign(ca_key, hashes.SHA256())
    )

    key = ec.generate_private_key(ec.SECP256R1())
    cert = (
        x509.CertificateBuilder()
        .subject_name(
            x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, options.common_name)])
        )
        .issuer_name(ca_name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
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
        .add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False
        )
        .add_extension(
            x509.SubjectAlternativeName(
                [_general_name(name) for name in options.alt_names]
            ),
            critical=False,
        )
        .add_extension(
            x509.SubjectKeyIdentifier.from_public_key(key.public_key()),
            critical=False,
        )
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(ca_key.public_key()),
            critical=False,
        )
        .sign(ca_key, hashes.SHA256())
    )
    logger.debug(f"Issued certificate for {options.alt_names}")

    return Credentials(
        key=_pem_key(key),
        cert=cert.public_bytes(serialization.Encoding.PEM),
        ca_cert=ca_cert.public_bytes(serialization.Encoding.PEM),
    )
