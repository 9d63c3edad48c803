"""
Signer Certificate Material

Loads the signer certificate and private key and derives the metadata
recorded in the signature (issuer, serial number, certificate digest).
"""

import base64
import binascii
import hashlib
import logging
from dataclasses import dataclass
from typing import Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from ..exceptions import ValidationError
from ..models import CertificateMetadata
from .signers import LocalRSASigner

logger = logging.getLogger(__name__)


@dataclass
class SigningMaterial:
    """Everything needed to sign with a local key"""
    signer: LocalRSASigner
    certificate: x509.Certificate
    certificate_base64: str
    metadata: CertificateMetadata


def load_certificate(data: Union[bytes, str]) -> x509.Certificate:
    """
    Load an X.509 certificate from PEM, DER or base64 encoded DER.

    Raises:
        ValidationError: If the data is not a certificate
    """
    if isinstance(data, str):
        try:
            data = data.encode("ascii")
        except UnicodeEncodeError as e:
            raise ValidationError(
                f"Certificate text must be ASCII: {str(e)}",
                error_code="CERTIFICATE_INVALID"
            ) from e

    raw = data.strip()
    try:
        if raw.startswith(b"-----BEGIN"):
            return x509.load_pem_x509_certificate(raw)
        if raw[:1] == b"\x30":  # ASN.1 SEQUENCE
            return x509.load_der_x509_certificate(raw)
        decoded = base64.b64decode(raw, validate=False)
        if decoded.startswith(b"-----BEGIN"):
            return x509.load_pem_x509_certificate(decoded)
        return x509.load_der_x509_certificate(decoded)
    except (ValueError, binascii.Error) as e:
        raise ValidationError(
            f"Failed to load signing certificate: {str(e)}",
            error_code="CERTIFICATE_INVALID"
        ) from e


def certificate_der(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(serialization.Encoding.DER)


def certificate_base64(cert: x509.Certificate) -> str:
    """Base64 of the DER certificate, as placed in KeyInfo."""
    return base64.b64encode(certificate_der(cert)).decode("ascii")


def certificate_metadata(cert: x509.Certificate) -> CertificateMetadata:
    """Derive issuer, serial number, digest and subject from ``cert``."""
    der = certificate_der(cert)
    return CertificateMetadata(
        issuer_name=cert.issuer.rfc4514_string(),
        serial_number=str(cert.serial_number),
        certificate_digest=base64.b64encode(hashlib.sha256(der).digest()).decode("ascii"),
        subject_name=cert.subject.rfc4514_string()
    )


def load_signing_material(certificate_data: Union[bytes, str],
                          key_data: bytes,
                          password: Optional[bytes] = None,
                          min_key_size: int = 2048) -> SigningMaterial:
    """Load certificate and PEM private key and check that they belong together."""
    cert = load_certificate(certificate_data)
    signer = LocalRSASigner.from_pem(key_data, password=password, min_key_size=min_key_size)

    cert_public = cert.public_key().public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo
    )
    key_public = signer.public_key().public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo
    )
    if cert_public != key_public:
        raise ValidationError(
            "Private key does not match the signing certificate",
            error_code="KEY_CERTIFICATE_MISMATCH",
            details={"serial_number": str(cert.serial_number)}
        )

    metadata = certificate_metadata(cert)
    logger.info(f"Loaded signing certificate {metadata.serial_number} issued by {metadata.issuer_name}")

    return SigningMaterial(
        signer=signer,
        certificate=cert,
        certificate_base64=certificate_base64(cert),
        metadata=metadata
    )
