"""
XAdES Signed Properties

Builds the SignedProperties block that binds the signature to the signer
certificate and signing time. The block is digested on its own and
referenced from SignedInfo by its Id.
"""

from datetime import datetime, timezone
from typing import Dict, Any, Optional

from ..exceptions import ValidationError
from ..models import Algorithm, CertificateMetadata


def format_signing_time(value: datetime) -> str:
    """
    Format as ISO-8601 UTC with millisecond precision, e.g.
    ``2024-05-01T08:30:00.000Z``. Naive datetimes are taken as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def text_value(value: str) -> list:
    return [{"_": value}]


def algorithm_value(algorithm: Algorithm) -> list:
    return [{"_": "", "Algorithm": algorithm.value}]


def issuer_serial(cert_meta: CertificateMetadata) -> list:
    return [{
        "X509IssuerName": text_value(cert_meta.issuer_name),
        "X509SerialNumber": text_value(cert_meta.serial_number)
    }]


def build_signed_properties(cert_meta: CertificateMetadata,
                            properties_id: str,
                            signing_time: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Build the XAdES SignedProperties structure.

    Args:
        cert_meta: Signer certificate metadata
        properties_id: Id of the block, referenced as ``#<id>``
        signing_time: Override for SigningTime. Falls back to
            ``cert_meta.signing_time`` and then to the current UTC time.

    Raises:
        ValidationError: If the id or metadata is missing
    """
    if not isinstance(cert_meta, CertificateMetadata):
        raise ValidationError(
            "Certificate metadata is required",
            error_code="CERTIFICATE_METADATA_MISSING"
        )
    if not isinstance(properties_id, str) or not properties_id:
        raise ValidationError(
            "Signed properties id is required",
            error_code="SIGNED_PROPERTIES_ID_MISSING"
        )

    signing_time = signing_time or cert_meta.signing_time or datetime.now(timezone.utc)

    return {
        "Id": properties_id,
        "SignedSignatureProperties": [{
            "SigningTime": text_value(format_signing_time(signing_time)),
            "SigningCertificate": [{
                "Cert": [{
                    "CertDigest": [{
                        "DigestMethod": algorithm_value(Algorithm.SHA256),
                        "DigestValue": text_value(cert_meta.certificate_digest)
                    }],
                    "IssuerSerial": issuer_serial(cert_meta)
                }]
            }]
        }]
    }
