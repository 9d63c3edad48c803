"""
Signature Data Models

Certificate metadata, signature identifiers and the algorithm/type
identifiers that appear in the UBL-JSON signature structure.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional

from .core.ids import IdGenerator, UuidIdGenerator
from .exceptions import ValidationError


class Algorithm(str, Enum):
    """Algorithm identifiers used in SignedInfo and SignedProperties"""
    RSA_SHA256 = "http://www.w3.org/2001/04/xmldsig-more#rsa-sha256"
    SHA256 = "http://www.w3.org/2001/04/xmlenc#sha256"


SIGNED_PROPERTIES_TYPE = "http://uri.etsi.org/01903/v1.3.2#SignedProperties"

EXTENSION_URI = "urn:oasis:names:specification:ubl:dsig:enveloped:xades"
SIGNATURE_INFORMATION_ID = "urn:oasis:names:specification:ubl:signature:1"
REFERENCED_SIGNATURE_ID = "urn:oasis:names:specification:ubl:signature:Invoice"

EXTENSIONS_FIELD = "UBLExtensions"
SIGNATURE_FIELD = "Signature"
DEFAULT_EXCLUSIONS = (EXTENSIONS_FIELD, SIGNATURE_FIELD)

# Id prefixes for generated identifiers
SIGNATURE_ID_PREFIX = "DocSig"
SIGNED_PROPERTIES_ID_PREFIX = "id-xades-signed-props"
DOCUMENT_REFERENCE_ID_PREFIX = "id-doc-signed-data"
SIGNATURE_VALUE_ID_PREFIX = "DocSigValue"


@dataclass(frozen=True)
class CertificateMetadata:
    """
    Signer certificate details recorded in the signature.

    ``certificate_digest`` is the base64 SHA-256 of the DER certificate.
    ``subject_name`` falls back to the issuer name in KeyInfo when unset.
    ``signing_time`` pins the SigningTime property; when None the time of
    signing is used.
    """
    issuer_name: str
    serial_number: str
    certificate_digest: str
    subject_name: Optional[str] = None
    signing_time: Optional[datetime] = None

    def __post_init__(self):
        missing = [
            name for name in ("issuer_name", "serial_number", "certificate_digest")
            if not isinstance(getattr(self, name), str)
            or not getattr(self, name).strip()
        ]
        if missing:
            raise ValidationError(
                f"Missing required certificate metadata: {', '.join(missing)}",
                error_code="CERTIFICATE_METADATA_MISSING",
                details={"missing_fields": missing}
            )
        if self.signing_time is not None and not isinstance(self.signing_time, datetime):
            raise ValidationError(
                "signing_time must be a datetime",
                error_code="CERTIFICATE_METADATA_INVALID",
                details={"field": "signing_time"}
            )

    @property
    def display_subject(self) -> str:
        return self.subject_name or self.issuer_name

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation"""
        return {
            "issuer_name": self.issuer_name,
            "serial_number": self.serial_number,
            "certificate_digest": self.certificate_digest,
            "subject_name": self.subject_name,
            "signing_time": self.signing_time.isoformat() if self.signing_time else None
        }


@dataclass(frozen=True)
class SignatureIds:
    """Identifiers tying the envelope, its references and the body stub together"""
    signature_id: str
    signed_properties_id: str
    document_reference_id: str
    signature_value_id: str
    signature_information_id: str = SIGNATURE_INFORMATION_ID
    referenced_signature_id: str = REFERENCED_SIGNATURE_ID

    def __post_init__(self):
        empty = [
            name for name, value in self.__dict__.items()
            if not isinstance(value, str) or not value
        ]
        if empty:
            raise ValidationError(
                f"Signature identifiers must be non-empty strings: {', '.join(empty)}",
                error_code="SIGNATURE_IDS_INVALID",
                details={"invalid_fields": empty}
            )
        if self.signature_id == self.signed_properties_id:
            raise ValidationError(
                "Signature id and signed properties id must differ",
                error_code="SIGNATURE_IDS_INVALID",
                details={"signature_id": self.signature_id}
            )

    @classmethod
    def generate(cls, generator: Optional[IdGenerator] = None,
                 signature_information_id: str = SIGNATURE_INFORMATION_ID,
                 referenced_signature_id: str = REFERENCED_SIGNATURE_ID,
                 prefixes: Optional[Dict[str, str]] = None) -> "SignatureIds":
        """Create a fresh set of ids from ``generator`` (random by default)."""
        generator = generator or UuidIdGenerator()
        prefixes = prefixes or {}
        return cls(
            signature_id=generator.next_id(
                prefixes.get("signature", SIGNATURE_ID_PREFIX)),
            signed_properties_id=generator.next_id(
                prefixes.get("signed_properties", SIGNED_PROPERTIES_ID_PREFIX)),
            document_reference_id=generator.next_id(
                prefixes.get("document_reference", DOCUMENT_REFERENCE_ID_PREFIX)),
            signature_value_id=generator.next_id(
                prefixes.get("signature_value", SIGNATURE_VALUE_ID_PREFIX)),
            signature_information_id=signature_information_id,
            referenced_signature_id=referenced_signature_id
        )
