"""
Signed Document Verification

Re-derives everything a remote verifier checks on a signed document:
the document digest, the signed properties digest, the RSA signature
over the canonical bytes, the binding between the KeyInfo certificate and
the signed properties, and the cross references between the envelope,
its qualifying properties and the signature stub.
"""

import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Iterable, List, Mapping, Optional, Tuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ..exceptions import DocumentSigningError
from ..models import (
    DEFAULT_EXCLUSIONS, EXTENSION_URI, EXTENSIONS_FIELD, SIGNATURE_FIELD,
    SIGNED_PROPERTIES_TYPE
)
from ..security.certificates import certificate_metadata, load_certificate
from .canonical import canonicalize
from .digest import digest

logger = logging.getLogger(__name__)


@dataclass
class VerificationResult:
    """Result of signed document verification"""
    is_valid: bool
    document_digest_valid: bool = False
    properties_digest_valid: bool = False
    signature_valid: bool = False
    certificate_valid: bool = False
    target_valid: bool = False
    stub_valid: bool = False
    validation_errors: List[str] = field(default_factory=list)
    signature_id: Optional[str] = None
    signing_time: Optional[str] = None
    issuer_name: Optional[str] = None
    serial_number: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "checks": {
                "document_digest": self.document_digest_valid,
                "properties_digest": self.properties_digest_valid,
                "signature": self.signature_valid,
                "certificate": self.certificate_valid,
                "target": self.target_valid,
                "stub": self.stub_valid
            },
            "validation_errors": list(self.validation_errors),
            "signature_id": self.signature_id,
            "signing_time": self.signing_time,
            "issuer_name": self.issuer_name,
            "serial_number": self.serial_number
        }


def _text(node: Any) -> Optional[str]:
    """Value of a ``[{"_": value}]`` wrapper."""
    try:
        return node[0]["_"]
    except (KeyError, IndexError, TypeError):
        return None


def _issuer_serial(node: Any) -> Tuple[Optional[str], Optional[str]]:
    """Issuer name and serial number of an IssuerSerial block."""
    try:
        block = node[0]
        return _text(block.get("X509IssuerName")), _text(block.get("X509SerialNumber"))
    except (KeyError, IndexError, TypeError, AttributeError):
        return None, None


def find_signature_information(document: Mapping[str, Any],
                               extension_uri: str = EXTENSION_URI,
                               extensions_field: str = EXTENSIONS_FIELD) -> Optional[Dict[str, Any]]:
    """Locate the SignatureInformation block of the signature extension."""
    containers = document.get(extensions_field) or []
    if not isinstance(containers, list):
        return None

    for container in containers:
        if not isinstance(container, dict):
            continue
        for extension in container.get("UBLExtension") or []:
            if not isinstance(extension, dict) or _text(extension.get("ExtensionURI")) != extension_uri:
                continue
            try:
                content = extension["ExtensionContent"][0]
                return content["UBLDocumentSignatures"][0]["SignatureInformation"][0]
            except (KeyError, IndexError, TypeError):
                continue
    return None


def verify_signed_document(signed_document: Mapping[str, Any],
                           public_key: Optional[rsa.RSAPublicKey] = None,
                           exclusion_fields: Iterable[str] = DEFAULT_EXCLUSIONS,
                           extension_uri: str = EXTENSION_URI,
                           extensions_field: str = EXTENSIONS_FIELD,
                           signature_field: str = SIGNATURE_FIELD) -> VerificationResult:
    """
    Verify an enveloped signature.

    Args:
        signed_document: Document produced by ``sign_document``
        public_key: Key to check the signature with. Defaults to the key of
            the certificate embedded in KeyInfo.
        exclusion_fields: Top-level fields removed before hashing

    Returns:
        VerificationResult; problems are reported in ``validation_errors``
    """
    result = VerificationResult(is_valid=False)
    errors = result.validation_errors

    if not isinstance(signed_document, Mapping):
        errors.append("Signed document must be a JSON object")
        return result

    signature_information = find_signature_information(
        signed_document, extension_uri, extensions_field
    )
    if signature_information is None:
        errors.append(f"No signature extension with URI {extension_uri}")
        return result

    try:
        envelope = signature_information["Signature"][0]
        signed_info = envelope["SignedInfo"][0]
        document_reference, properties_reference = signed_info["Reference"][:2]
        signature_value = envelope["SignatureValue"][0]["Value"]
        qualifying = envelope["Object"][0]["XadesQualifyingProperties"][0]
        signed_properties = qualifying["SignedProperties"][0]
    except (KeyError, IndexError, TypeError, ValueError) as e:
        errors.append(f"Malformed signature envelope: {str(e)}")
        return result

    nodes = (envelope, signed_info, document_reference, properties_reference,
             qualifying, signed_properties)
    if not all(isinstance(node, dict) for node in nodes):
        errors.append("Malformed signature envelope: SignedInfo, references and "
                      "qualifying properties must be objects")
        return result

    result.signature_id = envelope.get("Id")

    cert_digest = None
    signed_issuer_serial = None
    try:
        cert_props = signed_properties["SignedSignatureProperties"][0]
        result.signing_time = _text(cert_props.get("SigningTime"))
        cert = cert_props["SigningCertificate"][0]["Cert"][0]
        cert_digest = _text(cert["CertDigest"][0].get("DigestValue"))
        signed_issuer_serial = _issuer_serial(cert.get("IssuerSerial"))
        result.issuer_name, result.serial_number = signed_issuer_serial
    except (KeyError, IndexError, TypeError, AttributeError):
        errors.append("Signed properties do not carry signing certificate details")

    try:
        document_bytes = canonicalize(signed_document, exclusion_fields)
    except DocumentSigningError as e:
        errors.append(f"Document cannot be canonicalized: {e.message}")
        return result

    # Document digest, first reference
    if document_reference.get("URI") != "":
        errors.append("First reference must cover the whole document")
    elif digest(document_bytes) == _text(document_reference.get("DigestValue")):
        result.document_digest_valid = True
    else:
        errors.append("Document digest does not match")

    # Signed properties digest, second reference
    try:
        properties_digest = digest(canonicalize(signed_properties))
    except DocumentSigningError as e:
        errors.append(f"Signed properties cannot be canonicalized: {e.message}")
        properties_digest = None
    if properties_reference.get("Type") != SIGNED_PROPERTIES_TYPE:
        errors.append("Second reference must be typed as signed properties")
    elif properties_reference.get("URI") != f"#{signed_properties.get('Id')}":
        errors.append("Signed properties reference URI does not match its Id")
    elif properties_digest is not None and properties_digest == _text(properties_reference.get("DigestValue")):
        result.properties_digest_valid = True
    elif properties_digest is not None:
        errors.append("Signed properties digest does not match")

    # Qualifying properties target
    if qualifying.get("Target") == f"#{envelope.get('Id')}":
        result.target_valid = True
    else:
        errors.append("Qualifying properties target does not match the signature Id")

    # Stub cross reference
    stub = signed_document.get(signature_field)
    stub_id = None
    if isinstance(stub, list) and stub and isinstance(stub[0], dict):
        stub_id = _text(stub[0].get("ID"))
    if stub_id is not None and stub_id == _text(signature_information.get("ReferencedSignatureID")):
        result.stub_valid = True
    else:
        errors.append("Signature stub does not match the referenced signature id")

    # Certificate binding: KeyInfo certificate against CertDigest and both IssuerSerial blocks
    certificate = None
    key_info_issuer_serial = None
    try:
        x509_data = envelope["KeyInfo"][0]["X509Data"][0]
        key_info_issuer_serial = _issuer_serial(x509_data.get("X509IssuerSerial"))
        certificate = load_certificate(_text(x509_data.get("X509Certificate")) or "")
        cert_meta = certificate_metadata(certificate)
    except (KeyError, IndexError, TypeError, AttributeError, DocumentSigningError) as e:
        errors.append(f"Signer certificate unavailable: {str(e)}")
        cert_meta = None

    if cert_meta is not None:
        expected = (cert_meta.issuer_name, cert_meta.serial_number)
        mismatches = []
        if cert_digest != cert_meta.certificate_digest:
            mismatches.append("CertDigest")
        if signed_issuer_serial != expected:
            mismatches.append("SignedProperties IssuerSerial")
        if key_info_issuer_serial != expected:
            mismatches.append("KeyInfo X509IssuerSerial")
        if mismatches:
            errors.append(f"Signer certificate does not match {', '.join(mismatches)}")
        else:
            result.certificate_valid = True

    # RSA signature
    if public_key is None and certificate is not None:
        public_key = certificate.public_key()

    if public_key is not None:
        try:
            public_key.verify(
                base64.b64decode(signature_value, validate=True),
                document_bytes,
                padding.PKCS1v15(),
                hashes.SHA256()
            )
            result.signature_valid = True
        except (InvalidSignature, binascii.Error, ValueError, TypeError, AttributeError):
            errors.append("RSA signature verification failed")

    result.is_valid = not errors and all((
        result.document_digest_valid,
        result.properties_digest_valid,
        result.signature_valid,
        result.certificate_valid,
        result.target_valid,
        result.stub_valid
    ))

    logger.info(f"Verified signature {result.signature_id}: valid={result.is_valid}")
    return result
