"""
Core Signing Engine

Implements the enveloped JSON signature workflow for UBL-JSON documents:
canonical document bytes are digested and signed, the XAdES signed
properties are digested, and the results are assembled into a signature
envelope that is embedded back into the document.
"""

import asyncio
import logging
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Iterable, Mapping, Optional, Type

from ..config import SigningConfig, get_signing_config
from ..exceptions import (
    DocumentSigningError, SerializationError, DigestError,
    SigningError, ValidationError
)
from ..models import (
    Algorithm, CertificateMetadata, SignatureIds, SIGNED_PROPERTIES_TYPE,
    DEFAULT_EXCLUSIONS, EXTENSIONS_FIELD, SIGNATURE_FIELD
)
from ..security.signers import Signer
from .canonical import canonicalize
from .digest import digest, sign, as_signer
from .extensions import embed
from .ids import IdGenerator
from .signed_properties import (
    build_signed_properties, text_value, algorithm_value, issuer_serial
)
from .verifier import VerificationResult, verify_signed_document

logger = logging.getLogger(__name__)


class SigningStep(Enum):
    """Pipeline steps, in execution order"""
    CANONICALIZE = "canonicalize"
    DOCUMENT_DIGEST = "document_digest"
    SIGNED_PROPERTIES = "signed_properties"
    PROPERTIES_DIGEST = "properties_digest"
    SIGNED_INFO = "signed_info"
    SIGN = "sign"
    KEY_INFO = "key_info"
    QUALIFYING_PROPERTIES = "qualifying_properties"
    EMBED = "embed"


@contextmanager
def _pipeline_step(step: SigningStep, error_class: Type[DocumentSigningError]):
    """Tag failures with the step that raised them."""
    try:
        yield
    except DocumentSigningError as e:
        if e.step is None:
            e.step = step.value
        logger.error(f"Signature pipeline failed at {step.value}: {e.message}")
        raise
    except Exception as e:
        logger.error(f"Signature pipeline failed at {step.value}: {e}")
        raise error_class(
            f"Signature pipeline failed at {step.value}: {str(e)}",
            step=step.value
        ) from e


def _check_exclusions(exclusion_fields: Iterable[str],
                      extensions_field: str, signature_field: str) -> tuple:
    exclusions = tuple(exclusion_fields)
    missing = [f for f in (extensions_field, signature_field) if f not in exclusions]
    if missing:
        raise SerializationError(
            "Exclusion fields must cover the fields written by the signature",
            error_code="EXCLUSION_MISCONFIGURED",
            details={"missing": missing, "exclusion_fields": list(exclusions)}
        )
    return exclusions


def build_reference(uri: str, digest_value: str, reference_type: str = "",
                    reference_id: Optional[str] = None) -> Dict[str, Any]:
    reference: Dict[str, Any] = {"URI": uri}
    if reference_id is not None:
        reference["Id"] = reference_id
    reference["Type"] = reference_type
    reference["DigestMethod"] = algorithm_value(Algorithm.SHA256)
    reference["DigestValue"] = text_value(digest_value)
    return reference


def build_signed_info(document_digest: str, properties_digest: str,
                      ids: SignatureIds) -> Dict[str, Any]:
    """SignedInfo with the document reference first and the properties reference second."""
    return {
        "SignatureMethod": algorithm_value(Algorithm.RSA_SHA256),
        "Reference": [
            build_reference("", document_digest, reference_id=ids.document_reference_id),
            build_reference(f"#{ids.signed_properties_id}", properties_digest,
                            reference_type=SIGNED_PROPERTIES_TYPE)
        ]
    }


def build_key_info(certificate: str, cert_meta: CertificateMetadata) -> Dict[str, Any]:
    return {
        "X509Data": [{
            "X509Certificate": text_value(certificate),
            "X509SubjectName": text_value(cert_meta.display_subject),
            "X509IssuerSerial": issuer_serial(cert_meta)
        }]
    }


def build_qualifying_properties(signature_id: str,
                                signed_properties: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "XadesQualifyingProperties": [{
            "Target": f"#{signature_id}",
            "SignedProperties": [signed_properties]
        }]
    }


async def assemble_signature(document: Mapping[str, Any],
                             signer: Any,
                             cert_meta: CertificateMetadata,
                             ids: SignatureIds,
                             certificate: str,
                             exclusion_fields: Iterable[str] = DEFAULT_EXCLUSIONS,
                             signing_time: Optional[datetime] = None,
                             extensions_field: str = EXTENSIONS_FIELD,
                             signature_field: str = SIGNATURE_FIELD) -> Dict[str, Any]:
    """
    Produce the signature envelope for ``document``.

    Flow:
    1. Canonicalize the document without the reserved fields
    2. DocumentDigest over the canonical bytes
    3. Build SignedProperties
    4. PropertiesDigest over the canonical SignedProperties
    5. SignedInfo (document reference, then properties reference)
    6. Sign the canonical document bytes
    7. KeyInfo from the certificate
    8. QualifyingProperties targeting the envelope
    9. Envelope

    Args:
        document: Pre-signature document
        signer: A Signer, or an RSA private key
        cert_meta: Signer certificate metadata
        ids: Identifiers for the envelope and its parts
        certificate: Base64 signer certificate for KeyInfo
        exclusion_fields: Top-level fields removed before hashing
        signing_time: Override for the SigningTime property

    Raises:
        SerializationError, DigestError, SigningError, ValidationError:
            Typed by failing step, with ``step`` set
    """
    with _pipeline_step(SigningStep.SIGNED_PROPERTIES, ValidationError):
        if not isinstance(cert_meta, CertificateMetadata):
            raise ValidationError(
                "Certificate metadata is required",
                error_code="CERTIFICATE_METADATA_MISSING"
            )
        if not isinstance(ids, SignatureIds):
            raise ValidationError(
                "Signature identifiers are required",
                error_code="SIGNATURE_IDS_MISSING"
            )

    with _pipeline_step(SigningStep.KEY_INFO, ValidationError):
        if not isinstance(certificate, str) or not certificate.strip():
            raise ValidationError(
                "Signing certificate is required for KeyInfo",
                error_code="CERTIFICATE_MISSING"
            )

    with _pipeline_step(SigningStep.SIGN, SigningError):
        signer = as_signer(signer)

    # Step 1
    with _pipeline_step(SigningStep.CANONICALIZE, SerializationError):
        exclusions = _check_exclusions(exclusion_fields, extensions_field, signature_field)
        document_bytes = canonicalize(document, exclusions)

    # Step 2
    with _pipeline_step(SigningStep.DOCUMENT_DIGEST, DigestError):
        document_digest = digest(document_bytes)
        logger.debug(f"Document digest: {document_digest}")

    # Step 3
    with _pipeline_step(SigningStep.SIGNED_PROPERTIES, ValidationError):
        signed_properties = build_signed_properties(
            cert_meta, ids.signed_properties_id, signing_time=signing_time
        )

    # Step 4
    with _pipeline_step(SigningStep.PROPERTIES_DIGEST, DigestError):
        properties_digest = digest(canonicalize(signed_properties))
        logger.debug(f"Signed properties digest: {properties_digest}")

    # Step 5
    with _pipeline_step(SigningStep.SIGNED_INFO, SerializationError):
        signed_info = build_signed_info(document_digest, properties_digest, ids)

    # Step 6
    with _pipeline_step(SigningStep.SIGN, SigningError):
        signature_value = await sign(document_bytes, signer)

    # Step 7
    with _pipeline_step(SigningStep.KEY_INFO, ValidationError):
        key_info = build_key_info(certificate.strip(), cert_meta)

    # Step 8
    with _pipeline_step(SigningStep.QUALIFYING_PROPERTIES, SerializationError):
        qualifying_properties = build_qualifying_properties(ids.signature_id, signed_properties)

    # Step 9
    envelope = {
        "Id": ids.signature_id,
        "SignedInfo": [signed_info],
        "SignatureValue": [{
            "Id": ids.signature_value_id,
            "Value": signature_value
        }],
        "KeyInfo": [key_info],
        "Object": [qualifying_properties]
    }

    logger.info(f"Assembled signature {ids.signature_id} using {type(signer).__name__}")
    return envelope


async def sign_document(document: Mapping[str, Any],
                        signer: Any,
                        cert_meta: CertificateMetadata,
                        ids: Optional[SignatureIds] = None,
                        certificate: Optional[str] = None,
                        config: Optional[SigningConfig] = None,
                        id_generator: Optional[IdGenerator] = None,
                        signing_time: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Sign ``document`` and return a signed copy.

    The returned document carries the signature extension in its extension
    container and the signature stub. The input document is left untouched.
    When ``ids`` is omitted they are generated with ``id_generator`` and the
    configured prefixes.
    """
    config = config or get_signing_config()

    if ids is None:
        with _pipeline_step(SigningStep.SIGNED_PROPERTIES, ValidationError):
            ids = SignatureIds.generate(
                id_generator,
                signature_information_id=config.signature_information_id,
                referenced_signature_id=config.referenced_signature_id,
                prefixes=config.id_prefixes
            )

    envelope = await assemble_signature(
        document,
        signer,
        cert_meta,
        ids,
        certificate,
        exclusion_fields=config.exclusion_fields,
        signing_time=signing_time,
        extensions_field=config.extensions_field,
        signature_field=config.signature_field
    )

    with _pipeline_step(SigningStep.EMBED, SerializationError):
        signed = embed(
            document,
            envelope,
            extension_uri=config.extension_uri,
            signature_stub_id=ids.referenced_signature_id,
            signature_information_id=ids.signature_information_id,
            extensions_field=config.extensions_field,
            signature_field=config.signature_field
        )

    logger.info(f"Document signed with signature {ids.signature_id}")
    return signed


def sign_document_sync(document: Mapping[str, Any], signer: Any,
                       cert_meta: CertificateMetadata, **kwargs) -> Dict[str, Any]:
    """Blocking wrapper around :func:`sign_document` for callers without a loop."""
    return asyncio.run(sign_document(document, signer, cert_meta, **kwargs))


class DocumentSigningService:
    """
    Signs documents with one signer and certificate.

    Holds no per-document state, so one instance may sign many documents
    concurrently.
    """

    def __init__(self, signer: Signer, certificate: str,
                 cert_meta: CertificateMetadata,
                 config: Optional[SigningConfig] = None,
                 id_generator: Optional[IdGenerator] = None):
        self.signer = signer
        self.certificate = certificate
        self.cert_meta = cert_meta
        self.config = config or get_signing_config()
        self.id_generator = id_generator

    @classmethod
    def from_material(cls, material, config: Optional[SigningConfig] = None,
                      id_generator: Optional[IdGenerator] = None) -> "DocumentSigningService":
        """Build from :class:`~einvoice_signing.security.certificates.SigningMaterial`."""
        return cls(
            signer=material.signer,
            certificate=material.certificate_base64,
            cert_meta=material.metadata,
            config=config,
            id_generator=id_generator
        )

    async def sign(self, document: Mapping[str, Any],
                   ids: Optional[SignatureIds] = None,
                   signing_time: Optional[datetime] = None) -> Dict[str, Any]:
        return await sign_document(
            document,
            self.signer,
            self.cert_meta,
            ids=ids,
            certificate=self.certificate,
            config=self.config,
            id_generator=self.id_generator,
            signing_time=signing_time
        )

    def verify(self, signed_document: Mapping[str, Any]) -> VerificationResult:
        return verify_signed_document(
            signed_document,
            exclusion_fields=self.config.exclusion_fields,
            extensions_field=self.config.extensions_field
        )

    async def health_check(self) -> Dict[str, Any]:
        signer_status = await self.signer.health_check()
        return {
            "signer": signer_status,
            "certificate_serial": self.cert_meta.serial_number,
            "issuer": self.cert_meta.issuer_name,
            "extension_uri": self.config.extension_uri
        }
