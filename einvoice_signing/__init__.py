"""
E-Invoice Signing

Enveloped JSON digital signatures for UBL-JSON e-invoice documents.
The canonical document bytes are signed with RSA-SHA256, the signature is
bound to the signer certificate through XAdES signed properties, and the
result is embedded in the document's UBLExtensions together with the
cac:Signature stub.

Example:
    >>> from einvoice_signing import load_signing_material, sign_document
    >>> material = load_signing_material(cert_pem, key_pem)
    >>> signed = await sign_document(
    ...     invoice,
    ...     material.signer,
    ...     material.metadata,
    ...     certificate=material.certificate_base64
    ... )
"""

from ._version import __version__
from .config import SigningConfig, SigningConfigManager, get_signing_config
from .core.canonical import canonicalize, validate_document
from .core.digest import digest, sign
from .core.extensions import (
    embed,
    build_signature_extension,
    build_ubl_extensions,
)
from .core.ids import IdGenerator, UuidIdGenerator, CounterIdGenerator
from .core.signed_properties import build_signed_properties
from .core.signing_engine import (
    SigningStep,
    DocumentSigningService,
    assemble_signature,
    sign_document,
    sign_document_sync,
)
from .core.verifier import VerificationResult, verify_signed_document
from .exceptions import (
    DocumentSigningError,
    SerializationError,
    DigestError,
    SigningError,
    ValidationError,
    ConfigurationError,
)
from .models import (
    Algorithm,
    CertificateMetadata,
    SignatureIds,
    DEFAULT_EXCLUSIONS,
    EXTENSION_URI,
)
from .security.certificates import (
    SigningMaterial,
    certificate_metadata,
    load_certificate,
    load_signing_material,
)
from .security.signers import Signer, LocalRSASigner, RemoteSigner, load_private_key

__all__ = [
    "__version__",
    # Configuration
    "SigningConfig",
    "SigningConfigManager",
    "get_signing_config",
    # Pipeline
    "canonicalize",
    "validate_document",
    "digest",
    "sign",
    "build_signed_properties",
    "assemble_signature",
    "embed",
    "build_signature_extension",
    "build_ubl_extensions",
    "sign_document",
    "sign_document_sync",
    "SigningStep",
    "DocumentSigningService",
    "VerificationResult",
    "verify_signed_document",
    # Ids
    "IdGenerator",
    "UuidIdGenerator",
    "CounterIdGenerator",
    # Models
    "Algorithm",
    "CertificateMetadata",
    "SignatureIds",
    "DEFAULT_EXCLUSIONS",
    "EXTENSION_URI",
    # Keys and certificates
    "Signer",
    "LocalRSASigner",
    "RemoteSigner",
    "SigningMaterial",
    "certificate_metadata",
    "load_certificate",
    "load_signing_material",
    "load_private_key",
    # Exceptions
    "DocumentSigningError",
    "SerializationError",
    "DigestError",
    "SigningError",
    "ValidationError",
    "ConfigurationError",
]
