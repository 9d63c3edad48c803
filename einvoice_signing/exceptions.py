"""
Document Signing Exceptions

Error taxonomy for the enveloped signature pipeline. Every error carries
the pipeline step that raised it so callers can tell which stage failed.
"""

from typing import Dict, Any, Optional


class DocumentSigningError(Exception):
    """Base exception for signature pipeline errors"""

    default_code = "SIGNING_PIPELINE_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None,
                 step: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        self.step = step

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to API error response format."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "step": self.step,
            "details": self.details
        }


class SerializationError(DocumentSigningError):
    """Document is not serializable or exclusions are misconfigured"""
    default_code = "SERIALIZATION_FAILED"


class DigestError(DocumentSigningError):
    """Hash computation failure"""
    default_code = "DIGEST_FAILED"


class SigningError(DocumentSigningError):
    """Key/algorithm mismatch or signing backend failure"""
    default_code = "SIGNING_FAILED"


class ValidationError(DocumentSigningError):
    """Missing or invalid certificate metadata or identifiers"""
    default_code = "VALIDATION_FAILED"


class ConfigurationError(DocumentSigningError):
    """Invalid signing configuration"""
    default_code = "CONFIGURATION_INVALID"
