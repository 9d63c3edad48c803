"""
Signing Configuration Management

Configuration for the signature pipeline, loaded from ``EINVOICE_SIGNING_*``
environment variables.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Tuple

from .exceptions import ConfigurationError
from .models import (
    EXTENSION_URI, EXTENSIONS_FIELD, SIGNATURE_FIELD, DEFAULT_EXCLUSIONS,
    SIGNATURE_INFORMATION_ID, REFERENCED_SIGNATURE_ID,
    SIGNATURE_ID_PREFIX, SIGNED_PROPERTIES_ID_PREFIX,
    DOCUMENT_REFERENCE_ID_PREFIX, SIGNATURE_VALUE_ID_PREFIX
)

logger = logging.getLogger(__name__)

ENV_PREFIX = "EINVOICE_SIGNING_"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class SigningConfig:
    """Signature pipeline settings"""
    extension_uri: str = EXTENSION_URI
    signature_information_id: str = SIGNATURE_INFORMATION_ID
    referenced_signature_id: str = REFERENCED_SIGNATURE_ID

    # Top-level fields written by the embedder and removed before hashing
    extensions_field: str = EXTENSIONS_FIELD
    signature_field: str = SIGNATURE_FIELD
    exclusion_fields: Tuple[str, ...] = DEFAULT_EXCLUSIONS

    # Generated id prefixes
    id_prefixes: Dict[str, str] = field(default_factory=lambda: {
        "signature": SIGNATURE_ID_PREFIX,
        "signed_properties": SIGNED_PROPERTIES_ID_PREFIX,
        "document_reference": DOCUMENT_REFERENCE_ID_PREFIX,
        "signature_value": SIGNATURE_VALUE_ID_PREFIX,
    })

    min_rsa_key_size: int = 2048

    # Remote signer
    remote_signer_url: Optional[str] = None
    remote_signer_timeout: int = 30
    remote_signer_verify_ssl: bool = True

    log_level: str = "INFO"

    def __post_init__(self):
        """Validate configuration after initialization"""
        self.exclusion_fields = tuple(self.exclusion_fields)

        for name in ("extension_uri", "signature_information_id",
                     "referenced_signature_id", "extensions_field", "signature_field"):
            if not getattr(self, name):
                raise ConfigurationError(f"{name} must not be empty")

        missing = {self.extensions_field, self.signature_field} - set(self.exclusion_fields)
        if missing:
            raise ConfigurationError(
                "Exclusion fields must include every field the signature writes",
                details={"missing": sorted(missing)}
            )

        if self.min_rsa_key_size < 1024:
            raise ConfigurationError("Minimum RSA key size must be at least 1024")

        if self.remote_signer_timeout <= 0:
            raise ConfigurationError("Remote signer timeout must be positive")

        self.log_level = self.log_level.upper()
        if self.log_level not in _LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid log level: {self.log_level}",
                details={"allowed": list(_LOG_LEVELS)}
            )

    @property
    def remote_signer_config(self) -> Dict[str, Any]:
        return {
            "timeout": self.remote_signer_timeout,
            "verify_ssl": self.remote_signer_verify_ssl
        }


class SigningConfigManager:
    """Loads and caches SigningConfig from the environment"""

    def __init__(self, environ: Optional[Dict[str, str]] = None):
        self._environ = environ if environ is not None else os.environ
        self._config: Optional[SigningConfig] = None

    def _get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self._environ.get(f"{ENV_PREFIX}{name}", default)

    def get_config(self) -> SigningConfig:
        """Get signing configuration"""
        if self._config is None:
            self._config = self._load_config()

        return self._config

    def _load_config(self) -> SigningConfig:
        """Load configuration from environment variables"""
        exclusions = self._get("EXCLUSION_FIELDS")

        try:
            config = SigningConfig(
                extension_uri=self._get("EXTENSION_URI", EXTENSION_URI),
                signature_information_id=self._get(
                    "SIGNATURE_INFORMATION_ID", SIGNATURE_INFORMATION_ID),
                referenced_signature_id=self._get(
                    "REFERENCED_SIGNATURE_ID", REFERENCED_SIGNATURE_ID),
                exclusion_fields=tuple(
                    f.strip() for f in exclusions.split(",") if f.strip()
                ) if exclusions else DEFAULT_EXCLUSIONS,
                min_rsa_key_size=int(self._get("MIN_RSA_KEY_SIZE", "2048")),
                remote_signer_url=self._get("REMOTE_SIGNER_URL"),
                remote_signer_timeout=int(self._get("REMOTE_SIGNER_TIMEOUT", "30")),
                remote_signer_verify_ssl=self._get(
                    "REMOTE_SIGNER_VERIFY_SSL", "true").lower() == "true",
                log_level=self._get("LOG_LEVEL", "INFO")
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid signing configuration: {str(e)}") from e

        logger.info("Loaded signing configuration from environment")
        return config


_config_manager: Optional[SigningConfigManager] = None


def get_signing_config() -> SigningConfig:
    """Process-wide configuration loaded from the environment on first use"""
    global _config_manager
    if _config_manager is None:
        _config_manager = SigningConfigManager()
    return _config_manager.get_config()
