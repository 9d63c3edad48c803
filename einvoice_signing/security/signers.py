"""
Signing Backends

Defines the asynchronous signing boundary used by the signature pipeline.
A local RSA key and a remote signing service are interchangeable behind
the same interface.
"""

import base64
import logging
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional

import httpx
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from ..exceptions import SigningError

logger = logging.getLogger(__name__)

RSA_SHA256 = "RSA-SHA256"


class Signer(ABC):
    """
    Abstract signing backend.

    ``sign`` receives the canonical bytes themselves; implementations hash
    them as part of RSASSA-PKCS1-v1_5 with SHA-256.
    """

    algorithm: str = RSA_SHA256

    @abstractmethod
    async def sign(self, data: bytes) -> bytes:
        """
        Sign ``data`` and return the raw signature bytes.

        Raises:
            SigningError: If the key or backend cannot produce a signature
        """
        pass

    async def health_check(self) -> Dict[str, Any]:
        """Report backend status."""
        return {
            "signer": type(self).__name__,
            "algorithm": self.algorithm,
            "status": "unknown"
        }


def load_private_key(key_data: bytes, password: Optional[bytes] = None) -> Any:
    """Load a PEM encoded private key, optionally password protected."""
    try:
        return serialization.load_pem_private_key(key_data, password=password)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise SigningError(
            f"Failed to load private key: {str(e)}",
            error_code="KEY_LOAD_FAILED"
        ) from e


class LocalRSASigner(Signer):
    """Signs with an in-process RSA private key held by the caller."""

    def __init__(self, private_key: Any, min_key_size: int = 2048):
        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise SigningError(
                f"RSA-SHA256 requires an RSA private key, got {type(private_key).__name__}",
                error_code="KEY_TYPE_UNSUPPORTED"
            )
        if private_key.key_size < min_key_size:
            raise SigningError(
                f"RSA key size {private_key.key_size} is below the minimum of {min_key_size}",
                error_code="KEY_SIZE_UNSUPPORTED",
                details={"key_size": private_key.key_size, "min_key_size": min_key_size}
            )
        self._private_key = private_key

    @classmethod
    def from_pem(cls, key_data: bytes, password: Optional[bytes] = None,
                 min_key_size: int = 2048) -> "LocalRSASigner":
        """Load a PEM encoded private key."""
        return cls(load_private_key(key_data, password), min_key_size=min_key_size)

    @property
    def key_size(self) -> int:
        return self._private_key.key_size

    def public_key(self) -> rsa.RSAPublicKey:
        return self._private_key.public_key()

    async def sign(self, data: bytes) -> bytes:
        try:
            return self._private_key.sign(data, padding.PKCS1v15(), hashes.SHA256())
        except (ValueError, TypeError) as e:
            raise SigningError(
                f"RSA signing failed: {str(e)}",
                error_code="RSA_SIGNING_FAILED"
            ) from e

    async def health_check(self) -> Dict[str, Any]:
        return {
            "signer": "local-rsa",
            "algorithm": self.algorithm,
            "key_size": self.key_size,
            "status": "healthy"
        }


class RemoteSignRequest(BaseModel):
    """Payload sent to a remote signing service"""
    algorithm: str = RSA_SHA256
    data: str = Field(description="Base64 canonical bytes to sign")
    key_id: Optional[str] = None


class RemoteSignResponse(BaseModel):
    """Payload returned by a remote signing service"""
    signature: str = Field(min_length=1, description="Base64 raw signature bytes")
    key_id: Optional[str] = None


class RemoteSigner(Signer):
    """
    Delegates signing to an HTTP signing service (HSM or KMS front end).

    The service receives the canonical bytes base64 encoded and returns the
    base64 RSA-SHA256 signature over them.
    """

    def __init__(self, signer_url: str, config: Optional[Dict[str, Any]] = None,
                 client: Optional[httpx.AsyncClient] = None):
        if not signer_url:
            raise SigningError(
                "Remote signer URL is required",
                error_code="REMOTE_SIGNER_NOT_CONFIGURED"
            )
        self.signer_url = signer_url
        self.config = config or {}
        self.timeout = self.config.get("timeout", 30)
        self.verify_ssl = self.config.get("verify_ssl", True)
        self.api_key = self.config.get("api_key")
        self.key_id = self.config.get("key_id")
        self._client = client

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(
                self.signer_url, json=payload, headers=self._headers()
            )
        async with httpx.AsyncClient(
            timeout=self.timeout,
            verify=self.verify_ssl
        ) as client:
            return await client.post(
                self.signer_url, json=payload, headers=self._headers()
            )

    async def sign(self, data: bytes) -> bytes:
        request = RemoteSignRequest(
            data=base64.b64encode(data).decode("ascii"),
            key_id=self.key_id
        )

        try:
            response = await self._post(request.model_dump(exclude_none=True))
        except httpx.RequestError as e:
            raise SigningError(
                f"Network error contacting signing service: {str(e)}",
                error_code="REMOTE_SIGNER_UNREACHABLE",
                details={"signer_url": self.signer_url}
            ) from e

        if response.status_code != 200:
            raise SigningError(
                f"Signing service returned status {response.status_code}: {response.text}",
                error_code="REMOTE_SIGNER_FAILED",
                details={"signer_url": self.signer_url, "status_code": response.status_code}
            )

        try:
            result = RemoteSignResponse.model_validate(response.json())
            signature = base64.b64decode(result.signature, validate=True)
        except (ValueError, PydanticValidationError) as e:
            raise SigningError(
                f"Signing service returned an invalid payload: {str(e)}",
                error_code="REMOTE_SIGNER_INVALID_RESPONSE",
                details={"signer_url": self.signer_url}
            ) from e

        logger.info(f"Remote signature obtained from {self.signer_url} ({len(signature)} bytes)")
        return signature

    async def health_check(self) -> Dict[str, Any]:
        return {
            "signer": "remote",
            "algorithm": self.algorithm,
            "signer_url": self.signer_url,
            "status": "configured"
        }
