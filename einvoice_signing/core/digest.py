"""
Digest Engine

SHA-256 digests and RSA-SHA256 signature values, both base64 encoded.
"""

import base64
import hashlib
import logging
from typing import Any, Union

from ..exceptions import DigestError, SigningError
from ..security.signers import Signer, LocalRSASigner

logger = logging.getLogger(__name__)


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def digest(data: Union[bytes, bytearray]) -> str:
    """
    Compute base64(SHA-256(data)).

    Raises:
        DigestError: If ``data`` is not a byte sequence
    """
    if not isinstance(data, (bytes, bytearray)):
        raise DigestError(
            f"digest expects bytes, got {type(data).__name__}",
            error_code="DIGEST_INPUT_INVALID"
        )

    return b64encode(hashlib.sha256(data).digest())


def as_signer(signer_or_key: Any) -> Signer:
    """Wrap a bare RSA private key in a LocalRSASigner."""
    if isinstance(signer_or_key, Signer):
        return signer_or_key
    return LocalRSASigner(signer_or_key)


async def sign(data: Union[bytes, bytearray], signer_or_key: Any) -> str:
    """
    Sign ``data`` with RSA PKCS#1 v1.5 / SHA-256 and return base64.

    The canonical bytes are passed straight to the signer, which hashes
    them itself. Passing a digest here would double-hash.

    Raises:
        SigningError: On empty input, unsupported keys or backend failure
    """
    if not isinstance(data, (bytes, bytearray)) or not data:
        raise SigningError(
            "Cannot sign empty data",
            error_code="SIGNING_INPUT_EMPTY"
        )

    signer = as_signer(signer_or_key)
    signature = await signer.sign(bytes(data))
    if not signature:
        raise SigningError(
            "Signer returned an empty signature",
            error_code="SIGNATURE_EMPTY",
            details={"signer": type(signer).__name__}
        )

    return b64encode(signature)
