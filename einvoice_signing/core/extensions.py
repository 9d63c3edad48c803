"""
UBL Extension Embedding

Wraps a signature envelope in a UBL extension and writes it, together
with the matching cac:Signature stub, into the document. This is the only
step of the pipeline that produces a modified document.
"""

import copy
import logging
from typing import Dict, Any, List, Mapping, Optional

from ..exceptions import SerializationError
from ..models import (
    EXTENSION_URI, EXTENSIONS_FIELD, SIGNATURE_FIELD,
    SIGNATURE_INFORMATION_ID, REFERENCED_SIGNATURE_ID
)
from .signed_properties import text_value

logger = logging.getLogger(__name__)


def build_signature_extension(envelope: Dict[str, Any],
                              extension_uri: str = EXTENSION_URI,
                              signature_information_id: str = SIGNATURE_INFORMATION_ID,
                              referenced_signature_id: str = REFERENCED_SIGNATURE_ID) -> Dict[str, Any]:
    """Wrap ``envelope`` as a single UBLExtension entry."""
    return {
        "ExtensionURI": text_value(extension_uri),
        "ExtensionContent": [{
            "UBLDocumentSignatures": [{
                "SignatureInformation": [{
                    "ID": text_value(signature_information_id),
                    "ReferencedSignatureID": text_value(referenced_signature_id),
                    "Signature": [envelope]
                }]
            }]
        }]
    }


def build_ubl_extensions(extensions: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
    """
    Build the UBLExtensions container.

    An empty or missing list still yields ``[{"UBLExtension": []}]``.
    """
    return [{"UBLExtension": list(extensions or [])}]


def build_signature_stub(signature_stub_id: str,
                         extension_uri: str = EXTENSION_URI) -> List[Dict[str, Any]]:
    """Build the cac:Signature placeholder that points at the extension."""
    return [{
        "ID": text_value(signature_stub_id),
        "SignatureMethod": text_value(extension_uri)
    }]


def _append_extension(container: Any, extension: Dict[str, Any]) -> List[Dict[str, Any]]:
    if container in (None, [], {}):
        return build_ubl_extensions([extension])

    if not isinstance(container, list) or not isinstance(container[0], dict):
        raise SerializationError(
            f"{EXTENSIONS_FIELD} must be a list of extension containers",
            error_code="EXTENSION_CONTAINER_INVALID",
            details={"container_type": type(container).__name__}
        )

    first = container[0]
    existing = first.get("UBLExtension", [])
    if not isinstance(existing, list):
        raise SerializationError(
            "UBLExtension must be a list",
            error_code="EXTENSION_CONTAINER_INVALID",
            details={"container_type": type(existing).__name__}
        )

    return [dict(first, UBLExtension=existing + [extension])] + container[1:]


def embed(document: Mapping[str, Any],
          envelope: Dict[str, Any],
          extension_uri: str = EXTENSION_URI,
          signature_stub_id: str = REFERENCED_SIGNATURE_ID,
          signature_information_id: str = SIGNATURE_INFORMATION_ID,
          extensions_field: str = EXTENSIONS_FIELD,
          signature_field: str = SIGNATURE_FIELD) -> Dict[str, Any]:
    """
    Return a copy of ``document`` with the signature embedded.

    Appends one extension entry tagged with ``extension_uri`` to the
    extension container (existing entries are kept) and writes the
    signature stub with id ``signature_stub_id``. The extension's
    ReferencedSignatureID carries the same id so both structures point at
    each other. The input document is not modified.
    """
    if not isinstance(document, Mapping):
        raise SerializationError(
            f"Document must be a JSON object, got {type(document).__name__}",
            error_code="DOCUMENT_NOT_OBJECT"
        )

    signed = copy.deepcopy(dict(document))
    extension = build_signature_extension(
        copy.deepcopy(envelope),
        extension_uri=extension_uri,
        signature_information_id=signature_information_id,
        referenced_signature_id=signature_stub_id
    )

    signed[extensions_field] = _append_extension(signed.get(extensions_field), extension)
    signed[signature_field] = build_signature_stub(signature_stub_id, extension_uri)

    logger.debug(f"Embedded signature {envelope.get('Id')} referenced by {signature_stub_id}")
    return signed
