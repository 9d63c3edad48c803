"""
Canonical JSON Serializer

Produces the byte representation that is hashed and signed. The encoding
is compact JSON in UTF-8: no insignificant whitespace, no escaping of
non-ASCII characters, and object keys emitted in insertion order. The
remote verifier recomputes the same bytes, so key order is never
normalized.
"""

import copy
import json
import logging
import math
from typing import Any, Iterable, Mapping

from ..exceptions import SerializationError

logger = logging.getLogger(__name__)

_SCALAR_TYPES = (str, int, float, bool, type(None))


def validate_document(document: Any, path: str = "$") -> None:
    """
    Check that ``document`` is a tree of JSON values.

    Raises:
        SerializationError: On non-string keys, non-finite numbers or
            values with no JSON representation.
    """
    if isinstance(document, Mapping):
        for key, value in document.items():
            if not isinstance(key, str):
                raise SerializationError(
                    f"Object key at {path} is not a string: {key!r}",
                    error_code="DOCUMENT_KEY_INVALID",
                    details={"path": path, "key_type": type(key).__name__}
                )
            validate_document(value, f"{path}.{key}")
    elif isinstance(document, (list, tuple)):
        for index, item in enumerate(document):
            validate_document(item, f"{path}[{index}]")
    elif isinstance(document, float):
        if not math.isfinite(document):
            raise SerializationError(
                f"Non-finite number at {path}",
                error_code="DOCUMENT_VALUE_INVALID",
                details={"path": path, "value": repr(document)}
            )
    elif not isinstance(document, _SCALAR_TYPES):
        raise SerializationError(
            f"Unsupported value type at {path}: {type(document).__name__}",
            error_code="DOCUMENT_VALUE_INVALID",
            details={"path": path, "value_type": type(document).__name__}
        )


def strip_fields(document: Mapping[str, Any],
                 exclusion_fields: Iterable[str] = ()) -> dict:
    """
    Return a deep copy of ``document`` without the given top-level fields.

    Absent fields are ignored. Fields with the same name deeper in the
    tree are kept.
    """
    if not isinstance(document, Mapping):
        raise SerializationError(
            f"Document must be a JSON object, got {type(document).__name__}",
            error_code="DOCUMENT_NOT_OBJECT"
        )

    exclusions = list(exclusion_fields)
    for field in exclusions:
        if not isinstance(field, str):
            raise SerializationError(
                f"Exclusion field names must be strings, got {field!r}",
                error_code="EXCLUSION_INVALID",
                details={"exclusion_fields": [repr(f) for f in exclusions]}
            )

    document_copy = copy.deepcopy(dict(document))
    for field in exclusions:
        document_copy.pop(field, None)
    return document_copy


def dumps(value: Any) -> str:
    """Compact JSON text for an already validated value."""
    try:
        return json.dumps(
            value,
            ensure_ascii=False,
            separators=(",", ":"),
            allow_nan=False
        )
    except (TypeError, ValueError) as e:
        raise SerializationError(
            f"Document is not JSON serializable: {str(e)}",
            error_code="DOCUMENT_NOT_SERIALIZABLE"
        ) from e


def canonicalize(document: Mapping[str, Any],
                 exclusion_fields: Iterable[str] = ()) -> bytes:
    """
    Serialize ``document`` to canonical bytes after removing top-level fields.

    Floats are written with Python's JSON repr, so ``1.0`` stays ``1.0``
    and ``1e16`` becomes ``1e+16``, where JavaScript's ``JSON.stringify``
    writes ``1`` and ``10000000000000000``. Pass integral amounts as
    ``int`` when the bytes must match a JavaScript producer.

    Args:
        document: JSON object to serialize
        exclusion_fields: Top-level field names dropped before serializing

    Returns:
        UTF-8 encoded compact JSON

    Raises:
        SerializationError: If the document is not a JSON object tree
    """
    stripped = strip_fields(document, exclusion_fields)
    validate_document(stripped)

    text = dumps(stripped)
    try:
        canonical = text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise SerializationError(
            "Document contains text that cannot be encoded as UTF-8",
            error_code="DOCUMENT_ENCODING_FAILED",
            details={"position": e.start}
        ) from e

    logger.debug(f"Canonicalized document to {len(canonical)} bytes")
    return canonical
