"""
Unit tests for the canonical JSON serializer
"""

import pytest

from einvoice_signing.core.canonical import canonicalize, strip_fields, validate_document
from einvoice_signing.exceptions import SerializationError


def test_invoice_scenario_bytes():
    """Absent exclusion fields leave the compact document untouched"""
    document = {"ID": "INV-1", "Amount": 100}

    result = canonicalize(document, ["UBLExtensions", "Signature"])

    assert result == b'{"ID":"INV-1","Amount":100}'


def test_canonicalize_is_deterministic(invoice_document):
    first = canonicalize(invoice_document, ["UBLExtensions", "Signature"])
    second = canonicalize(invoice_document, ["UBLExtensions", "Signature"])

    assert first == second


def test_key_order_is_preserved():
    assert canonicalize({"a": 1, "b": 2}) == b'{"a":1,"b":2}'
    assert canonicalize({"b": 2, "a": 1}) == b'{"b":2,"a":1}'


def test_top_level_exclusions_removed():
    document = {
        "ID": "INV-1",
        "UBLExtensions": [{"UBLExtension": []}],
        "Signature": [{"ID": [{"_": "sig"}]}],
    }

    assert canonicalize(document, ["UBLExtensions", "Signature"]) == b'{"ID":"INV-1"}'


def test_nested_exclusion_names_are_kept():
    document = {"Line": [{"Signature": "nested"}], "Signature": "top"}

    assert canonicalize(document, ["Signature"]) == b'{"Line":[{"Signature":"nested"}]}'


def test_input_document_not_mutated():
    document = {"ID": "INV-1", "Signature": [{"ID": "x"}]}

    canonicalize(document, ["Signature"])

    assert document == {"ID": "INV-1", "Signature": [{"ID": "x"}]}


def test_non_ascii_written_as_utf8():
    result = canonicalize({"Name": "Café Ölçü"})

    assert result == '{"Name":"Café Ölçü"}'.encode("utf-8")


def test_strings_escaped_like_json():
    result = canonicalize({"Note": 'Line "1"\nLine 2'})

    assert result == b'{"Note":"Line \\"1\\"\\nLine 2"}'


def test_numbers_and_literals():
    result = canonicalize({"int": 3, "float": 1.5, "flag": True, "none": None, "list": []})

    assert result == b'{"int":3,"float":1.5,"flag":true,"none":null,"list":[]}'


def test_rejects_non_object_document():
    with pytest.raises(SerializationError) as exc_info:
        canonicalize(["not", "an", "object"])

    assert exc_info.value.error_code == "DOCUMENT_NOT_OBJECT"


def test_rejects_non_string_exclusion():
    with pytest.raises(SerializationError) as exc_info:
        canonicalize({"a": 1}, ["a", 5])

    assert exc_info.value.error_code == "EXCLUSION_INVALID"


def test_rejects_non_finite_numbers():
    with pytest.raises(SerializationError) as exc_info:
        canonicalize({"Amount": float("nan")})

    assert exc_info.value.details["path"] == "$.Amount"


def test_rejects_unsupported_values():
    with pytest.raises(SerializationError) as exc_info:
        validate_document({"Lines": [{"Price": object()}]})

    assert exc_info.value.details["path"] == "$.Lines[0].Price"


def test_rejects_non_string_keys():
    with pytest.raises(SerializationError):
        validate_document({"Totals": {1: "one"}})


def test_rejects_lone_surrogates():
    with pytest.raises(SerializationError) as exc_info:
        canonicalize({"Name": "\ud800"})

    assert exc_info.value.error_code == "DOCUMENT_ENCODING_FAILED"


def test_strip_fields_returns_copy():
    document = {"ID": "INV-1", "Lines": [{"Qty": 1}]}

    stripped = strip_fields(document, [])
    stripped["Lines"][0]["Qty"] = 2

    assert document["Lines"][0]["Qty"] == 1


def test_float_uses_python_repr():
    """Integral floats keep their fraction; pass ints for JavaScript-identical bytes"""
    assert canonicalize({"Amount": 1.0, "Big": 1e16, "Qty": 1}) == b'{"Amount":1.0,"Big":1e+16,"Qty":1}'
