"""
Unit tests for signed document verification
"""

from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from einvoice_signing.core.signing_engine import sign_document_sync
from einvoice_signing.core.verifier import find_signature_information, verify_signed_document
from einvoice_signing.security.certificates import certificate_base64


@pytest.fixture
def signed_document(invoice_document, signing_material, cert_meta, fixed_ids, signing_config):
    return sign_document_sync(
        invoice_document, signing_material.signer, cert_meta, ids=fixed_ids,
        certificate=signing_material.certificate_base64, config=signing_config
    )


def _envelope(document):
    return find_signature_information(document)["Signature"][0]


def test_valid_signature(signed_document):
    result = verify_signed_document(signed_document)

    assert result.is_valid, result.validation_errors
    assert result.signature_id == "DocSig-1"
    assert result.signing_time == "2024-05-01T08:30:00.123Z"
    assert result.serial_number == "1234567890"
    assert result.to_dict()["checks"] == {
        "document_digest": True,
        "properties_digest": True,
        "signature": True,
        "certificate": True,
        "target": True,
        "stub": True,
    }


def test_explicit_public_key(signed_document, signing_material):
    result = verify_signed_document(signed_document, public_key=signing_material.signer.public_key())

    assert result.is_valid


def test_wrong_public_key(signed_document):
    other = rsa.generate_private_key(public_exponent=65537, key_size=2048).public_key()

    result = verify_signed_document(signed_document, public_key=other)

    assert not result.is_valid
    assert result.document_digest_valid
    assert not result.signature_valid


def test_tampered_business_field(signed_document):
    signed_document["LegalMonetaryTotal"][0]["PayableAmount"][0]["_"] = 1.5

    result = verify_signed_document(signed_document)

    assert not result.is_valid
    assert not result.document_digest_valid
    assert not result.signature_valid


def test_tampered_signing_time(signed_document):
    props = _envelope(signed_document)["Object"][0]["XadesQualifyingProperties"][0]["SignedProperties"][0]
    props["SignedSignatureProperties"][0]["SigningTime"] = [{"_": "2030-01-01T00:00:00.000Z"}]

    result = verify_signed_document(signed_document)

    assert not result.is_valid
    assert not result.properties_digest_valid
    assert result.document_digest_valid
    assert result.signature_valid


def test_target_mismatch(signed_document):
    qualifying = _envelope(signed_document)["Object"][0]["XadesQualifyingProperties"][0]
    qualifying["Target"] = "#DocSig-other"

    result = verify_signed_document(signed_document)

    assert not result.is_valid
    assert not result.target_valid


def test_stub_mismatch(signed_document):
    signed_document["Signature"][0]["ID"] = [{"_": "urn:other"}]

    result = verify_signed_document(signed_document)

    assert not result.is_valid
    assert not result.stub_valid
    # The stub is excluded from hashing
    assert result.document_digest_valid


def test_missing_extension(invoice_document):
    result = verify_signed_document(invoice_document)

    assert not result.is_valid
    assert result.validation_errors


def test_non_object_document():
    result = verify_signed_document(["not", "a", "document"])

    assert not result.is_valid


@pytest.fixture
def foreign_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def foreign_certificate(foreign_key):
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "Someone Else")])
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(foreign_key.public_key())
        .serial_number(42)
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .sign(foreign_key, hashes.SHA256())
    )


def _signed_properties(document):
    qualifying = _envelope(document)["Object"][0]["XadesQualifyingProperties"][0]
    return qualifying["SignedProperties"][0]


def test_foreign_certificate_with_copied_properties(invoice_document, foreign_key,
                                                    foreign_certificate, cert_meta,
                                                    fixed_ids, signing_config):
    """A valid signature under another certificate does not match the signed properties"""
    signed = sign_document_sync(
        invoice_document, foreign_key, cert_meta, ids=fixed_ids,
        certificate=certificate_base64(foreign_certificate), config=signing_config
    )

    result = verify_signed_document(signed)

    assert not result.is_valid
    assert result.signature_valid
    assert not result.certificate_valid


def test_altered_cert_digest(signed_document):
    cert = _signed_properties(signed_document)["SignedSignatureProperties"][0]["SigningCertificate"][0]["Cert"][0]
    cert["CertDigest"][0]["DigestValue"] = [{"_": "AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA="}]

    result = verify_signed_document(signed_document)

    assert not result.is_valid
    assert not result.certificate_valid
    assert not result.properties_digest_valid


def test_key_info_serial_mismatch(signed_document):
    """KeyInfo is outside every digest, so its IssuerSerial is checked against the certificate"""
    x509_data = _envelope(signed_document)["KeyInfo"][0]["X509Data"][0]
    x509_data["X509IssuerSerial"][0]["X509SerialNumber"] = [{"_": "999"}]

    result = verify_signed_document(signed_document)

    assert not result.is_valid
    assert not result.certificate_valid
    assert result.signature_valid


def test_references_swapped(signed_document):
    signed_info = _envelope(signed_document)["SignedInfo"][0]
    signed_info["Reference"].reverse()

    result = verify_signed_document(signed_document)

    assert not result.is_valid
    assert not result.document_digest_valid
    assert not result.properties_digest_valid


def test_properties_reference_type_required(signed_document):
    _envelope(signed_document)["SignedInfo"][0]["Reference"][1]["Type"] = ""

    result = verify_signed_document(signed_document)

    assert not result.is_valid
    assert not result.properties_digest_valid
    assert result.document_digest_valid


def test_malformed_references_reported(signed_document):
    _envelope(signed_document)["SignedInfo"][0]["Reference"] = ["a", "b"]

    result = verify_signed_document(signed_document)

    assert not result.is_valid
    assert any("Malformed signature envelope" in e for e in result.validation_errors)


def test_malformed_signed_properties_reported(signed_document):
    qualifying = _envelope(signed_document)["Object"][0]["XadesQualifyingProperties"][0]
    qualifying["SignedProperties"] = ["not an object"]

    result = verify_signed_document(signed_document)

    assert not result.is_valid
    assert any("Malformed signature envelope" in e for e in result.validation_errors)
