"""
Shared fixtures: an RSA-2048 test key with a self-signed certificate.
"""

import os
import sys
from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from einvoice_signing.config import SigningConfig
from einvoice_signing.models import CertificateMetadata, SignatureIds
from einvoice_signing.security.certificates import load_signing_material


SIGNING_TIME = datetime(2024, 5, 1, 8, 30, 0, 123000, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def signing_certificate(rsa_private_key):
    subject = x509.Name([
        x509.NameAttribute(NameOID.COUNTRY_NAME, "MY"),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Test Supplier Sdn Bhd"),
        x509.NameAttribute(NameOID.COMMON_NAME, "Test Supplier"),
    ])
    issuer = x509.Name([
        x509.NameAttribute(NameOID.COUNTRY_NAME, "MY"),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Test CA"),
        x509.NameAttribute(NameOID.COMMON_NAME, "Test Issuing CA"),
    ])
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(rsa_private_key.public_key())
        .serial_number(1234567890)
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=365))
        .sign(rsa_private_key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def certificate_pem(signing_certificate):
    return signing_certificate.public_bytes(serialization.Encoding.PEM)


@pytest.fixture(scope="session")
def private_key_pem(rsa_private_key):
    return rsa_private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption()
    )


@pytest.fixture
def signing_material(certificate_pem, private_key_pem):
    return load_signing_material(certificate_pem, private_key_pem)


@pytest.fixture
def cert_meta(signing_material):
    meta = signing_material.metadata
    return CertificateMetadata(
        issuer_name=meta.issuer_name,
        serial_number=meta.serial_number,
        certificate_digest=meta.certificate_digest,
        subject_name=meta.subject_name,
        signing_time=SIGNING_TIME
    )


@pytest.fixture
def fixed_ids():
    return SignatureIds(
        signature_id="DocSig-1",
        signed_properties_id="id-xades-signed-props-1",
        document_reference_id="id-doc-signed-data-1",
        signature_value_id="DocSigValue-1"
    )


@pytest.fixture
def signing_config():
    return SigningConfig()


@pytest.fixture
def invoice_document():
    return {
        "ID": [{"_": "INV-1"}],
        "IssueDate": [{"_": "2024-05-01"}],
        "InvoiceTypeCode": [{"_": "01", "listVersionID": "1.1"}],
        "DocumentCurrencyCode": [{"_": "MYR"}],
        "AccountingSupplierParty": [{
            "Party": [{
                "PartyLegalEntity": [{"RegistrationName": [{"_": "Kedai Runcit Ali"}]}]
            }]
        }],
        "InvoiceLine": [{
            "ID": [{"_": "1"}],
            "InvoicedQuantity": [{"_": 2, "unitCode": "C62"}],
            "LineExtensionAmount": [{"_": 100.5, "currencyID": "MYR"}],
        }],
        "LegalMonetaryTotal": [{"PayableAmount": [{"_": 100.5, "currencyID": "MYR"}]}],
    }
