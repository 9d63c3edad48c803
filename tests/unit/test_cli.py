"""
Unit tests for the command line interface
"""

import json

import pytest

from einvoice_signing import cli, config


@pytest.fixture(autouse=True)
def environment_config(monkeypatch):
    monkeypatch.setattr(config, "_config_manager", config.SigningConfigManager(environ={}))


@pytest.fixture
def files(tmp_path, certificate_pem, private_key_pem, invoice_document):
    document = tmp_path / "invoice.json"
    document.write_text(json.dumps(invoice_document), encoding="utf-8")
    certificate = tmp_path / "cert.pem"
    certificate.write_bytes(certificate_pem)
    key = tmp_path / "key.pem"
    key.write_bytes(private_key_pem)
    return tmp_path, document, certificate, key


def _sign(files, *extra):
    tmp_path, document, certificate, key = files
    output = tmp_path / "signed.json"
    code = cli.main([
        "sign", "--document", str(document), "--certificate", str(certificate),
        "--key", str(key), "--output", str(output), *extra
    ])
    return code, output


def test_sign_then_verify(files, capsys):
    code, output = _sign(files, "--signature-id", "DocSig-cli")

    assert code == 0
    signed = json.loads(output.read_text(encoding="utf-8"))
    assert signed["Signature"][0]["ID"] == [{"_": "urn:oasis:names:specification:ubl:signature:Invoice"}]

    assert cli.main(["verify", "--document", str(output)]) == 0
    report = json.loads(capsys.readouterr().out)
    assert report["is_valid"] is True
    assert report["signature_id"] == "DocSig-cli"


def test_verify_tampered(files, capsys):
    _, output = _sign(files)
    signed = json.loads(output.read_text(encoding="utf-8"))
    signed["ID"] = [{"_": "INV-2"}]
    output.write_text(json.dumps(signed), encoding="utf-8")

    assert cli.main(["verify", "--document", str(output)]) == 1
    report = json.loads(capsys.readouterr().out)
    assert report["checks"]["document_digest"] is False


def test_sign_with_wrong_password(files):
    code, output = _sign(files, "--password", "secret")

    assert code == 1
    assert not output.exists()


def test_missing_document(tmp_path):
    assert cli.main(["verify", "--document", str(tmp_path / "missing.json")]) == 1
