#!/usr/bin/env python3
"""
Command line signing and verification of UBL-JSON documents.

    einvoice-sign sign --document invoice.json --certificate cert.pem \
        --key key.pem --output signed.json
    einvoice-sign verify --document signed.json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from .config import get_signing_config
from .core.signing_engine import DocumentSigningService
from .core.verifier import verify_signed_document
from .exceptions import DocumentSigningError
from .models import SignatureIds
from .security.certificates import load_signing_material

logger = logging.getLogger("einvoice_signing.cli")


def _read_document(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _write_document(document: dict, output: str = None) -> None:
    text = json.dumps(document, ensure_ascii=False, separators=(",", ":"))
    if output:
        Path(output).write_text(text, encoding="utf-8")
    else:
        sys.stdout.write(text + "\n")


def _sign(args, config) -> int:
    password = args.password.encode("utf-8") if args.password else None
    material = load_signing_material(
        Path(args.certificate).read_bytes(),
        Path(args.key).read_bytes(),
        password=password,
        min_key_size=config.min_rsa_key_size
    )
    service = DocumentSigningService.from_material(material, config=config)

    ids = None
    if args.signature_id:
        generated = SignatureIds.generate(prefixes=config.id_prefixes)
        ids = SignatureIds(
            signature_id=args.signature_id,
            signed_properties_id=generated.signed_properties_id,
            document_reference_id=generated.document_reference_id,
            signature_value_id=generated.signature_value_id,
            signature_information_id=config.signature_information_id,
            referenced_signature_id=config.referenced_signature_id
        )

    signed = asyncio.run(service.sign(_read_document(args.document), ids=ids))
    _write_document(signed, args.output)
    logger.info(f"Signed {args.document}")
    return 0


def _verify(args, config) -> int:
    result = verify_signed_document(
        _read_document(args.document),
        exclusion_fields=config.exclusion_fields,
        extension_uri=config.extension_uri,
        extensions_field=config.extensions_field,
        signature_field=config.signature_field
    )
    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.is_valid else 1


def main(argv=None) -> int:
    """CLI entry point"""

    parser = argparse.ArgumentParser(description="Sign and verify UBL-JSON e-invoice documents")
    parser.add_argument("--log-level", type=str, default=None,
                        help="Logging level (defaults to EINVOICE_SIGNING_LOG_LEVEL)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sign_parser = subparsers.add_parser("sign", help="Sign a document")
    sign_parser.add_argument("--document", required=True, help="Unsigned JSON document")
    sign_parser.add_argument("--certificate", required=True,
                             help="Signer certificate (PEM or DER)")
    sign_parser.add_argument("--key", required=True, help="PEM private key")
    sign_parser.add_argument("--password", type=str, help="Private key password")
    sign_parser.add_argument("--signature-id", type=str, help="Signature envelope Id")
    sign_parser.add_argument("--output", type=str, help="Output file (stdout if omitted)")

    verify_parser = subparsers.add_parser("verify", help="Verify a signed document")
    verify_parser.add_argument("--document", required=True, help="Signed JSON document")

    args = parser.parse_args(argv)

    try:
        config = get_signing_config()
    except DocumentSigningError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=(args.log_level or config.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    try:
        if args.command == "sign":
            return _sign(args, config)
        return _verify(args, config)
    except DocumentSigningError as e:
        logger.error(f"{e.error_code} at {e.step or 'setup'}: {e.message}")
        return 1
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Cannot read input: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
