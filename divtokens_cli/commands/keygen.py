"""
Module 09C - CLI Keygen Command

Generate an Exchange issuer key.

Usage:
    divtokens keygen --out issuer.pem [--bits 2048] [--json]

Writes the PKCS8 private key to PATH and the public key to PATH.pub.
"""

from __future__ import annotations

import json
import logging
from argparse import Namespace
from pathlib import Path

from core.crypto.blind_rsa import IssuerKeyPair


logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1


def public_key_path(private_path: Path) -> Path:
    return private_path.with_name(private_path.name + ".pub")


def keygen_cmd(args: Namespace) -> int:
    """
    Execute the keygen command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code
    """
    out = Path(args.out)
    if out.exists() and not args.force:
        print(f"Error: Key file already exists: {out} (use --force to overwrite)")
        return EXIT_RUNTIME_ERROR

    bits = args.bits or args.runtime_config.issuer.key_size
    logger.info("Generating %d-bit issuer key", bits)
    keypair = IssuerKeyPair.generate(bits)
    keypair.save(out)
    pub = public_key_path(out)
    pub.write_bytes(keypair.public.to_pem())

    result = {
        "key_id": keypair.key_id.hex(),
        "bits": bits,
        "private_key": str(out),
        "public_key": str(pub),
    }
    if args.json:
        print(json.dumps(result, indent=2))
    else:
        print(f"key_id: {result['key_id']}")
        print(f"private_key: {out}")
        print(f"public_key: {pub}")
    return EXIT_SUCCESS
