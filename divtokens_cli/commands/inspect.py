"""
Module 09C - CLI Inspect Command

Decode a spend receipt and verify it offline against an issuer key:
- Decode the receipt (raw bytes or base64 text)
- Check the issuance credential signature
- Check the spend proof

No spent set is consulted, so a valid receipt may still be a double spend.

Usage:
    divtokens inspect receipt.b64 --key issuer.pem.pub [--json]
"""

from __future__ import annotations

import json
import logging
import sys
from argparse import Namespace
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Optional

from core.config.runtime import RuntimeConfig
from core.crypto.blind_rsa import IssuerKeyPair, IssuerPublicKey
from core.issuance.keyring import IssuerKeyring
from core.redemption.verification import check_receipt
from core.schemas.errors import DivTokensException
from core.schemas.messages import b64decode
from core.tokens.types import SpendReceipt
from core.zk.spend import SpendProofSystem


logger = logging.getLogger(__name__)


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_VERIFICATION_FAILED = 2


@dataclass
class InspectSummary:
    """Decoded receipt fields and the verification outcome."""
    receipt_path: str = ""
    key_id: str = ""
    denomination: int = 0
    level: int = 0
    value: int = 0
    serial: str = ""
    tag: str = ""
    proof_bytes: int = 0
    valid: bool = False
    error_code: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        if self.error_code is None:
            del d["error_code"]
            del d["error"]
        return d


def load_public_key(path: Path) -> IssuerPublicKey:
    """Accept either a public key PEM or the issuer's private key PEM."""
    data = path.read_bytes()
    if b"PRIVATE KEY" in data:
        return IssuerKeyPair.from_pem(data).public
    return IssuerPublicKey.from_pem(data)


def read_receipt(path: Path) -> SpendReceipt:
    """
    Raises:
        WireFormatError: If the file is neither a receipt nor base64 of one
    """
    data = path.read_bytes()
    stripped = data.strip()
    try:
        raw = b64decode(stripped.decode("ascii"), "SpendReceipt")
    except (UnicodeDecodeError, DivTokensException):
        raw = data
    return SpendReceipt.from_bytes(raw)


def inspect_receipt(
    receipt: SpendReceipt,
    key: IssuerPublicKey,
    config: RuntimeConfig,
) -> InspectSummary:
    summary = InspectSummary(
        key_id=receipt.credential.key_id.hex(),
        denomination=receipt.denomination,
        level=receipt.level,
        value=receipt.value,
        serial=receipt.serial_hex,
        tag=receipt.tag.hex(),
        proof_bytes=len(receipt.proof),
    )
    proofs = SpendProofSystem(repetitions=config.proof.repetitions)
    try:
        check_receipt(receipt, IssuerKeyring([key]), proofs, config.token.max_denomination)
    except DivTokensException as e:
        summary.error_code = e.code
        summary.error = e.message
        return summary
    summary.valid = True
    return summary


def print_summary_human(summary: InspectSummary) -> None:
    """Print summary in human-readable format."""
    print(f"receipt: {summary.receipt_path}")
    print(f"key_id: {summary.key_id}")
    print(f"denomination: {summary.denomination}")
    print(f"level: {summary.level}")
    print(f"value: {summary.value}")
    print(f"serial: {summary.serial}")
    print(f"tag: {summary.tag}")
    print(f"proof_bytes: {summary.proof_bytes}")
    print(f"valid: {str(summary.valid).lower()}")
    if summary.error_code:
        print(f"  ✗ {summary.error_code}: {summary.error}")


def print_summary_json(summary: InspectSummary) -> None:
    """Print summary as JSON."""
    print(json.dumps(summary.to_dict(), indent=2))


def inspect_cmd(args: Namespace) -> int:
    """
    Execute the inspect command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code
    """
    receipt_path = Path(args.receipt)
    key_path = Path(args.key)
    config: RuntimeConfig = args.runtime_config
    if args.repetitions is not None:
        config.proof.repetitions = args.repetitions

    for path, what in ((receipt_path, "Receipt"), (key_path, "Key")):
        if not path.exists():
            print(f"Error: {what} file not found: {path}", file=sys.stderr)
            return EXIT_RUNTIME_ERROR

    try:
        key = load_public_key(key_path)
    except ValueError as e:
        print(f"Error loading key: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    try:
        receipt = read_receipt(receipt_path)
    except DivTokensException as e:
        print(f"Error decoding receipt: {e.message}", file=sys.stderr)
        return EXIT_VERIFICATION_FAILED

    summary = inspect_receipt(receipt, key, config)
    summary.receipt_path = str(receipt_path)

    if args.json:
        print_summary_json(summary)
    else:
        print_summary_human(summary)

    if summary.valid:
        logger.info("Receipt verified")
        return EXIT_SUCCESS
    logger.warning("Receipt failed verification: %s", summary.error_code)
    return EXIT_VERIFICATION_FAILED
