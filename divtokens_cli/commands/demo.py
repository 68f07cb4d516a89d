"""
Module 09C - CLI Demo Command

Run the end-to-end retargeting scenario in process:

1. Holder withdraws a depth-8 token (256 units) from a prepaid account
2. Holder spends node 0110 (16 units) at publisher A  -> accepted
3. The same receipt is replayed at publisher B        -> double spend
4. Holder spends node 0111 (16 units) at publisher A  -> accepted
5. Billing totals 32 units

Usage:
    divtokens demo [--json] [--repetitions N] [--key issuer.pem] [--receipt-out PATH]
"""

from __future__ import annotations

import json
import logging
import sys
from argparse import Namespace
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

from core.config.runtime import RuntimeConfig
from core.crypto.blind_rsa import IssuerKeyPair
from core.issuance.accounts import InMemoryAccountStore
from core.issuance.server import TokenIssuer
from core.ledger.spent_set import ShardedSpentSet
from core.redemption import (
    Exchange,
    Holder,
    InMemoryBillingLedger,
    InProcessTransport,
    Publisher,
    SpendAttempt,
    SpendState,
)
from core.schemas.errors import ErrorCodes
from core.schemas.messages import b64encode
from core.zk.spend import SpendProofSystem


logger = logging.getLogger(__name__)


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_VERIFICATION_FAILED = 2

DEMO_DENOMINATION = 8
DEMO_ACCOUNT = "acme-retail"
DEMO_ADVERTISER = "acme-retail"
EXPECTED_TOTAL = 32


@dataclass
class DemoStep:
    label: str
    publisher: str
    path: str
    value: int
    state: str
    error_code: Optional[str] = None


@dataclass
class DemoSummary:
    """Outcome of the scenario for CLI output."""
    key_id: str = ""
    denomination: int = DEMO_DENOMINATION
    repetitions: int = 0
    steps: list[DemoStep] = field(default_factory=list)
    total_billed: int = 0
    remaining_value: int = 0
    publisher_totals: dict[str, int] = field(default_factory=dict)
    receipt_path: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        if d["receipt_path"] is None:
            del d["receipt_path"]
        d["ok"] = self.ok
        return d

    @property
    def ok(self) -> bool:
        states = [s.state for s in self.steps]
        codes = [s.error_code for s in self.steps]
        return (
            states == [SpendState.SETTLED.value, SpendState.REJECTED.value, SpendState.SETTLED.value]
            and codes[1] == ErrorCodes.DOUBLE_SPEND
            and self.total_billed == EXPECTED_TOTAL
        )


def _step(label: str, publisher: Publisher, attempt: SpendAttempt) -> DemoStep:
    error = attempt.result.error if attempt.result else None
    return DemoStep(
        label=label,
        publisher=publisher.publisher_id,
        path=attempt.path,
        value=attempt.value,
        state=attempt.state.value,
        error_code=error.code if error else None,
    )


def run_demo(
    config: RuntimeConfig,
    keypair: Optional[IssuerKeyPair] = None,
    receipt_out: Optional[Path] = None,
) -> DemoSummary:
    """
    Play the scenario against an in-process Exchange.

    Args:
        config: Runtime configuration (proof repetitions, ledger shards)
        keypair: Issuer key; generated when omitted
        receipt_out: Where to write the first receipt (base64), if anywhere
    """
    if keypair is None:
        keypair = IssuerKeyPair.generate(config.issuer.key_size)
    proofs = SpendProofSystem(repetitions=config.proof.repetitions)
    accounts = InMemoryAccountStore({DEMO_ACCOUNT: 1 << DEMO_DENOMINATION})
    billing = InMemoryBillingLedger()
    exchange = Exchange(
        issuer=TokenIssuer([keypair], accounts, max_denomination=config.token.max_denomination),
        spent=ShardedSpentSet(shards=config.ledger.shards, expected_items=10_000),
        proofs=proofs,
        billing=billing,
        max_denomination=config.token.max_denomination,
        verify_workers=config.proof.verify_workers,
    )
    transport = InProcessTransport(exchange)

    try:
        holder = Holder(transport, proofs)
        publisher_a = Publisher("publisher-a", holder.keyring, proofs, transport)
        publisher_b = Publisher("publisher-b", holder.keyring, proofs, transport)

        logger.info("Withdrawing a depth-%d token for %s", DEMO_DENOMINATION, DEMO_ACCOUNT)
        wallet = holder.withdraw(DEMO_ACCOUNT, DEMO_DENOMINATION)

        summary = DemoSummary(
            key_id=keypair.key_id.hex(),
            repetitions=config.proof.repetitions,
        )

        first = holder.spend(wallet, "0110")
        publisher_a.receive(first, DEMO_ADVERTISER)
        summary.steps.append(_step("spend 0110", publisher_a, first))

        if receipt_out is not None:
            receipt_out.write_text(b64encode(first.receipt.to_bytes()) + "\n")
            summary.receipt_path = str(receipt_out)

        replay = SpendAttempt.from_receipt(first.receipt)
        replay.path = first.path
        publisher_b.receive(replay, DEMO_ADVERTISER)
        summary.steps.append(_step("replay 0110", publisher_b, replay))

        second = holder.spend(wallet, "0111")
        publisher_a.receive(second, DEMO_ADVERTISER)
        summary.steps.append(_step("spend 0111", publisher_a, second))

        summary.total_billed = billing.total_value
        summary.remaining_value = wallet.remaining_value
        summary.publisher_totals = {
            p.publisher_id: billing.publisher_total(p.publisher_id)
            for p in (publisher_a, publisher_b)
        }
        return summary
    finally:
        exchange.close()


def print_summary_human(summary: DemoSummary) -> None:
    """Print summary in human-readable format."""
    print(f"key_id: {summary.key_id}")
    print(f"denomination: {summary.denomination} ({1 << summary.denomination} units)")
    print(f"repetitions: {summary.repetitions}")
    print()
    for step in summary.steps:
        status = "✓" if step.state == SpendState.SETTLED.value else "✗"
        line = f"  {status} {step.label:<12} @ {step.publisher:<12} value={step.value:<4} {step.state}"
        if step.error_code:
            line += f" ({step.error_code})"
        print(line)
    print()
    print(f"total_billed: {summary.total_billed}")
    for publisher_id, total in summary.publisher_totals.items():
        print(f"  {publisher_id}: {total}")
    print(f"remaining_value: {summary.remaining_value}")
    if summary.receipt_path:
        print(f"receipt: {summary.receipt_path}")
    print(f"ok: {str(summary.ok).lower()}")


def print_summary_json(summary: DemoSummary) -> None:
    """Print summary as JSON."""
    print(json.dumps(summary.to_dict(), indent=2))


def demo_cmd(args: Namespace) -> int:
    """
    Execute the demo command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code
    """
    config: RuntimeConfig = args.runtime_config
    if args.repetitions is not None:
        config.proof.repetitions = args.repetitions

    keypair = None
    if args.key:
        try:
            keypair = IssuerKeyPair.load(args.key)
        except FileNotFoundError:
            print(f"Error: Key file not found: {args.key}", file=sys.stderr)
            return EXIT_RUNTIME_ERROR

    receipt_out = Path(args.receipt_out) if args.receipt_out else None
    summary = run_demo(config, keypair=keypair, receipt_out=receipt_out)

    if args.json:
        print_summary_json(summary)
    else:
        print_summary_human(summary)

    if summary.ok:
        logger.info("Demo scenario completed as expected")
        return EXIT_SUCCESS
    logger.warning("Demo scenario diverged from the expected outcome")
    return EXIT_VERIFICATION_FAILED
