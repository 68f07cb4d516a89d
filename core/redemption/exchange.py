"""
Module 08 - Exchange

Issues tokens and redeems receipts. Redemption re-verifies every receipt,
then makes the single serialized step: insert the serial into the spent
set. Only an insert that wins produces a settlement.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Optional, Sequence, Union

from core.config.runtime import RuntimeConfig
from core.crypto.blind_rsa import IssuerKeyPair
from core.issuance.accounts import AccountStore, InMemoryAccountStore
from core.issuance.keyring import IssuerKeyring
from core.issuance.server import TokenIssuer
from core.ledger import SpentSet, create_spent_set
from core.schemas.errors import DivTokensException, DoubleSpendError
from core.schemas.messages import (
    IssueRequest,
    IssueResponse,
    PublicKeyInfo,
    RedeemRequest,
    RedeemResponse,
    RedemptionResult,
    SettlementRecord,
    b64decode,
)
from core.tokens.types import SpendReceipt
from core.zk.spend import SpendProofSystem

from .settlement import InMemoryBillingLedger, SettlementSink
from .verification import check_receipt

logger = logging.getLogger(__name__)


def rejection(error: DivTokensException, serial: Optional[str] = None) -> RedemptionResult:
    return RedemptionResult(accepted=False, serial=serial, value=0, error=error.to_error_model())


class Exchange:
    """
    Usage:
        exchange = Exchange.from_config(config, accounts=InMemoryAccountStore({"acme": 1024}))
        response = exchange.issue(request)
        result = exchange.redeem(receipt, "pub-a", "adv-1")
    """

    def __init__(
        self,
        issuer: TokenIssuer,
        spent: SpentSet,
        proofs: SpendProofSystem,
        billing: Optional[SettlementSink] = None,
        max_denomination: int = 32,
        verify_workers: int = 4,
    ) -> None:
        self.issuer = issuer
        self.spent = spent
        self.proofs = proofs
        self.billing = billing or InMemoryBillingLedger()
        self.max_denomination = max_denomination
        self.verify_workers = verify_workers
        self._executor: Optional[ThreadPoolExecutor] = None

    @classmethod
    def from_config(
        cls,
        config: RuntimeConfig,
        keypair: Optional[IssuerKeyPair] = None,
        accounts: Optional[AccountStore] = None,
        billing: Optional[SettlementSink] = None,
    ) -> "Exchange":
        if keypair is None:
            if config.issuer.key_path:
                keypair = IssuerKeyPair.load(config.issuer.key_path)
            else:
                logger.warning("No issuer key configured; generating an ephemeral key")
                keypair = IssuerKeyPair.generate(config.issuer.key_size)
        issuer = TokenIssuer(
            [keypair],
            accounts or InMemoryAccountStore(config.issuer.accounts),
            max_denomination=config.token.max_denomination,
        )
        return cls(
            issuer=issuer,
            spent=create_spent_set(config.ledger),
            proofs=SpendProofSystem(repetitions=config.proof.repetitions),
            billing=billing,
            max_denomination=config.token.max_denomination,
            verify_workers=config.proof.verify_workers,
        )

    @property
    def keyring(self) -> IssuerKeyring:
        return self.issuer.keyring

    def public_keys(self) -> list[PublicKeyInfo]:
        return self.keyring.to_info()

    def issue(self, request: IssueRequest) -> IssueResponse:
        return self.issuer.issue(request)

    def redeem(self, receipt: SpendReceipt, publisher_id: str, advertiser_id: str) -> RedemptionResult:
        """
        Verify a receipt and record its serial.

        Failed verification never touches the spent set. A serial that is
        already present yields a DoubleSpendError rejection.
        """
        serial = receipt.serial_hex
        try:
            check_receipt(receipt, self.keyring, self.proofs, self.max_denomination)
        except DivTokensException as e:
            logger.warning("Rejected receipt %s: %s (%s)", serial[:16], e.message, e.code)
            return rejection(e, serial)

        inserted = self.spent.insert_if_absent(receipt.serial, receipt.tag)
        if inserted.duplicate:
            error = DoubleSpendError(serial, inserted.record.first_seen)
            logger.warning(
                "Double spend of serial %s from publisher %s (first seen %s)",
                serial[:16], publisher_id, inserted.record.first_seen.isoformat(),
            )
            return rejection(error, serial)

        settlement = SettlementRecord(
            serial=serial,
            value=receipt.value,
            publisher_id=publisher_id,
            advertiser_id=advertiser_id,
            settled_at=datetime.now(timezone.utc),
        )
        self.billing.record(settlement)
        logger.info(
            "Accepted serial %s worth %d from publisher %s",
            serial[:16], receipt.value, publisher_id,
        )
        return RedemptionResult(accepted=True, serial=serial, value=receipt.value, settlement=settlement)

    def redeem_encoded(self, data: Union[bytes, str], publisher_id: str, advertiser_id: str) -> RedemptionResult:
        """Decode (base64 text or raw bytes) and redeem; undecodable receipts are rejected as malformed."""
        try:
            raw = b64decode(data, "SpendReceipt") if isinstance(data, str) else data
            receipt = SpendReceipt.from_bytes(raw)
        except DivTokensException as e:
            logger.warning("Rejected undecodable receipt: %s", e.message)
            return rejection(e)
        return self.redeem(receipt, publisher_id, advertiser_id)

    def _pool(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=max(1, self.verify_workers),
                thread_name_prefix="divtokens-verify",
            )
        return self._executor

    def redeem_batch(
        self,
        receipts: Sequence[Union[SpendReceipt, bytes, str]],
        publisher_id: str,
        advertiser_id: str,
    ) -> list[RedemptionResult]:
        """Redeem receipts in parallel; results are in submission order."""

        def one(item: Union[SpendReceipt, bytes, str]) -> RedemptionResult:
            if isinstance(item, SpendReceipt):
                return self.redeem(item, publisher_id, advertiser_id)
            return self.redeem_encoded(item, publisher_id, advertiser_id)

        if len(receipts) <= 1:
            return [one(r) for r in receipts]
        return list(self._pool().map(one, receipts))

    def handle_redeem(self, request: RedeemRequest) -> RedeemResponse:
        results = self.redeem_batch(request.receipts, request.publisher_id, request.advertiser_id)
        return RedeemResponse(results=results)

    def reset_epoch(self) -> None:
        self.spent.reset_epoch()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self.spent.close()


__all__ = [
    "Exchange",
    "rejection",
]
