"""
Module 08 - Publisher

Receives receipts from Holders, refuses bad ones locally, and forwards the
rest to the Exchange either one at a time or in batches.
"""
from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Optional

from core.crypto.hashing import sha256
from core.issuance.keyring import IssuerKeyring
from core.schemas.errors import DivTokensException
from core.schemas.messages import RedeemRequest, RedemptionResult, b64encode
from core.tokens.types import SpendReceipt
from core.zk.spend import SpendProofSystem

from .exchange import rejection
from .state import SpendAttempt, SpendState
from .transport import ExchangeTransport
from .verification import check_receipt

logger = logging.getLogger(__name__)


class Publisher:
    """
    Usage:
        publisher = Publisher("pub-a", keyring, proofs, transport)
        attempt = publisher.receive(attempt, advertiser_id="adv-1")
        attempt.state  # ACCEPTED / SETTLED / REJECTED

    With batch_size > 1, receive() queues the attempt (state SUBMITTED is
    reached at flush) and flush() forwards every queued receipt in one
    request. A full queue flushes automatically.

    If a forward raises, the attempts not yet answered go back on the
    queue in state SUBMITTED, so either flush() or retry() can resend them.

    The acknowledgement cache keeps at most max_acks entries, oldest
    evicted first. Call reset_epoch() when the Exchange rolls its epoch.
    """

    def __init__(
        self,
        publisher_id: str,
        keyring: IssuerKeyring,
        proofs: SpendProofSystem,
        transport: ExchangeTransport,
        max_denomination: int = 32,
        batch_size: int = 1,
        max_acks: int = 100_000,
    ) -> None:
        self.publisher_id = publisher_id
        self.keyring = keyring
        self.proofs = proofs
        self.transport = transport
        self.max_denomination = max_denomination
        self.batch_size = max(1, batch_size)
        self.max_acks = max(1, max_acks)
        self._queue: list[tuple[SpendAttempt, str]] = []
        self._acks: OrderedDict[bytes, RedemptionResult] = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def _digest(receipt: SpendReceipt) -> bytes:
        return sha256(receipt.to_bytes())

    def acknowledged(self, receipt: SpendReceipt) -> Optional[RedemptionResult]:
        with self._lock:
            return self._acks.get(self._digest(receipt))

    def _remember(self, receipt: SpendReceipt, result: RedemptionResult) -> None:
        with self._lock:
            self._acks[self._digest(receipt)] = result
            while len(self._acks) > self.max_acks:
                self._acks.popitem(last=False)

    def reset_epoch(self) -> int:
        """Drop every cached acknowledgement. Returns how many were dropped."""
        with self._lock:
            dropped = len(self._acks)
            self._acks.clear()
        logger.info("Publisher %s cleared %d acknowledgements", self.publisher_id, dropped)
        return dropped

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    @property
    def cached_acks(self) -> int:
        with self._lock:
            return len(self._acks)

    def receive(self, attempt: SpendAttempt, advertiser_id: str) -> SpendAttempt:
        if attempt.state is not SpendState.PROOF_GENERATED or attempt.receipt is None:
            raise ValueError(f"attempt must carry a generated receipt, state is {attempt.state.value}")
        receipt = attempt.receipt

        cached = self.acknowledged(receipt)
        if cached is not None:
            logger.info("Receipt %s already acknowledged; answering from cache", receipt.serial_hex[:16])
            attempt.transition(SpendState.SUBMITTED)
            attempt.resolve(cached.model_copy(update={"cached": True}))
            return attempt

        try:
            check_receipt(receipt, self.keyring, self.proofs, self.max_denomination)
        except DivTokensException as e:
            logger.warning("Refused receipt %s locally: %s", receipt.serial_hex[:16], e.message)
            attempt.result = rejection(e, receipt.serial_hex)
            attempt.transition(SpendState.REJECTED)
            return attempt

        with self._lock:
            self._queue.append((attempt, advertiser_id))
            full = len(self._queue) >= self.batch_size
        if full:
            self.flush()
        return attempt

    def receive_receipt(self, receipt: SpendReceipt, advertiser_id: str) -> SpendAttempt:
        return self.receive(SpendAttempt.from_receipt(receipt), advertiser_id)

    def flush(self) -> list[SpendAttempt]:
        """Forward every queued receipt, grouped by advertiser."""
        with self._lock:
            queued, self._queue = self._queue, []
        if not queued:
            return []

        # Re-queued attempts are already SUBMITTED.
        by_advertiser: dict[str, list[SpendAttempt]] = {}
        for attempt, advertiser_id in queued:
            if attempt.state is SpendState.PROOF_GENERATED:
                attempt.transition(SpendState.SUBMITTED)
            by_advertiser.setdefault(advertiser_id, []).append(attempt)

        groups = list(by_advertiser.items())
        done: list[SpendAttempt] = []
        for index, (advertiser_id, attempts) in enumerate(groups):
            try:
                results = self._forward(advertiser_id, attempts)
            except Exception:
                unsent = [(a, adv) for adv, group in groups[index:] for a in group]
                with self._lock:
                    self._queue[:0] = unsent
                logger.warning(
                    "Forward for %s failed; %d receipts back on the queue",
                    advertiser_id, len(unsent),
                )
                raise
            for attempt, result in zip(attempts, results):
                if result.accepted:
                    self._remember(attempt.receipt, result)
                attempt.resolve(result)
                done.append(attempt)
        logger.info(
            "Forwarded %d receipts: %d accepted",
            len(done), sum(1 for a in done if a.result and a.result.accepted),
        )
        return done

    def _forward(self, advertiser_id: str, attempts: list[SpendAttempt]) -> list[RedemptionResult]:
        response = self.transport.redeem(
            RedeemRequest(
                publisher_id=self.publisher_id,
                advertiser_id=advertiser_id,
                receipts=[b64encode(a.receipt.to_bytes()) for a in attempts],
            )
        )
        if len(response.results) != len(attempts):
            raise ValueError(
                f"exchange answered {len(response.results)} results for {len(attempts)} receipts"
            )
        return response.results

    def retry(self, attempt: SpendAttempt, advertiser_id: str) -> SpendAttempt:
        """
        Resend a receipt whose forward failed in transit.

        An acknowledged receipt is answered from the cache; anything else
        is forwarded again. The attempt leaves the queue if a failed flush
        put it back there.
        """
        if attempt.state is not SpendState.SUBMITTED or attempt.receipt is None:
            raise ValueError(f"only submitted attempts can be retried, state is {attempt.state.value}")
        with self._lock:
            self._queue = [(a, adv) for a, adv in self._queue if a is not attempt]
        cached = self.acknowledged(attempt.receipt)
        if cached is not None:
            attempt.resolve(cached.model_copy(update={"cached": True}))
            return attempt
        result = self._forward(advertiser_id, [attempt])[0]
        if result.accepted:
            self._remember(attempt.receipt, result)
        attempt.resolve(result)
        return attempt


__all__ = ["Publisher"]
