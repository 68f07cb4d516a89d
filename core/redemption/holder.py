"""
Module 08 - Holder

Withdraws tokens from the Exchange and turns nodes of their trees into
spend receipts.
"""
from __future__ import annotations

import logging
from typing import Optional

from core.issuance.client import finalize_issuance, prepare_issuance
from core.issuance.keyring import IssuerKeyring
from core.tokens.types import SpendReceipt, SpendStatement, SpendWitness, Token
from core.tree.wallet import TokenWallet
from core.zk.spend import SpendProofSystem

from .state import SpendAttempt
from .transport import ExchangeTransport

logger = logging.getLogger(__name__)


class Holder:
    """
    Usage:
        holder = Holder(transport, proofs)
        wallet = holder.withdraw("acme", denomination=8)
        attempt = holder.spend(wallet, "0110")
        attempt.receipt  # hand to a Publisher
    """

    def __init__(
        self,
        transport: ExchangeTransport,
        proofs: SpendProofSystem,
        keyring: Optional[IssuerKeyring] = None,
    ) -> None:
        self.transport = transport
        self.proofs = proofs
        self._keyring = keyring
        self.wallets: list[TokenWallet] = []

    @property
    def keyring(self) -> IssuerKeyring:
        if self._keyring is None:
            self._keyring = IssuerKeyring.from_info(self.transport.public_keys())
        return self._keyring

    def withdraw(self, account_id: str, denomination: int, key_id: Optional[bytes] = None) -> TokenWallet:
        """
        Obtain one token worth 2^denomination, paid from account_id.

        Raises:
            SignatureError: UnknownKey, or InvalidIssuance if the Exchange's
                signature does not verify
            InsufficientBalanceError: Propagated from the Exchange
        """
        key = self.keyring.get(key_id) if key_id is not None else self.keyring.keys()[0]
        pending = prepare_issuance(key, account_id, denomination)
        response = self.transport.issue(pending.request)
        token = finalize_issuance(pending, response)
        return self.add_token(token)

    def add_token(self, token: Token) -> TokenWallet:
        self.keyring.check_credential(token.credential)
        wallet = TokenWallet(token)
        self.wallets.append(wallet)
        return wallet

    def spend(self, wallet: TokenWallet, path: str) -> SpendAttempt:
        """Reserve the node at path and produce its receipt."""
        attempt = SpendAttempt(path=path)
        node = wallet.reserve(path)
        token = wallet.token
        statement = SpendStatement(
            c_root=token.c_root,
            denomination=token.denomination,
            level=node.level,
            serial=node.serial,
            tag=node.tag,
        )
        proof = self.proofs.prove(SpendWitness(root=token.root, path=path), statement)
        attempt.attach_receipt(
            SpendReceipt(
                denomination=token.denomination,
                level=node.level,
                serial=statement.serial,
                tag=statement.tag,
                credential=token.credential,
                proof=proof,
            )
        )
        logger.info("Generated receipt for value %d (level %d)", node.value, node.level)
        return attempt

    def pay(self, wallet: TokenWallet, value: int) -> list[SpendAttempt]:
        """Spend exactly `value` units from one token, as few nodes as the tree allows."""
        return [self.spend(wallet, path) for path in wallet.plan(value)]


__all__ = ["Holder"]
