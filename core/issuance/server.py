"""
Module 06 - Issuance (Exchange side)

Signs blinded commitments against prepaid balances. The Exchange never
sees c_root, so the credential it later receives in a receipt cannot be
linked to the account that paid for it.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from core.crypto.blind_rsa import IssuerKeyPair
from core.schemas.errors import (
    DerivationError,
    DerivationErrorReason,
    SignatureError,
    SignatureErrorReason,
    WireFormatError,
)
from core.schemas.messages import IssueRequest, IssueResponse, b64decode, b64encode
from core.tokens.types import MAX_DENOMINATION, value_at

from .accounts import AccountStore
from .keyring import IssuerKeyring

logger = logging.getLogger(__name__)


class TokenIssuer:
    """
    Usage:
        issuer = TokenIssuer([keypair], accounts, max_denomination=32)
        response = issuer.issue(request)
    """

    def __init__(
        self,
        keypairs: Iterable[IssuerKeyPair],
        accounts: AccountStore,
        max_denomination: int = MAX_DENOMINATION,
    ) -> None:
        self._keypairs: dict[bytes, IssuerKeyPair] = {kp.key_id: kp for kp in keypairs}
        if not self._keypairs:
            raise ValueError("TokenIssuer needs at least one key pair")
        self.accounts = accounts
        self.max_denomination = max_denomination
        self.keyring = IssuerKeyring.from_keypairs(self._keypairs.values())

    def _keypair(self, key_id_hex: str) -> IssuerKeyPair:
        try:
            key_id = bytes.fromhex(key_id_hex)
        except ValueError as e:
            raise WireFormatError(f"invalid key id: {e}", structure="IssueRequest") from e
        keypair: Optional[IssuerKeyPair] = self._keypairs.get(key_id)
        if keypair is None:
            raise SignatureError(
                f"unknown issuer key {key_id_hex[:16]}",
                reason=SignatureErrorReason.UNKNOWN_KEY,
                key_id=key_id_hex,
            )
        return keypair

    def issue(self, request: IssueRequest) -> IssueResponse:
        """
        Check and debit the account by 2^D and sign, atomically.

        Raises:
            DerivationError: DepthExceeded if D exceeds the configured maximum
            SignatureError: UnknownKey
            InsufficientBalanceError: Balance below 2^D; nothing is debited
            UnknownAccountError: No such account
            WireFormatError: Blinded value is not a valid element of Z_n
        """
        if request.denomination > self.max_denomination:
            raise DerivationError(
                f"denomination {request.denomination} exceeds maximum {self.max_denomination}",
                reason=DerivationErrorReason.DEPTH_EXCEEDED,
                details={"denomination": request.denomination, "max": self.max_denomination},
            )
        keypair = self._keypair(request.key_id)
        blinded = int.from_bytes(b64decode(request.blinded, "IssueRequest"), "big")
        if not 0 < blinded < keypair.public.n:
            raise WireFormatError("blinded value out of range", structure="IssueRequest")

        cost = value_at(request.denomination, 0)
        with self.accounts.debit_guard(request.account_id, cost):
            blind_signature = keypair.sign_blinded(blinded)
        logger.info(
            "Issued D=%d token (%d units) to account %s",
            request.denomination, cost, request.account_id,
        )
        return IssueResponse(
            key_id=request.key_id,
            denomination=request.denomination,
            blind_signature=b64encode(
                blind_signature.to_bytes(keypair.public.modulus_bytes, "big")
            ),
        )


__all__ = ["TokenIssuer"]
