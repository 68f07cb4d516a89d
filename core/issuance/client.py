"""
Module 06 - Issuance (Holder side)

    prepare()  -> fresh root, c_root, blinded request
    finalize() -> unblind, check the signature, return the Token
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from core.crypto.blind_rsa import IssuerPublicKey
from core.schemas.errors import SignatureError, SignatureErrorReason
from core.schemas.messages import IssueRequest, IssueResponse, b64decode, b64encode
from core.tokens.types import IssuanceCredential, Token, signed_message
from core.tree.commitment import commit, generate_root

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingIssuance:
    """Holder state between sending an IssueRequest and receiving the response."""
    key: IssuerPublicKey
    root: bytes = field(repr=False)
    denomination: int
    c_root: bytes
    blinding: int = field(repr=False)
    request: IssueRequest


def prepare_issuance(key: IssuerPublicKey, account_id: str, denomination: int) -> PendingIssuance:
    root = generate_root()
    c_root = commit(root, denomination).value
    blinded, r = key.blind(signed_message(c_root, denomination))
    request = IssueRequest(
        key_id=key.key_id.hex(),
        account_id=account_id,
        denomination=denomination,
        blinded=b64encode(blinded.to_bytes(key.modulus_bytes, "big")),
    )
    return PendingIssuance(
        key=key,
        root=root,
        denomination=denomination,
        c_root=c_root,
        blinding=r,
        request=request,
    )


def finalize_issuance(pending: PendingIssuance, response: IssueResponse) -> Token:
    """
    Raises:
        SignatureError: InvalidIssuance if the unblinded signature does not verify
    """
    if response.key_id != pending.request.key_id or response.denomination != pending.denomination:
        raise SignatureError(
            "issuance response does not answer the pending request",
            reason=SignatureErrorReason.INVALID_ISSUANCE,
            key_id=response.key_id,
        )
    blind_signature = int.from_bytes(b64decode(response.blind_signature, "IssueResponse"), "big")
    signature = pending.key.unblind(blind_signature, pending.blinding)
    message = signed_message(pending.c_root, pending.denomination)
    if not pending.key.verify(message, signature):
        raise SignatureError(
            "issuer signature does not verify",
            reason=SignatureErrorReason.INVALID_ISSUANCE,
            key_id=response.key_id,
        )
    credential = IssuanceCredential(
        key_id=pending.key.key_id,
        denomination=pending.denomination,
        c_root=pending.c_root,
        signature=signature,
    )
    logger.info("Obtained D=%d token under key %s", pending.denomination, response.key_id[:16])
    return Token(root=pending.root, denomination=pending.denomination, credential=credential)


__all__ = [
    "PendingIssuance",
    "prepare_issuance",
    "finalize_issuance",
]
