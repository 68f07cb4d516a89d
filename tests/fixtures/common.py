"""
Common test fixtures shared by all modules.

Provides factory functions for core divtokens structures:
- Issuer key pairs (small, cached)
- Tokens obtained through the real blind issuance flow
- Spend receipts
- A wired-up Exchange / Holder / Publisher scenario

Proofs use a handful of repetitions so tests stay fast; soundness at that
setting is far below production but the code paths are identical.
"""

import struct
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from core.crypto.blind_rsa import IssuerKeyPair
from core.crypto.field import hash_to_field, to_bytes as field_to_bytes
from core.issuance.accounts import InMemoryAccountStore
from core.issuance.client import finalize_issuance, prepare_issuance
from core.issuance.server import TokenIssuer
from core.ledger.spent_set import ShardedSpentSet, SpentSet
from core.redemption import (
    Exchange,
    Holder,
    InMemoryBillingLedger,
    InProcessTransport,
    Publisher,
)
from core.schemas.messages import IssueResponse, b64decode, b64encode
from core.tokens.types import SpendReceipt, SpendStatement, SpendWitness, Token
from core.tree.derivation import KeyDerivationTree
from core.zk.spend import SpendProofSystem


TEST_REPETITIONS = 8
TEST_KEY_SIZE = 1024
TEST_DENOMINATION = 4
TEST_ACCOUNT = "acme-retail"


# =============================================================================
# Keys and roots
# =============================================================================

@lru_cache(maxsize=4)
def make_keypair(index: int = 0) -> IssuerKeyPair:
    """
    Create (once per index) an issuer key pair.

    Args:
        index: Distinct indexes give distinct keys.
    """
    return IssuerKeyPair.generate(TEST_KEY_SIZE)


def make_root(seed: int = 0) -> bytes:
    """Deterministic root secret for reproducible tree tests."""
    return field_to_bytes(hash_to_field("tests/root", struct.pack(">I", seed)))


def make_proofs(repetitions: int = TEST_REPETITIONS) -> SpendProofSystem:
    return SpendProofSystem(repetitions=repetitions)


# =============================================================================
# Tokens and receipts
# =============================================================================

def make_token(
    denomination: int = TEST_DENOMINATION,
    keypair: Optional[IssuerKeyPair] = None,
) -> Token:
    """
    Run the blind issuance flow directly against a key pair (no accounts).

    Returns:
        A token whose credential verifies under keypair.public
    """
    keypair = keypair or make_keypair()
    pending = prepare_issuance(keypair.public, TEST_ACCOUNT, denomination)
    blinded = int.from_bytes(b64decode(pending.request.blinded), "big")
    blind_signature = keypair.sign_blinded(blinded)
    response = IssueResponse(
        key_id=pending.request.key_id,
        denomination=denomination,
        blind_signature=b64encode(blind_signature.to_bytes(keypair.public.modulus_bytes, "big")),
    )
    return finalize_issuance(pending, response)


def make_statement(token: Token, path: str) -> SpendStatement:
    node = KeyDerivationTree(token.denomination).node(token.root, path)
    return SpendStatement(
        c_root=token.c_root,
        denomination=token.denomination,
        level=node.level,
        serial=node.serial,
        tag=node.tag,
    )


def make_receipt(
    token: Token,
    path: str,
    proofs: Optional[SpendProofSystem] = None,
) -> SpendReceipt:
    """Build a valid receipt for the node at path, bypassing any wallet."""
    proofs = proofs or make_proofs()
    statement = make_statement(token, path)
    proof = proofs.prove(SpendWitness(root=token.root, path=path), statement)
    return SpendReceipt(
        denomination=token.denomination,
        level=statement.level,
        serial=statement.serial,
        tag=statement.tag,
        credential=token.credential,
        proof=proof,
    )


# =============================================================================
# Parties
# =============================================================================

def make_exchange(
    balances: Optional[dict[str, int]] = None,
    keypair: Optional[IssuerKeyPair] = None,
    spent: Optional[SpentSet] = None,
    proofs: Optional[SpendProofSystem] = None,
    max_denomination: int = 32,
    verify_workers: int = 2,
) -> Exchange:
    keypair = keypair or make_keypair()
    accounts = InMemoryAccountStore(balances if balances is not None else {TEST_ACCOUNT: 1 << 10})
    return Exchange(
        issuer=TokenIssuer([keypair], accounts, max_denomination=max_denomination),
        spent=spent or ShardedSpentSet(shards=4, expected_items=1000),
        proofs=proofs or make_proofs(),
        billing=InMemoryBillingLedger(),
        max_denomination=max_denomination,
        verify_workers=verify_workers,
    )


@dataclass
class Scenario:
    exchange: Exchange
    transport: InProcessTransport
    holder: Holder
    publisher_a: Publisher
    publisher_b: Publisher

    @property
    def billing(self) -> InMemoryBillingLedger:
        return self.exchange.billing

    @property
    def accounts(self) -> InMemoryAccountStore:
        return self.exchange.issuer.accounts


def make_scenario(
    balances: Optional[dict[str, int]] = None,
    batch_size: int = 1,
    exchange: Optional[Exchange] = None,
) -> Scenario:
    """Holder and two Publishers wired to one in-process Exchange."""
    exchange = exchange or make_exchange(balances)
    transport = InProcessTransport(exchange)
    proofs = exchange.proofs
    holder = Holder(transport, proofs)
    return Scenario(
        exchange=exchange,
        transport=transport,
        holder=holder,
        publisher_a=Publisher("publisher-a", holder.keyring, proofs, transport, batch_size=batch_size),
        publisher_b=Publisher("publisher-b", holder.keyring, proofs, transport, batch_size=batch_size),
    )
