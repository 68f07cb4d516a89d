"""
Module 06 - Issuance Unit Tests
Tests for core/issuance (keyring, accounts, server, client)

Tests:
- Withdrawal debits exactly 2^D and yields a verifying credential
- Insufficient balance: rejected, nothing debited
- Unknown key / unknown account / depth above maximum
- The Exchange never sees c_root (blind issuance)
- Concurrent withdrawals against one balance never overdraw it
"""
import threading
from dataclasses import replace

import pytest

from core.issuance.accounts import InMemoryAccountStore
from core.issuance.client import finalize_issuance, prepare_issuance
from core.issuance.keyring import IssuerKeyring
from core.issuance.server import TokenIssuer
from core.schemas.errors import (
    DerivationError,
    ErrorCodes,
    InsufficientBalanceError,
    SignatureError,
    SignatureErrorReason,
    UnknownAccountError,
    WireFormatError,
)
from core.schemas.messages import IssueResponse, b64encode
from core.tokens.types import IssuanceCredential
from core.tree.commitment import verify_commitment
from fixtures.common import TEST_ACCOUNT, make_keypair, make_token


@pytest.fixture
def accounts():
    return InMemoryAccountStore({TEST_ACCOUNT: 100})


@pytest.fixture
def issuer(keypair, accounts):
    return TokenIssuer([keypair], accounts, max_denomination=16)


def _withdraw(issuer, keypair, denomination, account_id=TEST_ACCOUNT):
    pending = prepare_issuance(keypair.public, account_id, denomination)
    return pending, finalize_issuance(pending, issuer.issue(pending.request))


class TestWithdraw:
    """Blind issuance through TokenIssuer."""

    def test_debits_token_value(self, issuer, keypair, accounts):
        _withdraw(issuer, keypair, 6)

        assert accounts.balance(TEST_ACCOUNT) == 100 - 64

    def test_token_is_valid(self, issuer, keypair):
        pending, token = _withdraw(issuer, keypair, 4)

        assert token.denomination == 4
        assert token.value == 16
        assert verify_commitment(token.root, token.credential.commitment)
        IssuerKeyring([keypair.public]).check_credential(token.credential)

    def test_exchange_never_sees_commitment(self, issuer, keypair):
        pending, token = _withdraw(issuer, keypair, 2)
        request_json = pending.request.model_dump_json()

        assert token.c_root.hex() not in request_json
        assert b64encode(token.c_root) not in request_json

    def test_insufficient_balance_no_debit(self, issuer, keypair, accounts):
        pending = prepare_issuance(keypair.public, TEST_ACCOUNT, 7)
        with pytest.raises(InsufficientBalanceError) as exc_info:
            issuer.issue(pending.request)

        assert exc_info.value.details == {"account_id": TEST_ACCOUNT, "requested": 128, "available": 100}
        assert accounts.balance(TEST_ACCOUNT) == 100

    def test_exact_balance(self, keypair):
        accounts = InMemoryAccountStore({"exact": 32})
        issuer = TokenIssuer([keypair], accounts)
        _withdraw(issuer, keypair, 5, account_id="exact")

        assert accounts.balance("exact") == 0

    def test_unknown_account(self, issuer, keypair):
        pending = prepare_issuance(keypair.public, "nobody", 1)
        with pytest.raises(UnknownAccountError):
            issuer.issue(pending.request)

    def test_unknown_key(self, issuer):
        other = make_keypair(1)
        pending = prepare_issuance(other.public, TEST_ACCOUNT, 1)
        with pytest.raises(SignatureError) as exc_info:
            issuer.issue(pending.request)

        assert exc_info.value.code == ErrorCodes.SIGNATURE_UNKNOWN_KEY
        assert exc_info.value.retryable

    def test_depth_above_maximum(self, issuer, keypair, accounts):
        pending = prepare_issuance(keypair.public, TEST_ACCOUNT, 17)
        with pytest.raises(DerivationError) as exc_info:
            issuer.issue(pending.request)

        assert exc_info.value.code == ErrorCodes.DERIVATION_DEPTH_EXCEEDED
        assert accounts.balance(TEST_ACCOUNT) == 100

    def test_blinded_out_of_range(self, issuer, keypair, accounts):
        pending = prepare_issuance(keypair.public, TEST_ACCOUNT, 1)
        request = pending.request.model_copy(update={"blinded": b64encode(b"\x00")})
        with pytest.raises(WireFormatError):
            issuer.issue(request)

        assert accounts.balance(TEST_ACCOUNT) == 100

    def test_bad_response_signature(self, issuer, keypair):
        pending = prepare_issuance(keypair.public, TEST_ACCOUNT, 1)
        response = issuer.issue(pending.request)
        forged = IssueResponse(
            key_id=response.key_id,
            denomination=response.denomination,
            blind_signature=b64encode((12345).to_bytes(keypair.public.modulus_bytes, "big")),
        )
        with pytest.raises(SignatureError) as exc_info:
            finalize_issuance(pending, forged)

        assert exc_info.value.reason == SignatureErrorReason.INVALID_ISSUANCE

    def test_response_for_other_request(self, issuer, keypair):
        pending = prepare_issuance(keypair.public, TEST_ACCOUNT, 1)
        response = issuer.issue(pending.request).model_copy(update={"denomination": 2})
        with pytest.raises(SignatureError):
            finalize_issuance(pending, response)

    def test_concurrent_withdrawals_never_overdraw(self, keypair):
        accounts = InMemoryAccountStore({"shared": 64})
        issuer = TokenIssuer([keypair], accounts)
        outcomes: list[str] = []
        lock = threading.Lock()
        barrier = threading.Barrier(10)

        def worker():
            pending = prepare_issuance(keypair.public, "shared", 4)
            barrier.wait()
            try:
                issuer.issue(pending.request)
                result = "ok"
            except InsufficientBalanceError:
                result = "refused"
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 4
        assert outcomes.count("refused") == 6
        assert accounts.balance("shared") == 0


class TestKeyring:
    """Tests for IssuerKeyring."""

    def test_check_credential(self, keypair):
        token = make_token(keypair=keypair)
        IssuerKeyring([keypair.public]).check_credential(token.credential)

    def test_credential_depth_is_signed(self, keypair):
        """Relabelling a credential with another D breaks the signature."""
        token = make_token(denomination=4, keypair=keypair)
        forged = replace(token.credential, denomination=5)
        with pytest.raises(SignatureError) as exc_info:
            IssuerKeyring([keypair.public]).check_credential(forged)

        assert exc_info.value.code == ErrorCodes.SIGNATURE_INVALID_ISSUANCE

    def test_unknown_key(self, keypair):
        token = make_token(keypair=keypair)
        with pytest.raises(SignatureError) as exc_info:
            IssuerKeyring([make_keypair(1).public]).check_credential(token.credential)

        assert exc_info.value.code == ErrorCodes.SIGNATURE_UNKNOWN_KEY

    def test_info_round_trip(self, keypair):
        keyring = IssuerKeyring([keypair.public])
        restored = IssuerKeyring.from_info(keyring.to_info())

        assert keypair.key_id in restored
        assert len(restored) == 1

    def test_info_with_wrong_id(self, keypair):
        info = IssuerKeyring([keypair.public]).to_info()[0]
        bad = info.model_copy(update={"key_id": "00" * 32})
        with pytest.raises(SignatureError):
            IssuerKeyring.from_info([bad])

    def test_forged_credential_without_key(self, keypair):
        """A credential signed by nobody does not verify."""
        token = make_token(keypair=keypair)
        forged = IssuanceCredential(
            key_id=keypair.key_id,
            denomination=token.denomination,
            c_root=token.c_root,
            signature=b"\x01" * keypair.public.modulus_bytes,
        )
        with pytest.raises(SignatureError):
            IssuerKeyring([keypair.public]).check_credential(forged)


class TestAccounts:
    """Tests for InMemoryAccountStore."""

    def test_credit_creates_account(self):
        accounts = InMemoryAccountStore()
        assert accounts.credit("new", 10) == 10
        assert accounts.balance("new") == 10

    def test_negative_credit(self):
        with pytest.raises(ValueError):
            InMemoryAccountStore().credit("x", -1)

    def test_debit_guard_rolls_back_on_error(self):
        accounts = InMemoryAccountStore({"a": 10})
        with pytest.raises(RuntimeError):
            with accounts.debit_guard("a", 5):
                raise RuntimeError("signing failed")

        assert accounts.balance("a") == 10
