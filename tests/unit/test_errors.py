"""
Error Taxonomy Tests
Tests for core/schemas/errors.py and api/errors.py

Tests:
- Codes and retryability per error kind
- Model <-> exception conversion keeps the concrete class
- HTTP status mapping for the API envelope
"""
from datetime import datetime, timezone

import pytest

from api.errors import STATUS_BY_CODE, APIError
from core.schemas.errors import (
    CapacityError,
    DerivationError,
    DerivationErrorReason,
    DivTokensError,
    DivTokensException,
    DoubleSpendError,
    ErrorCodes,
    InsufficientBalanceError,
    ProofError,
    ProofErrorReason,
    SignatureError,
    SignatureErrorReason,
    UnknownAccountError,
    WireFormatError,
)


class TestErrorCodes:
    """Tests for codes, reasons and retryable flags."""

    def test_proof_invalid_terminal(self):
        e = ProofError("bad proof")
        assert e.code == ErrorCodes.PROOF_INVALID
        assert e.reason == ProofErrorReason.INVALID
        assert not e.retryable

    def test_malformed_retryable(self):
        e = WireFormatError("truncated", structure="SpendReceipt")
        assert isinstance(e, ProofError)
        assert e.code == ErrorCodes.PROOF_MALFORMED
        assert e.details["structure"] == "SpendReceipt"
        assert e.retryable

    def test_unknown_key_retryable(self):
        e = SignatureError("no key", reason=SignatureErrorReason.UNKNOWN_KEY, key_id="ab")
        assert e.code == ErrorCodes.SIGNATURE_UNKNOWN_KEY
        assert e.details["key_id"] == "ab"
        assert e.retryable

    def test_invalid_issuance_terminal(self):
        e = SignatureError("forged")
        assert e.code == ErrorCodes.SIGNATURE_INVALID_ISSUANCE
        assert not e.retryable

    def test_derivation_codes(self):
        assert DerivationError("x").code == ErrorCodes.DERIVATION_LEVEL_MISMATCH
        assert DerivationError(
            "x", reason=DerivationErrorReason.DEPTH_EXCEEDED
        ).code == ErrorCodes.DERIVATION_DEPTH_EXCEEDED
        assert DerivationError(
            "x", reason=DerivationErrorReason.INVALID_SECRET
        ).code == ErrorCodes.DERIVATION_INVALID_SECRET

    def test_capacity_is_derivation(self):
        e = CapacityError("too deep")
        assert isinstance(e, DerivationError)
        assert e.code == ErrorCodes.CAPACITY_EXCEEDED
        assert e.reason == DerivationErrorReason.DEPTH_EXCEEDED

    def test_double_spend_details(self):
        e = DoubleSpendError("ab" * 32)
        assert e.code == ErrorCodes.DOUBLE_SPEND
        assert e.details == {"serial": "ab" * 32}
        assert not e.retryable

    def test_insufficient_balance_details(self):
        e = InsufficientBalanceError("acme", requested=256, available=100)
        assert e.details["requested"] == 256
        assert e.details["available"] == 100


class TestConversion:
    """Tests for DivTokensError <-> DivTokensException."""

    @pytest.mark.parametrize(
        "exc",
        [
            ProofError("p"),
            WireFormatError("w"),
            SignatureError("s", reason=SignatureErrorReason.UNKNOWN_KEY),
            DoubleSpendError("00"),
            CapacityError("c"),
            InsufficientBalanceError("acme", 4, 1),
            UnknownAccountError("acme"),
        ],
    )
    def test_round_trip_keeps_class_and_fields(self, exc):
        again = exc.to_error_model().to_exception()

        assert isinstance(again, DivTokensException)
        assert again.code == exc.code
        assert again.details == exc.details
        assert again.retryable == exc.retryable

    def test_known_code_maps_to_class(self):
        exc = DivTokensError(code=ErrorCodes.UNKNOWN_ACCOUNT, message="m").to_exception()
        assert isinstance(exc, UnknownAccountError)

    def test_unknown_code_falls_back_to_base(self):
        exc = DivTokensError(code="SOMETHING_NEW", message="m").to_exception()
        assert type(exc) is DivTokensException
        assert exc.code == "SOMETHING_NEW"

    def test_double_spend_attributes_survive(self):
        first_seen = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        again = DoubleSpendError("ab" * 32, first_seen=first_seen).to_error_model().to_exception()

        assert isinstance(again, DoubleSpendError)
        assert again.serial == "ab" * 32
        assert again.first_seen == first_seen

    def test_double_spend_without_first_seen(self):
        again = DoubleSpendError("cd" * 32).to_error_model().to_exception()

        assert again.serial == "cd" * 32
        assert again.first_seen is None


class TestApiStatus:
    """Tests for APIError.from_domain()."""

    @pytest.mark.parametrize(
        "exc, status",
        [
            (InsufficientBalanceError("acme", 4, 1), 402),
            (UnknownAccountError("acme"), 404),
            (SignatureError("k", reason=SignatureErrorReason.UNKNOWN_KEY), 404),
            (DoubleSpendError("00"), 409),
            (DerivationError("d", reason=DerivationErrorReason.DEPTH_EXCEEDED), 422),
            (ProofError("p"), 400),
        ],
    )
    def test_status(self, exc, status):
        assert APIError.from_domain(exc).status_code == status

    def test_envelope(self):
        body = APIError.from_domain(DoubleSpendError("00")).to_response().model_dump()

        assert body["ok"] is False
        assert body["error"]["code"] == "DOUBLE_SPEND"
        assert body["error"]["details"] == {"serial": "00"}
        assert body["error"]["retryable"] is False

    def test_mapped_codes_exist(self):
        assert set(STATUS_BY_CODE) <= {
            v for k, v in vars(ErrorCodes).items() if not k.startswith("_")
        }
