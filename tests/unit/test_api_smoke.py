"""
Module 09D - API Smoke Tests

Tests for the FastAPI endpoints:
1. GET /health returns ok
2. GET /keys publishes the issuer key
3. POST /issue signs and debits; failures use the error envelope
4. POST /redeem returns one outcome per receipt, in order
"""

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from api.deps import set_exchange
from core.crypto.blind_rsa import IssuerPublicKey
from core.issuance.client import finalize_issuance, prepare_issuance
from core.schemas.messages import IssueResponse, b64encode
from fixtures.common import TEST_ACCOUNT, make_exchange, make_receipt, make_token


@pytest.fixture
def served(keypair):
    exchange = make_exchange(keypair=keypair, balances={TEST_ACCOUNT: 64})
    set_exchange(exchange)
    yield exchange
    set_exchange(None)
    exchange.close()


@pytest.fixture
def client(served):
    return TestClient(create_app())


def issue_body(keypair, account_id=TEST_ACCOUNT, denomination=4):
    pending = prepare_issuance(keypair.public, account_id, denomination)
    return pending, pending.request.model_dump()


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"ok": True, "service": "divtokens-exchange", "version": "v1"}


class TestKeys:
    def test_keys_published(self, client, keypair):
        body = client.get("/keys").json()

        assert len(body["keys"]) == 1
        info = body["keys"][0]
        assert info["key_id"] == keypair.key_id.hex()
        assert info["bits"] == keypair.public.n.bit_length()
        assert IssuerPublicKey.from_pem(info["pem"].encode()) == keypair.public


class TestIssue:
    def test_issue_signs_and_debits(self, client, served, keypair):
        pending, body = issue_body(keypair)
        response = client.post("/issue", json=body)

        assert response.status_code == 200
        token = finalize_issuance(pending, IssueResponse.model_validate(response.json()))
        served.keyring.check_credential(token.credential)
        assert served.issuer.accounts.balance(TEST_ACCOUNT) == 48

    def test_insufficient_balance(self, client, keypair):
        _, body = issue_body(keypair, denomination=7)
        response = client.post("/issue", json=body)

        assert response.status_code == 402
        error = response.json()["error"]
        assert response.json()["ok"] is False
        assert error["code"] == "INSUFFICIENT_BALANCE"
        assert error["details"]["available"] == 64

    def test_unknown_account(self, client, keypair):
        _, body = issue_body(keypair, account_id="nobody")
        response = client.post("/issue", json=body)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "UNKNOWN_ACCOUNT"

    def test_depth_exceeded(self, client, keypair):
        _, body = issue_body(keypair, denomination=40)
        response = client.post("/issue", json=body)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "DERIVATION_DEPTH_EXCEEDED"

    def test_unknown_key(self, client, keypair):
        _, body = issue_body(keypair)
        body["key_id"] = "00" * 32
        response = client.post("/issue", json=body)

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "SIGNATURE_UNKNOWN_KEY"
        assert error["retryable"] is True

    def test_schema_violation(self, client):
        response = client.post("/issue", json={"account_id": TEST_ACCOUNT})

        assert response.status_code == 422


class TestRedeem:
    def test_batch_outcomes(self, client, served, keypair):
        token = make_token(keypair=keypair)
        receipt = make_receipt(token, "10", served.proofs)
        encoded = b64encode(receipt.to_bytes())
        response = client.post(
            "/redeem",
            json={
                "publisher_id": "pub-a",
                "advertiser_id": "adv-1",
                "receipts": [encoded, "AAAA"],
            },
        )

        assert response.status_code == 200
        results = response.json()["results"]
        assert [r["accepted"] for r in results] == [True, False]
        assert results[0]["value"] == 4
        assert results[0]["serial"] == receipt.serial_hex
        assert results[1]["error"]["code"] == "PROOF_MALFORMED"

    def test_replay_rejected(self, client, served, keypair):
        receipt = make_receipt(make_token(keypair=keypair), "01", served.proofs)
        body = {
            "publisher_id": "pub-a",
            "advertiser_id": "adv-1",
            "receipts": [b64encode(receipt.to_bytes())],
        }
        client.post("/redeem", json=body)
        body["publisher_id"] = "pub-b"
        result = client.post("/redeem", json=body).json()["results"][0]

        assert result["accepted"] is False
        assert result["error"]["code"] == "DOUBLE_SPEND"
        assert result["error"]["retryable"] is False
        assert served.billing.total_value == 4

    def test_empty_batch(self, client):
        response = client.post(
            "/redeem",
            json={"publisher_id": "pub-a", "advertiser_id": "adv-1", "receipts": []},
        )

        assert response.status_code == 200
        assert response.json()["results"] == []
