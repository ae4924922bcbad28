"""End-to-end API flow against a real engine (in-memory SQLite).

The app lifespan builds the engine; the settlement provider is replaced
by an ``httpx.MockTransport`` when the gateway opens its client.
"""

from __future__ import annotations

import functools
import json
from typing import TYPE_CHECKING
from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient

from lzar_wallet.api.app import create_app
from lzar_wallet.qr.codec import decode
from lzar_wallet.webhooks.verifier import SIGNATURE_HEADER, sign
from tests.conftest import ADMIN_KEY, WEBHOOK_SECRET, FakeSettlement

if TYPE_CHECKING:
    from collections.abc import Iterator

    from lzar_wallet.config.settings import AppConfig

pytestmark = pytest.mark.integration


@pytest.fixture
def live(app_config: AppConfig, fake_settlement: FakeSettlement) -> Iterator[TestClient]:
    mocked_client = functools.partial(
        httpx.AsyncClient, transport=httpx.MockTransport(fake_settlement.handler)
    )
    app = create_app(config=app_config)
    with (
        patch("lzar_wallet.settlement.client.httpx.AsyncClient", mocked_client),
        TestClient(app) as client,
    ):
        yield client


def _create_account(client: TestClient, email: str, **extra: str) -> tuple[str, dict]:
    resp = client.post(
        "/api/v1/admin/accounts",
        json={"email": email, **extra},
        headers={"x-admin-key": ADMIN_KEY},
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()
    return data["id"], {"Authorization": f"Bearer {data['token']}"}


def _webhook(client: TestClient, payload: dict) -> httpx.Response:
    body = json.dumps(payload).encode()
    return client.post(
        "/api/v1/webhooks/settlement",
        content=body,
        headers={SIGNATURE_HEADER: sign(body, WEBHOOK_SECRET)},
    )


def _balance(client: TestClient, auth: dict) -> str:
    return client.get("/api/v1/wallet", headers=auth).json()["balance"]


class TestWalletFlow:
    def test_mint_transfer_and_history(
        self, live: TestClient, fake_settlement: FakeSettlement
    ) -> None:
        alice_id, alice = _create_account(live, "alice@example.com", first_name="Alice")
        bob_id, bob = _create_account(live, "bob@example.com", phone="+5511999990000")

        resp = live.post("/api/v1/mint", json={"amount": "100"}, headers=alice)
        assert resp.json()["status"] == "completed"
        assert _balance(live, alice) == "100.00"

        resp = live.post(
            "/api/v1/transfer",
            json={"amount": "30.25", "recipient": "+5511999990000", "description": "Dinner"},
            headers=alice,
        )
        assert resp.status_code == 200, resp.text
        transfer = resp.json()
        assert transfer["status"] == "completed"
        assert transfer["recipient_id"] == bob_id
        assert transfer["external_id"] == "ext_2"

        assert _balance(live, alice) == "69.75"
        assert _balance(live, bob) == "30.25"

        # The provider saw our record id as the idempotency reference
        assert fake_settlement.bodies[-1]["reference"] == transfer["id"]

        history = live.get("/api/v1/transactions", headers=alice).json()
        assert history["total"] == 2
        assert [t["type"] for t in history["items"]] == ["transfer", "mint"]

        detail = live.get(f"/api/v1/transactions/{transfer['id']}", headers=bob).json()
        assert decode(detail["receipt_qr"]).intent.transaction_id == transfer["id"]

        # Not a party
        _, carol = _create_account(live, "carol@example.com")
        resp = live.get(f"/api/v1/transactions/{transfer['id']}", headers=carol)
        assert resp.status_code == 404

    def test_overdraft_rejected_before_provider(
        self, live: TestClient, fake_settlement: FakeSettlement
    ) -> None:
        _, alice = _create_account(live, "alice@example.com")
        _create_account(live, "bob@example.com")

        resp = live.post(
            "/api/v1/transfer",
            json={"amount": 5, "recipient": "bob@example.com"},
            headers=alice,
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "insufficient-balance"
        assert fake_settlement.bodies == []

    def test_provider_rejection_marks_failed(
        self, live: TestClient, fake_settlement: FakeSettlement
    ) -> None:
        _, alice = _create_account(live, "alice@example.com")
        live.post("/api/v1/mint", json={"amount": 10}, headers=alice)
        fake_settlement.fail_with = 422

        resp = live.post("/api/v1/redeem", json={"amount": 5}, headers=alice)
        assert resp.status_code == 500
        assert resp.json()["code"] == "settlement-failed"
        assert _balance(live, alice) == "10.00"

        items = live.get("/api/v1/transactions", headers=alice).json()["items"]
        assert items[0]["type"] == "redeem"
        assert items[0]["status"] == "failed"


    def test_batch_transfer_and_float(self, live: TestClient) -> None:
        _, alice = _create_account(live, "alice@example.com")
        bob_id, bob = _create_account(live, "bob@example.com")
        live.post("/api/v1/mint", json={"amount": "40"}, headers=alice)

        resp = live.post(
            "/api/v1/transfer/batch",
            json={
                "transfers": [
                    {"amount": "15", "recipient": "bob@example.com"},
                    {"amount": "100", "recipient": bob_id},
                    {"amount": "5", "recipient": "nobody@example.com"},
                    {"amount": "5", "recipient": bob_id},
                ]
            },
            headers=alice,
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert (data["succeeded"], data["failed"]) == (2, 2)
        assert [i["error"]["code"] for i in data["items"] if not i["ok"]] == [
            "insufficient-balance",
            "recipient-not-found",
        ]
        assert _balance(live, alice) == "20.00"
        assert _balance(live, bob) == "20.00"

        admin = {"x-admin-key": ADMIN_KEY}
        float_ = live.get("/api/v1/admin/float", headers=admin).json()
        assert float_["total_float"] == "40.00"
        assert float_["available_float"] == "40.00"
        assert float_["accounts"] == 2
        assert live.get("/api/v1/admin/transactions/pending", headers=admin).json() == []
        pending = live.get("/api/v1/transactions?status=pending", headers=alice).json()
        assert pending["total"] == 0


class TestChargeFlow:
    def test_charge_paid_once(self, live: TestClient) -> None:
        merchant_id, merchant = _create_account(
            live, "shop@example.com", first_name="Corner", last_name="Shop"
        )

        resp = live.post(
            "/api/v1/charges", json={"amount": "12.50", "description": "Coffee"}, headers=merchant
        )
        assert resp.status_code == 200, resp.text
        charge = resp.json()
        assert charge["status"] == "active"

        intent = decode(charge["qr_payload"]).intent
        assert intent.charge_id == charge["id"]
        assert intent.amount == 12.5
        assert intent.merchant_name == "Corner Shop"

        event = {
            "type": "charge.paid",
            "data": {"reference": charge["id"], "payer_id": "payer-1", "amount": 12.5},
        }
        assert _webhook(live, event).status_code == 200
        assert _webhook(live, event).status_code == 200

        assert _balance(live, merchant) == "12.50"
        paid = live.get(f"/api/v1/charges/{charge['id']}", headers=merchant).json()
        assert paid["status"] == "paid"
        assert paid["payer_id"] == "payer-1"

        history = live.get("/api/v1/transactions", headers=merchant).json()
        assert history["total"] == 1
        assert history["items"][0]["type"] == "payment"

    def test_unsigned_webhook_has_no_effect(self, live: TestClient) -> None:
        _, merchant = _create_account(live, "shop@example.com")
        charge = live.post("/api/v1/charges", json={"amount": 3}, headers=merchant).json()

        body = json.dumps(
            {"type": "charge.paid", "data": {"reference": charge["id"], "payer_id": "p"}}
        ).encode()
        resp = live.post(
            "/api/v1/webhooks/settlement",
            content=body,
            headers={SIGNATURE_HEADER: sign(body, "wrong-secret")},
        )
        assert resp.status_code == 401
        assert _balance(live, merchant) == "0.00"

    def test_unknown_event_acknowledged(self, live: TestClient) -> None:
        resp = _webhook(live, {"type": "account.updated", "data": {}})
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}
