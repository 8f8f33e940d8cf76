import json

import httpx
import pytest_asyncio

from settlement.core.security import create_access_token
from settlement.core.signing import paystack_signature, sign_supplier_request
from settlement.main import create_app
from settlement.modules.common.enums import BuyerRole
from settlement.modules.ledger import LedgerService

from conftest import PAYSTACK_SECRET, SUPPLIER_SECRET


@pytest_asyncio.fixture
async def client(container):
    app = create_app(container=container)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as http:
        yield http


def bearer(settings, user_id: str, role: BuyerRole = BuyerRole.USER, email: str | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, role, settings.security, email=email)}"}


class TestCheckoutEndpoints:
    async def test_guest_checkout_returns_authorization_url(self, client, bundle):
        response = await client.post("/api/checkout/initialize", json={"product_id": bundle.id, "phone": "0241234567"})

        assert response.status_code == 200
        body = response.json()
        assert body["order"]["amount"] == "3.00"
        assert body["order"]["status"] == "pending"
        assert body["authorization_url"].startswith("https://checkout.paystack.com/")

    async def test_request_needs_product_and_phone(self, client):
        response = await client.post("/api/checkout/initialize", json={"phone": "0241234567"})

        assert response.status_code == 422

    async def test_invalid_phone_is_a_bad_request(self, client, bundle):
        response = await client.post("/api/checkout/initialize", json={"product_id": bundle.id, "phone": "0241234567890"})

        assert response.status_code == 400

    async def test_cooldown_is_reported_as_429(self, client, settings, seed, bundle):
        await seed.wallet("user-1", 1000)
        payload = {"product_id": bundle.id, "phone": "0241234567"}
        await client.post("/api/wallet/pay", json=payload, headers=bearer(settings, "user-1"))

        response = await client.post("/api/checkout/initialize", json=payload)

        assert response.status_code == 429
        assert response.json()["detail"]["remaining_minutes"] == 20

    async def test_verify_unknown_order(self, client):
        response = await client.get("/api/transactions/verify/ORD-MISSING")

        assert response.status_code == 404


class TestWalletEndpoints:
    async def test_wallet_requires_a_token(self, client):
        response = await client.get("/api/wallet")

        assert response.status_code == 401

    async def test_balance_and_purchase(self, client, settings, seed, bundle):
        await seed.wallet("user-1", 1000)
        headers = bearer(settings, "user-1")

        purchase = await client.post(
            "/api/wallet/pay", json={"product_id": bundle.id, "phone": "0241234567"}, headers=headers
        )
        wallet = await client.get("/api/wallet", headers=headers)
        history = await client.get("/api/wallet/transactions", headers=headers)

        assert purchase.status_code == 200
        assert purchase.json()["wallet_balance"] == "7.00"
        assert purchase.json()["order"]["status"] == "confirmed"
        assert wallet.json()["balance"] == "7.00"
        assert [entry["amount"] for entry in history.json()["transactions"]] == ["-3.00"]

    async def test_insufficient_balance_is_payment_required(self, client, settings, seed, bundle):
        await seed.wallet("user-1", 100)

        response = await client.post(
            "/api/wallet/pay", json={"product_id": bundle.id, "phone": "0241234567"}, headers=bearer(settings, "user-1")
        )

        assert response.status_code == 402
        assert response.json()["detail"]["balance"] == "1.00"

    async def test_topup_round_trip(self, client, settings, upstream):
        headers = bearer(settings, "user-1", email="kofi@example.com")

        started = await client.post("/api/wallet/topup/initialize", json={"amount": "25.00"}, headers=headers)
        reference = started.json()["topup"]["reference"]
        upstream.settle_transaction(reference)
        verified = await client.get(f"/api/wallet/topup/verify/{reference}", headers=headers)

        assert started.status_code == 200
        assert verified.json()["credited"] is True
        assert verified.json()["balance"] == "25.00"

    async def test_topup_of_another_account_is_hidden(self, client, settings, container):
        checkout = await container.topups.initialize("user-2", 500, email="ama@example.com")

        response = await client.get(
            f"/api/wallet/topup/verify/{checkout.topup.reference}", headers=bearer(settings, "user-1")
        )

        assert response.status_code == 404


class TestAgentEndpoints:
    async def test_profit_and_withdrawal(self, client, settings, database, seed):
        agent = await seed.reseller("agent-1")
        async with database.session() as session:
            await LedgerService.with_session(session).credit_reseller(agent.reseller_id, 500, order_reference="ORD-1")
        headers = bearer(settings, "agent-1", BuyerRole.AGENT)

        created = await client.post(
            "/api/agent/withdrawals",
            json={"amount": "3.00", "account_name": "Ama Mensah", "account_number": "0241234567", "bank_code": "MTN"},
            headers=headers,
        )
        profit = await client.get("/api/agent/profit", headers=headers)

        assert created.status_code == 201
        assert profit.json()["available"] == "5.00"
        assert profit.json()["withdrawable"] == "2.00"

    async def test_plain_user_is_forbidden(self, client, settings):
        response = await client.get("/api/agent/profit", headers=bearer(settings, "user-1"))

        assert response.status_code == 403


class TestWebhookEndpoints:
    async def test_paystack_signature_is_checked(self, client):
        response = await client.post(
            "/api/paystack/webhook", content=b'{"event": "charge.success"}', headers={"x-paystack-signature": "nope"}
        )

        assert response.status_code == 401

    async def test_paystack_charge_confirms_order(self, client, bundle):
        started = await client.post("/api/checkout/initialize", json={"product_id": bundle.id, "phone": "0241234567"})
        reference = started.json()["order"]["reference"]
        raw = json.dumps({"event": "charge.success", "data": {"reference": reference, "amount": 300}}).encode()

        response = await client.post(
            "/api/paystack/webhook", content=raw, headers={"x-paystack-signature": paystack_signature(PAYSTACK_SECRET, raw)}
        )

        assert response.status_code == 200
        assert response.json()["outcome"] == "order_confirmed"

    async def test_supplier_webhook_signed_over_request_path(self, client, container, settings, seed, bundle, provider, upstream):
        await seed.wallet("user-1", 1000)
        purchase = await client.post(
            "/api/wallet/pay", json={"product_id": bundle.id, "phone": "0241234567"}, headers=bearer(settings, "user-1")
        )
        await container.fulfillment.process(purchase.json()["order"]["reference"])
        body = json.dumps({"ref": upstream.ref_for("0241234567"), "status": "completed"})
        timestamp, signature = sign_supplier_request(SUPPLIER_SECRET, "POST", "/api/webhooks/supplier", body)

        response = await client.post(
            "/api/webhooks/supplier",
            content=body,
            headers={"X-Timestamp": timestamp, "X-Signature": signature, "Content-Type": "application/json"},
        )

        assert response.status_code == 200
        assert response.json()["outcome"] == "order_completed"


class TestOperatorEndpoints:
    async def test_cron_requires_the_secret(self, client, settings):
        denied = await client.post("/api/cron/update-order-statuses")
        allowed = await client.post(
            "/api/cron/update-order-statuses", headers={"X-Cron-Secret": settings.security.cron_secret}
        )

        assert denied.status_code == 401
        assert allowed.status_code == 200
        assert allowed.json()["checked"] == 0

    async def test_admin_routes_reject_non_admins(self, client, settings):
        response = await client.get("/api/admin/fulfillment/queue", headers=bearer(settings, "user-1"))

        assert response.status_code == 403

    async def test_admin_refund(self, client, settings, seed, bundle):
        await seed.wallet("user-1", 1000)
        purchase = await client.post(
            "/api/wallet/pay", json={"product_id": bundle.id, "phone": "0241234567"}, headers=bearer(settings, "user-1")
        )
        reference = purchase.json()["order"]["reference"]

        response = await client.post(f"/api/admin/orders/{reference}/refund", headers=bearer(settings, "root", BuyerRole.ADMIN))
        again = await client.post(f"/api/admin/orders/{reference}/refund", headers=bearer(settings, "root", BuyerRole.ADMIN))

        assert response.status_code == 200
        assert response.json()["wallet_credited"] is True
        assert response.json()["wallet_balance"] == "10.00"
        assert again.status_code == 409

    async def test_health(self, client):
        response = await client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["database"] is True
