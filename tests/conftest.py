"""Shared fixtures: a file-backed SQLite database per test, a controllable clock
and a fake upstream that plays both Paystack and the supply provider."""

from __future__ import annotations

import itertools
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional

import httpx
import pytest
import pytest_asyncio

from settlement.core.config import (
    DatabaseSettings,
    FulfillmentSettings,
    PaystackSettings,
    SchedulerSettings,
    Settings,
    SettlementSettings,
    SupplierSettings,
)
from settlement.core.container import ApplicationContainer
from settlement.core.signing import verify_supplier_signature
from settlement.db.models import (
    AdminBasePrice,
    CustomPrice,
    ExternalProvider,
    Product,
    Reseller,
    ResultCheckerStock,
    RoleBasePrice,
    Wallet,
)
from settlement.infrastructure.database import Database
from settlement.modules.common.enums import BuyerRole, ProductType
from settlement.modules.pricing import BuyerContext

PAYSTACK_SECRET = "sk_test_settlement"
SUPPLIER_HOST = "supplier.test"
SUPPLIER_SECRET = "supplier-secret"


class FakeClock:
    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


class FakeUpstream:
    """Programmable stand-in for api.paystack.co and the supply provider."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.transactions: dict[str, dict[str, Any]] = {}
        self.rejected: dict[str, str] = {}
        self.unreachable: set[str] = set()
        self.statuses: dict[str, str] = {}
        self.accepted: dict[str, str] = {}
        self.transfer_status = "pending"
        self.paystack_down = False
        self.on_supplier_order: Optional[Callable[[dict[str, Any]], Awaitable[None]]] = None
        self._refs = itertools.count(1)

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "api.paystack.co":
            return self._paystack(request)
        if request.url.host == SUPPLIER_HOST:
            if request.method == "POST" and self.on_supplier_order is not None:
                await self.on_supplier_order(json.loads(request.content))
            return self._supplier(request)
        return httpx.Response(404, json={"message": "unknown host"})

    def supplier_orders(self) -> list[dict[str, Any]]:
        return [
            json.loads(request.content)
            for request in self.requests
            if request.url.host == SUPPLIER_HOST and request.method == "POST"
        ]

    def settle_transaction(self, reference: str, status: str = "success", amount_minor: Optional[int] = None) -> None:
        transaction = self.transactions.setdefault(reference, {"amount": amount_minor or 0})
        transaction["status"] = status
        if amount_minor is not None:
            transaction["amount"] = amount_minor

    def ref_for(self, phone: str) -> str:
        return next(ref for key, ref in self.accepted.items() if key.endswith(phone))

    def report(self, phone: str, status: str) -> str:
        """Set what the supplier answers when polled for ``phone``'s order."""
        ref = self.ref_for(phone)
        self.statuses[ref] = status
        return ref

    def _paystack(self, request: httpx.Request) -> httpx.Response:
        if self.paystack_down:
            return httpx.Response(503, json={"status": False, "message": "Service unavailable"})
        path = request.url.path
        if path == "/transaction/initialize":
            payload = json.loads(request.content)
            reference = payload["reference"]
            self.transactions[reference] = {"amount": payload["amount"], "status": "pending"}
            return httpx.Response(
                200,
                json={
                    "status": True,
                    "data": {
                        "authorization_url": f"https://checkout.paystack.com/{reference}",
                        "access_code": f"AC_{reference}",
                        "reference": reference,
                    },
                },
            )
        if path.startswith("/transaction/verify/"):
            reference = path.rsplit("/", 1)[-1]
            transaction = self.transactions.get(reference)
            if transaction is None:
                return httpx.Response(404, json={"status": False, "message": "Transaction reference not found"})
            return httpx.Response(
                200,
                json={
                    "status": True,
                    "data": {
                        "reference": reference,
                        "status": transaction["status"],
                        "amount": transaction["amount"],
                        "currency": "GHS",
                        "channel": "mobile_money",
                    },
                },
            )
        if path == "/transferrecipient":
            return httpx.Response(200, json={"status": True, "data": {"recipient_code": "RCP_test"}})
        if path == "/transfer":
            payload = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "status": True,
                    "data": {
                        "reference": payload["reference"],
                        "transfer_code": "TRF_test",
                        "status": self.transfer_status,
                    },
                },
            )
        return httpx.Response(404, json={"status": False, "message": "not found"})

    def _supplier(self, request: httpx.Request) -> httpx.Response:
        body = request.content.decode("utf-8")
        if not verify_supplier_signature(
            SUPPLIER_SECRET,
            request.method,
            request.url.path,
            body,
            request.headers.get("X-Timestamp", ""),
            request.headers.get("X-Signature", ""),
        ):
            return httpx.Response(401, json={"error": "invalid signature"})
        if request.method == "POST":
            payload = json.loads(body)
            recipient = payload["recipient"]
            if recipient in self.unreachable:
                raise httpx.ConnectError("connection refused", request=request)
            if recipient in self.rejected:
                return httpx.Response(400, json={"error": self.rejected[recipient]})
            key = payload["idempotencyKey"]
            if key in self.accepted:
                return httpx.Response(409, json={"error": "duplicate order", "ref": self.accepted[key]})
            ref = f"SUP-{next(self._refs)}"
            self.accepted[key] = ref
            self.statuses[ref] = "pending"
            return httpx.Response(201, json={"ref": ref, "status": "pending", "recipient": recipient})
        if request.url.path == "/api/v1/balance":
            return httpx.Response(200, json={"balance": "120.00", "currency": "GHS"})
        ref = request.url.path.rsplit("/", 1)[-1]
        if ref not in self.statuses:
            return httpx.Response(404, json={"error": "order not found"})
        return httpx.Response(200, json={"ref": ref, "status": self.statuses[ref]})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        environment="test",
        database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'settlement.db'}"),
        paystack=PaystackSettings(secret_key=PAYSTACK_SECRET),
        supplier=SupplierSettings(api_key="", api_secret=""),
        settlement=SettlementSettings(verify_retry_delay=0, sweep_request_delay=0),
        fulfillment=FulfillmentSettings(workers=2, max_attempts=3, retry_base_delay=0.01),
        scheduler=SchedulerSettings(enabled=False),
    )


@pytest_asyncio.fixture
async def database(settings: Settings):
    db = Database.from_settings(settings)
    await db.create_all()
    try:
        yield db
    finally:
        await db.dispose()


@pytest_asyncio.fixture
async def container(settings: Settings, database: Database, upstream: FakeUpstream, clock: FakeClock):
    http = httpx.AsyncClient(transport=httpx.MockTransport(upstream.handle))
    app_container = ApplicationContainer.build(settings, database=database, http=http, clock=clock)
    try:
        yield app_container
    finally:
        await app_container.queue.stop()
        await http.aclose()


@pytest_asyncio.fixture
async def session(database: Database):
    async with database.session() as db_session:
        yield db_session


@pytest_asyncio.fixture
async def provider(database: Database) -> ExternalProvider:
    async with database.session() as db_session:
        row = ExternalProvider(
            name="SkyTech",
            base_url=f"https://{SUPPLIER_HOST}",
            api_key="supplier-key",
            api_secret=SUPPLIER_SECRET,
            network_mappings=json.dumps({"mtn": "MTN", "telecel": "TELECEL"}),
            is_default=True,
            is_active=True,
        )
        db_session.add(row)
    return row


@pytest_asyncio.fixture
async def bundle(database: Database) -> Product:
    """MTN 1GB priced at 3.00 for everyone without a better price."""
    async with database.session() as db_session:
        product = Product(
            product_type=ProductType.DATA_BUNDLE,
            name="MTN 1GB",
            network="mtn",
            data_amount="1GB",
            base_price_minor=280,
            is_active=True,
        )
        db_session.add(product)
        await db_session.flush()
        db_session.add(AdminBasePrice(product_id=product.id, price_minor=300))
    return product


@pytest_asyncio.fixture
async def checker(database: Database) -> Product:
    async with database.session() as db_session:
        product = Product(
            product_type=ProductType.RESULT_CHECKER,
            name="WAEC Result Checker",
            base_price_minor=1500,
            is_active=True,
        )
        db_session.add(product)
        await db_session.flush()
        for index in range(2):
            db_session.add(
                ResultCheckerStock(product_id=product.id, serial_number=f"SN-{index}", pin=f"PIN-{index}")
            )
    return product


class Seeder:
    """Writes reference data straight through the ORM."""

    def __init__(self, database: Database) -> None:
        self.database = database

    async def reseller(self, user_id: str, *, role: BuyerRole = BuyerRole.AGENT, approved: bool = True) -> BuyerContext:
        async with self.database.session() as db_session:
            reseller = Reseller(user_id=user_id, role=role, is_approved=approved, storefront_slug=f"shop-{user_id}")
            db_session.add(reseller)
            await db_session.flush()
            reseller_id = reseller.id
        return BuyerContext(user_id=user_id, role=role, reseller_id=reseller_id, is_approved=approved)

    async def custom_price(self, product_id: str, buyer: BuyerContext, price_minor: int) -> None:
        assert buyer.reseller_id is not None
        async with self.database.session() as db_session:
            db_session.add(
                CustomPrice(product_id=product_id, owner_id=buyer.reseller_id, role=buyer.role, price_minor=price_minor)
            )

    async def role_price(self, product_id: str, role: BuyerRole, price_minor: int) -> None:
        async with self.database.session() as db_session:
            db_session.add(RoleBasePrice(product_id=product_id, role=role, price_minor=price_minor))

    async def wallet(self, account_id: str, balance_minor: int) -> None:
        async with self.database.session() as db_session:
            db_session.add(Wallet(account_id=account_id, balance_minor=balance_minor, currency="GHS"))


@pytest.fixture
def seed(database: Database) -> Seeder:
    return Seeder(database)
