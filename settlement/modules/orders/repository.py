"""Repository protocol for order persistence."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Collection, Protocol, Sequence

from settlement.db.models import Order as OrderModel, OrderItem as OrderItemModel
from settlement.modules.common.enums import OrderStatus


class OrderRepository(Protocol):
    async def add(self, order: OrderModel) -> OrderModel:
        ...

    async def get_by_reference(self, reference: str) -> OrderModel | None:
        ...

    async def get_by_id(self, order_id: str) -> OrderModel | None:
        ...

    async def find_item_by_provider_reference(self, provider_reference: str) -> OrderItemModel | None:
        ...

    async def find_item_by_idempotency_key(self, idempotency_key: str) -> OrderItemModel | None:
        ...

    async def compare_and_set(self, reference: str, expected: Collection[OrderStatus], values: dict[str, Any]) -> bool:
        ...

    async def update_fields(self, reference: str, values: dict[str, Any]) -> None:
        ...

    async def update_item(self, item_id: str, values: dict[str, Any]) -> None:
        ...

    async def add_response_log(
        self,
        *,
        order_reference: str,
        recipient: str | None,
        source: str,
        http_status: int | None,
        body: str | None,
    ) -> None:
        ...

    async def list_by_status(
        self, statuses: Collection[OrderStatus], created_before: datetime, limit: int
    ) -> Sequence[OrderModel]:
        ...

    async def list_for_buyer(self, buyer_id: str, limit: int, offset: int) -> Sequence[OrderModel]:
        ...

    async def flag_permanently_failed(self, updated_before: datetime) -> int:
        ...

    async def delete_resolved(self, created_before: datetime) -> int:
        ...
