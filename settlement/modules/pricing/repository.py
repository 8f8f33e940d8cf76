"""Repository protocol for the price chain."""

from __future__ import annotations

from typing import Protocol

from settlement.db.models import Product as ProductModel, Reseller as ResellerModel
from settlement.modules.common.enums import BuyerRole


class PricingRepository(Protocol):
    async def get_product(self, product_id: str) -> ProductModel | None:
        ...

    async def get_reseller_by_user(self, user_id: str) -> ResellerModel | None:
        ...

    async def get_custom_price(self, product_id: str, owner_id: str, role: BuyerRole) -> int | None:
        ...

    async def get_role_base_price(self, product_id: str, role: BuyerRole) -> int | None:
        ...

    async def get_admin_base_price(self, product_id: str) -> int | None:
        ...

    async def upsert_custom_price(self, product_id: str, owner_id: str, role: BuyerRole, price_minor: int) -> None:
        ...

    async def upsert_role_base_price(self, product_id: str, role: BuyerRole, price_minor: int) -> None:
        ...

    async def upsert_admin_base_price(self, product_id: str, price_minor: int) -> None:
        ...
