"""Tiered price resolution.

A reseller's price walks the chain custom -> role base -> admin base -> the
catalog's own base price, taking the first tier that is set. The reseller's
cost basis walks the same chain without the custom tier. Everyone else pays
the admin base price and earns no margin.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from settlement.db.models import Product as ProductModel
from settlement.infrastructure.database.repositories.pricing_repository import SqlPricingRepository
from settlement.modules.common.enums import BuyerRole

from .exceptions import PriceUnavailableError, PricingError, ProductNotFoundError
from .models import BuyerContext, LineRequest, PricedLine, PricedOrder, PriceQuote, PriceSource, ProductInfo
from .repository import PricingRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PriceResolver:
    repository: PricingRepository

    @classmethod
    def with_session(cls, session: AsyncSession) -> "PriceResolver":
        return cls(SqlPricingRepository(session))

    async def buyer_context(self, user_id: Optional[str], role: BuyerRole) -> BuyerContext:
        """Attach storefront ownership to an authenticated principal."""
        if user_id is None:
            return BuyerContext.guest()
        if not role.is_reseller:
            return BuyerContext(user_id=user_id, role=role)
        reseller = await self.repository.get_reseller_by_user(user_id)
        if reseller is None:
            return BuyerContext(user_id=user_id, role=role)
        return BuyerContext(
            user_id=user_id,
            role=role,
            reseller_id=reseller.id,
            is_approved=bool(reseller.is_approved),
        )

    async def get_product(self, product_id: str) -> ProductInfo:
        product = await self.repository.get_product(product_id)
        if product is None or not product.is_active:
            raise ProductNotFoundError(product_id)
        return self._to_domain(product)

    async def resolve(self, product_id: str, buyer: BuyerContext) -> PriceQuote:
        product = await self.get_product(product_id)
        admin_base = await self.repository.get_admin_base_price(product_id)
        fallback = admin_base if admin_base is not None else product.base_price_minor
        fallback_source = PriceSource.ADMIN_BASE if admin_base is not None else PriceSource.PRODUCT_BASE

        if not buyer.prices_as_reseller:
            if fallback is None:
                raise PriceUnavailableError(product_id)
            return PriceQuote(product, fallback, fallback, fallback_source)

        role_base = await self.repository.get_role_base_price(product_id, buyer.role)
        base_cost = role_base if role_base is not None else fallback
        base_source = PriceSource.ROLE_BASE if role_base is not None else fallback_source
        if base_cost is None:
            raise PriceUnavailableError(product_id)

        assert buyer.reseller_id is not None
        custom = await self.repository.get_custom_price(product_id, buyer.reseller_id, buyer.role)
        if custom is None:
            return PriceQuote(product, base_cost, base_cost, base_source)
        if custom < base_cost:
            logger.warning(
                "Custom price %s below %s base %s for product %s (reseller %s); margin clamped to zero",
                custom,
                buyer.role.value,
                base_cost,
                product_id,
                buyer.reseller_id,
            )
        return PriceQuote(product, custom, base_cost, PriceSource.CUSTOM)

    async def resolve_lines(self, lines: Iterable[LineRequest], buyer: BuyerContext) -> PricedOrder:
        quotes: dict[str, PriceQuote] = {}
        priced: list[PricedLine] = []
        for line in lines:
            if line.quantity < 1:
                raise ValueError(f"quantity must be positive, got {line.quantity}")
            quote = quotes.get(line.product_id)
            if quote is None:
                quote = await self.resolve(line.product_id, buyer)
                quotes[line.product_id] = quote
            priced.append(PricedLine(phone=line.phone, quantity=line.quantity, quote=quote))
        return PricedOrder(lines=tuple(priced))

    async def set_custom_price(self, product_id: str, buyer: BuyerContext, price_minor: int) -> PriceQuote:
        if not buyer.prices_as_reseller:
            raise PricingError("only approved resellers can set storefront prices")
        if price_minor <= 0:
            raise ValueError("price must be positive")
        await self.get_product(product_id)
        assert buyer.reseller_id is not None
        await self.repository.upsert_custom_price(product_id, buyer.reseller_id, buyer.role, price_minor)
        return await self.resolve(product_id, buyer)

    async def set_role_base_price(self, product_id: str, role: BuyerRole, price_minor: int) -> None:
        if not role.is_reseller:
            raise ValueError(f"role base prices apply to reseller roles only, got {role.value}")
        await self.get_product(product_id)
        await self.repository.upsert_role_base_price(product_id, role, price_minor)

    async def set_admin_base_price(self, product_id: str, price_minor: int) -> None:
        await self.get_product(product_id)
        await self.repository.upsert_admin_base_price(product_id, price_minor)

    @staticmethod
    def _to_domain(model: ProductModel) -> ProductInfo:
        return ProductInfo(
            id=model.id,
            product_type=model.product_type,
            name=model.name,
            network=model.network,
            data_amount=model.data_amount,
            base_price_minor=model.base_price_minor,
            is_active=bool(model.is_active),
        )
