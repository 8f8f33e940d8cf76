"""SQLAlchemy implementation for the price chain"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from settlement.db.models import AdminBasePrice, CustomPrice, Product, Reseller, RoleBasePrice
from settlement.modules.common.enums import BuyerRole


class SqlPricingRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_product(self, product_id: str) -> Product | None:
        return await self.session.get(Product, product_id)

    async def get_reseller_by_user(self, user_id: str) -> Reseller | None:
        stmt = select(Reseller).where(Reseller.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_custom_price(self, product_id: str, owner_id: str, role: BuyerRole) -> int | None:
        stmt = select(CustomPrice.price_minor).where(
            CustomPrice.product_id == product_id,
            CustomPrice.owner_id == owner_id,
            CustomPrice.role == role,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_role_base_price(self, product_id: str, role: BuyerRole) -> int | None:
        stmt = select(RoleBasePrice.price_minor).where(
            RoleBasePrice.product_id == product_id,
            RoleBasePrice.role == role,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_admin_base_price(self, product_id: str) -> int | None:
        stmt = select(AdminBasePrice.price_minor).where(AdminBasePrice.product_id == product_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert_custom_price(self, product_id: str, owner_id: str, role: BuyerRole, price_minor: int) -> None:
        stmt = select(CustomPrice).where(
            CustomPrice.product_id == product_id,
            CustomPrice.owner_id == owner_id,
            CustomPrice.role == role,
        )
        row = (await self.session.execute(stmt)).scalars().first()
        if row is None:
            self.session.add(CustomPrice(product_id=product_id, owner_id=owner_id, role=role, price_minor=price_minor))
        else:
            row.price_minor = price_minor
        await self.session.flush()

    async def upsert_role_base_price(self, product_id: str, role: BuyerRole, price_minor: int) -> None:
        stmt = select(RoleBasePrice).where(RoleBasePrice.product_id == product_id, RoleBasePrice.role == role)
        row = (await self.session.execute(stmt)).scalars().first()
        if row is None:
            self.session.add(RoleBasePrice(product_id=product_id, role=role, price_minor=price_minor))
        else:
            row.price_minor = price_minor
        await self.session.flush()

    async def upsert_admin_base_price(self, product_id: str, price_minor: int) -> None:
        stmt = select(AdminBasePrice).where(AdminBasePrice.product_id == product_id)
        row = (await self.session.execute(stmt)).scalars().first()
        if row is None:
            self.session.add(AdminBasePrice(product_id=product_id, price_minor=price_minor))
        else:
            row.price_minor = price_minor
        await self.session.flush()
