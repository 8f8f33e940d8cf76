"""SQLAlchemy implementation for the provider registry"""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from settlement.db.models import ExternalProvider


class SqlProviderRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_active(self) -> Sequence[ExternalProvider]:
        stmt = (
            select(ExternalProvider)
            .where(ExternalProvider.is_active.is_(True))
            .order_by(ExternalProvider.created_at)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def get(self, provider_id: str) -> ExternalProvider | None:
        stmt = (
            select(ExternalProvider)
            .where(ExternalProvider.id == provider_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def create(
        self,
        *,
        name: str,
        base_url: str,
        api_key: str,
        api_secret: str,
        orders_path: str,
        network_mappings: str,
        is_default: bool,
    ) -> ExternalProvider:
        provider = ExternalProvider(
            name=name,
            base_url=base_url,
            api_key=api_key,
            api_secret=api_secret,
            orders_path=orders_path,
            network_mappings=network_mappings,
            is_default=is_default,
            is_active=True,
        )
        self.session.add(provider)
        await self.session.flush()
        return provider

    async def clear_defaults(self) -> None:
        stmt = (
            update(ExternalProvider)
            .where(ExternalProvider.is_default.is_(True))
            .values(is_default=False)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def mark_default(self, provider_id: str) -> bool:
        stmt = (
            update(ExternalProvider)
            .where(ExternalProvider.id == provider_id)
            .values(is_default=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1
