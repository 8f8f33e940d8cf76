"""Buyer identity resolved for pricing."""

from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from settlement.core.security import Principal, get_current_principal, get_optional_principal
from settlement.modules.pricing import BuyerContext, PriceResolver

from .container import get_db_session


async def get_buyer_context(
    principal: Optional[Principal] = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_db_session),
) -> BuyerContext:
    if principal is None:
        return BuyerContext.guest()
    return await PriceResolver.with_session(db).buyer_context(principal.user_id, principal.role)


async def get_authenticated_buyer(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> BuyerContext:
    return await PriceResolver.with_session(db).buyer_context(principal.user_id, principal.role)


__all__ = ["get_authenticated_buyer", "get_buyer_context"]
