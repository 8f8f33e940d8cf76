"""Synchronous reconciliation of a single order."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Path

from settlement.core.container import ApplicationContainer
from settlement.interfaces.http.deps import get_container
from settlement.interfaces.http.errors import http_error
from settlement.modules.common import SettlementError
from settlement.schemas import OrderResponse

router = APIRouter()


@router.get("/verify/{reference}", response_model=OrderResponse, summary="Verify payment and delivery")
async def verify_transaction(
    reference: str = Path(..., min_length=4, max_length=64),
    container: ApplicationContainer = Depends(get_container),
) -> OrderResponse:
    try:
        order = await container.reconciliation.verify(reference)
    except SettlementError as exc:
        raise http_error(exc) from exc
    return OrderResponse.from_domain(order)
