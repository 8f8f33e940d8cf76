"""Administrative endpoints: queue state, order corrections, payouts and providers."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from settlement.core.container import ApplicationContainer
from settlement.core.security import get_current_admin
from settlement.interfaces.http.deps import get_container, get_db_session
from settlement.interfaces.http.errors import http_error
from settlement.modules.common import SettlementError, format_minor
from settlement.modules.providers import ProviderCredentials, ProviderService
from settlement.schemas import (
    CancelOrderRequest,
    DeliveryStatusUpdate,
    OrderResponse,
    ProviderBalanceResponse,
    ProviderResponse,
    PurgeResponse,
    QueueStatsResponse,
    RefundResponse,
    RejectWithdrawalRequest,
    WithdrawalResponse,
)

router = APIRouter(dependencies=[Depends(get_current_admin)])


def _provider_response(provider: ProviderCredentials) -> ProviderResponse:
    return ProviderResponse(
        id=provider.id,
        name=provider.name,
        base_url=provider.base_url,
        is_default=provider.is_default,
        network_mappings=dict(provider.network_mappings),
    )


@router.get("/fulfillment/queue", response_model=QueueStatsResponse, summary="Fulfillment queue state")
async def fulfillment_queue(container: ApplicationContainer = Depends(get_container)) -> QueueStatsResponse:
    return QueueStatsResponse.from_domain(container.queue.stats())


@router.post("/orders/{reference}/refund", response_model=RefundResponse, summary="Refund an order")
async def refund_order(
    reference: str = Path(..., min_length=4, max_length=64),
    container: ApplicationContainer = Depends(get_container),
) -> RefundResponse:
    try:
        result = await container.admin.refund(reference)
    except SettlementError as exc:
        raise http_error(exc) from exc
    return RefundResponse(
        order=OrderResponse.from_domain(result.order),
        wallet_credited=result.wallet_credited,
        wallet_balance=format_minor(result.posting.wallet.balance_minor) if result.posting else None,
    )


@router.post("/orders/{reference}/cancel", response_model=OrderResponse, summary="Cancel an order")
async def cancel_order(
    payload: CancelOrderRequest,
    reference: str = Path(..., min_length=4, max_length=64),
    container: ApplicationContainer = Depends(get_container),
) -> OrderResponse:
    try:
        order = await container.admin.cancel(reference, payload.reason)
    except SettlementError as exc:
        raise http_error(exc) from exc
    return OrderResponse.from_domain(order)


@router.patch("/orders/{reference}/delivery-status", response_model=OrderResponse, summary="Override delivery status")
async def override_delivery_status(
    payload: DeliveryStatusUpdate,
    reference: str = Path(..., min_length=4, max_length=64),
    container: ApplicationContainer = Depends(get_container),
) -> OrderResponse:
    try:
        result = await container.admin.override_delivery_status(reference, payload.delivery_status)
    except SettlementError as exc:
        raise http_error(exc) from exc
    return OrderResponse.from_domain(result.rollup.order)


@router.delete("/orders/resolved", response_model=PurgeResponse, summary="Purge old resolved orders")
async def purge_resolved_orders(
    older_than_days: int = Query(30, ge=1, le=3650),
    container: ApplicationContainer = Depends(get_container),
) -> PurgeResponse:
    deleted = await container.admin.purge_resolved(older_than_days)
    return PurgeResponse(deleted=deleted)


@router.post("/withdrawals/{withdrawal_id}/pay", response_model=WithdrawalResponse, summary="Pay out a withdrawal")
async def pay_withdrawal(
    withdrawal_id: str = Path(..., min_length=1, max_length=36),
    container: ApplicationContainer = Depends(get_container),
) -> WithdrawalResponse:
    try:
        withdrawal = await container.withdrawals.pay(withdrawal_id)
    except SettlementError as exc:
        raise http_error(exc) from exc
    return WithdrawalResponse.from_domain(withdrawal)


@router.post("/withdrawals/{withdrawal_id}/reject", response_model=WithdrawalResponse, summary="Reject a withdrawal")
async def reject_withdrawal(
    payload: RejectWithdrawalRequest,
    withdrawal_id: str = Path(..., min_length=1, max_length=36),
    container: ApplicationContainer = Depends(get_container),
) -> WithdrawalResponse:
    try:
        withdrawal = await container.withdrawals.reject(withdrawal_id, payload.reason)
    except SettlementError as exc:
        raise http_error(exc) from exc
    return WithdrawalResponse.from_domain(withdrawal)


@router.get("/providers", response_model=list[ProviderResponse], summary="Active supply providers")
async def list_providers(
    db: AsyncSession = Depends(get_db_session),
    container: ApplicationContainer = Depends(get_container),
) -> list[ProviderResponse]:
    providers = await ProviderService.with_session(db, container.settings.supplier).list_active()
    return [_provider_response(provider) for provider in providers]


@router.post("/providers/{provider_id}/default", response_model=ProviderResponse, summary="Make a provider the default")
async def set_default_provider(
    provider_id: str = Path(..., min_length=1, max_length=36),
    db: AsyncSession = Depends(get_db_session),
    container: ApplicationContainer = Depends(get_container),
) -> ProviderResponse:
    try:
        provider = await ProviderService.with_session(db, container.settings.supplier).set_default(provider_id)
    except SettlementError as exc:
        raise http_error(exc) from exc
    return _provider_response(provider)


@router.get("/providers/{provider_id}/balance", response_model=ProviderBalanceResponse, summary="Provider balance")
async def provider_balance(
    provider_id: str = Path(..., min_length=1, max_length=36),
    db: AsyncSession = Depends(get_db_session),
    container: ApplicationContainer = Depends(get_container),
) -> ProviderBalanceResponse:
    try:
        provider = await ProviderService.with_session(db, container.settings.supplier).get(provider_id)
        response = await container.supplier.get_balance(provider)
    except SettlementError as exc:
        raise http_error(exc) from exc
    return ProviderBalanceResponse(provider_id=provider.id, status_code=response.status_code, data=response.data)
