"""Buyer wallet: balance, history, wallet-funded purchases and top-ups."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from settlement.core.container import ApplicationContainer
from settlement.core.security import Principal, get_current_principal
from settlement.interfaces.http.deps import get_container, get_db_session
from settlement.interfaces.http.deps.buyer import get_authenticated_buyer
from settlement.interfaces.http.errors import http_error
from settlement.modules.common import SettlementError, format_minor, to_minor
from settlement.modules.common.enums import PaymentMethod
from settlement.modules.ledger import LedgerService
from settlement.modules.pricing import BuyerContext
from settlement.schemas import (
    CheckoutRequestBody,
    CheckoutResponse,
    TopupInitializeRequest,
    TopupInitializeResponse,
    TopupResponse,
    TopupVerifyResponse,
    WalletResponse,
    WalletTransactionListResponse,
    WalletTransactionResponse,
)

from .checkout import to_checkout_request, to_checkout_response

router = APIRouter()


def _ledger(db: AsyncSession, container: ApplicationContainer) -> LedgerService:
    return LedgerService.with_session(db, currency=container.settings.currency, clock=container.clock)


@router.get("", response_model=WalletResponse, summary="Current wallet balance")
async def wallet_snapshot(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
    container: ApplicationContainer = Depends(get_container),
) -> WalletResponse:
    wallet = await _ledger(db, container).ensure_wallet(principal.user_id)
    return WalletResponse.from_domain(wallet)


@router.get("/transactions", response_model=WalletTransactionListResponse, summary="Wallet history")
async def wallet_transactions(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
    container: ApplicationContainer = Depends(get_container),
) -> WalletTransactionListResponse:
    entries = await _ledger(db, container).list_wallet_entries(principal.user_id, limit=limit, offset=offset)
    return WalletTransactionListResponse(
        total=len(entries),
        transactions=[WalletTransactionResponse.from_domain(entry) for entry in entries],
    )


@router.post("/pay", response_model=CheckoutResponse, summary="Buy with the wallet balance")
async def wallet_pay(
    payload: CheckoutRequestBody,
    buyer: BuyerContext = Depends(get_authenticated_buyer),
    container: ApplicationContainer = Depends(get_container),
) -> CheckoutResponse:
    try:
        result = await container.checkout.checkout(to_checkout_request(payload), buyer, PaymentMethod.WALLET)
    except SettlementError as exc:
        raise http_error(exc) from exc
    return to_checkout_response(result)


@router.post("/topup/initialize", response_model=TopupInitializeResponse, summary="Start a wallet top-up")
async def initialize_topup(
    payload: TopupInitializeRequest,
    principal: Principal = Depends(get_current_principal),
    container: ApplicationContainer = Depends(get_container),
) -> TopupInitializeResponse:
    email = payload.email or principal.email
    if not email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="An email address is required")
    try:
        checkout = await container.topups.initialize(principal.user_id, to_minor(payload.amount), email=email)
    except SettlementError as exc:
        raise http_error(exc) from exc
    return TopupInitializeResponse(
        topup=TopupResponse.from_domain(checkout.topup),
        authorization_url=checkout.authorization_url,
        access_code=checkout.access_code,
    )


@router.get("/topup/verify/{reference}", response_model=TopupVerifyResponse, summary="Confirm a top-up")
async def verify_topup(
    reference: str = Path(..., min_length=4, max_length=64),
    principal: Principal = Depends(get_current_principal),
    container: ApplicationContainer = Depends(get_container),
) -> TopupVerifyResponse:
    topup = await container.topups.get(reference)
    if topup is None or topup.account_id != principal.user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Top-up not found")
    try:
        confirmation = await container.topups.confirm(reference)
    except SettlementError as exc:
        raise http_error(exc) from exc
    return TopupVerifyResponse(
        topup=TopupResponse.from_domain(confirmation.topup),
        credited=confirmation.credited,
        balance=format_minor(confirmation.balance_minor) if confirmation.balance_minor is not None else None,
    )
