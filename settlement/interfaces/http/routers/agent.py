"""Reseller profit wallet and withdrawals."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from settlement.core.container import ApplicationContainer
from settlement.core.security import Principal, get_current_reseller
from settlement.interfaces.http.deps import get_container
from settlement.interfaces.http.deps.buyer import get_authenticated_buyer
from settlement.interfaces.http.errors import http_error
from settlement.modules.common import SettlementError, to_minor
from settlement.modules.pricing import BuyerContext
from settlement.modules.withdrawals import PayoutAccount
from settlement.schemas import (
    ProfitWalletResponse,
    WithdrawalCreateRequest,
    WithdrawalListResponse,
    WithdrawalResponse,
)

router = APIRouter()


async def get_reseller_id(
    _: Principal = Depends(get_current_reseller),
    buyer: BuyerContext = Depends(get_authenticated_buyer),
) -> str:
    if buyer.reseller_id is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No storefront registered for this account")
    return buyer.reseller_id


@router.get("/profit", response_model=ProfitWalletResponse, summary="Profit balance")
async def profit_wallet(
    reseller_id: str = Depends(get_reseller_id),
    container: ApplicationContainer = Depends(get_container),
) -> ProfitWalletResponse:
    wallet, outstanding = await container.withdrawals.profit_summary(reseller_id)
    return ProfitWalletResponse.from_domain(wallet, outstanding)


@router.get("/withdrawals", response_model=WithdrawalListResponse, summary="Withdrawal history")
async def list_withdrawals(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    reseller_id: str = Depends(get_reseller_id),
    container: ApplicationContainer = Depends(get_container),
) -> WithdrawalListResponse:
    rows = await container.withdrawals.list_for_reseller(reseller_id, limit, offset)
    return WithdrawalListResponse(total=len(rows), withdrawals=[WithdrawalResponse.from_domain(row) for row in rows])


@router.post(
    "/withdrawals",
    response_model=WithdrawalResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a profit withdrawal",
)
async def request_withdrawal(
    payload: WithdrawalCreateRequest,
    reseller_id: str = Depends(get_reseller_id),
    container: ApplicationContainer = Depends(get_container),
) -> WithdrawalResponse:
    account = PayoutAccount(
        account_name=payload.account_name,
        account_number=payload.account_number,
        bank_code=payload.bank_code,
        recipient_type=payload.recipient_type,
    )
    try:
        withdrawal = await container.withdrawals.request(reseller_id, to_minor(payload.amount), account)
    except SettlementError as exc:
        raise http_error(exc) from exc
    return WithdrawalResponse.from_domain(withdrawal)
