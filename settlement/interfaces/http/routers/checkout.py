"""Gateway-funded checkout, open to guests."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from settlement.core.container import ApplicationContainer
from settlement.interfaces.http.deps import get_container
from settlement.interfaces.http.deps.buyer import get_buyer_context
from settlement.interfaces.http.errors import http_error
from settlement.modules.checkout import CheckoutRequest, CheckoutResult
from settlement.modules.common import SettlementError, format_minor
from settlement.modules.common.enums import PaymentMethod
from settlement.modules.pricing import BuyerContext, LineRequest
from settlement.schemas import CheckoutRequestBody, CheckoutResponse, OrderResponse

router = APIRouter()


def to_checkout_request(payload: CheckoutRequestBody) -> CheckoutRequest:
    lines = tuple(
        LineRequest(phone=line.phone, product_id=line.product_id, quantity=line.quantity)
        for line in payload.lines()
    )
    return CheckoutRequest(
        lines=lines,
        customer_phone=payload.phone,
        customer_email=payload.email,
        callback_url=payload.callback_url,
    )


def to_checkout_response(result: CheckoutResult) -> CheckoutResponse:
    return CheckoutResponse(
        order=OrderResponse.from_domain(result.order),
        authorization_url=result.payment.authorization_url if result.payment else None,
        access_code=result.payment.access_code if result.payment else None,
        wallet_balance=format_minor(result.wallet.balance_minor) if result.wallet else None,
        queued=result.queued,
    )


@router.post("/initialize", response_model=CheckoutResponse, summary="Start a Paystack checkout")
async def initialize_checkout(
    payload: CheckoutRequestBody,
    buyer: BuyerContext = Depends(get_buyer_context),
    container: ApplicationContainer = Depends(get_container),
) -> CheckoutResponse:
    try:
        result = await container.checkout.checkout(to_checkout_request(payload), buyer, PaymentMethod.PAYSTACK)
    except SettlementError as exc:
        raise http_error(exc) from exc
    return to_checkout_response(result)
