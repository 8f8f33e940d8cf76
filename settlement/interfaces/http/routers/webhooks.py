"""Asynchronous reconciliation entry points for Paystack and the supply provider."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from settlement.core.container import ApplicationContainer
from settlement.interfaces.http.deps import get_container
from settlement.interfaces.http.errors import http_error
from settlement.modules.common import SettlementError
from settlement.schemas import WebhookAck

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/paystack/webhook", response_model=WebhookAck, summary="Paystack event webhook")
async def paystack_webhook(
    request: Request,
    x_paystack_signature: Optional[str] = Header(default=None),
    container: ApplicationContainer = Depends(get_container),
) -> WebhookAck:
    raw_body = await request.body()
    try:
        result = await container.reconciliation.handle_paystack_webhook(raw_body, x_paystack_signature)
    except SettlementError as exc:
        raise http_error(exc) from exc
    return WebhookAck(event=result.event, outcome=result.outcome)


@router.post("/webhooks/supplier", response_model=WebhookAck, summary="Supply provider status webhook")
async def supplier_webhook(
    request: Request,
    x_timestamp: Optional[str] = Header(default=None),
    x_signature: Optional[str] = Header(default=None),
    container: ApplicationContainer = Depends(get_container),
) -> WebhookAck:
    raw_body = await request.body()
    try:
        order = await container.reconciliation.handle_supplier_webhook(
            raw_body,
            path=request.url.path,
            timestamp=x_timestamp,
            signature=x_signature,
        )
    except SettlementError as exc:
        raise http_error(exc) from exc
    if order is None:
        return WebhookAck(outcome="ignored")
    return WebhookAck(outcome=f"order_{order.status.value}")
