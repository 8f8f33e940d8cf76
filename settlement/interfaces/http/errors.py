"""Translation of domain errors into HTTP responses."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, status

from settlement.modules.checkout import AuthenticationRequiredError, CheckoutError
from settlement.modules.common import PhoneValidationError, SettlementError, format_minor
from settlement.modules.cooldown import CooldownActiveError
from settlement.modules.fulfillment import SupplierError
from settlement.modules.ledger import InsufficientFundsError, InsufficientProfitError, LedgerInvariantError
from settlement.modules.orders import InvalidTransitionError, OrderNotFoundError
from settlement.modules.payments import PaystackError
from settlement.modules.pricing import PriceUnavailableError, ProductNotFoundError
from settlement.modules.providers import NoProviderConfiguredError, ProviderNotFoundError
from settlement.modules.reconciliation import WebhookPayloadError, WebhookSignatureError
from settlement.modules.topups import TopupAmountMismatchError, TopupNotFoundError
from settlement.modules.withdrawals import WithdrawalNotFoundError, WithdrawalStateError

logger = logging.getLogger(__name__)


def http_error(exc: SettlementError) -> HTTPException:
    """Status code and body for a domain error; callers raise it ``from exc``."""
    detail: Any = str(exc)
    match exc:
        case AuthenticationRequiredError() | WebhookSignatureError():
            code = status.HTTP_401_UNAUTHORIZED
        case PhoneValidationError() | PriceUnavailableError() | CheckoutError():
            code = status.HTTP_400_BAD_REQUEST
        case InsufficientFundsError():
            code = status.HTTP_402_PAYMENT_REQUIRED
            detail = {
                "message": str(exc),
                "balance": format_minor(exc.balance_minor),
                "required": format_minor(exc.required_minor),
            }
        case (
            ProductNotFoundError()
            | OrderNotFoundError()
            | TopupNotFoundError()
            | WithdrawalNotFoundError()
            | ProviderNotFoundError()
        ):
            code = status.HTTP_404_NOT_FOUND
        case InvalidTransitionError() | WithdrawalStateError() | InsufficientProfitError() | TopupAmountMismatchError():
            code = status.HTTP_409_CONFLICT
        case WebhookPayloadError():
            code = status.HTTP_422_UNPROCESSABLE_ENTITY
        case CooldownActiveError():
            code = status.HTTP_429_TOO_MANY_REQUESTS
            detail = {
                "message": str(exc),
                "phone": exc.phone,
                "remaining_minutes": exc.remaining_minutes,
                "remaining_seconds": exc.remaining_seconds,
            }
        case PaystackError() | SupplierError():
            code = status.HTTP_502_BAD_GATEWAY
        case NoProviderConfiguredError():
            code = status.HTTP_503_SERVICE_UNAVAILABLE
        case LedgerInvariantError():
            logger.error("Ledger invariant violated: %s", exc)
            code = status.HTTP_500_INTERNAL_SERVER_ERROR
            detail = "Settlement invariant violated"
        case _:
            code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=detail)


__all__ = ["http_error"]
