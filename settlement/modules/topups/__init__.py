"""Paystack-funded wallet top-ups."""

from .exceptions import TopupAmountMismatchError, TopupError, TopupNotFoundError
from .models import Topup, TopupCheckout, TopupConfirmation
from .service import TopupService

__all__ = [
    "Topup",
    "TopupAmountMismatchError",
    "TopupCheckout",
    "TopupConfirmation",
    "TopupError",
    "TopupNotFoundError",
    "TopupService",
]
