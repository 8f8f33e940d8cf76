"""Paystack payment gateway client."""

from .client import PaystackClient
from .exceptions import (
    PaystackError,
    PaystackInitializationError,
    PaystackTransferError,
    PaystackVerificationError,
)
from .models import PaystackResolvedAccount, PaystackSetupIntent, PaystackTransfer, PaystackVerification

__all__ = [
    "PaystackClient",
    "PaystackError",
    "PaystackInitializationError",
    "PaystackResolvedAccount",
    "PaystackSetupIntent",
    "PaystackTransfer",
    "PaystackTransferError",
    "PaystackVerification",
    "PaystackVerificationError",
]
