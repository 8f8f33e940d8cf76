"""Payment gateway errors."""

from settlement.modules.common import SettlementError


class PaystackError(SettlementError):
    """Base error for Paystack operations."""


class PaystackInitializationError(PaystackError):
    """A checkout transaction could not be initialized."""


class PaystackVerificationError(PaystackError):
    """A transaction lookup failed at the transport or API level."""


class PaystackTransferError(PaystackError):
    """Recipient creation or transfer initiation failed."""
