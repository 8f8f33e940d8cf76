"""Reconciliation errors."""

from settlement.modules.common import SettlementError


class WebhookSignatureError(SettlementError):
    """A webhook body did not match its signature header."""


class WebhookPayloadError(SettlementError):
    """A signed webhook body could not be parsed."""
