"""Reconciliation of provider outcomes: verify, webhooks and the periodic sweep."""

from .exceptions import WebhookPayloadError, WebhookSignatureError
from .models import SweepReport, WebhookResult
from .service import ReconciliationService
from .status_map import PROVIDER_STATUSES, ProviderOutcome, delivery_status_for, map_provider_status

__all__ = [
    "PROVIDER_STATUSES",
    "ProviderOutcome",
    "ReconciliationService",
    "SweepReport",
    "WebhookPayloadError",
    "WebhookResult",
    "WebhookSignatureError",
    "delivery_status_for",
    "map_provider_status",
]
