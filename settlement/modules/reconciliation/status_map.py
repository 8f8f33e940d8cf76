"""Provider status vocabulary shared by every reconciliation driver."""

from __future__ import annotations

import enum
from typing import assert_never

from settlement.modules.common.enums import DeliveryStatus


class ProviderOutcome(str, enum.Enum):
    DELIVERED = "delivered"
    FAILED = "failed"
    IN_PROGRESS = "in_progress"


PROVIDER_STATUSES: dict[str, ProviderOutcome] = {
    "completed": ProviderOutcome.DELIVERED,
    "delivered": ProviderOutcome.DELIVERED,
    "success": ProviderOutcome.DELIVERED,
    "failed": ProviderOutcome.FAILED,
    "error": ProviderOutcome.FAILED,
    "processing": ProviderOutcome.IN_PROGRESS,
    "pending": ProviderOutcome.IN_PROGRESS,
    "queued": ProviderOutcome.IN_PROGRESS,
}


def map_provider_status(raw: str | None) -> ProviderOutcome | None:
    """``None`` for anything the provider may say that we do not understand."""
    return PROVIDER_STATUSES.get((raw or "").strip().lower())


def delivery_status_for(outcome: ProviderOutcome) -> DeliveryStatus:
    match outcome:
        case ProviderOutcome.DELIVERED:
            return DeliveryStatus.DELIVERED
        case ProviderOutcome.FAILED:
            return DeliveryStatus.FAILED
        case ProviderOutcome.IN_PROGRESS:
            return DeliveryStatus.PROCESSING
        case _:
            assert_never(outcome)
