"""Order lifecycle rules.

``status`` moves PENDING -> CONFIRMED -> PROCESSING -> COMPLETED | FAILED;
CANCELLED and REFUNDED are administrative exits. ``delivery_status`` is the
finer projection folded from the line items by :func:`rollup`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, assert_never

from settlement.modules.common.enums import DeliveryStatus, OrderStatus

from .exceptions import InvalidTransitionError
from .models import OrderItemSnapshot

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.FAILED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset(
        {
            OrderStatus.PROCESSING,
            OrderStatus.COMPLETED,
            OrderStatus.FAILED,
            OrderStatus.CANCELLED,
            OrderStatus.REFUNDED,
        }
    ),
    OrderStatus.PROCESSING: frozenset({OrderStatus.COMPLETED, OrderStatus.FAILED, OrderStatus.REFUNDED}),
    OrderStatus.COMPLETED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.FAILED: frozenset({OrderStatus.REFUNDED, OrderStatus.CANCELLED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in TRANSITIONS[current]


def ensure_transition(current: OrderStatus, target: OrderStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)


def is_reconciled(status: OrderStatus) -> bool:
    """True once provider events for the order must be ignored."""
    match status:
        case OrderStatus.COMPLETED | OrderStatus.FAILED | OrderStatus.CANCELLED | OrderStatus.REFUNDED:
            return True
        case OrderStatus.PENDING | OrderStatus.CONFIRMED | OrderStatus.PROCESSING:
            return False
        case _:
            assert_never(status)


def awaits_fulfillment(status: OrderStatus) -> bool:
    match status:
        case OrderStatus.CONFIRMED | OrderStatus.PROCESSING:
            return True
        case (
            OrderStatus.PENDING
            | OrderStatus.COMPLETED
            | OrderStatus.FAILED
            | OrderStatus.CANCELLED
            | OrderStatus.REFUNDED
        ):
            return False
        case _:
            assert_never(status)


@dataclass(slots=True, frozen=True)
class DeliveryRollup:
    delivery_status: DeliveryStatus
    outcome: Optional[OrderStatus]
    failed: tuple[OrderItemSnapshot, ...] = ()


def rollup(items: Sequence[OrderItemSnapshot]) -> DeliveryRollup:
    """Fold item states into the order's delivery status and terminal outcome."""
    if not items:
        return DeliveryRollup(DeliveryStatus.PENDING, None)
    if all(item.delivery_status is DeliveryStatus.DELIVERED for item in items):
        return DeliveryRollup(DeliveryStatus.DELIVERED, OrderStatus.COMPLETED)
    failed = tuple(item for item in items if item.delivery_status is DeliveryStatus.FAILED and not item.retryable)
    if all(item.is_terminal for item in items) and failed:
        return DeliveryRollup(DeliveryStatus.FAILED, OrderStatus.FAILED, failed)
    if any(item.delivery_status is not DeliveryStatus.PENDING for item in items):
        return DeliveryRollup(DeliveryStatus.PROCESSING, None)
    return DeliveryRollup(DeliveryStatus.PENDING, None)


def describe_failures(items: Iterable[OrderItemSnapshot]) -> str:
    parts = [f"{item.phone} ({item.failure_reason or 'delivery failed'})" for item in items]
    return "Delivery failed for: " + "; ".join(parts)


__all__ = [
    "TRANSITIONS",
    "DeliveryRollup",
    "awaits_fulfillment",
    "can_transition",
    "describe_failures",
    "ensure_transition",
    "is_reconciled",
    "rollup",
]
