"""Order lifecycle: persistence, transitions and delivery rollup."""

from .exceptions import InvalidTransitionError, OrderError, OrderNotFoundError
from .models import NewOrder, NewOrderItem, OrderItemSnapshot, OrderSnapshot, RollupResult
from .service import OrderService, idempotency_key, order_lock_key

__all__ = [
    "InvalidTransitionError",
    "NewOrder",
    "NewOrderItem",
    "OrderError",
    "OrderItemSnapshot",
    "OrderNotFoundError",
    "OrderService",
    "OrderSnapshot",
    "RollupResult",
    "idempotency_key",
    "order_lock_key",
]
