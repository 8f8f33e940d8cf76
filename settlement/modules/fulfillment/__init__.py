"""Order fulfillment: signed supplier client, dispatcher and work queue."""

from .client import SupplierClient, canonical_body
from .dispatcher import FulfillmentDispatcher
from .exceptions import SupplierError, SupplierTransportError
from .models import PerItemResult, QueueStats, SupplierResponse, parse_capacity_mb
from .queue import FulfillmentJob, FulfillmentQueue
from .service import FulfillmentService, order_lock_key

__all__ = [
    "FulfillmentDispatcher",
    "FulfillmentJob",
    "FulfillmentQueue",
    "FulfillmentService",
    "PerItemResult",
    "QueueStats",
    "SupplierClient",
    "SupplierError",
    "SupplierResponse",
    "SupplierTransportError",
    "canonical_body",
    "order_lock_key",
    "parse_capacity_mb",
]
