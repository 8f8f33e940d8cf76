"""Order lifecycle errors."""

from settlement.modules.common import SettlementError
from settlement.modules.common.enums import OrderStatus


class OrderError(SettlementError):
    """Base class for order lifecycle errors."""


class OrderNotFoundError(OrderError):
    def __init__(self, reference: str) -> None:
        super().__init__(f"Order not found: {reference}")
        self.reference = reference


class InvalidTransitionError(OrderError):
    def __init__(self, current: OrderStatus, target: OrderStatus) -> None:
        super().__init__(f"Illegal order transition {current.value} -> {target.value}")
        self.current = current
        self.target = target
