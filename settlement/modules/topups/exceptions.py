"""Top-up errors."""

from settlement.modules.common import SettlementError


class TopupError(SettlementError):
    """Base class for top-up errors."""


class TopupNotFoundError(TopupError):
    def __init__(self, reference: str) -> None:
        super().__init__(f"Top-up not found: {reference}")
        self.reference = reference


class TopupAmountMismatchError(TopupError):
    def __init__(self, reference: str, expected_minor: int, paid_minor: int) -> None:
        super().__init__(f"Top-up {reference} paid {paid_minor}, expected {expected_minor}")
        self.reference = reference
        self.expected_minor = expected_minor
        self.paid_minor = paid_minor
