"""Checkout errors."""

from settlement.modules.common import SettlementError


class CheckoutError(SettlementError):
    """The purchase request cannot be turned into an order."""


class MixedProductTypesError(CheckoutError):
    def __init__(self) -> None:
        super().__init__("An order cannot mix data bundles and result checkers")


class AuthenticationRequiredError(CheckoutError):
    def __init__(self) -> None:
        super().__init__("Wallet payments require a signed-in buyer")
