"""Pricing errors."""

from settlement.modules.common import SettlementError


class PricingError(SettlementError):
    """Base class for price resolution failures."""


class ProductNotFoundError(PricingError):
    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product not found or inactive: {product_id}")
        self.product_id = product_id


class PriceUnavailableError(PricingError):
    """No tier of the price chain yields a price for this product."""

    def __init__(self, product_id: str) -> None:
        super().__init__(f"No price configured for product: {product_id}")
        self.product_id = product_id
