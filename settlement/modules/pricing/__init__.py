"""Tiered price resolution for buyers and resellers."""

from .exceptions import PriceUnavailableError, PricingError, ProductNotFoundError
from .models import BuyerContext, LineRequest, PricedLine, PricedOrder, PriceQuote, PriceSource, ProductInfo
from .service import PriceResolver

__all__ = [
    "BuyerContext",
    "LineRequest",
    "PricedLine",
    "PricedOrder",
    "PriceQuote",
    "PriceSource",
    "ProductInfo",
    "PriceResolver",
    "PricingError",
    "PriceUnavailableError",
    "ProductNotFoundError",
]
