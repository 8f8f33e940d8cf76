"""Single entry point that turns a purchase request into a priced order."""

from .exceptions import AuthenticationRequiredError, CheckoutError, MixedProductTypesError
from .models import CheckoutRequest, CheckoutResult
from .service import CheckoutService

__all__ = [
    "AuthenticationRequiredError",
    "CheckoutError",
    "CheckoutRequest",
    "CheckoutResult",
    "CheckoutService",
    "MixedProductTypesError",
]
