"""Supply provider registry."""

from .exceptions import NoProviderConfiguredError, ProviderError, ProviderNotFoundError
from .models import DEFAULT_NETWORK_CODES, FALLBACK_PROVIDER_ID, ProviderCredentials
from .service import ProviderService

__all__ = [
    "DEFAULT_NETWORK_CODES",
    "FALLBACK_PROVIDER_ID",
    "NoProviderConfiguredError",
    "ProviderCredentials",
    "ProviderError",
    "ProviderNotFoundError",
    "ProviderService",
]
