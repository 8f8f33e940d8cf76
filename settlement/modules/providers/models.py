"""Supply provider descriptors."""

from __future__ import annotations

from dataclasses import dataclass, field

# storefront network keys -> provider network codes
DEFAULT_NETWORK_CODES: dict[str, str] = {
    "mtn": "MTN",
    "telecel": "TELECEL",
    "vodafone": "TELECEL",
    "at_bigtime": "AIRTELTIGO",
    "at_ishare": "AIRTELTIGO",
    "airteltigo": "AIRTELTIGO",
}

FALLBACK_PROVIDER_ID = "settings"


@dataclass(slots=True, frozen=True)
class ProviderCredentials:
    id: str
    name: str
    base_url: str
    api_key: str
    api_secret: str
    orders_path: str = "/api/v1/orders"
    balance_path: str = "/api/v1/balance"
    prices_path: str = "/api/v1/prices"
    network_mappings: dict[str, str] = field(default_factory=dict)
    is_default: bool = False

    def covers(self, network: str | None) -> bool:
        return bool(network) and network.lower() in self.network_mappings

    def network_code(self, network: str | None) -> str:
        key = (network or "").lower()
        return self.network_mappings.get(key) or DEFAULT_NETWORK_CODES.get(key) or key.upper()

    def order_status_path(self, provider_reference: str) -> str:
        return f"{self.orders_path.rstrip('/')}/{provider_reference}"
