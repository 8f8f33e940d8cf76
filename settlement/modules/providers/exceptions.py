"""Provider registry errors."""

from settlement.modules.common import SettlementError


class ProviderError(SettlementError):
    """Base class for provider registry errors."""


class ProviderNotFoundError(ProviderError):
    def __init__(self, provider_id: str) -> None:
        super().__init__(f"Provider not found: {provider_id}")
        self.provider_id = provider_id


class NoProviderConfiguredError(ProviderError):
    def __init__(self, network: str | None) -> None:
        super().__init__(f"No active provider for network {network!r}")
        self.network = network
