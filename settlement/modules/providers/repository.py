"""Repository protocol for the provider registry."""

from __future__ import annotations

from typing import Protocol, Sequence

from settlement.db.models import ExternalProvider as ExternalProviderModel


class ProviderRepository(Protocol):
    async def list_active(self) -> Sequence[ExternalProviderModel]:
        ...

    async def get(self, provider_id: str) -> ExternalProviderModel | None:
        ...

    async def create(
        self,
        *,
        name: str,
        base_url: str,
        api_key: str,
        api_secret: str,
        orders_path: str,
        network_mappings: str,
        is_default: bool,
    ) -> ExternalProviderModel:
        ...

    async def clear_defaults(self) -> None:
        ...

    async def mark_default(self, provider_id: str) -> bool:
        ...
