"""Provider registry: which supply API fulfils which network."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from settlement.core.config import SupplierSettings
from settlement.db.models import ExternalProvider as ExternalProviderModel
from settlement.infrastructure.database.repositories.provider_repository import SqlProviderRepository

from .exceptions import NoProviderConfiguredError, ProviderNotFoundError
from .models import FALLBACK_PROVIDER_ID, ProviderCredentials
from .repository import ProviderRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProviderService:
    repository: ProviderRepository
    fallback: Optional[SupplierSettings] = None

    @classmethod
    def with_session(cls, session: AsyncSession, fallback: SupplierSettings | None = None) -> "ProviderService":
        return cls(SqlProviderRepository(session), fallback)

    async def list_active(self) -> list[ProviderCredentials]:
        rows = await self.repository.list_active()
        providers = [self._to_domain(row) for row in rows]
        fallback = self._fallback_credentials()
        if fallback is not None:
            providers.append(fallback)
        return providers

    async def get(self, provider_id: str) -> ProviderCredentials:
        if provider_id == FALLBACK_PROVIDER_ID:
            fallback = self._fallback_credentials()
            if fallback is not None:
                return fallback
        row = await self.repository.get(provider_id)
        if row is None:
            raise ProviderNotFoundError(provider_id)
        return self._to_domain(row)

    async def resolve_for_network(self, network: str | None) -> ProviderCredentials:
        """First active provider mapping ``network`` (defaults first), else the default."""
        rows = [self._to_domain(row) for row in await self.repository.list_active()]
        rows.sort(key=lambda provider: not provider.is_default)
        for provider in rows:
            if provider.covers(network):
                return provider
        for provider in rows:
            if provider.is_default:
                return provider
        fallback = self._fallback_credentials()
        if fallback is not None:
            return fallback
        raise NoProviderConfiguredError(network)

    async def register(
        self,
        *,
        name: str,
        base_url: str,
        api_key: str,
        api_secret: str,
        network_mappings: dict[str, str] | None = None,
        orders_path: str = "/api/v1/orders",
        is_default: bool = False,
    ) -> ProviderCredentials:
        if is_default:
            await self.repository.clear_defaults()
        row = await self.repository.create(
            name=name,
            base_url=base_url,
            api_key=api_key,
            api_secret=api_secret,
            orders_path=orders_path,
            network_mappings=json.dumps({key.lower(): value for key, value in (network_mappings or {}).items()}),
            is_default=is_default,
        )
        return self._to_domain(row)

    async def set_default(self, provider_id: str) -> ProviderCredentials:
        """Make ``provider_id`` the only default; runs inside the caller's transaction."""
        if await self.repository.get(provider_id) is None:
            raise ProviderNotFoundError(provider_id)
        await self.repository.clear_defaults()
        await self.repository.mark_default(provider_id)
        logger.info("Provider %s set as default", provider_id)
        return await self.get(provider_id)

    def _fallback_credentials(self) -> ProviderCredentials | None:
        settings = self.fallback
        if settings is None or not settings.api_key or not settings.api_secret:
            return None
        return ProviderCredentials(
            id=FALLBACK_PROVIDER_ID,
            name="default",
            base_url=settings.base_url,
            api_key=settings.api_key,
            api_secret=settings.api_secret,
            orders_path=settings.orders_path,
            balance_path=settings.balance_path,
            prices_path=settings.prices_path,
        )

    @staticmethod
    def _to_domain(model: ExternalProviderModel) -> ProviderCredentials:
        try:
            mappings = json.loads(model.network_mappings or "{}")
        except ValueError:
            logger.warning("Provider %s has malformed network mappings; ignoring them", model.id)
            mappings = {}
        return ProviderCredentials(
            id=model.id,
            name=model.name,
            base_url=model.base_url,
            api_key=model.api_key,
            api_secret=model.api_secret,
            orders_path=model.orders_path,
            network_mappings={str(key).lower(): str(value) for key, value in mappings.items()},
            is_default=bool(model.is_default),
        )
