"""HMAC-signed client for the data-bundle supply API."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from settlement.core.signing import sign_supplier_request
from settlement.modules.providers import ProviderCredentials

from .exceptions import SupplierError, SupplierTransportError
from .models import SupplierResponse

logger = logging.getLogger(__name__)


def canonical_body(payload: dict[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"))


class SupplierClient:
    def __init__(self, http: httpx.AsyncClient, *, timeout: float = 10.0) -> None:
        self._http = http
        self._timeout = timeout

    async def create_order(
        self,
        provider: ProviderCredentials,
        *,
        network: str,
        recipient: str,
        capacity_mb: int,
        idempotency_key: str,
    ) -> SupplierResponse:
        payload = {
            "network": network,
            "recipient": recipient,
            "capacity": capacity_mb,
            "idempotencyKey": idempotency_key,
        }
        return await self._send(provider, "POST", provider.orders_path, body=canonical_body(payload))

    async def get_order_status(self, provider: ProviderCredentials, provider_reference: str) -> SupplierResponse:
        return await self._send(provider, "GET", provider.order_status_path(provider_reference))

    async def get_balance(self, provider: ProviderCredentials) -> SupplierResponse:
        response = await self._send(provider, "GET", provider.balance_path)
        if not response.ok:
            raise SupplierError(response.error, status_code=response.status_code, body=response.raw)
        return response

    async def get_prices(
        self,
        provider: ProviderCredentials,
        *,
        network: str | None = None,
        min_capacity: int | None = None,
        max_capacity: int | None = None,
        effective: bool | None = None,
    ) -> SupplierResponse:
        params: dict[str, str] = {}
        if network:
            params["network"] = provider.network_code(network)
        if min_capacity is not None:
            params["min_capacity"] = str(min_capacity)
        if max_capacity is not None:
            params["max_capacity"] = str(max_capacity)
        if effective is not None:
            params["effective"] = "true" if effective else "false"
        response = await self._send(provider, "GET", provider.prices_path, params=params or None)
        if not response.ok:
            raise SupplierError(response.error, status_code=response.status_code, body=response.raw)
        return response

    async def _send(
        self,
        provider: ProviderCredentials,
        method: str,
        path: str,
        *,
        body: str = "",
        params: dict[str, str] | None = None,
    ) -> SupplierResponse:
        if not provider.api_secret:
            raise SupplierError(f"Provider {provider.name} has no API secret configured")
        # the signature covers the path only, never the query string
        timestamp, signature = sign_supplier_request(provider.api_secret, method, path, body)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {provider.api_key}",
            "X-Timestamp": timestamp,
            "X-Signature": signature,
        }
        url = f"{provider.base_url.rstrip('/')}{path}"
        try:
            response = await self._http.request(
                method,
                url,
                content=body.encode("utf-8") if body else None,
                params=params,
                headers=headers,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            logger.warning("Supplier %s %s timed out after %ss", method, path, self._timeout)
            raise SupplierTransportError(f"Supplier request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            logger.warning("Supplier %s %s transport error: %s", method, path, exc)
            raise SupplierTransportError(f"Supplier unreachable: {exc}") from exc

        logger.debug("Supplier %s %s -> %s", method, path, response.status_code)
        return SupplierResponse.from_text(response.status_code, response.text)
