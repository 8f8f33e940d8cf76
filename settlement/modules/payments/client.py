"""Typed, logged wrapper around Paystack's REST API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from settlement.core.config import PaystackSettings
from settlement.core.signing import verify_paystack_signature

from .exceptions import (
    PaystackError,
    PaystackInitializationError,
    PaystackTransferError,
    PaystackVerificationError,
)
from .models import PaystackResolvedAccount, PaystackSetupIntent, PaystackTransfer, PaystackVerification

logger = logging.getLogger(__name__)


class PaystackClient:
    """Amounts go over the wire in minor units (pesewas), as Paystack expects."""

    def __init__(self, http: httpx.AsyncClient, settings: PaystackSettings) -> None:
        self._http = http
        self._settings = settings

    @property
    def currency(self) -> str:
        return self._settings.currency

    def verify_signature(self, raw_body: bytes, signature: str | None) -> bool:
        return verify_paystack_signature(self._settings.secret_key, raw_body, signature)

    async def initialize_transaction(
        self,
        *,
        email: str,
        amount_minor: int,
        reference: str,
        metadata: dict[str, Any] | None = None,
        callback_url: str | None = None,
    ) -> PaystackSetupIntent:
        payload: dict[str, Any] = {
            "email": email,
            "amount": amount_minor,
            "currency": self._settings.currency,
            "reference": reference,
            "metadata": metadata or {},
        }
        callback = callback_url or self._settings.callback_url
        if callback:
            payload["callback_url"] = callback
        logger.info("Initializing Paystack transaction %s for %s", reference, amount_minor)

        body = await self._request("POST", "/transaction/initialize", PaystackInitializationError, json=payload)
        data = body.get("data") or {}
        authorization_url = data.get("authorization_url")
        access_code = data.get("access_code")
        if not authorization_url or not access_code:
            raise PaystackInitializationError("Paystack initialization response missing required fields")
        return PaystackSetupIntent(
            authorization_url=authorization_url,
            access_code=access_code,
            reference=data.get("reference") or reference,
        )

    async def verify_transaction(self, reference: str) -> PaystackVerification:
        body = await self._request("GET", f"/transaction/verify/{reference}", PaystackVerificationError)
        data = body.get("data") or {}
        verification = PaystackVerification(
            reference=data.get("reference") or reference,
            status=str(data.get("status") or "unknown"),
            amount_minor=int(data.get("amount") or 0),
            currency=data.get("currency") or self._settings.currency,
            channel=data.get("channel"),
            gateway_response=data.get("gateway_response"),
            paid_at=data.get("paid_at") or data.get("paidAt"),
            raw=data,
        )
        logger.info("Paystack transaction %s status %s", reference, verification.status)
        return verification

    async def resolve_account(self, account_number: str, bank_code: str) -> PaystackResolvedAccount:
        body = await self._request(
            "GET",
            "/bank/resolve",
            PaystackTransferError,
            params={"account_number": account_number, "bank_code": bank_code},
        )
        data = body.get("data") or {}
        return PaystackResolvedAccount(
            account_name=data.get("account_name") or "",
            account_number=data.get("account_number") or account_number,
            bank_code=bank_code,
        )

    async def create_transfer_recipient(
        self,
        *,
        name: str,
        account_number: str,
        bank_code: str,
        recipient_type: str = "mobile_money",
    ) -> str:
        payload = {
            "type": recipient_type,
            "name": name,
            "account_number": account_number,
            "bank_code": bank_code,
            "currency": self._settings.currency,
        }
        body = await self._request("POST", "/transferrecipient", PaystackTransferError, json=payload)
        recipient_code = (body.get("data") or {}).get("recipient_code")
        if not recipient_code:
            raise PaystackTransferError("Paystack did not return a recipient code")
        return recipient_code

    async def initiate_transfer(
        self,
        *,
        amount_minor: int,
        recipient_code: str,
        reference: str,
        reason: str | None = None,
    ) -> PaystackTransfer:
        payload = {
            "source": "balance",
            "amount": amount_minor,
            "recipient": recipient_code,
            "reference": reference,
            "reason": reason or "Reseller profit withdrawal",
        }
        logger.info("Initiating Paystack transfer %s for %s", reference, amount_minor)
        body = await self._request("POST", "/transfer", PaystackTransferError, json=payload)
        return self._to_transfer(body.get("data") or {}, reference)

    async def verify_transfer(self, reference: str) -> PaystackTransfer:
        body = await self._request("GET", f"/transfer/verify/{reference}", PaystackTransferError)
        return self._to_transfer(body.get("data") or {}, reference)

    async def _request(
        self,
        method: str,
        path: str,
        error_cls: type[PaystackError],
        **kwargs: Any,
    ) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._settings.secret_key}",
            "Content-Type": "application/json",
        }
        url = f"{self._settings.base_url.rstrip('/')}{path}"
        try:
            response = await self._http.request(
                method,
                url,
                headers=headers,
                timeout=self._settings.timeout,
                **kwargs,
            )
        except httpx.HTTPError as exc:
            logger.warning("Paystack %s %s transport error: %s", method, path, exc)
            raise error_cls(f"Paystack unreachable: {exc}") from exc

        if response.status_code >= 400:
            message = self._extract_error_message(response)
            logger.warning("Paystack %s %s returned %s: %s", method, path, response.status_code, message)
            raise error_cls(message)
        try:
            body = response.json()
        except ValueError as exc:
            raise error_cls("Paystack returned a non-JSON response") from exc
        if not body.get("status"):
            raise error_cls(body.get("message") or "Paystack request failed")
        return body

    @staticmethod
    def _to_transfer(data: dict[str, Any], reference: str) -> PaystackTransfer:
        return PaystackTransfer(
            reference=data.get("reference") or reference,
            transfer_code=data.get("transfer_code"),
            status=str(data.get("status") or "unknown"),
        )

    @staticmethod
    def _extract_error_message(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        return payload.get("message") or f"HTTP {response.status_code}"
