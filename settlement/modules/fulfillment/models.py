"""Fulfillment value objects."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Optional

from settlement.modules.common.enums import DeliveryStatus

_AMOUNT = re.compile(r"(\d+(?:\.\d+)?)\s*(GB|MB)?", re.IGNORECASE)


def parse_capacity_mb(data_amount: str | None, bundle_name: str | None = None) -> int:
    """``"1GB"`` -> 1024, ``"500MB"`` -> 500; falls back to the bundle name, then 1GB."""
    for source in (data_amount, bundle_name):
        if not source:
            continue
        match = _AMOUNT.search(source)
        if match is None:
            continue
        value = float(match.group(1))
        unit = (match.group(2) or "GB").upper()
        return round(value * 1024) if unit == "GB" else round(value)
    return 1024


@dataclass(slots=True, frozen=True)
class SupplierResponse:
    status_code: int
    data: dict[str, Any]
    raw: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def reference(self) -> Optional[str]:
        ref = self.data.get("ref") or self.data.get("reference")
        return str(ref) if ref else None

    @property
    def status(self) -> Optional[str]:
        status = self.data.get("status")
        if status is None and isinstance(self.data.get("data"), dict):
            status = self.data["data"].get("status")
        return str(status) if status is not None else None

    @property
    def error(self) -> str:
        message = self.data.get("error") or self.data.get("message")
        return str(message) if message else f"HTTP {self.status_code}"

    @classmethod
    def from_text(cls, status_code: int, text: str) -> "SupplierResponse":
        try:
            payload = json.loads(text) if text else {}
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {"data": payload}
        return cls(status_code=status_code, data=payload, raw=text)


@dataclass(slots=True, frozen=True)
class PerItemResult:
    item_id: str
    phone: str
    delivery_status: DeliveryStatus
    provider_reference: Optional[str] = None
    failure_reason: Optional[str] = None
    retryable: bool = False


@dataclass(slots=True, frozen=True)
class QueueStats:
    queued: int
    in_flight: int
    processed: int
    failed: int
    retried: int
    dropped: int
    workers: int
    capacity: int
