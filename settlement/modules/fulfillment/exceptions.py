"""Supply provider errors."""

from __future__ import annotations

from settlement.modules.common import SettlementError


class SupplierError(SettlementError):
    """The supply provider rejected a request or returned garbage."""

    retryable = False

    def __init__(self, message: str, *, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class SupplierTransportError(SupplierError):
    """Timeout or connection failure; the request may be retried."""

    retryable = True

