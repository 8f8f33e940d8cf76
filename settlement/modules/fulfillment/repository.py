"""Repository protocol for result-checker stock."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from settlement.db.models import ResultCheckerStock as ResultCheckerStockModel


class StockRepository(Protocol):
    async def claim(
        self, product_id: str, quantity: int, *, order_reference: str, sold_at: datetime
    ) -> Sequence[ResultCheckerStockModel]:
        """Mark ``quantity`` unsold units sold; empty when stock cannot cover it."""
        ...

    async def count_available(self, product_id: str) -> int:
        ...
