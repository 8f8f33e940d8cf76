"""Repository interface for withdrawals."""

from __future__ import annotations

from typing import Any, Collection, Protocol, Sequence

from settlement.db.models import Withdrawal as WithdrawalModel
from settlement.modules.common.enums import WithdrawalStatus


class WithdrawalRepository(Protocol):
    async def create(self, **values: Any) -> WithdrawalModel:
        ...

    async def get(self, withdrawal_id: str) -> WithdrawalModel | None:
        ...

    async def get_by_transfer_reference(self, transfer_reference: str) -> WithdrawalModel | None:
        ...

    async def sum_outstanding(self, reseller_id: str) -> int:
        ...

    async def compare_and_set(
        self, withdrawal_id: str, expected: Collection[WithdrawalStatus], values: dict[str, Any]
    ) -> bool:
        ...

    async def list_for_reseller(self, reseller_id: str, limit: int, offset: int) -> Sequence[WithdrawalModel]:
        ...
