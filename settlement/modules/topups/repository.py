"""Repository interface for wallet top-ups."""

from __future__ import annotations

from datetime import datetime
from typing import Collection, Protocol, Sequence

from settlement.db.models import WalletTopup as WalletTopupModel
from settlement.modules.common.enums import TopupStatus


class TopupRepository(Protocol):
    async def create(
        self,
        *,
        account_id: str,
        reference: str,
        amount_minor: int,
        currency: str,
    ) -> WalletTopupModel:
        ...

    async def get_by_reference(self, reference: str) -> WalletTopupModel | None:
        ...

    async def compare_and_set_status(
        self,
        reference: str,
        *,
        expected: Collection[TopupStatus],
        status: TopupStatus,
        confirmed_at: datetime,
        payment_channel: str | None,
    ) -> bool:
        ...

    async def list_for_account(self, account_id: str, limit: int, offset: int) -> Sequence[WalletTopupModel]:
        ...
