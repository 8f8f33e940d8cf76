"""Reseller profit withdrawals paid out through Paystack transfers.

A request only reserves against ``available - outstanding``; the profit
ledger is debited when the transfer is confirmed paid.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from settlement.core.config import Settings
from settlement.core.locks import KeyedLock
from settlement.db.models import Withdrawal as WithdrawalModel
from settlement.infrastructure.database import Database
from settlement.infrastructure.database.repositories.withdrawal_repository import SqlWithdrawalRepository
from settlement.modules.common import new_reference
from settlement.modules.common.clock import Clock, utcnow
from settlement.modules.common.enums import WithdrawalStatus
from settlement.modules.ledger import InsufficientProfitError, LedgerService, ProfitWalletSnapshot, profit_lock_key
from settlement.modules.payments import PaystackError, PaystackTransfer, PaystackClient

from .exceptions import WithdrawalNotFoundError, WithdrawalStateError
from .models import PayoutAccount, Withdrawal

logger = logging.getLogger(__name__)


class WithdrawalService:
    def __init__(
        self,
        database: Database,
        paystack: PaystackClient,
        locks: KeyedLock,
        settings: Settings,
        clock: Clock = utcnow,
    ) -> None:
        self._database = database
        self._paystack = paystack
        self._locks = locks
        self._settings = settings
        self._clock = clock

    def _ledger(self, session: AsyncSession) -> LedgerService:
        return LedgerService.with_session(session, currency=self._settings.currency, clock=self._clock)

    async def request(self, reseller_id: str, amount_minor: int, account: PayoutAccount) -> Withdrawal:
        if amount_minor <= 0:
            raise ValueError("withdrawal amount must be positive")
        async with self._locks.hold(profit_lock_key(reseller_id)):
            async with self._database.session() as session:
                repository = SqlWithdrawalRepository(session)
                wallet = await self._ledger(session).ensure_profit_wallet(reseller_id)
                withdrawable = wallet.available_minor - await repository.sum_outstanding(reseller_id)
                if amount_minor > withdrawable:
                    raise InsufficientProfitError(reseller_id, max(withdrawable, 0), amount_minor)
                model = await repository.create(
                    reseller_id=reseller_id,
                    amount_minor=amount_minor,
                    status=WithdrawalStatus.PENDING,
                    recipient_type=account.recipient_type,
                    bank_code=account.bank_code,
                    account_number=account.account_number,
                    account_name=account.account_name,
                    transfer_reference=new_reference("WD"),
                )
                withdrawal = self._to_domain(model)
        logger.info("Withdrawal %s requested by %s for %s", withdrawal.id, reseller_id, amount_minor)
        return withdrawal

    async def profit_summary(self, reseller_id: str) -> tuple[ProfitWalletSnapshot, int]:
        """Profit wallet and the sum of withdrawals not yet paid or failed."""
        async with self._database.session() as session:
            wallet = await self._ledger(session).ensure_profit_wallet(reseller_id)
            outstanding = await SqlWithdrawalRepository(session).sum_outstanding(reseller_id)
        return wallet, outstanding

    async def get(self, withdrawal_id: str) -> Withdrawal:
        async with self._database.session() as session:
            model = await SqlWithdrawalRepository(session).get(withdrawal_id)
            if model is None:
                raise WithdrawalNotFoundError(withdrawal_id)
            return self._to_domain(model)

    async def list_for_reseller(self, reseller_id: str, limit: int = 20, offset: int = 0) -> list[Withdrawal]:
        async with self._database.session() as session:
            rows = await SqlWithdrawalRepository(session).list_for_reseller(reseller_id, limit, offset)
            return [self._to_domain(row) for row in rows]

    async def pay(self, withdrawal_id: str) -> Withdrawal:
        """Create the transfer recipient and initiate the Paystack transfer."""
        withdrawal = await self.get(withdrawal_id)
        if withdrawal.status is not WithdrawalStatus.PENDING:
            raise WithdrawalStateError(withdrawal.id, withdrawal.status, "pay")
        assert withdrawal.transfer_reference is not None

        try:
            recipient_code = await self._paystack.create_transfer_recipient(
                name=withdrawal.account_name,
                account_number=withdrawal.account_number,
                bank_code=withdrawal.bank_code,
                recipient_type=withdrawal.recipient_type,
            )
            transfer = await self._paystack.initiate_transfer(
                amount_minor=withdrawal.amount_minor,
                recipient_code=recipient_code,
                reference=withdrawal.transfer_reference,
            )
        except PaystackError as exc:
            await self._finish_failed(withdrawal.id, [WithdrawalStatus.PENDING], str(exc))
            raise

        async with self._database.session() as session:
            await SqlWithdrawalRepository(session).compare_and_set(
                withdrawal.id,
                [WithdrawalStatus.PENDING],
                {
                    "status": WithdrawalStatus.PROCESSING,
                    "recipient_code": recipient_code,
                    "transfer_code": transfer.transfer_code,
                },
            )
        return await self._apply_transfer(transfer)

    async def mark_paid(self, transfer_reference: str) -> Withdrawal:
        withdrawal = await self._by_transfer_reference(transfer_reference)
        async with self._locks.hold(profit_lock_key(withdrawal.reseller_id)):
            async with self._database.session() as session:
                won = await SqlWithdrawalRepository(session).compare_and_set(
                    withdrawal.id,
                    [WithdrawalStatus.PROCESSING],
                    {"status": WithdrawalStatus.PAID, "paid_at": self._clock(), "failure_reason": None},
                )
                if won:
                    await self._ledger(session).debit_reseller_payout(
                        withdrawal.reseller_id,
                        withdrawal.amount_minor,
                        reference=withdrawal.id,
                    )
        if won:
            logger.info("Withdrawal %s paid (%s)", withdrawal.id, transfer_reference)
        return await self.get(withdrawal.id)

    async def mark_failed(self, transfer_reference: str, reason: str) -> Withdrawal:
        withdrawal = await self._by_transfer_reference(transfer_reference)
        await self._finish_failed(withdrawal.id, [WithdrawalStatus.PENDING, WithdrawalStatus.PROCESSING], reason)
        return await self.get(withdrawal.id)

    async def reject(self, withdrawal_id: str, reason: str) -> Withdrawal:
        async with self._database.session() as session:
            won = await SqlWithdrawalRepository(session).compare_and_set(
                withdrawal_id,
                [WithdrawalStatus.PENDING],
                {"status": WithdrawalStatus.REJECTED, "failure_reason": reason},
            )
        withdrawal = await self.get(withdrawal_id)
        if not won:
            raise WithdrawalStateError(withdrawal.id, withdrawal.status, "reject")
        return withdrawal

    async def _apply_transfer(self, transfer: PaystackTransfer) -> Withdrawal:
        if transfer.succeeded:
            return await self.mark_paid(transfer.reference)
        if transfer.failed:
            return await self.mark_failed(transfer.reference, f"Transfer {transfer.status}")
        return await self._by_transfer_reference(transfer.reference)

    async def _finish_failed(self, withdrawal_id: str, expected: list[WithdrawalStatus], reason: str) -> None:
        async with self._database.session() as session:
            won = await SqlWithdrawalRepository(session).compare_and_set(
                withdrawal_id,
                expected,
                {"status": WithdrawalStatus.FAILED, "failure_reason": reason},
            )
        if won:
            logger.warning("Withdrawal %s failed: %s", withdrawal_id, reason)

    async def _by_transfer_reference(self, transfer_reference: str) -> Withdrawal:
        async with self._database.session() as session:
            model = await SqlWithdrawalRepository(session).get_by_transfer_reference(transfer_reference)
            if model is None:
                raise WithdrawalNotFoundError(transfer_reference)
            return self._to_domain(model)

    @staticmethod
    def _to_domain(model: WithdrawalModel) -> Withdrawal:
        return Withdrawal(
            id=model.id,
            reseller_id=model.reseller_id,
            amount_minor=model.amount_minor,
            status=model.status,
            account_name=model.account_name,
            account_number=model.account_number,
            bank_code=model.bank_code,
            recipient_type=model.recipient_type,
            transfer_reference=model.transfer_reference,
            transfer_code=model.transfer_code,
            failure_reason=model.failure_reason,
            created_at=model.created_at,
            paid_at=model.paid_at,
        )
