"""Wallet top-ups funded through Paystack."""

from __future__ import annotations

import logging

from settlement.core.config import Settings
from settlement.core.locks import KeyedLock
from settlement.db.models import WalletTopup as WalletTopupModel
from settlement.infrastructure.database import Database
from settlement.infrastructure.database.repositories.topup_repository import SqlTopupRepository
from settlement.modules.common import new_reference
from settlement.modules.common.clock import Clock, utcnow
from settlement.modules.common.enums import TopupStatus, WalletEntryType
from settlement.modules.ledger import LedgerService, wallet_lock_key
from settlement.modules.payments import PaystackClient, PaystackVerification

from .exceptions import TopupAmountMismatchError, TopupNotFoundError
from .models import Topup, TopupCheckout, TopupConfirmation

logger = logging.getLogger(__name__)


class TopupService:
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

    async def initialize(self, account_id: str, amount_minor: int, *, email: str) -> TopupCheckout:
        if amount_minor <= 0:
            raise ValueError("top-up amount must be positive")
        reference = new_reference("TOPUP")
        async with self._database.session() as session:
            model = await SqlTopupRepository(session).create(
                account_id=account_id,
                reference=reference,
                amount_minor=amount_minor,
                currency=self._settings.currency,
            )
            topup = self._to_domain(model)

        intent = await self._paystack.initialize_transaction(
            email=email,
            amount_minor=amount_minor,
            reference=reference,
            metadata={"type": "wallet_topup", "account_id": account_id},
        )
        logger.info("Top-up %s initialized for %s (%s)", reference, account_id, amount_minor)
        return TopupCheckout(topup=topup, authorization_url=intent.authorization_url, access_code=intent.access_code)

    async def get(self, reference: str) -> Topup | None:
        async with self._database.session() as session:
            model = await SqlTopupRepository(session).get_by_reference(reference)
            return self._to_domain(model) if model else None

    async def list_for_account(self, account_id: str, limit: int = 20, offset: int = 0) -> list[Topup]:
        async with self._database.session() as session:
            rows = await SqlTopupRepository(session).list_for_account(account_id, limit, offset)
            return [self._to_domain(row) for row in rows]

    async def confirm(self, reference: str, verification: PaystackVerification | None = None) -> TopupConfirmation:
        """Verify with Paystack (unless a signed event already did) and credit once."""
        topup = await self.get(reference)
        if topup is None:
            raise TopupNotFoundError(reference)
        if topup.status is not TopupStatus.PENDING:
            return TopupConfirmation(topup=topup, credited=False)

        if verification is None:
            verification = await self._paystack.verify_transaction(reference)
        if verification.failed:
            async with self._database.session() as session:
                await SqlTopupRepository(session).compare_and_set_status(
                    reference,
                    expected=[TopupStatus.PENDING],
                    status=TopupStatus.FAILED,
                    confirmed_at=self._clock(),
                    payment_channel=verification.channel,
                )
            logger.info("Top-up %s failed at the gateway (%s)", reference, verification.status)
            return TopupConfirmation(topup=await self._require(reference), credited=False)
        if not verification.succeeded:
            return TopupConfirmation(topup=topup, credited=False)
        if verification.amount_minor < topup.amount_minor:
            logger.error(
                "Top-up %s underpaid: expected %s, gateway reports %s",
                reference,
                topup.amount_minor,
                verification.amount_minor,
            )
            raise TopupAmountMismatchError(reference, topup.amount_minor, verification.amount_minor)

        balance: int | None = None
        async with self._locks.hold(wallet_lock_key(topup.account_id)):
            async with self._database.session() as session:
                won = await SqlTopupRepository(session).compare_and_set_status(
                    reference,
                    expected=[TopupStatus.PENDING],
                    status=TopupStatus.SUCCESS,
                    confirmed_at=self._clock(),
                    payment_channel=verification.channel,
                )
                if won:
                    ledger = LedgerService.with_session(session, currency=self._settings.currency, clock=self._clock)
                    posting = await ledger.credit_wallet(
                        topup.account_id,
                        topup.amount_minor,
                        reference=reference,
                        entry_type=WalletEntryType.TOPUP,
                        description="Wallet top-up",
                    )
                    balance = posting.wallet.balance_minor
        if won:
            logger.info("Top-up %s credited %s to %s", reference, topup.amount_minor, topup.account_id)
        return TopupConfirmation(topup=await self._require(reference), credited=won, balance_minor=balance)

    async def _require(self, reference: str) -> Topup:
        topup = await self.get(reference)
        if topup is None:
            raise TopupNotFoundError(reference)
        return topup

    @staticmethod
    def _to_domain(model: WalletTopupModel) -> Topup:
        return Topup(
            id=model.id,
            account_id=model.account_id,
            reference=model.reference,
            amount_minor=model.amount_minor,
            currency=model.currency,
            status=model.status,
            payment_channel=model.payment_channel,
            created_at=model.created_at,
            confirmed_at=model.confirmed_at,
        )
