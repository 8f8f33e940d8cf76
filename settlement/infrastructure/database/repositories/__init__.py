"""SQLAlchemy-backed repository implementations."""

from .cooldown_repository import SqlCooldownRepository
from .ledger_repository import SqlLedgerRepository
from .order_repository import SqlOrderRepository
from .pricing_repository import SqlPricingRepository
from .provider_repository import SqlProviderRepository
from .stock_repository import SqlStockRepository
from .topup_repository import SqlTopupRepository
from .withdrawal_repository import SqlWithdrawalRepository

__all__ = [
    "SqlCooldownRepository",
    "SqlLedgerRepository",
    "SqlOrderRepository",
    "SqlPricingRepository",
    "SqlProviderRepository",
    "SqlStockRepository",
    "SqlTopupRepository",
    "SqlWithdrawalRepository",
]
