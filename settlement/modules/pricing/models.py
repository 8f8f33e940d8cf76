"""Value objects produced by price resolution."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from settlement.modules.common.enums import BuyerRole, ProductType


class PriceSource(str, enum.Enum):
    CUSTOM = "custom"
    ROLE_BASE = "role_base"
    ADMIN_BASE = "admin_base"
    PRODUCT_BASE = "product_base"


@dataclass(slots=True, frozen=True)
class BuyerContext:
    """Who is buying: identity, role and (for resellers) the storefront owner."""

    user_id: Optional[str]
    role: BuyerRole
    reseller_id: Optional[str] = None
    is_approved: bool = False

    @classmethod
    def guest(cls) -> "BuyerContext":
        return cls(user_id=None, role=BuyerRole.GUEST)

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    @property
    def prices_as_reseller(self) -> bool:
        return self.role.is_reseller and self.reseller_id is not None and self.is_approved


@dataclass(slots=True, frozen=True)
class ProductInfo:
    id: str
    product_type: ProductType
    name: str
    network: Optional[str]
    data_amount: Optional[str]
    base_price_minor: Optional[int]
    is_active: bool


@dataclass(slots=True, frozen=True)
class PriceQuote:
    product: ProductInfo
    unit_price_minor: int
    base_cost_minor: int
    source: PriceSource

    @property
    def product_id(self) -> str:
        return self.product.id

    @property
    def margin_minor(self) -> int:
        # a custom price under the tier base never produces negative profit
        return max(0, self.unit_price_minor - self.base_cost_minor)


@dataclass(slots=True, frozen=True)
class LineRequest:
    phone: str
    product_id: str
    quantity: int = 1


@dataclass(slots=True, frozen=True)
class PricedLine:
    phone: str
    quantity: int
    quote: PriceQuote

    @property
    def total_minor(self) -> int:
        return self.quote.unit_price_minor * self.quantity

    @property
    def margin_total_minor(self) -> int:
        return self.quote.margin_minor * self.quantity


@dataclass(slots=True, frozen=True)
class PricedOrder:
    lines: tuple[PricedLine, ...]

    @property
    def amount_minor(self) -> int:
        return sum(line.total_minor for line in self.lines)

    @property
    def agent_profit_minor(self) -> int:
        return sum(line.margin_total_minor for line in self.lines)

    @property
    def platform_revenue_minor(self) -> int:
        return self.amount_minor - self.agent_profit_minor
