from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from storefront.utils.dates import OPEN, window_state


class RuleKind(str, Enum):
    FREE_SHIPPING = "envio_gratis_monto"    # shipping -> 0 above threshold
    PERCENT_DISCOUNT = "descuento_pct_monto"  # -N% on subtotal above threshold


@dataclass(frozen=True)
class PromoRule:
    id: int
    name: str
    kind: RuleKind
    min_subtotal: Decimal
    active: bool = True
    order: int = 0
    # stored for free-shipping rules but not used in any computation
    value: Optional[Decimal] = None
    discount_pct: Optional[Decimal] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_live(self, now: datetime) -> bool:
        return self.active and window_state(self.starts_at, self.ends_at, now) == OPEN


@dataclass(frozen=True)
class RulesResult:
    free_shipping: bool
    final_shipping: Decimal
    discount_pct: Decimal
    discount_amount: Decimal
    applied_rule_id: Optional[int]
