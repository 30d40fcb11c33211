from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class CouponKind(str, Enum):
    PERCENTAGE = "porcentaje"   # -N%
    FIXED_AMOUNT = "monto_fijo"  # -N $


@dataclass(frozen=True)
class Coupon:
    id: int
    code: str
    kind: CouponKind
    value: Decimal
    min_subtotal: Decimal = Decimal("0")
    max_uses: int = 1
    uses: int = 0
    active: bool = True
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def exhausted(self) -> bool:
        return self.uses >= self.max_uses


@dataclass(frozen=True)
class CouponValidation:
    valid: bool
    message: str
    coupon_id: Optional[int] = None
    discount_amount: Optional[Decimal] = None
    kind: Optional[CouponKind] = None
    value: Optional[Decimal] = None


@dataclass(frozen=True)
class CouponRedemption:
    id: int
    coupon_id: int
    order_id: int
    amount: Decimal
    created_at: Optional[datetime] = None
