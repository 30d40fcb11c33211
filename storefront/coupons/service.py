from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

from storefront.coupons.model import CouponKind, CouponValidation
from storefront.errors import CouponInvalid, RedemptionConflict
from storefront.utils.dates import EXPIRED, PENDING, window_state
from storefront.utils.money import D, money_str, round2

logger = logging.getLogger(__name__)

MSG_INVALID_CODE = "Invalid code"
MSG_NOT_FOUND = "Coupon not found or not valid"
MSG_NOT_YET_VALID = "This coupon is not valid yet"
MSG_EXPIRED = "This coupon has expired"
MSG_EXHAUSTED = "This coupon has no usable redemptions left"
MSG_MIN_SUBTOTAL = "The minimum subtotal for this coupon is ${}"
MSG_VALID = "Coupon is valid"

_WHITESPACE = re.compile(r"\s+")


def normalize_code(code) -> str:
    return _WHITESPACE.sub("", str(code or "")).upper()


def compute_discount(kind: CouponKind, value, subtotal) -> Decimal:
    sub = D(subtotal)
    if kind == CouponKind.PERCENTAGE:
        pct = min(Decimal(100), D(value))
        return round2(sub * pct / Decimal(100))
    return round2(min(D(value), sub))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CouponService:
    def __init__(self, storage, clock: Callable[[], datetime] = _utcnow):
        self.storage = storage
        self.clock = clock

    async def validate(self, code, subtotal_after_rules) -> CouponValidation:
        """Read-only check of `code` against the subtotal left after promo rules."""
        normalized = normalize_code(code)
        if not normalized:
            return CouponValidation(valid=False, message=MSG_INVALID_CODE)

        coupon = await self.storage.find_active_by_code(normalized)
        if coupon is None:
            return CouponValidation(valid=False, message=MSG_NOT_FOUND)

        window = window_state(coupon.starts_at, coupon.ends_at, self.clock())
        if window == PENDING:
            return CouponValidation(valid=False, message=MSG_NOT_YET_VALID)
        if window == EXPIRED:
            return CouponValidation(valid=False, message=MSG_EXPIRED)

        if coupon.exhausted:
            return CouponValidation(valid=False, message=MSG_EXHAUSTED)

        subtotal = D(subtotal_after_rules)
        min_subtotal = D(coupon.min_subtotal)
        if subtotal < min_subtotal:
            return CouponValidation(valid=False, message=MSG_MIN_SUBTOTAL.format(money_str(min_subtotal)))

        return CouponValidation(
            valid=True,
            message=MSG_VALID,
            coupon_id=coupon.id,
            discount_amount=compute_discount(coupon.kind, coupon.value, subtotal),
            kind=coupon.kind,
            value=D(coupon.value),
        )

    async def require_valid(self, code, subtotal_after_rules) -> CouponValidation:
        result = await self.validate(code, subtotal_after_rules)
        if not result.valid:
            logger.info("coupons.rejected code=%s reason=%s", normalize_code(code), result.message)
            raise CouponInvalid(result.message)
        return result

    async def redeem(self, coupon_id: int, order_id: int, applied_amount, conn=None) -> None:
        """Record one use of the coupon against an order.

        With `conn` both writes join the caller's transaction and the caller
        decides commit/rollback. Without it the service runs its own
        transaction, rolled back on any failure.
        """
        amount = round2(applied_amount)
        if conn is not None:
            await self._redeem_on(conn, coupon_id, order_id, amount)
            return

        async with self.storage.transaction() as own_conn:
            await self._redeem_on(own_conn, coupon_id, order_id, amount)

    async def _redeem_on(self, conn, coupon_id: int, order_id: int, amount: Decimal) -> None:
        updated = await self.storage.increment_usage(conn, coupon_id)
        if updated == 0:
            # coupon deleted, or its last use was taken by a concurrent order
            logger.warning("coupons.redeem.conflict coupon_id=%s order_id=%s", coupon_id, order_id)
            raise RedemptionConflict()
        await self.storage.insert_redemption(conn, coupon_id, order_id, amount)
        logger.info("coupons.redeemed coupon_id=%s order_id=%s amount=%s", coupon_id, order_id, amount)
