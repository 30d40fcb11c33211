from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

from storefront.catalog.resolver import CatalogPriceResolver
from storefront.coupons.service import CouponService
from storefront.promos.service import PromoRuleEngine
from storefront.quotes.model import Quote, QuoteRequest, QuoteSnapshot
from storefront.shipping.calculator import ShippingCalculator
from storefront.utils.money import D, round2

logger = logging.getLogger(__name__)


def calculate_order_total(subtotal, shipping, rule_discount=0, coupon_discount=0) -> Decimal:
    total = round2(D(subtotal) - D(rule_discount) - D(coupon_discount) + D(shipping))
    return max(Decimal("0.00"), total)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuoteOrchestrator:
    """Full price breakdown for a prospective order. Nothing is persisted or redeemed here."""

    def __init__(
        self,
        resolver: CatalogPriceResolver,
        shipping: ShippingCalculator,
        rules: PromoRuleEngine,
        coupons: CouponService,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.resolver = resolver
        self.shipping = shipping
        self.rules = rules
        self.coupons = coupons
        self.clock = clock

    async def get_quote(self, request: QuoteRequest) -> Quote:
        # 1) catalog prices
        cart = await self.resolver.resolve(request.items)

        # 2) raw shipping, before any rule
        raw_shipping = await self.shipping.calculate(request.delivery_option, request.address)

        # 3) promo rules
        rules = await self.rules.apply_rules(cart.subtotal, raw_shipping)

        # 4)
        subtotal_after_rules = round2(cart.subtotal - rules.discount_amount)

        # 5) coupon, checked against the discounted subtotal; invalid aborts the quote
        coupon_discount = Decimal("0.00")
        coupon_id = None
        if request.coupon_code and request.coupon_code.strip():
            coupon = await self.coupons.require_valid(request.coupon_code, subtotal_after_rules)
            coupon_discount = coupon.discount_amount
            coupon_id = coupon.coupon_id

        # 6)
        total = calculate_order_total(
            subtotal=cart.subtotal,
            shipping=rules.final_shipping,
            rule_discount=rules.discount_amount,
            coupon_discount=coupon_discount,
        )

        # 7)
        snapshot = QuoteSnapshot(
            subtotal=cart.subtotal,
            raw_shipping=round2(raw_shipping),
            final_shipping=rules.final_shipping,
            rule_discount=rules.discount_amount,
            coupon_discount=coupon_discount,
            applied_rule_id=rules.applied_rule_id,
            coupon_id=coupon_id,
            total=total,
            at=self.clock().isoformat(),
        )

        logger.info(
            "quote.computed lines=%s subtotal=%s shipping=%s rule_id=%s coupon_id=%s total=%s",
            len(cart.items), cart.subtotal, rules.final_shipping, rules.applied_rule_id, coupon_id, total,
        )

        return Quote(
            subtotal=cart.subtotal,
            raw_shipping=round2(raw_shipping),
            shipping=rules.final_shipping,
            rule_discount=rules.discount_amount,
            coupon_discount=coupon_discount,
            total=total,
            applied_rule_id=rules.applied_rule_id,
            coupon_id=coupon_id,
            free_shipping=rules.free_shipping,
            items=cart.items,
            snapshot=snapshot,
        )
