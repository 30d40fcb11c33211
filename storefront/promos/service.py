from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional

from storefront.promos.model import PromoRule, RuleKind, RulesResult
from storefront.utils.money import D, round2

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PromoRuleEngine:
    def __init__(self, storage, clock: Callable[[], datetime] = _utcnow):
        self.storage = storage
        self.clock = clock

    async def get_active_rules(self) -> list[PromoRule]:
        now = self.clock()
        rules = [r for r in await self.storage.get_active_rules(now) if r.is_live(now)]
        # display order first, id breaks ties so evaluation never depends on row order
        return sorted(rules, key=lambda r: (r.order, r.id))

    async def apply_rules(self, subtotal, shipping_cost) -> RulesResult:
        rules = await self.get_active_rules()
        sub = D(subtotal)
        final_shipping = D(shipping_cost)

        free_rule = next(
            (r for r in rules if r.kind == RuleKind.FREE_SHIPPING and sub >= D(r.min_subtotal)),
            None,
        )
        if free_rule is not None:
            final_shipping = Decimal("0")

        best: Optional[PromoRule] = None
        for r in rules:
            if r.kind != RuleKind.PERCENT_DISCOUNT or sub < D(r.min_subtotal):
                continue
            if best is None or D(r.discount_pct) > D(best.discount_pct):
                best = r

        discount_pct = Decimal("0")
        discount_amount = Decimal("0.00")
        applied_rule_id = None
        if best is not None and D(best.discount_pct) > 0:
            discount_pct = D(best.discount_pct)
            discount_amount = round2(sub * discount_pct / Decimal(100))
            applied_rule_id = best.id

        if free_rule is not None or applied_rule_id is not None:
            logger.debug(
                "promos.applied free_shipping_rule=%s discount_rule=%s discount=%s",
                free_rule.id if free_rule else None, applied_rule_id, discount_amount,
            )

        return RulesResult(
            free_shipping=free_rule is not None,
            final_shipping=round2(final_shipping),
            discount_pct=discount_pct,
            discount_amount=discount_amount,
            applied_rule_id=applied_rule_id,
        )

    async def free_shipping_from(self) -> Optional[Decimal]:
        """Subtotal needed for free shipping (first live rule), None if there is none."""
        rules = await self.get_active_rules()
        rule = next((r for r in rules if r.kind == RuleKind.FREE_SHIPPING), None)
        return D(rule.min_subtotal) if rule else None
