from __future__ import annotations

from dataclasses import dataclass

from storefront.admin import CouponAdmin, PromoRuleAdmin
from storefront.catalog.pg_storage import PgCatalogStorage
from storefront.catalog.resolver import CatalogPriceResolver
from storefront.coupons.pg_storage import PgCouponStorage
from storefront.coupons.service import CouponService
from storefront.promos.pg_storage import PgPromoRuleStorage
from storefront.promos.service import PromoRuleEngine
from storefront.quotes.service import QuoteOrchestrator
from storefront.shipping.calculator import ShippingCalculator
from storefront.shipping.store_location import StoreLocator


@dataclass
class Services:
    quotes: QuoteOrchestrator
    shipping: ShippingCalculator
    rules: PromoRuleEngine
    coupons: CouponService
    promo_rules_admin: PromoRuleAdmin
    coupons_admin: CouponAdmin


def build_services(pool, geocoder) -> Services:
    """One instance per process; the StoreLocator inside holds the cached store coordinate."""
    rule_storage = PgPromoRuleStorage(pool)
    coupon_storage = PgCouponStorage(pool)

    rules = PromoRuleEngine(rule_storage)
    coupons = CouponService(coupon_storage)
    shipping = ShippingCalculator(geocoder, StoreLocator(geocoder))
    quotes = QuoteOrchestrator(
        resolver=CatalogPriceResolver(PgCatalogStorage(pool)),
        shipping=shipping,
        rules=rules,
        coupons=coupons,
    )
    return Services(
        quotes=quotes,
        shipping=shipping,
        rules=rules,
        coupons=coupons,
        promo_rules_admin=PromoRuleAdmin(rule_storage),
        coupons_admin=CouponAdmin(coupon_storage),
    )
