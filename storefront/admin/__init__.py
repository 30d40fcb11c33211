from storefront.admin.coupons import CouponAdmin
from storefront.admin.promo_rules import PromoRuleAdmin

__all__ = ["CouponAdmin", "PromoRuleAdmin"]
