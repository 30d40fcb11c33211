from storefront.coupons.model import Coupon, CouponKind, CouponRedemption, CouponValidation
from storefront.coupons.service import CouponService, compute_discount, normalize_code

__all__ = [
    "Coupon",
    "CouponKind",
    "CouponRedemption",
    "CouponService",
    "CouponValidation",
    "compute_discount",
    "normalize_code",
]
