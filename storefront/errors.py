from __future__ import annotations


class PricingError(Exception):
    """Base for every failure the quote engine reports to its caller.

    `message` is safe to show to the customer. `retryable` marks resource
    pressure the caller may retry; the engine itself never retries.
    """

    default_message = "The request could not be processed"
    retryable = False

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(PricingError):
    default_message = "Invalid request data"


class NotFound(PricingError):
    default_message = "Not found"


class ProductNotFound(PricingError):
    def __init__(self, barcode: str):
        self.barcode = barcode
        super().__init__(f"Product not found or not enabled: {barcode}")


class GeocodingError(PricingError):
    default_message = "Address not valid or not found"


class OutOfServiceArea(PricingError):
    def __init__(self, max_km):
        self.max_km = max_km
        super().__init__(
            f"The address is outside the delivery area (maximum {max_km} km). Choose another one."
        )


class CouponInvalid(PricingError):
    default_message = "Invalid coupon"


class CouponInUse(PricingError):
    default_message = "A coupon that already has redemptions cannot be deleted. Deactivate it instead."


class RedemptionConflict(PricingError):
    default_message = "Coupon could not be redeemed"


class ServiceUnavailable(PricingError):
    default_message = "Service temporarily unavailable, please try again"
    retryable = True


class PoolExhausted(ServiceUnavailable):
    pass


class OperationTimeout(ServiceUnavailable):
    pass


class ConfigError(RuntimeError):
    pass
