from storefront.shipping.calculator import ShippingCalculator, is_pickup
from storefront.shipping.geo import Coordinates, haversine_km, shipping_cost_from_distance
from storefront.shipping.store_location import StoreLocator

__all__ = [
    "Coordinates",
    "ShippingCalculator",
    "StoreLocator",
    "haversine_km",
    "is_pickup",
    "shipping_cost_from_distance",
]
