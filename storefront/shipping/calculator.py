from __future__ import annotations

import logging
from decimal import Decimal
from typing import Callable

from storefront.config import ShippingSettings, load_shipping_settings
from storefront.errors import GeocodingError, OutOfServiceArea
from storefront.shipping.geo import haversine_km, shipping_cost_from_distance
from storefront.shipping.store_location import StoreLocator

logger = logging.getLogger(__name__)

MIN_ADDRESS_LENGTH = 5
ZERO = Decimal("0.00")


def is_pickup(delivery_option, address, keyword: str = "retiro") -> bool:
    if str(delivery_option or "").strip().lower() == "local":
        return True
    text = str(address or "")
    if not text.strip():
        return True
    return bool(keyword) and keyword.lower() in text.lower()


class ShippingCalculator:
    def __init__(
        self,
        geocoder,
        store_locator: StoreLocator | None = None,
        settings_loader: Callable[[], ShippingSettings] = load_shipping_settings,
    ):
        self.geocoder = geocoder
        self.store_locator = store_locator or StoreLocator(geocoder)
        self.settings_loader = settings_loader

    async def calculate(self, delivery_option, address) -> Decimal:
        settings = self.settings_loader()

        if is_pickup(delivery_option, address, settings.pickup_keyword):
            return ZERO

        trimmed = str(address).strip()
        if len(trimmed) < MIN_ADDRESS_LENGTH:
            # too short to geocode; treated as pickup
            return ZERO

        settings.require_geocoding()
        store = await self.store_locator.get(settings)
        destination = await self.geocoder.geocode(trimmed, settings.geocoding_api_key)
        if destination is None:
            raise GeocodingError()

        distance = haversine_km(store, destination)
        if settings.max_distance_km > 0 and distance > settings.max_distance_km:
            logger.info("shipping.out_of_area distance=%s max=%s", distance, settings.max_distance_km)
            raise OutOfServiceArea(settings.max_distance_km)

        cost = shipping_cost_from_distance(distance, settings.base_fee, settings.per_km_rate)
        logger.debug("shipping.calculated distance=%s cost=%s", distance, cost)
        return cost
