from __future__ import annotations

import asyncio
import logging
from typing import Optional

from storefront.config import ShippingSettings
from storefront.errors import GeocodingError
from storefront.shipping.geo import Coordinates

logger = logging.getLogger(__name__)


class StoreLocator:
    """Store coordinate, geocoded once per process.

    The first successful lookup wins and is kept until restart, even if
    STORE_ADDRESS changes meanwhile. Failed lookups are not cached. The lock
    makes concurrent first requests share a single provider call.
    """

    def __init__(self, geocoder):
        self.geocoder = geocoder
        self._lock = asyncio.Lock()
        self._coords: Optional[Coordinates] = None

    @property
    def cached(self) -> Optional[Coordinates]:
        return self._coords

    async def get(self, settings: ShippingSettings) -> Coordinates:
        if self._coords is not None:
            return self._coords

        async with self._lock:
            if self._coords is None:
                coords = await self.geocoder.geocode(settings.store_address, settings.geocoding_api_key)
                if coords is None:
                    raise GeocodingError("Store address is not valid")
                self._coords = coords
                logger.info("shipping.store_location.cached lat=%s lng=%s", coords.lat, coords.lng)
        return self._coords

    def reset(self) -> None:
        self._coords = None
