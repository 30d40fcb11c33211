from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from storefront.errors import GeocodingError, OperationTimeout
from storefront.shipping.geo import Coordinates

logger = logging.getLogger(__name__)


class OpenCageGeocoder:
    """
    OpenCage forward geocoding:
    - GET /geocode/v1/json?q=<address>&key=<api key>&limit=1
    Only the first result's geometry is used.
    """

    BASE_URL = "https://api.opencagedata.com"
    TIMEOUT_SECONDS = 10

    def __init__(self, api_key: str | None = None):
        self.api_key = api_key
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.TIMEOUT_SECONDS)
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    async def geocode(self, address: str, api_key: str | None = None) -> Optional[Coordinates]:
        """First match for `address`, or None when the provider has no results."""
        key = api_key or self.api_key
        params = {"q": address, "key": key, "limit": "1"}
        s = await self._get_session()
        url = f"{self.BASE_URL}/geocode/v1/json"
        try:
            async with s.get(url, params=params) as r:
                data: Dict[str, Any] = await r.json(content_type=None)
                if r.status >= 400:
                    logger.warning("geocode.http_error status=%s", r.status)
                    raise GeocodingError()
        except asyncio.TimeoutError as e:
            logger.warning("geocode.timeout timeout=%s", self.TIMEOUT_SECONDS)
            raise OperationTimeout() from e
        except aiohttp.ClientError as e:
            logger.warning("geocode.network_error error=%s", type(e).__name__)
            raise GeocodingError() from e
        except ValueError as e:
            # non-JSON body
            raise GeocodingError() from e

        results = (data or {}).get("results") or []
        if not results:
            return None
        geometry = results[0].get("geometry") or {}
        try:
            return Coordinates(lat=float(geometry["lat"]), lng=float(geometry["lng"]))
        except (KeyError, TypeError, ValueError) as e:
            raise GeocodingError() from e
