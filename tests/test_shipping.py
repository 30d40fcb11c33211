import asyncio
import unittest
from decimal import Decimal

from storefront.errors import ConfigError, GeocodingError, OutOfServiceArea
from storefront.quotes import QuoteRequest
from storefront.shipping import (
    Coordinates,
    ShippingCalculator,
    StoreLocator,
    haversine_km,
    is_pickup,
    shipping_cost_from_distance,
)

from tests.fakes import FakeGeocoder, shipping_settings

STORE = Coordinates(lat=0.0, lng=0.0)
ONE_DEGREE_EAST = Coordinates(lat=0.0, lng=1.0)
NEARBY = Coordinates(lat=0.0, lng=0.01)


def calculator(geocoder, **settings):
    return ShippingCalculator(geocoder, settings_loader=lambda: shipping_settings(**settings))


class TestGeoHelpers(unittest.TestCase):
    def test_haversine_one_degree_on_equator(self):
        self.assertEqual(haversine_km(STORE, ONE_DEGREE_EAST), Decimal("111.19"))

    def test_haversine_same_point_is_zero(self):
        self.assertEqual(haversine_km(STORE, STORE), Decimal("0.00"))

    def test_cost_from_distance(self):
        self.assertEqual(shipping_cost_from_distance(Decimal("1.11"), 500, 100), Decimal("611.00"))

    def test_cost_never_below_base_fee(self):
        self.assertEqual(shipping_cost_from_distance(Decimal("3"), 500, -100), Decimal("500"))

    def test_is_pickup(self):
        self.assertTrue(is_pickup("local", "Main St 100"))
        self.assertTrue(is_pickup("LOCAL", "Main St 100"))
        self.assertTrue(is_pickup("delivery", None))
        self.assertTrue(is_pickup("delivery", "   "))
        self.assertTrue(is_pickup("delivery", "Retiro en local"))
        self.assertFalse(is_pickup("delivery", "Main St 100"))
        self.assertFalse(is_pickup("", "Main St 100"))
        self.assertFalse(is_pickup(None, "Main St 100"))


class TestShippingCalculator(unittest.IsolatedAsyncioTestCase):
    async def test_scenario_e_pickup_keyword_skips_geocoding(self):
        geocoder = FakeGeocoder()
        cost = await calculator(geocoder).calculate("delivery", "Retiro en local")
        self.assertEqual(cost, Decimal("0"))
        self.assertEqual(geocoder.calls, [])

    async def test_blank_address_and_local_option_skip_geocoding(self):
        geocoder = FakeGeocoder()
        calc = calculator(geocoder)
        self.assertEqual(await calc.calculate("delivery", ""), Decimal("0"))
        self.assertEqual(await calc.calculate("local", "Main St 100"), Decimal("0"))
        self.assertEqual(geocoder.calls, [])

    async def test_short_address_costs_nothing(self):
        geocoder = FakeGeocoder()
        self.assertEqual(await calculator(geocoder).calculate("delivery", " ab1 "), Decimal("0"))
        self.assertEqual(geocoder.calls, [])

    async def test_distance_priced_delivery(self):
        geocoder = FakeGeocoder({"Store 123, Springfield": STORE, "Main St 100": NEARBY})
        cost = await calculator(geocoder).calculate("delivery", "  Main St 100  ")
        # 1.11 km -> 500 + 1.11 * 100
        self.assertEqual(cost, Decimal("611.00"))
        self.assertEqual(geocoder.calls, ["Store 123, Springfield", "Main St 100"])

    async def test_missing_delivery_option_with_address_is_priced(self):
        geocoder = FakeGeocoder({"Store 123, Springfield": STORE, "Main St 100": NEARBY})
        req = QuoteRequest.from_payload({"items": [{"barcode": "1"}], "address": "Main St 100"})
        self.assertEqual(req.delivery_option, "")
        cost = await calculator(geocoder).calculate(req.delivery_option, req.address)
        self.assertEqual(cost, Decimal("611.00"))
        self.assertIn("Main St 100", geocoder.calls)

    async def test_store_coordinate_is_geocoded_once(self):
        geocoder = FakeGeocoder({"Store 123, Springfield": STORE, "Main St 100": NEARBY})
        calc = calculator(geocoder)
        await calc.calculate("delivery", "Main St 100")
        await calc.calculate("delivery", "Main St 100")
        self.assertEqual(geocoder.calls.count("Store 123, Springfield"), 1)
        self.assertEqual(geocoder.calls.count("Main St 100"), 2)

    async def test_concurrent_first_requests_share_one_store_lookup(self):
        geocoder = FakeGeocoder({"Store 123, Springfield": STORE, "Main St 100": NEARBY}, delay=0.01)
        calc = calculator(geocoder)
        costs = await asyncio.gather(*(calc.calculate("delivery", "Main St 100") for _ in range(5)))
        self.assertEqual(set(costs), {Decimal("611.00")})
        self.assertEqual(geocoder.calls.count("Store 123, Springfield"), 1)

    async def test_failed_store_lookup_is_not_cached(self):
        geocoder = FakeGeocoder({"Main St 100": NEARBY})
        locator = StoreLocator(geocoder)
        calc = ShippingCalculator(geocoder, locator, settings_loader=shipping_settings)
        with self.assertRaises(GeocodingError):
            await calc.calculate("delivery", "Main St 100")
        self.assertIsNone(locator.cached)

        geocoder.places["Store 123, Springfield"] = STORE
        self.assertEqual(await calc.calculate("delivery", "Main St 100"), Decimal("611.00"))
        self.assertEqual(locator.cached, STORE)

    async def test_unknown_destination_raises(self):
        geocoder = FakeGeocoder({"Store 123, Springfield": STORE})
        with self.assertRaises(GeocodingError):
            await calculator(geocoder).calculate("delivery", "Nowhere 404")

    async def test_out_of_service_area(self):
        geocoder = FakeGeocoder({"Store 123, Springfield": STORE, "Far Away 1": ONE_DEGREE_EAST})
        with self.assertRaises(OutOfServiceArea) as ctx:
            await calculator(geocoder, max_distance_km=Decimal("50")).calculate("delivery", "Far Away 1")
        self.assertIn("50", ctx.exception.message)

    async def test_zero_max_distance_means_unlimited(self):
        geocoder = FakeGeocoder({"Store 123, Springfield": STORE, "Far Away 1": ONE_DEGREE_EAST})
        cost = await calculator(geocoder, max_distance_km=Decimal("0")).calculate("delivery", "Far Away 1")
        self.assertEqual(cost, Decimal("11619.00"))

    async def test_missing_geocoding_config(self):
        with self.assertRaises(ConfigError):
            await calculator(FakeGeocoder(), geocoding_api_key=None).calculate("delivery", "Main St 100")


if __name__ == "__main__":
    unittest.main()
