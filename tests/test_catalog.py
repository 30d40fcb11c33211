import unittest
from decimal import Decimal

from storefront.catalog import CartLine, CatalogPriceResolver, tier_price
from storefront.catalog.resolver import cart_subtotal, line_subtotal
from storefront.errors import InvalidInput, ProductNotFound
from storefront.utils.money import round2

from tests.fakes import FakeCatalogStorage, product


class TestTierPrice(unittest.TestCase):
    def test_tier_0_adds_21_percent(self):
        self.assertEqual(tier_price(0, Decimal("100")), Decimal("121.00"))

    def test_tier_1_adds_10_5_percent(self):
        self.assertEqual(tier_price(1, Decimal("100")), Decimal("110.50"))

    def test_tier_2_is_exempt(self):
        self.assertEqual(tier_price(2, Decimal("100")), Decimal("100.00"))

    def test_unknown_or_missing_tier_defaults_to_tier_0(self):
        self.assertEqual(tier_price(7, Decimal("100")), Decimal("121.00"))
        self.assertEqual(tier_price(None, Decimal("100")), Decimal("121.00"))

    def test_internal_tax_is_rounded_separately(self):
        # round2(10 * 1.21) + round2(3.333 * 10 / 100) = 12.10 + 0.33
        self.assertEqual(tier_price(0, Decimal("10"), Decimal("3.333"), Decimal("10")), Decimal("12.43"))

    def test_missing_cost_counts_as_zero(self):
        self.assertEqual(tier_price(2, Decimal("50"), None, None), Decimal("50.00"))


class TestRounding(unittest.TestCase):
    def test_round2_is_half_up(self):
        self.assertEqual(round2(Decimal("1.005")), Decimal("1.01"))
        self.assertEqual(round2(Decimal("2.675")), Decimal("2.68"))

    def test_two_stage_rounding_differs_from_single_stage(self):
        lines = [line_subtotal(Decimal("1.005"), 1) for _ in range(3)]
        self.assertEqual(lines, [Decimal("1.01")] * 3)
        self.assertEqual(cart_subtotal(lines), Decimal("3.03"))
        # rounding only the raw sum would give 3.02
        self.assertEqual(round2(Decimal("1.005") * 3), Decimal("3.02"))


class TestCatalogPriceResolver(unittest.IsolatedAsyncioTestCase):
    async def test_scenario_a(self):
        storage = FakeCatalogStorage([product("123", 100, tax_code=0)])
        cart = await CatalogPriceResolver(storage).resolve([CartLine("123", 2)])

        self.assertEqual(cart.items[0].price, Decimal("121.00"))
        self.assertEqual(cart.items[0].line_subtotal, Decimal("242.00"))
        self.assertEqual(cart.subtotal, Decimal("242.00"))

    async def test_override_price_wins_over_tier_formula(self):
        storage = FakeCatalogStorage([product("555", 100, override="80.00")])
        cart = await CatalogPriceResolver(storage).resolve([CartLine("555", 1)])
        self.assertEqual(cart.items[0].price, Decimal("80.00"))

    async def test_subtotal_uses_line_level_then_sum_rounding(self):
        storage = FakeCatalogStorage([
            product("1", 0, override="1.005"),
            product("2", 0, override="1.005"),
            product("3", 0, override="1.005"),
        ])
        cart = await CatalogPriceResolver(storage).resolve([CartLine("1"), CartLine("2"), CartLine("3")])
        self.assertEqual(cart.subtotal, Decimal("3.03"))

    async def test_barcodes_are_deduplicated_before_lookup(self):
        storage = FakeCatalogStorage([product("123", 100)])
        cart = await CatalogPriceResolver(storage).resolve([CartLine(" 123 ", 1), CartLine("123", 3)])

        self.assertEqual(storage.calls, [["123"]])
        self.assertEqual(len(cart.items), 2)
        self.assertEqual(cart.subtotal, Decimal("484.00"))

    async def test_quantity_is_clamped_to_one(self):
        storage = FakeCatalogStorage([product("123", 100)])
        cart = await CatalogPriceResolver(storage).resolve([CartLine("123", 0), CartLine("123", "abc")])
        self.assertEqual([it.quantity for it in cart.items], [1, 1])

    async def test_quantity_takes_leading_integer(self):
        storage = FakeCatalogStorage([product("123", 100)])
        cart = await CatalogPriceResolver(storage).resolve(
            [CartLine("123", "2.5"), CartLine("123", 3.9), CartLine("123", " 4 units"), CartLine("123", "-2")]
        )
        self.assertEqual([it.quantity for it in cart.items], [2, 3, 4, 1])
        self.assertEqual(cart.subtotal, Decimal("1210.00"))

    async def test_display_name_from_request_is_kept(self):
        storage = FakeCatalogStorage([product("123", 100, name="Catalog name")])
        cart = await CatalogPriceResolver(storage).resolve([CartLine("123", 1, "Cart name"), CartLine("123", 1)])
        self.assertEqual([it.name for it in cart.items], ["Cart name", "Catalog name"])

    async def test_empty_request_is_invalid(self):
        resolver = CatalogPriceResolver(FakeCatalogStorage())
        with self.assertRaises(InvalidInput):
            await resolver.resolve([])
        with self.assertRaises(InvalidInput):
            await resolver.resolve([CartLine("   ", 2)])

    async def test_missing_product_aborts_resolution(self):
        storage = FakeCatalogStorage([product("123", 100)])
        with self.assertRaises(ProductNotFound) as ctx:
            await CatalogPriceResolver(storage).resolve([CartLine("123"), CartLine("999")])
        self.assertEqual(ctx.exception.barcode, "999")

    async def test_disabled_product_is_not_found(self):
        storage = FakeCatalogStorage([product("123", 100, enabled=False)])
        with self.assertRaises(ProductNotFound):
            await CatalogPriceResolver(storage).resolve([CartLine("123")])


if __name__ == "__main__":
    unittest.main()
