import asyncio
import unittest
from datetime import timedelta
from decimal import Decimal

from storefront.coupons import Coupon, CouponKind, CouponService, compute_discount, normalize_code
from storefront.errors import CouponInvalid, RedemptionConflict

from tests.fakes import NOW, FakeConnection, FakeCouponStorage, fixed_clock


def coupon(coupon_id=1, code="SAVE10", kind=CouponKind.PERCENTAGE, value=10, **kw):
    return Coupon(id=coupon_id, code=code, kind=kind, value=Decimal(str(value)), **kw)


def service(*coupons, **storage_kw):
    storage = FakeCouponStorage(coupons, **storage_kw)
    return CouponService(storage, clock=fixed_clock), storage


class TestCouponHelpers(unittest.TestCase):
    def test_normalize_code(self):
        self.assertEqual(normalize_code("  save 10\t"), "SAVE10")
        self.assertEqual(normalize_code(None), "")

    def test_percentage_is_capped_at_100(self):
        self.assertEqual(compute_discount(CouponKind.PERCENTAGE, Decimal("150"), Decimal("80")), Decimal("80.00"))
        self.assertEqual(compute_discount(CouponKind.PERCENTAGE, Decimal("12.5"), Decimal("99.99")), Decimal("12.50"))

    def test_fixed_amount_is_capped_at_subtotal(self):
        self.assertEqual(compute_discount(CouponKind.FIXED_AMOUNT, Decimal("1000"), Decimal("300")), Decimal("300.00"))
        self.assertEqual(compute_discount(CouponKind.FIXED_AMOUNT, Decimal("50"), Decimal("300")), Decimal("50.00"))


class TestCouponValidation(unittest.IsolatedAsyncioTestCase):
    async def test_valid_percentage_coupon(self):
        svc, _ = service(coupon())
        result = await svc.validate(" save 10 ", Decimal("250"))
        self.assertTrue(result.valid)
        self.assertEqual(result.coupon_id, 1)
        self.assertEqual(result.discount_amount, Decimal("25.00"))

    async def test_scenario_d_fixed_amount_capped(self):
        svc, _ = service(coupon(kind=CouponKind.FIXED_AMOUNT, value=1000))
        result = await svc.validate("SAVE10", Decimal("300"))
        self.assertTrue(result.valid)
        self.assertEqual(result.discount_amount, Decimal("300.00"))

    async def test_blank_code_skips_lookup(self):
        svc, storage = service(coupon())
        result = await svc.validate("   ", Decimal("100"))
        self.assertFalse(result.valid)
        self.assertEqual(result.message, "Invalid code")
        self.assertEqual(storage.lookups, 0)

    async def test_inactive_coupon_looks_like_missing(self):
        svc, _ = service(coupon(active=False))
        missing = await svc.validate("OTHER", Decimal("100"))
        inactive = await svc.validate("SAVE10", Decimal("100"))
        self.assertFalse(inactive.valid)
        self.assertEqual(inactive.message, missing.message)

    async def test_window(self):
        svc, _ = service(
            coupon(1, "EARLY", starts_at=NOW + timedelta(hours=1)),
            coupon(2, "LATE", ends_at=NOW - timedelta(hours=1)),
        )
        early = await svc.validate("EARLY", Decimal("100"))
        late = await svc.validate("LATE", Decimal("100"))
        self.assertFalse(early.valid)
        self.assertFalse(late.valid)
        self.assertIn("not valid yet", early.message)
        self.assertIn("expired", late.message)

    async def test_scenario_f_exhausted_coupon(self):
        svc, _ = service(coupon(max_uses=3, uses=3))
        result = await svc.validate("SAVE10", Decimal("100"))
        self.assertFalse(result.valid)
        self.assertIn("no usable redemptions left", result.message)

    async def test_minimum_subtotal_in_message(self):
        svc, _ = service(coupon(min_subtotal=Decimal("500")))
        result = await svc.validate("SAVE10", Decimal("499.99"))
        self.assertFalse(result.valid)
        self.assertIn("$500.00", result.message)

    async def test_minimum_subtotal_is_inclusive(self):
        svc, _ = service(coupon(min_subtotal=Decimal("500")))
        result = await svc.validate("SAVE10", Decimal("500.00"))
        self.assertTrue(result.valid)
        self.assertEqual(result.discount_amount, Decimal("50.00"))

    async def test_naive_window_values_are_read_as_utc(self):
        naive_now = NOW.replace(tzinfo=None)
        svc, _ = service(
            coupon(1, "OPEN", starts_at=naive_now - timedelta(days=1), ends_at=naive_now + timedelta(days=1)),
            coupon(2, "LATE", ends_at=naive_now - timedelta(minutes=1)),
            coupon(3, "EARLY", starts_at=naive_now + timedelta(minutes=1)),
        )
        self.assertTrue((await svc.validate("OPEN", Decimal("100"))).valid)
        self.assertIn("expired", (await svc.validate("LATE", Decimal("100"))).message)
        self.assertIn("not valid yet", (await svc.validate("EARLY", Decimal("100"))).message)

    async def test_validate_never_mutates(self):
        svc, storage = service(coupon(max_uses=1))
        for _ in range(3):
            self.assertTrue((await svc.validate("SAVE10", Decimal("100"))).valid)
        self.assertEqual(storage.coupons[1].uses, 0)
        self.assertEqual(storage.redemptions, [])

    async def test_require_valid_raises_with_message(self):
        svc, _ = service(coupon(max_uses=1, uses=1))
        with self.assertRaises(CouponInvalid) as ctx:
            await svc.require_valid("SAVE10", Decimal("100"))
        self.assertIn("no usable redemptions left", ctx.exception.message)


class TestCouponRedemption(unittest.IsolatedAsyncioTestCase):
    async def test_redeem_in_own_transaction(self):
        svc, storage = service(coupon(max_uses=2))
        await svc.redeem(1, 77, Decimal("25.004"))

        self.assertEqual(storage.coupons[1].uses, 1)
        self.assertEqual(len(storage.redemptions), 1)
        row = storage.redemptions[0]
        self.assertEqual((row.coupon_id, row.order_id, row.amount), (1, 77, Decimal("25.00")))
        self.assertTrue(storage.transactions[0].committed)

    async def test_redeem_joins_caller_transaction(self):
        svc, storage = service(coupon(max_uses=2))
        conn = FakeConnection()
        await svc.redeem(1, 77, Decimal("10"), conn=conn)

        # nothing visible until the caller commits
        self.assertEqual(storage.coupons[1].uses, 0)
        self.assertEqual(storage.transactions, [])
        await conn.commit()
        self.assertEqual(storage.coupons[1].uses, 1)
        self.assertEqual(len(storage.redemptions), 1)

    async def test_caller_rollback_discards_redemption(self):
        svc, storage = service(coupon(max_uses=2))
        conn = FakeConnection()
        await svc.redeem(1, 77, Decimal("10"), conn=conn)
        await conn.rollback()
        self.assertEqual(storage.coupons[1].uses, 0)
        self.assertEqual(storage.redemptions, [])

    async def test_vanished_coupon_conflicts(self):
        svc, storage = service()
        with self.assertRaises(RedemptionConflict):
            await svc.redeem(42, 77, Decimal("10"))
        self.assertTrue(storage.transactions[0].rolled_back)

    async def test_failed_audit_insert_rolls_back_increment(self):
        svc, storage = service(coupon(max_uses=2), fail_insert=True)
        with self.assertRaises(RuntimeError):
            await svc.redeem(1, 77, Decimal("10"))
        self.assertEqual(storage.coupons[1].uses, 0)
        self.assertTrue(storage.transactions[0].rolled_back)

    async def test_concurrent_redemptions_of_last_use(self):
        svc, storage = service(coupon(max_uses=5, uses=4))
        results = await asyncio.gather(
            svc.redeem(1, 101, Decimal("10")),
            svc.redeem(1, 102, Decimal("10")),
            return_exceptions=True,
        )

        successes = [r for r in results if r is None]
        failures = [r for r in results if isinstance(r, RedemptionConflict)]
        self.assertEqual(len(successes), 1)
        self.assertEqual(len(failures), 1)
        self.assertEqual(storage.coupons[1].uses, 5)
        self.assertEqual(len(storage.redemptions), 1)


if __name__ == "__main__":
    unittest.main()
