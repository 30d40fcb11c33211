from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal

from storefront.admin.parsing import check_window, parse_decimal, parse_int, parse_iso8601, pick
from storefront.coupons.model import Coupon, CouponKind, CouponRedemption
from storefront.coupons.service import normalize_code
from storefront.errors import CouponInUse, InvalidInput, NotFound

logger = logging.getLogger(__name__)


def _parse_kind(raw) -> CouponKind:
    try:
        return CouponKind(raw)
    except ValueError as e:
        raise InvalidInput("tipo must be porcentaje or monto_fijo") from e


def _check_value(kind: CouponKind, value: Decimal) -> None:
    if kind == CouponKind.PERCENTAGE and value > 100:
        raise InvalidInput("valor cannot be > 100 for tipo porcentaje")


class CouponAdmin:
    def __init__(self, storage):
        self.storage = storage

    async def list_all(self) -> list[Coupon]:
        return await self.storage.list_coupons()

    async def create(self, data: dict) -> Coupon:
        code = normalize_code(data.get("codigo"))
        if not code:
            raise InvalidInput("codigo is required and cannot be empty")
        kind = _parse_kind(data.get("tipo"))
        value = parse_decimal(data.get("valor"), "valor", minimum=Decimal(0))
        _check_value(kind, value)
        min_subtotal = parse_decimal(data.get("monto_minimo"), "monto_minimo", minimum=Decimal(0))
        max_uses = parse_int(data.get("usos_maximos"), "usos_maximos", minimum=1)
        starts_at = parse_iso8601(data.get("fecha_inicio"), "fecha_inicio")
        ends_at = parse_iso8601(data.get("fecha_fin"), "fecha_fin")
        check_window(starts_at, ends_at)

        if await self.storage.code_taken(code):
            raise InvalidInput("A coupon with that code already exists")

        created = await self.storage.create_coupon(Coupon(
            id=0,
            code=code,
            kind=kind,
            value=value,
            min_subtotal=min_subtotal,
            max_uses=max_uses,
            uses=0,
            active=True,
            starts_at=starts_at,
            ends_at=ends_at,
        ))
        logger.info("admin.coupon.created id=%s code=%s", created.id, created.code)
        return created

    async def update(self, coupon_id: int, data: dict) -> Coupon:
        current = await self.storage.get_coupon(coupon_id)
        if current is None:
            raise NotFound("Coupon not found")

        code = normalize_code(data["codigo"]) if data.get("codigo") is not None else current.code
        if not code:
            raise InvalidInput("codigo cannot be empty")
        if code != current.code and await self.storage.code_taken(code, exclude_id=coupon_id):
            raise InvalidInput("Another coupon with that code already exists")

        kind = _parse_kind(data["tipo"]) if data.get("tipo") is not None else current.kind
        value = parse_decimal(data["valor"], "valor", minimum=Decimal(0)) if "valor" in data else current.value
        _check_value(kind, value)
        min_subtotal = (
            parse_decimal(data["monto_minimo"], "monto_minimo", minimum=Decimal(0))
            if "monto_minimo" in data
            else current.min_subtotal
        )
        max_uses = (
            parse_int(data["usos_maximos"], "usos_maximos", minimum=1)
            if "usos_maximos" in data
            else current.max_uses
        )
        if max_uses < current.uses:
            raise InvalidInput("usos_maximos cannot be lower than usos_actuales")

        starts_at = (
            parse_iso8601(data["fecha_inicio"], "fecha_inicio") if "fecha_inicio" in data else current.starts_at
        )
        ends_at = parse_iso8601(data["fecha_fin"], "fecha_fin") if "fecha_fin" in data else current.ends_at
        check_window(starts_at, ends_at)

        saved = await self.storage.update_coupon(replace(
            current,
            code=code,
            kind=kind,
            value=value,
            min_subtotal=min_subtotal,
            max_uses=max_uses,
            active=bool(pick(data, "activo", current.active)),
            starts_at=starts_at,
            ends_at=ends_at,
        ))
        if saved is None:
            raise NotFound("Coupon not found")
        return saved

    async def delete(self, coupon_id: int) -> None:
        # redemptions are an append-only audit trail; used coupons can only be deactivated
        if await self.storage.has_redemptions(coupon_id):
            raise CouponInUse()
        if not await self.storage.delete_coupon(coupon_id):
            raise NotFound("Coupon not found")
        logger.info("admin.coupon.deleted id=%s", coupon_id)

    async def toggle(self, coupon_id: int) -> Coupon:
        coupon = await self.storage.toggle_coupon(coupon_id)
        if coupon is None:
            raise NotFound("Coupon not found")
        return coupon

    async def redemptions(self, coupon_id: int) -> list[CouponRedemption]:
        return await self.storage.list_redemptions(coupon_id)
