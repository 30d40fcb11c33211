from __future__ import annotations

from datetime import datetime
from typing import Optional

from storefront.coupons.model import Coupon, CouponRedemption
from storefront.promos.model import PromoRule
from storefront.utils.money import to_number


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt is not None else None


def rule_to_dict(r: PromoRule) -> dict:
    return {
        "id": r.id,
        "nombre": r.name,
        "tipo": r.kind.value,
        "activo": r.active,
        "orden": r.order,
        "monto_minimo": to_number(r.min_subtotal),
        "valor": to_number(r.value),
        "porcentaje_descuento": to_number(r.discount_pct),
        "fecha_inicio": _iso(r.starts_at),
        "fecha_fin": _iso(r.ends_at),
        "updated_at": _iso(r.updated_at),
    }


def coupon_to_dict(c: Coupon) -> dict:
    return {
        "id": c.id,
        "codigo": c.code,
        "tipo": c.kind.value,
        "valor": to_number(c.value),
        "monto_minimo": to_number(c.min_subtotal),
        "usos_maximos": c.max_uses,
        "usos_actuales": c.uses,
        "fecha_inicio": _iso(c.starts_at),
        "fecha_fin": _iso(c.ends_at),
        "activo": c.active,
        "updated_at": _iso(c.updated_at),
    }


def redemption_to_dict(r: CouponRedemption) -> dict:
    return {
        "id": r.id,
        "id_pedido": r.order_id,
        "monto_aplicado": to_number(r.amount),
        "created_at": _iso(r.created_at),
    }
