from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from storefront.catalog.model import CartLine, PricedItem
from storefront.errors import InvalidInput
from storefront.utils.money import to_number


def _first(data: dict, *keys, default=None):
    for k in keys:
        if data.get(k) is not None:
            return data[k]
    return default


@dataclass(frozen=True)
class QuoteRequest:
    items: tuple[CartLine, ...]
    delivery_option: str = ""
    address: Optional[str] = None
    coupon_code: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Any) -> "QuoteRequest":
        """Accepts the storefront checkout payload (Spanish keys) or English keys."""
        if not isinstance(data, dict):
            raise InvalidInput("Request body must be a JSON object")

        raw_items = _first(data, "items", "productos", default=[])
        if not isinstance(raw_items, list):
            raise InvalidInput("items must be a list")

        lines = []
        for raw in raw_items:
            if not isinstance(raw, dict):
                raise InvalidInput("Each item must be an object")
            lines.append(CartLine(
                barcode=str(_first(raw, "barcode", "codigo_barra", default="")).strip(),
                quantity=_first(raw, "quantity", "cantidad", default=1),
                display_name=_first(raw, "display_name", "nombre_producto"),
            ))

        coupon = _first(data, "coupon_code", "couponCode", "cuponCodigo")
        address = _first(data, "address", "direccion")
        return cls(
            items=tuple(lines),
            delivery_option=str(_first(data, "delivery_option", "deliveryOption", default="")),
            address=str(address) if address is not None else None,
            coupon_code=str(coupon) if coupon is not None else None,
        )


@dataclass(frozen=True)
class QuoteSnapshot:
    """Audit copy of every intermediate value; informational only."""

    subtotal: Decimal
    raw_shipping: Decimal
    final_shipping: Decimal
    rule_discount: Decimal
    coupon_discount: Decimal
    applied_rule_id: Optional[int]
    coupon_id: Optional[int]
    total: Decimal
    at: str

    def to_dict(self) -> dict:
        return {
            "subtotal": to_number(self.subtotal),
            "shippingBruto": to_number(self.raw_shipping),
            "shippingFinal": to_number(self.final_shipping),
            "discountRule": to_number(self.rule_discount),
            "discountCoupon": to_number(self.coupon_discount),
            "reglaAplicadaId": self.applied_rule_id,
            "couponId": self.coupon_id,
            "total": to_number(self.total),
            "at": self.at,
        }


@dataclass(frozen=True)
class Quote:
    subtotal: Decimal
    raw_shipping: Decimal
    shipping: Decimal
    rule_discount: Decimal
    coupon_discount: Decimal
    total: Decimal
    applied_rule_id: Optional[int]
    coupon_id: Optional[int]
    free_shipping: bool
    items: tuple[PricedItem, ...]
    snapshot: QuoteSnapshot

    def to_dict(self) -> dict:
        return {
            "subtotal": to_number(self.subtotal),
            "shipping": to_number(self.shipping),
            "discountRule": to_number(self.rule_discount),
            "discountCoupon": to_number(self.coupon_discount),
            "total": to_number(self.total),
            "reglaAplicadaId": self.applied_rule_id,
            "couponId": self.coupon_id,
            "envioGratis": self.free_shipping,
            "items": [
                {
                    "codigo_barra": it.barcode,
                    "cod_interno": it.internal_code,
                    "nombre_producto": it.name,
                    "cantidad": it.quantity,
                    "precio": to_number(it.price),
                    "subtotal_item": to_number(it.line_subtotal),
                }
                for it in self.items
            ],
            "pricing_snapshot": self.snapshot.to_dict(),
        }
