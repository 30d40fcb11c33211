from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from storefront.utils.money import D, round2

# COD_IVA -> VAT multiplier; anything else is priced like tier 0
TAX_TIERS = {
    0: Decimal("1.21"),
    1: Decimal("1.105"),
    2: Decimal("1"),
}
DEFAULT_TAX_TIER = 0


def tier_price(tax_code, base_notax_4, cost=None, import_tax_pct=None) -> Decimal:
    try:
        tier = int(tax_code)
    except (TypeError, ValueError):
        tier = DEFAULT_TAX_TIER
    multiplier = TAX_TIERS.get(tier, TAX_TIERS[DEFAULT_TAX_TIER])

    base = round2(D(base_notax_4) * multiplier)
    internal_tax = round2(D(cost) * D(import_tax_pct) / Decimal(100))
    return base + internal_tax


@dataclass(frozen=True)
class CartLine:
    barcode: str
    quantity: int = 1
    display_name: Optional[str] = None


@dataclass(frozen=True)
class CatalogProduct:
    barcode: str
    internal_code: int
    name: str
    tax_code: Optional[int]
    base_notax_4: Decimal
    cost: Optional[Decimal] = None
    import_tax_pct: Optional[Decimal] = None
    enabled: bool = True
    # MIN(precio_desc) over the active offer/featured/clearance rows
    override_price: Optional[Decimal] = None

    @property
    def effective_price(self) -> Decimal:
        if self.override_price is not None:
            return D(self.override_price)
        return tier_price(self.tax_code, self.base_notax_4, self.cost, self.import_tax_pct)


@dataclass(frozen=True)
class PricedItem:
    barcode: str
    internal_code: int
    name: str
    quantity: int
    price: Decimal
    line_subtotal: Decimal


@dataclass(frozen=True)
class PricedCart:
    subtotal: Decimal
    items: tuple[PricedItem, ...]
