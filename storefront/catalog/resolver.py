from __future__ import annotations

import logging
import re
from decimal import Decimal
from typing import Iterable

from storefront.catalog.model import CartLine, PricedCart, PricedItem
from storefront.errors import InvalidInput, ProductNotFound
from storefront.utils.money import round2

logger = logging.getLogger(__name__)


_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _clamp_quantity(raw) -> int:
    """Leading integer of `raw` ("2.5" -> 2, "3 units" -> 3), at least 1."""
    m = _LEADING_INT.match(str(raw)) if raw is not None else None
    qty = int(m.group(1)) if m else 1
    return max(1, qty)


def line_subtotal(price: Decimal, quantity: int) -> Decimal:
    return round2(price * quantity)


def cart_subtotal(line_subtotals: Iterable[Decimal]) -> Decimal:
    # lines are already rounded; the sum gets its own rounding step
    return round2(sum(line_subtotals, Decimal("0")))


class CatalogPriceResolver:
    def __init__(self, storage):
        self.storage = storage

    async def resolve(self, lines: Iterable[CartLine]) -> PricedCart:
        lines = list(lines)
        barcodes = list(dict.fromkeys(
            (line.barcode or "").strip() for line in lines if (line.barcode or "").strip()
        ))
        if not barcodes:
            raise InvalidInput("No valid product codes to price")

        products = await self.storage.get_products(barcodes)

        items: list[PricedItem] = []
        for line in lines:
            barcode = (line.barcode or "").strip()
            product = products.get(barcode)
            if product is None or not product.enabled:
                logger.info("catalog.resolve.missing barcode=%s", barcode)
                raise ProductNotFound(barcode)

            qty = _clamp_quantity(line.quantity)
            price = product.effective_price
            items.append(PricedItem(
                barcode=barcode,
                internal_code=product.internal_code,
                name=line.display_name or product.name,
                quantity=qty,
                price=price,
                line_subtotal=line_subtotal(price, qty),
            ))

        subtotal = cart_subtotal(it.line_subtotal for it in items)
        logger.debug("catalog.resolve.done lines=%s subtotal=%s", len(items), subtotal)
        return PricedCart(subtotal=subtotal, items=tuple(items))
