from storefront.catalog.model import CartLine, CatalogProduct, PricedCart, PricedItem, tier_price
from storefront.catalog.resolver import CatalogPriceResolver

__all__ = [
    "CartLine",
    "CatalogPriceResolver",
    "CatalogProduct",
    "PricedCart",
    "PricedItem",
    "tier_price",
]
