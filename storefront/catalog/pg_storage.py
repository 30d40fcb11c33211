from __future__ import annotations

from typing import Sequence

from storefront.catalog.model import CatalogProduct


class PgCatalogStorage:
    def __init__(self, pool):
        self.pool = pool

    async def get_products(self, barcodes: Sequence[str]) -> dict[str, CatalogProduct]:
        """Enabled products keyed by barcode; missing/disabled barcodes are absent."""
        sql = """
        SELECT
            a.codigo_barra,
            a.cod_interno,
            a.art_desc_vta,
            a.cod_iva,
            a.precio_sin_iva_4,
            a.costo,
            a.porc_impint,
            at.precio_desc
        FROM articulo a
        LEFT JOIN (
            SELECT codigo_barra, MIN(precio_desc) AS precio_desc
            FROM articulo_temp
            WHERE activo = TRUE
            GROUP BY codigo_barra
        ) at ON at.codigo_barra = a.codigo_barra
        WHERE a.codigo_barra = ANY($1::text[])
          AND a.habilitado = 'S'
        """
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(sql, list(barcodes))

        products: dict[str, CatalogProduct] = {}
        for r in rows:
            barcode = str(r["codigo_barra"] or "").strip()
            products[barcode] = CatalogProduct(
                barcode=barcode,
                internal_code=r["cod_interno"] or 0,
                name=r["art_desc_vta"] or "",
                tax_code=r["cod_iva"],
                base_notax_4=r["precio_sin_iva_4"],
                cost=r["costo"],
                import_tax_pct=r["porc_impint"],
                enabled=True,
                override_price=r["precio_desc"],
            )
        return products
