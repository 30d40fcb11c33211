from __future__ import annotations

from typing import Optional

from storefront.coupons.model import Coupon, CouponKind, CouponRedemption
from storefront.db.pool import affected_rows
from storefront.utils.dates import as_utc

_COLUMNS = """
    id, codigo, tipo, valor, monto_minimo, usos_maximos, usos_actuales,
    fecha_inicio, fecha_fin, activo, updated_at
"""

# matches codes stored before normalization was enforced
_NORMALIZED_CODE = "UPPER(REPLACE(TRIM(codigo), ' ', ''))"


def _row_to_coupon(row) -> Coupon:
    return Coupon(
        id=row["id"],
        code=row["codigo"],
        kind=CouponKind(row["tipo"]),
        value=row["valor"],
        min_subtotal=row["monto_minimo"],
        max_uses=int(row["usos_maximos"] or 1),
        uses=int(row["usos_actuales"] or 0),
        active=bool(row["activo"]),
        starts_at=as_utc(row["fecha_inicio"]),
        ends_at=as_utc(row["fecha_fin"]),
        updated_at=as_utc(row["updated_at"]),
    )


class PgCouponStorage:
    def __init__(self, pool):
        self.pool = pool

    def transaction(self):
        return self.pool.transaction()

    async def find_active_by_code(self, code: str) -> Optional[Coupon]:
        sql = f"""
        SELECT {_COLUMNS}
        FROM coupons
        WHERE {_NORMALIZED_CODE} = $1
          AND activo = TRUE
        LIMIT 1
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(sql, code)
        return _row_to_coupon(row) if row else None

    async def increment_usage(self, conn, coupon_id: int) -> int:
        """Check-and-increment in one statement; the row lock serializes redeemers."""
        sql = """
        UPDATE coupons
        SET usos_actuales = usos_actuales + 1,
            updated_at = now()
        WHERE id = $1
          AND usos_actuales < usos_maximos
        """
        res = await conn.execute(sql, coupon_id)
        return affected_rows(res)

    async def insert_redemption(self, conn, coupon_id: int, order_id: int, amount) -> None:
        sql = """
        INSERT INTO coupon_redemptions (cupon_id, id_pedido, monto_aplicado, created_at)
        VALUES ($1, $2, $3, now())
        """
        await conn.execute(sql, coupon_id, order_id, amount)

    # --- admin ---

    async def list_coupons(self) -> list[Coupon]:
        sql = f"SELECT {_COLUMNS} FROM coupons ORDER BY id DESC"
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(sql)
        return [_row_to_coupon(r) for r in rows]

    async def get_coupon(self, coupon_id: int) -> Optional[Coupon]:
        sql = f"SELECT {_COLUMNS} FROM coupons WHERE id = $1"
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(sql, coupon_id)
        return _row_to_coupon(row) if row else None

    async def code_taken(self, code: str, exclude_id: int | None = None) -> bool:
        sql = f"""
        SELECT 1 FROM coupons
        WHERE {_NORMALIZED_CODE} = $1
          AND ($2::int IS NULL OR id <> $2)
        LIMIT 1
        """
        async with self.pool.acquire() as conn:
            found = await conn.fetchval(sql, code, exclude_id)
        return found is not None

    async def create_coupon(self, c: Coupon) -> Coupon:
        sql = f"""
        INSERT INTO coupons (
            codigo, tipo, valor, monto_minimo, usos_maximos, usos_actuales,
            fecha_inicio, fecha_fin, activo
        )
        VALUES ($1,$2,$3,$4,$5,0,$6,$7,$8)
        RETURNING {_COLUMNS}
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                sql,
                c.code,
                c.kind.value,
                c.value,
                c.min_subtotal,
                c.max_uses,
                c.starts_at,
                c.ends_at,
                c.active,
            )
        return _row_to_coupon(row)

    async def update_coupon(self, c: Coupon) -> Optional[Coupon]:
        # usos_actuales is only ever touched by increment_usage
        sql = f"""
        UPDATE coupons
        SET codigo=$2, tipo=$3, valor=$4, monto_minimo=$5, usos_maximos=$6,
            fecha_inicio=$7, fecha_fin=$8, activo=$9, updated_at=now()
        WHERE id=$1
        RETURNING {_COLUMNS}
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                sql,
                c.id,
                c.code,
                c.kind.value,
                c.value,
                c.min_subtotal,
                c.max_uses,
                c.starts_at,
                c.ends_at,
                c.active,
            )
        return _row_to_coupon(row) if row else None

    async def delete_coupon(self, coupon_id: int) -> bool:
        async with self.pool.acquire() as conn:
            res = await conn.execute("DELETE FROM coupons WHERE id = $1", coupon_id)
        return affected_rows(res) > 0

    async def toggle_coupon(self, coupon_id: int) -> Optional[Coupon]:
        sql = f"""
        UPDATE coupons
        SET activo = NOT activo, updated_at = now()
        WHERE id = $1
        RETURNING {_COLUMNS}
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(sql, coupon_id)
        return _row_to_coupon(row) if row else None

    async def has_redemptions(self, coupon_id: int) -> bool:
        sql = "SELECT 1 FROM coupon_redemptions WHERE cupon_id = $1 LIMIT 1"
        async with self.pool.acquire() as conn:
            return await conn.fetchval(sql, coupon_id) is not None

    async def list_redemptions(self, coupon_id: int) -> list[CouponRedemption]:
        sql = """
        SELECT id, cupon_id, id_pedido, monto_aplicado, created_at
        FROM coupon_redemptions
        WHERE cupon_id = $1
        ORDER BY created_at DESC, id DESC
        """
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(sql, coupon_id)
        return [
            CouponRedemption(
                id=r["id"],
                coupon_id=r["cupon_id"],
                order_id=r["id_pedido"],
                amount=r["monto_aplicado"],
                created_at=as_utc(r["created_at"]),
            )
            for r in rows
        ]
