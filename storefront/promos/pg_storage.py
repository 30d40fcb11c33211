from __future__ import annotations

from datetime import datetime
from typing import Optional

from storefront.db.pool import affected_rows
from storefront.promos.model import PromoRule, RuleKind
from storefront.utils.dates import as_utc

_COLUMNS = """
    id, nombre, tipo, activo, orden, monto_minimo, valor,
    porcentaje_descuento, fecha_inicio, fecha_fin, updated_at
"""


def _row_to_rule(row) -> PromoRule:
    return PromoRule(
        id=row["id"],
        name=row["nombre"],
        kind=RuleKind(row["tipo"]),
        active=bool(row["activo"]),
        order=row["orden"] or 0,
        min_subtotal=row["monto_minimo"],
        value=row["valor"],
        discount_pct=row["porcentaje_descuento"],
        starts_at=as_utc(row["fecha_inicio"]),
        ends_at=as_utc(row["fecha_fin"]),
        updated_at=as_utc(row["updated_at"]),
    )


class PgPromoRuleStorage:
    def __init__(self, pool):
        self.pool = pool

    async def get_active_rules(self, now: datetime) -> list[PromoRule]:
        sql = f"""
        SELECT {_COLUMNS}
        FROM promo_rules
        WHERE activo = TRUE
          AND (fecha_inicio IS NULL OR fecha_inicio <= $1)
          AND (fecha_fin IS NULL OR fecha_fin >= $1)
        ORDER BY orden ASC, id ASC
        """
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(sql, now)
        return [_row_to_rule(r) for r in rows]

    # --- admin ---

    async def list_rules(self) -> list[PromoRule]:
        sql = f"SELECT {_COLUMNS} FROM promo_rules ORDER BY orden ASC, id ASC"
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(sql)
        return [_row_to_rule(r) for r in rows]

    async def get_rule(self, rule_id: int) -> Optional[PromoRule]:
        sql = f"SELECT {_COLUMNS} FROM promo_rules WHERE id = $1"
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(sql, rule_id)
        return _row_to_rule(row) if row else None

    async def create_rule(self, rule: PromoRule) -> PromoRule:
        sql = f"""
        INSERT INTO promo_rules (
            nombre, tipo, activo, orden, monto_minimo, valor,
            porcentaje_descuento, fecha_inicio, fecha_fin
        )
        VALUES ($1,$2,$3,$4,$5,$6,$7,$8,$9)
        RETURNING {_COLUMNS}
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                sql,
                rule.name,
                rule.kind.value,
                rule.active,
                rule.order,
                rule.min_subtotal,
                rule.value,
                rule.discount_pct,
                rule.starts_at,
                rule.ends_at,
            )
        return _row_to_rule(row)

    async def update_rule(self, rule: PromoRule) -> Optional[PromoRule]:
        sql = f"""
        UPDATE promo_rules
        SET nombre=$2, tipo=$3, activo=$4, orden=$5, monto_minimo=$6, valor=$7,
            porcentaje_descuento=$8, fecha_inicio=$9, fecha_fin=$10, updated_at=now()
        WHERE id=$1
        RETURNING {_COLUMNS}
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                sql,
                rule.id,
                rule.name,
                rule.kind.value,
                rule.active,
                rule.order,
                rule.min_subtotal,
                rule.value,
                rule.discount_pct,
                rule.starts_at,
                rule.ends_at,
            )
        return _row_to_rule(row) if row else None

    async def delete_rule(self, rule_id: int) -> bool:
        async with self.pool.acquire() as conn:
            res = await conn.execute("DELETE FROM promo_rules WHERE id = $1", rule_id)
        return affected_rows(res) > 0

    async def toggle_rule(self, rule_id: int) -> Optional[PromoRule]:
        sql = f"""
        UPDATE promo_rules
        SET activo = NOT activo, updated_at = now()
        WHERE id = $1
        RETURNING {_COLUMNS}
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(sql, rule_id)
        return _row_to_rule(row) if row else None
