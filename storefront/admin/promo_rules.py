from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal

from storefront.admin.parsing import check_window, parse_decimal, parse_int, parse_iso8601, pick
from storefront.errors import InvalidInput, NotFound
from storefront.promos.model import PromoRule, RuleKind

logger = logging.getLogger(__name__)


def _parse_kind(raw) -> RuleKind:
    try:
        return RuleKind(raw)
    except ValueError as e:
        raise InvalidInput("tipo must be envio_gratis_monto or descuento_pct_monto") from e


def _parse_pct(raw, kind: RuleKind):
    if kind != RuleKind.PERCENT_DISCOUNT:
        return None
    if raw is None:
        raise InvalidInput("porcentaje_descuento is required for descuento_pct_monto")
    return parse_decimal(raw, "porcentaje_descuento", minimum=Decimal(0), maximum=Decimal(100))


def _parse_value(raw, kind: RuleKind):
    if kind != RuleKind.FREE_SHIPPING or raw in (None, ""):
        return None
    return parse_decimal(raw, "valor")


class PromoRuleAdmin:
    def __init__(self, storage):
        self.storage = storage

    async def list_all(self) -> list[PromoRule]:
        return await self.storage.list_rules()

    async def create(self, data: dict) -> PromoRule:
        name = str(data.get("nombre") or "").strip()
        if not name:
            raise InvalidInput("nombre is required and cannot be empty")
        kind = _parse_kind(data.get("tipo"))
        starts_at = parse_iso8601(data.get("fecha_inicio"), "fecha_inicio")
        ends_at = parse_iso8601(data.get("fecha_fin"), "fecha_fin")
        check_window(starts_at, ends_at)

        rule = PromoRule(
            id=0,
            name=name,
            kind=kind,
            active=True,
            order=parse_int(data.get("orden"), "orden", default=0),
            min_subtotal=parse_decimal(data.get("monto_minimo"), "monto_minimo", minimum=Decimal(0)),
            value=_parse_value(data.get("valor"), kind),
            discount_pct=_parse_pct(data.get("porcentaje_descuento"), kind),
            starts_at=starts_at,
            ends_at=ends_at,
        )
        created = await self.storage.create_rule(rule)
        logger.info("admin.promo_rule.created id=%s kind=%s", created.id, created.kind.value)
        return created

    async def update(self, rule_id: int, data: dict) -> PromoRule:
        current = await self.storage.get_rule(rule_id)
        if current is None:
            raise NotFound("Rule not found")

        name = str(pick(data, "nombre", current.name) or "").strip()
        if not name:
            raise InvalidInput("nombre cannot be empty")
        kind = _parse_kind(data["tipo"]) if data.get("tipo") is not None else current.kind

        if "porcentaje_descuento" in data:
            raw_pct = data["porcentaje_descuento"]
            pct = None if raw_pct is None else parse_decimal(raw_pct, "porcentaje_descuento")
        else:
            pct = current.discount_pct
        if kind == RuleKind.PERCENT_DISCOUNT and pct is not None and not (0 <= pct <= 100):
            raise InvalidInput("porcentaje_descuento must be between 0 and 100")

        if "valor" in data:
            value = None if data["valor"] is None else parse_decimal(data["valor"], "valor")
        else:
            value = current.value

        starts_at = (
            parse_iso8601(data["fecha_inicio"], "fecha_inicio") if "fecha_inicio" in data else current.starts_at
        )
        ends_at = parse_iso8601(data["fecha_fin"], "fecha_fin") if "fecha_fin" in data else current.ends_at
        check_window(starts_at, ends_at)

        updated = replace(
            current,
            name=name,
            kind=kind,
            active=bool(pick(data, "activo", current.active)),
            order=parse_int(data["orden"], "orden", default=0) if "orden" in data else current.order,
            min_subtotal=(
                parse_decimal(data["monto_minimo"], "monto_minimo", minimum=Decimal(0))
                if data.get("monto_minimo") is not None
                else current.min_subtotal
            ),
            value=value,
            discount_pct=pct,
            starts_at=starts_at,
            ends_at=ends_at,
        )
        saved = await self.storage.update_rule(updated)
        if saved is None:
            raise NotFound("Rule not found")
        return saved

    async def delete(self, rule_id: int) -> None:
        if not await self.storage.delete_rule(rule_id):
            raise NotFound("Rule not found")
        logger.info("admin.promo_rule.deleted id=%s", rule_id)

    async def toggle(self, rule_id: int) -> PromoRule:
        rule = await self.storage.toggle_rule(rule_id)
        if rule is None:
            raise NotFound("Rule not found")
        return rule
