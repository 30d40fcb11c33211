from __future__ import annotations

import json
import logging

from aiohttp import web

from storefront.errors import (
    CouponInUse,
    CouponInvalid,
    GeocodingError,
    InvalidInput,
    NotFound,
    OutOfServiceArea,
    PricingError,
    ProductNotFound,
    RedemptionConflict,
    ServiceUnavailable,
)
from storefront.quotes.model import QuoteRequest
from storefront.utils.money import to_number
from storefront.web.serializers import coupon_to_dict, redemption_to_dict, rule_to_dict

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"

_STATUS = (
    (ServiceUnavailable, 503),
    (InvalidInput, 400),
    (CouponInvalid, 400),
    (CouponInUse, 400),
    (ProductNotFound, 404),
    (NotFound, 404),
    (GeocodingError, 422),
    (OutOfServiceArea, 422),
    (RedemptionConflict, 409),
)


def status_for(exc: PricingError) -> int:
    for cls, status in _STATUS:
        if isinstance(exc, cls):
            return status
    return 400


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except PricingError as e:
        status = status_for(e)
        body = {"error": e.message}
        if e.retryable:
            body["retryable"] = True
        return web.json_response(body, status=status)
    except Exception:
        logger.exception("web.unhandled method=%s path=%s", request.method, request.path)
        return web.json_response({"error": INTERNAL_ERROR_MESSAGE}, status=500)


async def _json_body(request: web.Request) -> dict:
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidInput("Request body must be valid JSON") from e
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return data


def _id_param(request: web.Request) -> int:
    try:
        return int(request.match_info["id"])
    except ValueError as e:
        raise InvalidInput("invalid id") from e


# --- storefront ---

async def quote(request: web.Request) -> web.Response:
    data = await _json_body(request)
    result = await request.app["quotes"].get_quote(QuoteRequest.from_payload(data))
    return web.json_response(result.to_dict())


async def shipping_estimate(request: web.Request) -> web.Response:
    """Delivery cost for an address alone, before a cart is quoted."""
    data = await _json_body(request)
    address = data.get("address", data.get("direccion"))
    if address is not None and not isinstance(address, str):
        raise InvalidInput("address must be a string")
    option = data.get("delivery_option", data.get("deliveryOption")) or ""
    cost = await request.app["shipping"].calculate(str(option), address)
    return web.json_response({"shippingCost": to_number(cost)})


async def free_shipping_from(request: web.Request) -> web.Response:
    threshold = await request.app["rules"].free_shipping_from()
    return web.json_response({"monto_minimo": to_number(threshold)})


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "healthy"})


# --- admin: promo rules ---

async def list_promo_rules(request: web.Request) -> web.Response:
    rules = await request.app["promo_rules_admin"].list_all()
    return web.json_response([rule_to_dict(r) for r in rules])


async def create_promo_rule(request: web.Request) -> web.Response:
    rule = await request.app["promo_rules_admin"].create(await _json_body(request))
    return web.json_response(rule_to_dict(rule), status=201)


async def update_promo_rule(request: web.Request) -> web.Response:
    rule_id = _id_param(request)
    rule = await request.app["promo_rules_admin"].update(rule_id, await _json_body(request))
    return web.json_response(rule_to_dict(rule))


async def delete_promo_rule(request: web.Request) -> web.Response:
    await request.app["promo_rules_admin"].delete(_id_param(request))
    return web.Response(status=204)


async def toggle_promo_rule(request: web.Request) -> web.Response:
    rule = await request.app["promo_rules_admin"].toggle(_id_param(request))
    return web.json_response(rule_to_dict(rule))


# --- admin: coupons ---

async def list_coupons(request: web.Request) -> web.Response:
    coupons = await request.app["coupons_admin"].list_all()
    return web.json_response([coupon_to_dict(c) for c in coupons])


async def create_coupon(request: web.Request) -> web.Response:
    coupon = await request.app["coupons_admin"].create(await _json_body(request))
    return web.json_response(coupon_to_dict(coupon), status=201)


async def update_coupon(request: web.Request) -> web.Response:
    coupon_id = _id_param(request)
    coupon = await request.app["coupons_admin"].update(coupon_id, await _json_body(request))
    return web.json_response(coupon_to_dict(coupon))


async def delete_coupon(request: web.Request) -> web.Response:
    await request.app["coupons_admin"].delete(_id_param(request))
    return web.Response(status=204)


async def toggle_coupon(request: web.Request) -> web.Response:
    coupon = await request.app["coupons_admin"].toggle(_id_param(request))
    return web.json_response(coupon_to_dict(coupon))


async def coupon_redemptions(request: web.Request) -> web.Response:
    rows = await request.app["coupons_admin"].redemptions(_id_param(request))
    return web.json_response([redemption_to_dict(r) for r in rows])


def create_web_app(*, quotes, shipping, rules, promo_rules_admin, coupons_admin) -> web.Application:
    app = web.Application(middlewares=[error_middleware])
    app["quotes"] = quotes
    app["shipping"] = shipping
    app["rules"] = rules
    app["promo_rules_admin"] = promo_rules_admin
    app["coupons_admin"] = coupons_admin

    app.router.add_get("/health", health)
    app.router.add_post("/api/quote", quote)
    app.router.add_post("/api/shipping", shipping_estimate)
    app.router.add_get("/api/promos/free-shipping-from", free_shipping_from)

    app.router.add_get("/api/admin/promo-rules", list_promo_rules)
    app.router.add_post("/api/admin/promo-rules", create_promo_rule)
    app.router.add_put("/api/admin/promo-rules/{id}", update_promo_rule)
    app.router.add_delete("/api/admin/promo-rules/{id}", delete_promo_rule)
    app.router.add_patch("/api/admin/promo-rules/{id}/toggle", toggle_promo_rule)

    app.router.add_get("/api/admin/coupons", list_coupons)
    app.router.add_post("/api/admin/coupons", create_coupon)
    app.router.add_put("/api/admin/coupons/{id}", update_coupon)
    app.router.add_delete("/api/admin/coupons/{id}", delete_coupon)
    app.router.add_patch("/api/admin/coupons/{id}/toggle", toggle_coupon)
    app.router.add_get("/api/admin/coupons/{id}/redemptions", coupon_redemptions)
    return app


async def start_web_server(app: web.Application, host: str = "0.0.0.0", port: int = 8080) -> web.AppRunner:
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host=host, port=port)
    await site.start()
    logger.info("web.started host=%s port=%s", host, port)
    return runner
