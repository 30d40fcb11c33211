import asyncio
import logging

from storefront.config import APP_ENV, load_config
from storefront.db.pool import PgConfig, create_pool
from storefront.services.opencage import OpenCageGeocoder
from storefront.web.app import create_web_app, start_web_server
from storefront.wiring import build_services

logger = logging.getLogger("storefront")


async def main():
    cfg = load_config()
    logging.basicConfig(
        level=cfg.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    pool = await create_pool(PgConfig.from_env())
    geocoder = OpenCageGeocoder()
    runner = None

    try:
        # connection check at startup
        await pool.execute("select 1;")
        logger.info("startup app_env=%s db=ok", APP_ENV)

        services = build_services(pool, geocoder)
        app = create_web_app(
            quotes=services.quotes,
            shipping=services.shipping,
            rules=services.rules,
            promo_rules_admin=services.promo_rules_admin,
            coupons_admin=services.coupons_admin,
        )
        runner = await start_web_server(app, host=cfg.http_host, port=cfg.http_port)

        while True:
            await asyncio.sleep(3600)
    finally:
        if runner is not None:
            await runner.cleanup()
        await geocoder.close()
        await pool.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
