"""
sync_checkouts.py
─────────────────
Pull new abandoned checkouts from Shopify into the local store, the same
way POST /api/abandoned-checkouts/sync does. Handy for cron.

Usage:
    python sync_checkouts.py
    python sync_checkouts.py --lookback-days 7
"""
import argparse
import asyncio
import logging
import sys

from cartdesk.database.engine import Base, SessionLocal, engine
from cartdesk.database.models import AbandonedCheckout  # noqa: F401
from cartdesk.errors import ShopifyAPIError, ShopifyConfigError
from cartdesk.services.shopify_service import ShopifyService
from cartdesk.services.sync_service import CheckoutSyncService
from cartdesk.utils.logger import get_logger

logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")
logger = get_logger(__name__)


async def main(lookback_days: int | None) -> int:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        service = CheckoutSyncService(db, ShopifyService(), lookback_days=lookback_days)
        result = await service.sync()
    except (ShopifyAPIError, ShopifyConfigError) as exc:
        logger.error("Sync failed: %s", exc)
        return 1
    finally:
        db.close()

    print(result.model_dump_json(by_alias=True, indent=2))
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Sync abandoned checkouts from Shopify.")
    parser.add_argument("--lookback-days", type=int, default=None, help="Override SYNC_LOOKBACK_DAYS")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.lookback_days)))
