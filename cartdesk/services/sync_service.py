"""
Checkout sync
─────────────
Pulls new abandoned checkouts from Shopify into ``abandoned_checkouts``.

  1. Watermark = newest stored ``created_at``, never older than
     ``sync_lookback_days`` (so an empty store still only pulls a few days).
  2. Walk Shopify's cursor pages from the watermark, strictly one after another.
  3. Upsert each page by id as it arrives. A checkout that shows up on two
     pages collapses into one row.

A failing page stops the walk and raises ShopifyAPIError. Pages already
written stay written; re-running is safe because the write is an upsert.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from cartdesk.config.settings import settings
from cartdesk.database.repositories.checkout_repository import CheckoutRepository
from cartdesk.services.cart_view import dedupe_by_id
from cartdesk.services.shopify_service import ShopifyService
from cartdesk.utils.logger import get_logger
from cartdesk.utils.timeutils import utcnow

logger = get_logger(__name__)


class SyncResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    inserted: int
    total_count: int = Field(alias="totalCount")
    watermark: datetime


class CheckoutSyncService:
    def __init__(self, db: Session, shopify: ShopifyService, lookback_days: int | None = None):
        self.repo = CheckoutRepository(db)
        self.shopify = shopify
        self.lookback_days = settings.sync_lookback_days if lookback_days is None else lookback_days

    def watermark(self, now: datetime | None = None) -> datetime:
        floor = (now or utcnow()) - timedelta(days=self.lookback_days)
        latest = self.repo.max_created_at()
        if latest is None:
            logger.debug("watermark — store is empty, using lookback floor %s", floor.isoformat())
            return floor
        return max(latest, floor)

    async def sync(self) -> SyncResult:
        created_at_min = self.watermark()
        logger.info("Checkout sync starting — created_at_min=%s", created_at_min.isoformat())

        fetched = 0
        async for page in self.shopify.iter_checkout_pages(created_at_min):
            fetched += len(page.records)
            self.repo.upsert_many(page.records)

        total = self.repo.count()
        logger.info("Checkout sync complete — fetched=%d total_in_store=%d", fetched, total)
        return SyncResult(inserted=fetched, total_count=total, watermark=created_at_min)

    async def fetch_live(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> List[Dict[str, Any]]:
        """Checkouts for a window straight from Shopify, bypassing the store. Defaults to the lookback window."""
        end = end or utcnow()
        start = start or end - timedelta(days=self.lookback_days)
        records: List[Dict[str, Any]] = []
        async for page in self.shopify.iter_checkout_pages(start, end):
            records.extend(page.records)
        unique = dedupe_by_id(records)
        logger.info("fetch_live — start=%s end=%s fetched=%d unique=%d", start, end, len(records), len(unique))
        return unique
