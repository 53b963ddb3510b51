from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from cartdesk.config.settings import settings
from cartdesk.errors import ShopifyAPIError, ShopifyConfigError
from cartdesk.utils.logger import get_logger

logger = get_logger(__name__)


class CheckoutPage(BaseModel):
    records: List[Dict[str, Any]] = Field(default_factory=list)
    # Full URL of the next page (from the Link header), None on the last page
    next_url: Optional[str] = None


class ShopifyService:
    """Read-only client for the Shopify Admin REST API (abandoned checkouts)."""

    def __init__(
        self,
        shop_domain: str | None = None,
        access_token: str | None = None,
        *,
        api_version: str | None = None,
        page_limit: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.shop = (shop_domain if shop_domain is not None else settings.shopify_shop).removeprefix("https://").rstrip("/")
        self.token = access_token if access_token is not None else settings.shopify_access_token
        if not self.shop or not self.token:
            raise ShopifyConfigError("Shopify credentials are not set in environment variables.")

        version = api_version or settings.shopify_api_version
        self.base_url = f"https://{self.shop}/admin/api/{version}"
        self.page_limit = min(page_limit or settings.shopify_page_limit, 250)
        self.headers = {
            "X-Shopify-Access-Token": self.token,
            "Content-Type": "application/json",
        }
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self.headers,
            timeout=settings.shopify_timeout_seconds,
            transport=self._transport,
        )

    def checkouts_url(self, created_at_min: datetime, created_at_max: datetime | None = None) -> httpx.URL:
        params: dict[str, Any] = {
            "status": "abandoned",
            "limit": self.page_limit,
            "created_at_min": created_at_min.isoformat(),
        }
        if created_at_max is not None:
            params["created_at_max"] = created_at_max.isoformat()
        return httpx.URL(f"{self.base_url}/checkouts.json", params=params)

    async def list_abandoned_checkouts(
        self,
        created_at_min: datetime,
        created_at_max: datetime | None = None,
        page_url: str | None = None,
    ) -> CheckoutPage:
        """Fetch one page of abandoned checkouts.

        The first page is addressed by the creation window; every later page
        by the cursor URL Shopify returned in the previous Link header.
        """
        url = page_url or self.checkouts_url(created_at_min, created_at_max)
        async with self._client() as client:
            response = await client.get(url)

        if response.status_code >= 400:
            logger.error("Shopify API Error [%d]: %.300s", response.status_code, response.text)
            raise ShopifyAPIError(response.status_code, response.text)

        data = response.json()
        next_url = response.links.get("next", {}).get("url")
        page = CheckoutPage(records=data.get("checkouts") or [], next_url=next_url or None)
        logger.debug("list_abandoned_checkouts — records=%d has_next=%s", len(page.records), bool(page.next_url))
        return page

    async def iter_checkout_pages(
        self,
        created_at_min: datetime,
        created_at_max: datetime | None = None,
    ) -> AsyncIterator[CheckoutPage]:
        """Walk the cursor chain one page at a time, stopping at the first page without a next link."""
        page_url: str | None = None
        page_number = 0
        while True:
            page = await self.list_abandoned_checkouts(created_at_min, created_at_max, page_url)
            page_number += 1
            logger.info("Fetched checkouts page %d: got %d records", page_number, len(page.records))
            yield page
            if not page.next_url:
                break
            page_url = page.next_url
