"""
Pytest configuration and fixtures.

Everything runs against in-memory SQLite and a fake Shopify served through
httpx.MockTransport; no network, no .env needed.
"""
import os

# pydantic-settings reads these at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SHOPIFY_SHOP", "test-shop.myshopify.com")
os.environ.setdefault("SHOPIFY_ACCESS_TOKEN", "shpat_test_token")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timedelta, timezone
from typing import Any, Generator
from urllib.parse import parse_qs

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from cartdesk.database.engine import Base, get_db
from cartdesk.database.models import AbandonedCheckout, CartRemark, MessageTemplate  # noqa: F401
from cartdesk.main import app
from cartdesk.routes.cart_routes import get_shopify_factory
from cartdesk.services.shopify_service import ShopifyService

SHOP = "test-shop.myshopify.com"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def make_checkout(
    checkout_id: int,
    *,
    hours_ago: float = 1,
    subtotal: str = "100.00",
    customer: dict[str, Any] | None = None,
    email: str | None = None,
    phone: str | None = None,
    line_items: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """A Shopify-shaped abandoned checkout payload."""
    created = datetime.now(timezone.utc) - timedelta(hours=hours_ago)
    return {
        "id": checkout_id,
        "token": f"tok{checkout_id}",
        "created_at": created.isoformat(timespec="seconds"),
        "updated_at": created.isoformat(timespec="seconds"),
        "email": email,
        "phone": phone,
        "subtotal_price": subtotal,
        "customer": customer,
        "line_items": line_items if line_items is not None else [
            {"id": checkout_id * 10, "title": "Cargo Pants", "quantity": 1, "price": subtotal},
        ],
    }


class FakeShopify:
    """Serves pre-baked checkout pages, chained through Link headers like the Admin API."""

    def __init__(self, pages: list[list[dict[str, Any]]] | None = None, fail_on_page: int | None = None):
        self.pages = pages if pages is not None else [[]]
        self.fail_on_page = fail_on_page
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        query = parse_qs(request.url.query.decode())
        index = int(query.get("page_info", ["0"])[0])

        if self.fail_on_page is not None and index == self.fail_on_page:
            return httpx.Response(502, text="upstream exploded")

        headers = {}
        if index + 1 < len(self.pages):
            next_url = f"https://{SHOP}/admin/api/2025-04/checkouts.json?limit=250&page_info={index + 1}"
            headers["link"] = f'<{next_url}>; rel="next"'
        return httpx.Response(200, json={"checkouts": self.pages[index]}, headers=headers)

    def service(self) -> ShopifyService:
        return ShopifyService(SHOP, "shpat_test_token", transport=httpx.MockTransport(self.handler))


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_shopify() -> FakeShopify:
    return FakeShopify()


@pytest.fixture
def client(db_session: Session, fake_shopify: FakeShopify) -> Generator[TestClient, None, None]:
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_shopify_factory] = lambda: fake_shopify.service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
