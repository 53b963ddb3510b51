"""
Abandoned Checkout Model
────────────────────────
Deduplicated mirror of Shopify abandoned checkouts, keyed by the Shopify id.
Rows are upserted by the sync and never deleted; only status / priority
(and the contact fields) are edited in place.
"""
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from cartdesk.database.engine import Base


class AbandonedCheckout(Base):
    __tablename__ = "abandoned_checkouts"

    # Shopify ids are 64-bit integers; kept opaque
    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True, nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    customer: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Checkout subtotal as reported by Shopify
    cart_value: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), default=0)

    # Shopify line_items, stored as-is (older rows hold a serialized JSON string)
    items: Mapped[list | None] = mapped_column(JSON, nullable=True)
    raw: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    # pending | in-progress | completed | failed
    status: Mapped[str] = mapped_column(String(20), default="pending")
    # high | medium | low
    priority: Mapped[str] = mapped_column(String(20), default="medium")

    synced_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
