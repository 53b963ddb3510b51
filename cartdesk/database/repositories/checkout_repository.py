"""
Checkout Repository
───────────────────
Data access for the mirrored abandoned checkouts.

Upsert is by Shopify id, as one INSERT .. ON CONFLICT DO UPDATE per record:
upstream columns are overwritten, the locally edited status / priority
columns are left alone. Only SQLite and PostgreSQL are supported.
"""
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from cartdesk.database.models.abandoned_checkout import AbandonedCheckout
from cartdesk.errors import CartDeskError, ValidationError
from cartdesk.utils.logger import get_logger
from cartdesk.utils.timeutils import as_utc, parse_timestamp, utcnow

logger = get_logger(__name__)

# Columns the dashboard may edit directly
UPDATABLE_FIELDS = {"status", "priority", "email", "phone"}

_DIALECT_INSERTS = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}


def _to_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


class CheckoutRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, cart_id: str) -> AbandonedCheckout | None:
        return self.db.get(AbandonedCheckout, str(cart_id))

    def max_created_at(self) -> datetime | None:
        """Creation time of the newest stored checkout, or None on an empty store."""
        stmt = (
            select(AbandonedCheckout.created_at)
            .where(AbandonedCheckout.created_at.is_not(None))
            .order_by(AbandonedCheckout.created_at.desc())
            .limit(1)
        )
        latest = self.db.execute(stmt).scalar_one_or_none()
        return as_utc(latest) if latest else None

    def count(self) -> int:
        return self.db.execute(select(func.count()).select_from(AbandonedCheckout)).scalar_one()

    def upsert(self, checkout: dict[str, Any]) -> str:
        """Insert or replace one Shopify checkout in a single statement. Does not commit.

        Concurrent syncs writing the same id both succeed; the last write wins
        on the upstream columns and status / priority are never touched.
        """
        cart_id = str(checkout["id"])
        values = {
            "created_at": parse_timestamp(checkout.get("created_at")),
            "updated_at": parse_timestamp(checkout.get("updated_at")),
            "customer": checkout.get("customer"),
            "email": checkout.get("email"),
            "phone": checkout.get("phone"),
            "cart_value": _to_float(checkout.get("subtotal_price")),
            "items": checkout.get("line_items") or [],
            "raw": checkout,
        }

        stmt = self._insert().values(id=cart_id, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[AbandonedCheckout.id],
            set_={**{column: stmt.excluded[column] for column in values}, "synced_at": utcnow()},
        )
        self.db.execute(stmt)
        return cart_id

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        try:
            return _DIALECT_INSERTS[dialect](AbandonedCheckout)
        except KeyError:
            raise CartDeskError(f"Checkout upsert is not supported on {dialect}") from None

    def upsert_many(self, checkouts: Iterable[dict[str, Any]]) -> int:
        written = 0
        for checkout in checkouts:
            if checkout.get("id") is None:
                logger.warning("upsert_many — skipping checkout without id: token=%s", checkout.get("token"))
                continue
            self.upsert(checkout)
            written += 1
        self.db.commit()
        # Rows loaded earlier in this session were written behind the ORM's back
        self.db.expire_all()
        logger.debug("upsert_many — committed %d checkouts", written)
        return written

    def query_range(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[AbandonedCheckout]:
        """Stored checkouts created inside [start, end], newest first."""
        stmt = select(AbandonedCheckout).order_by(AbandonedCheckout.created_at.desc())
        if start is not None:
            stmt = stmt.where(AbandonedCheckout.created_at >= start)
        if end is not None:
            stmt = stmt.where(AbandonedCheckout.created_at <= end)
        rows = list(self.db.execute(stmt).scalars().all())
        logger.debug("query_range — start=%s end=%s rows=%d", start, end, len(rows))
        return rows

    def recent(self, limit: int = 15) -> list[AbandonedCheckout]:
        stmt = select(AbandonedCheckout).order_by(AbandonedCheckout.created_at.desc()).limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    def update_field(self, cart_id: str, field: str, value: Any) -> AbandonedCheckout | None:
        """Set one editable column. Returns None when no such cart exists."""
        if field not in UPDATABLE_FIELDS:
            raise ValidationError(f"Field '{field}' cannot be updated on a cart")
        row = self.get(cart_id)
        if row is None:
            logger.warning("update_field — no cart found: cart_id=%s field=%s", cart_id, field)
            return None
        setattr(row, field, value)
        self.db.commit()
        self.db.refresh(row)
        logger.info("update_field — cart_id=%s %s=%s", cart_id, field, value)
        return row
