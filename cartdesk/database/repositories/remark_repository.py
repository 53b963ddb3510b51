"""
Remark Repository
─────────────────
Thin data-access layer for CartRemark.

Remarks are history: the ledger only inserts and deletes. The single
in-place edit allowed is setting status / priority on a remark by id.
"""
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from cartdesk.database.models.cart_remark import CartRemark
from cartdesk.errors import ValidationError
from cartdesk.utils.logger import get_logger

logger = get_logger(__name__)

REMARK_EDITABLE_FIELDS = {"status", "priority"}


class RemarkRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, remark_id: int) -> CartRemark | None:
        return self.db.get(CartRemark, remark_id)

    def list_for_cart(self, cart_id: str) -> list[CartRemark]:
        """All remarks for a cart, oldest first."""
        stmt = (
            select(CartRemark)
            .where(CartRemark.cart_id == str(cart_id))
            .order_by(CartRemark.created_at.asc(), CartRemark.id.asc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_for_carts(self, cart_ids: list[str]) -> dict[str, list[CartRemark]]:
        """Remarks for many carts in one query, grouped by cart id, oldest first."""
        grouped: dict[str, list[CartRemark]] = {str(cid): [] for cid in cart_ids}
        if not grouped:
            return grouped
        stmt = (
            select(CartRemark)
            .where(CartRemark.cart_id.in_(list(grouped)))
            .order_by(CartRemark.created_at.asc(), CartRemark.id.asc())
        )
        for remark in self.db.execute(stmt).scalars():
            grouped[remark.cart_id].append(remark)
        return grouped

    def insert(
        self,
        *,
        cart_id: str,
        type: str,
        message: str,
        response: str | None = None,
        status: str | None = None,
        priority: str | None = None,
        agent: str | None = None,
    ) -> CartRemark:
        remark = CartRemark(
            cart_id=str(cart_id),
            type=type,
            message=message,
            response=response,
            status=status,
            priority=priority,
            agent=agent,
        )
        self.db.add(remark)
        self.db.commit()
        self.db.refresh(remark)
        logger.info(
            "insert — cart_id=%s remark_id=%s type=%s status=%s", remark.cart_id, remark.id, type, status
        )
        return remark

    def delete(self, cart_id: str, remark_id: int) -> list[CartRemark]:
        """Delete one remark by (cart_id, id) and return what is left for the cart."""
        result = self.db.execute(
            delete(CartRemark).where(CartRemark.cart_id == str(cart_id), CartRemark.id == remark_id)
        )
        self.db.commit()
        logger.info("delete — cart_id=%s remark_id=%s deleted=%d", cart_id, remark_id, result.rowcount)
        return self.list_for_cart(cart_id)

    def latest_status(self, cart_id: str) -> str | None:
        """Status column of the newest remark for a cart (None when absent)."""
        stmt = (
            select(CartRemark.status)
            .where(CartRemark.cart_id == str(cart_id))
            .order_by(CartRemark.created_at.desc(), CartRemark.id.desc())
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def update_field(self, remark_id: int, field: str, value: Any) -> CartRemark | None:
        if field not in REMARK_EDITABLE_FIELDS:
            raise ValidationError("Only status or priority can be updated for remarks")
        remark = self.get(remark_id)
        if remark is None:
            logger.warning("update_field — no remark found: remark_id=%s", remark_id)
            return None
        setattr(remark, field, value)
        self.db.commit()
        self.db.refresh(remark)
        return remark
