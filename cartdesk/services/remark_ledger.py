"""
Remark ledger
─────────────
Every write against a cart's follow-up history goes through here. Each
command returns the definitive new state (the stored remark, or the
remaining list after a delete) so callers reconcile instead of guessing.

Status / priority changes are two writes: a remark recording the change,
then the baseline column on ``abandoned_checkouts``. They are not one
transaction. If the second write fails the change is still reported as
applied (the effective status comes from the remark) with
``cart_updated=False``.
"""
from typing import Any, Optional

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cartdesk.database.repositories.checkout_repository import CheckoutRepository
from cartdesk.database.repositories.remark_repository import RemarkRepository
from cartdesk.errors import NotFoundError, ValidationError
from cartdesk.services.cart_view import PRIORITIES, REMARK_TYPES, STATUSES, Remark
from cartdesk.utils.logger import get_logger

logger = get_logger(__name__)

RESPONSE_MEDIUMS = ("email", "sms", "whatsapp", "phone")


class FieldChangeResult(BaseModel):
    remark: Remark
    cart_updated: bool
    cart: Optional[dict[str, Any]] = None
    error: Optional[str] = None


def validate_field_value(field: str, value: Any) -> None:
    if field == "status" and value not in STATUSES:
        raise ValidationError(f"status must be one of {', '.join(STATUSES)}")
    if field == "priority" and value not in PRIORITIES:
        raise ValidationError(f"priority must be one of {', '.join(PRIORITIES)}")


class RemarkLedger:
    def __init__(self, db: Session):
        self.remarks = RemarkRepository(db)
        self.checkouts = CheckoutRepository(db)
        self.db = db

    def history(self, cart_id: str) -> list[Remark]:
        return [Remark.model_validate(r) for r in self.remarks.list_for_cart(cart_id)]

    def append(self, cart_id: str, type: str, message: str, agent: str = "Current User") -> Remark:
        if not cart_id or not type or not message or not message.strip():
            raise ValidationError("cart_id, type and message are required")
        if type not in REMARK_TYPES:
            raise ValidationError(f"type must be one of {', '.join(REMARK_TYPES)}")
        row = self.remarks.insert(cart_id=cart_id, type=type, message=message.strip(), agent=agent)
        return Remark.model_validate(row)

    def record_customer_response(self, cart_id: str, medium: str | None, text: str) -> Remark:
        if not text or not text.strip():
            raise ValidationError("response text is required")
        medium = medium or "email"
        if medium not in RESPONSE_MEDIUMS:
            raise ValidationError(f"medium must be one of {', '.join(RESPONSE_MEDIUMS)}")
        row = self.remarks.insert(
            cart_id=cart_id,
            type=medium,
            message=f"Customer responded via {medium}",
            response=text.strip(),
            agent="System",
        )
        return Remark.model_validate(row)

    def edit_response(self, cart_id: str, remark_id: int, new_text: str) -> Remark:
        """Record a corrected response as a new remark; the original stays in the history.

        The copy keeps type, message and agent but not the status, so editing an
        old response never re-asserts a status that later remarks superseded.
        """
        if not new_text or not new_text.strip():
            raise ValidationError("response text is required")
        original = self.remarks.get(remark_id)
        if original is None or original.cart_id != str(cart_id):
            raise NotFoundError(f"Remark {remark_id} not found for cart {cart_id}")
        row = self.remarks.insert(
            cart_id=cart_id,
            type=original.type,
            message=original.message,
            response=new_text.strip(),
            agent=original.agent,
        )
        logger.info("edit_response — cart_id=%s corrected remark_id=%s as remark_id=%s", cart_id, remark_id, row.id)
        return Remark.model_validate(row)

    def delete(self, cart_id: str, remark_id: int) -> list[Remark]:
        if not cart_id or remark_id is None:
            raise ValidationError("cart_id and remark_id required")
        return [Remark.model_validate(r) for r in self.remarks.delete(cart_id, remark_id)]

    def record_status_change(self, cart_id: str, status: str, agent: str = "System") -> Remark:
        if not cart_id or not status:
            raise ValidationError("cart_id and status are required")
        validate_field_value("status", status)
        row = self.remarks.insert(
            cart_id=cart_id,
            type="status-change",
            message=f"Status changed to {status}",
            status=status,
            agent=agent,
        )
        return Remark.model_validate(row)

    def latest_status(self, cart_id: str) -> str | None:
        if not cart_id:
            raise ValidationError("cart_id is required")
        return self.remarks.latest_status(cart_id)

    def change_cart_field(self, cart_id: str, field: str, value: str) -> FieldChangeResult:
        if field not in ("status", "priority"):
            raise ValidationError("Only status or priority changes are recorded as remarks")
        validate_field_value(field, value)

        row = self.remarks.insert(
            cart_id=cart_id,
            type="system",
            message=f"Cart {field} changed to {value}",
            agent="System",
            **{field: value},
        )
        remark = Remark.model_validate(row)

        try:
            cart = self.checkouts.update_field(cart_id, field, value)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning(
                "change_cart_field — remark saved but baseline %s not updated for cart_id=%s: %s",
                field, cart_id, exc,
            )
            return FieldChangeResult(remark=remark, cart_updated=False, error=str(exc))

        if cart is None:
            logger.warning("change_cart_field — cart_id=%s not in store, only the remark was written", cart_id)
            return FieldChangeResult(remark=remark, cart_updated=False, error="Cart not found in store")

        return FieldChangeResult(
            remark=remark,
            cart_updated=True,
            cart={"id": cart.id, "status": cart.status, "priority": cart.priority},
        )

    def update_remark_field(self, remark_id: int, field: str, value: str) -> Remark:
        validate_field_value(field, value)
        row = self.remarks.update_field(remark_id, field, value)
        if row is None:
            raise NotFoundError("Remark not found or not updated")
        return Remark.model_validate(row)
