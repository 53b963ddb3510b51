from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from cartdesk.database.engine import get_db
from cartdesk.database.repositories.checkout_repository import CheckoutRepository
from cartdesk.schemas import CartUpdate, CustomerResponseCreate, RemarkCreate, ResponseEdit, StatusChange
from cartdesk.services.remark_ledger import RemarkLedger
from cartdesk.utils.logger import get_logger

router = APIRouter(prefix="/api", tags=["remarks"])
logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────
# Remarks
# ─────────────────────────────────────────────────────────────

@router.get("/cart-remarks")
def list_remarks(cart_id: str, db: Session = Depends(get_db)):
    return {"data": RemarkLedger(db).history(cart_id)}


@router.post("/cart-remarks")
def add_remark(body: RemarkCreate, db: Session = Depends(get_db)):
    remark = RemarkLedger(db).append(body.cart_id, body.type, body.message, agent=body.agent)
    return {"data": remark}


@router.delete("/cart-remarks")
def delete_remark(
    cart_id: Optional[str] = None,
    remark_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    """Hard delete by (cart_id, remark_id); answers with the cart's remaining remarks."""
    if not cart_id or remark_id is None:
        raise HTTPException(status_code=400, detail="cart_id and remark_id required")
    return {"data": RemarkLedger(db).delete(cart_id, remark_id)}


@router.post("/cart-remarks/response")
def add_customer_response(body: CustomerResponseCreate, db: Session = Depends(get_db)):
    remark = RemarkLedger(db).record_customer_response(body.cart_id, body.medium, body.response)
    return {"data": remark}


@router.post("/cart-remarks/{remark_id}/edit-response")
def edit_customer_response(remark_id: int, body: ResponseEdit, db: Session = Depends(get_db)):
    # Appends the corrected response; the edited remark is kept as history
    remark = RemarkLedger(db).edit_response(body.cart_id, remark_id, body.response)
    return {"data": remark}


# ─────────────────────────────────────────────────────────────
# Status
# ─────────────────────────────────────────────────────────────

@router.get("/cart-status")
def get_cart_status(cart_id: Optional[str] = None, db: Session = Depends(get_db)):
    if not cart_id:
        raise HTTPException(status_code=400, detail="cart_id is required")
    return {"status": RemarkLedger(db).latest_status(cart_id)}


@router.post("/cart-status")
def set_cart_status(body: StatusChange, db: Session = Depends(get_db)):
    remark = RemarkLedger(db).record_status_change(body.cart_id, body.status, agent=body.agent)
    return {"data": remark}


@router.post("/cart-update")
def update_cart(body: CartUpdate, db: Session = Depends(get_db)):
    """
    One endpoint for every inline edit on the board:
      - cart_id + status/priority → status remark + baseline column update
      - cart_id + other field     → direct column update
      - remark_id + status/priority → in-place edit of that remark
    """
    logger.info("cart-update — cart_id=%s remark_id=%s field=%s", body.cart_id, body.remark_id, body.field)
    if not body.field:
        raise HTTPException(status_code=400, detail="field is required")

    ledger = RemarkLedger(db)

    if body.remark_id is not None:
        if body.field not in ("status", "priority"):
            raise HTTPException(status_code=400, detail="Only status or priority can be updated for remarks")
        return {"data": ledger.update_remark_field(body.remark_id, body.field, body.value)}

    if not body.cart_id:
        raise HTTPException(status_code=400, detail="cart_id or remark_id is required")

    if body.field in ("status", "priority"):
        result = ledger.change_cart_field(body.cart_id, body.field, body.value)
        return result.model_dump(mode="json")

    row = CheckoutRepository(db).update_field(body.cart_id, body.field, body.value)
    if row is None:
        raise HTTPException(status_code=404, detail="Cart not found or not updated")
    return {"data": {"id": row.id, body.field: getattr(row, body.field)}}
