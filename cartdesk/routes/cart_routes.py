from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from cartdesk.config.settings import settings
from cartdesk.database.engine import get_db
from cartdesk.database.repositories.checkout_repository import CheckoutRepository
from cartdesk.database.repositories.remark_repository import RemarkRepository
from cartdesk.schemas import CartFieldPatch
from cartdesk.services.cart_board import BoardView, CartBoard
from cartdesk.services.cart_view import (
    DATE_WINDOW_DAYS,
    BoardFilters,
    Remark,
    checkout_row_to_record,
    default_window,
)
from cartdesk.services.shopify_service import ShopifyService
from cartdesk.services.sync_service import CheckoutSyncService
from cartdesk.utils.logger import get_logger
from cartdesk.utils.timeutils import parse_timestamp, utcnow

router = APIRouter(prefix="/api", tags=["carts"])
logger = get_logger(__name__)


def get_shopify_factory() -> Callable[[], ShopifyService]:
    """Shopify client factory; only called by handlers that actually talk to Shopify."""
    return ShopifyService


def _parse_range(start_date: str | None, end_date: str | None) -> tuple[datetime, datetime]:
    """Request window, defaulting to the last ``sync_lookback_days`` up to now."""
    end = parse_timestamp(end_date) if end_date else utcnow()
    start = parse_timestamp(start_date) if start_date else None
    if end is None or (start_date and start is None):
        raise HTTPException(status_code=400, detail="start_date / end_date must be ISO-8601 timestamps")
    return start or end - timedelta(days=settings.sync_lookback_days), end


# ── Abandoned checkouts ────────────────────────────────────────────────────────

@router.get("/abandoned-checkouts")
async def list_checkouts(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    shopify: int = 0,
    sync: int = 0,
    db: Session = Depends(get_db),
    shopify_factory: Callable[[], ShopifyService] = Depends(get_shopify_factory),
):
    """
    Three modes, like the dashboard uses them:
      ?sync=1     → pull new checkouts into the store, return counts
      ?shopify=1  → live read from Shopify for the window (store untouched)
      default     → stored checkouts in the window, newest first
    """
    if sync == 1:
        return await _run_sync(db, shopify_factory)

    start, end = _parse_range(start_date, end_date)

    if shopify == 1:
        service = CheckoutSyncService(db, shopify_factory())
        checkouts = await service.fetch_live(start, end)
        return {"checkouts": checkouts, "total": len(checkouts)}

    rows = CheckoutRepository(db).query_range(start, end)
    checkouts = [checkout_row_to_record(row) for row in rows]
    return {"checkouts": checkouts, "total": len(checkouts)}


@router.post("/abandoned-checkouts")
@router.post("/abandoned-checkouts/sync")
async def sync_checkouts(
    db: Session = Depends(get_db),
    shopify_factory: Callable[[], ShopifyService] = Depends(get_shopify_factory),
):
    return await _run_sync(db, shopify_factory)


async def _run_sync(db: Session, shopify_factory: Callable[[], ShopifyService]) -> dict:
    service = CheckoutSyncService(db, shopify_factory())
    result = await service.sync()
    return result.model_dump(mode="json", by_alias=True)


@router.patch("/abandoned-checkouts")
def patch_checkout(body: CartFieldPatch, db: Session = Depends(get_db)):
    row = CheckoutRepository(db).update_field(body.cart_id, body.field, body.value)
    if row is None:
        raise HTTPException(status_code=404, detail="Cart not found or not updated")
    return {"success": True}


@router.get("/recent-carts")
def recent_carts(db: Session = Depends(get_db)):
    rows = CheckoutRepository(db).recent(settings.recent_carts_limit)
    return {"data": [checkout_row_to_record(row) for row in rows]}


# ── Board (view model) ─────────────────────────────────────────────────────────

@router.get("/carts/board", response_model=BoardView)
async def cart_board(
    source: Literal["stored", "live"] = "stored",
    search: str = "",
    status: str = "all",
    start: Optional[date] = None,
    end: Optional[date] = None,
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
    shopify_factory: Callable[[], ShopifyService] = Depends(get_shopify_factory),
):
    """Normalized carts with remarks attached, filtered, paginated and summarized."""
    if start is None and end is None:
        window = default_window(utcnow().date())
        start_day, end_day = window.start, window.end
    else:
        end_day = end or utcnow().date()
        start_day = start or end_day - timedelta(days=DATE_WINDOW_DAYS)
    window_start = datetime.combine(start_day, time.min, tzinfo=timezone.utc)
    window_end = datetime.combine(end_day, time(23, 59, 59), tzinfo=timezone.utc)

    if source == "live":
        records = await CheckoutSyncService(db, shopify_factory()).fetch_live(window_start, window_end)
    else:
        rows = CheckoutRepository(db).query_range(window_start, window_end)
        records = [checkout_row_to_record(row) for row in rows]

    cart_ids = [str(r.get("id")) for r in records]
    grouped = RemarkRepository(db).list_for_carts(cart_ids)
    remarks = {cid: [Remark.model_validate(r) for r in rs] for cid, rs in grouped.items()}

    board = CartBoard.from_records(records, source, remarks)
    if source == "live":
        _overlay_stored_baseline(board, CheckoutRepository(db))
    filters = BoardFilters(search=search, status=status, start=start_day, end=end_day)
    logger.debug("cart_board — source=%s carts=%d filters=%s", source, len(board), filters)
    return board.view(filters, page=page, page_size=settings.board_page_size)


def _overlay_stored_baseline(board: CartBoard, repo: CheckoutRepository) -> None:
    """Live carts carry no local state; take status / priority from the stored copy when there is one."""
    for cart in board.carts:
        row = repo.get(cart.id)
        if row is None:
            continue
        board.apply_field(cart.id, "status", row.status)
        board.apply_field(cart.id, "priority", row.priority)
