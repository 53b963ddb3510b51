"""
Cart view model
───────────────
Turns checkout records into the one ``Cart`` shape the dashboard works with,
derives each cart's effective status from its remark history, and computes
filters, pagination and the headline metrics.

Everything here is pure: no database, no network. Callers pass the source
kind explicitly ("live" for Shopify API payloads, "stored" for rows from
``abandoned_checkouts``).
"""
import json
import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Iterable, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from cartdesk.utils.logger import get_logger
from cartdesk.utils.timeutils import as_utc, isoformat, parse_timestamp, utcnow

logger = get_logger(__name__)

SourceKind = Literal["live", "stored"]
Status = Literal["pending", "in-progress", "completed", "failed"]

STATUSES: tuple[str, ...] = ("pending", "in-progress", "completed", "failed")
PRIORITIES: tuple[str, ...] = ("high", "medium", "low")
REMARK_TYPES: tuple[str, ...] = ("email", "sms", "whatsapp", "phone", "response", "status-change", "system")

# Share of open cart value we expect to win back; a planning heuristic, not a measured rate
RECOVERY_RATE = 0.3
URGENT_WITHIN_HOURS = 24
DATE_WINDOW_DAYS = 3


# ── Entities ───────────────────────────────────────────────────────────────────

class Customer(BaseModel):
    id: str = ""
    name: str = "Unknown"
    email: str = ""
    phone: str = ""


class LineItem(BaseModel):
    id: Optional[str] = None
    name: str = "Unnamed Item"
    quantity: int = 0
    price: float = 0.0


class Remark(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    cart_id: str
    type: str
    message: str = ""
    response: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    agent: Optional[str] = None
    created_at: Optional[datetime] = None


class Cart(BaseModel):
    id: str
    customer: Customer
    items: list[LineItem] = Field(default_factory=list)
    cart_value: float = 0.0
    abandoned_at: datetime
    last_contacted: datetime
    status: str = "pending"
    priority: str = "medium"
    remarks: list[Remark] = Field(default_factory=list)
    hours_since_abandoned: int = 0


class Metrics(BaseModel):
    total_carts: int = 0
    pending_carts: int = 0
    in_progress_carts: int = 0
    converted_carts: int = 0
    lost_carts: int = 0
    conversion_rate: str = "0"
    total_value: float = 0.0
    recovered_value: float = 0.0
    potential_recovery_value: float = 0.0
    urgent_carts: int = 0
    awaiting_follow_up: int = 0
    response_rate: str = "0"


# ── Normalization ──────────────────────────────────────────────────────────────

def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _number(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _integer(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def resolve_customer_name(customer: dict[str, Any] | None, email: str = "", phone: str = "") -> str:
    """explicit name → first (+ last) → email → phone → "Unknown"."""
    customer = customer or {}
    name = _text(customer.get("name"))
    if name:
        return name
    first = _text(customer.get("first_name"))
    if first:
        last = _text(customer.get("last_name"))
        return f"{first} {last}" if last else first
    return _text(customer.get("email")) or email or _text(customer.get("phone")) or phone or "Unknown"


def _stored_items(items: Any) -> list[LineItem]:
    if isinstance(items, str):
        try:
            items = json.loads(items)
        except ValueError:
            logger.warning("Could not parse stored items blob, treating cart as empty")
            return []
    if not isinstance(items, list):
        return []
    parsed = []
    for item in items:
        if not isinstance(item, dict):
            continue
        parsed.append(LineItem(
            id=_text(item.get("id")) or None,
            name=_text(item.get("name")) or _text(item.get("title")) or "Unnamed Item",
            quantity=_integer(item.get("quantity")),
            price=_number(item.get("price")),
        ))
    return parsed


def _live_items(line_items: Any) -> list[LineItem]:
    if not isinstance(line_items, list):
        return []
    return [
        LineItem(
            id=_text(item.get("id")) or None,
            name=_text(item.get("title")) or "Unnamed Item",
            quantity=_integer(item.get("quantity")),
            price=_number(item.get("price")),
        )
        for item in line_items
        if isinstance(item, dict)
    ]


def hours_since(moment: datetime, now: datetime | None = None) -> int:
    now = now or utcnow()
    return math.floor((now - as_utc(moment)).total_seconds() / 3600)


def normalize(raw: dict[str, Any], source_kind: SourceKind, now: datetime | None = None) -> Cart:
    """Map a Shopify checkout ("live") or an ``abandoned_checkouts`` row ("stored") onto a Cart.

    Never raises for missing or malformed fields; they degrade to "", 0 or "Unknown".
    """
    now = now or utcnow()
    cart_id = _text(raw.get("id"))

    if source_kind == "stored":
        items = _stored_items(raw.get("items"))
        cart_value = _number(raw.get("cart_value"))
    else:
        items = _live_items(raw.get("line_items"))
        cart_value = _number(raw.get("subtotal_price"))

    customer_raw = raw.get("customer") if isinstance(raw.get("customer"), dict) else {}
    email = _text(customer_raw.get("email")) or _text(raw.get("email"))
    phone = _text(customer_raw.get("phone")) or _text(raw.get("phone"))
    customer = Customer(
        id=_text(customer_raw.get("id")) or cart_id,
        name=resolve_customer_name(customer_raw, email=email, phone=phone),
        email=email,
        phone=phone,
    )

    abandoned_at = parse_timestamp(raw.get("created_at")) or parse_timestamp(raw.get("abandoned_at")) or now
    last_contacted = parse_timestamp(raw.get("updated_at")) or parse_timestamp(raw.get("last_contacted")) or now

    return Cart(
        id=cart_id,
        customer=customer,
        items=items,
        cart_value=cart_value,
        abandoned_at=abandoned_at,
        last_contacted=last_contacted,
        status=_text(raw.get("status")) or "pending",
        priority=_text(raw.get("priority")) or "medium",
        remarks=[],
        hours_since_abandoned=hours_since(abandoned_at, now),
    )


def checkout_row_to_record(row) -> dict[str, Any]:
    """Flatten an AbandonedCheckout ORM row into the dict ``normalize(..., "stored")`` reads."""
    return {
        "id": row.id,
        "created_at": isoformat(row.created_at),
        "updated_at": isoformat(row.updated_at),
        "customer": row.customer,
        "email": row.email,
        "phone": row.phone,
        "cart_value": row.cart_value,
        "items": row.items,
        "status": row.status,
        "priority": row.priority,
    }


def dedupe_by_id(records: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Drop repeated checkout ids, keeping the first occurrence."""
    seen: dict[str, dict[str, Any]] = {}
    for record in records:
        key = _text(record.get("id"))
        if key not in seen:
            seen[key] = record
    return list(seen.values())


# ── Status ─────────────────────────────────────────────────────────────────────

def _remark_order(remark: Remark) -> tuple[datetime, int]:
    created = as_utc(remark.created_at) if remark.created_at else datetime.min.replace(tzinfo=timezone.utc)
    return created, remark.id or 0


def effective_status(cart: Cart) -> str:
    """Status of the newest remark that carries one, else the cart's baseline, else "pending"."""
    with_status = [r for r in cart.remarks if r.status]
    if with_status:
        return max(with_status, key=_remark_order).status
    return cart.status or "pending"


# ── Filtering & pagination ─────────────────────────────────────────────────────

class BoardFilters(BaseModel):
    search: str = ""
    status: str = "all"
    start: Optional[date] = None
    end: Optional[date] = None


def sort_newest_first(carts: Iterable[Cart]) -> list[Cart]:
    return sorted(carts, key=lambda c: as_utc(c.abandoned_at), reverse=True)


def _matches_search(cart: Cart, term: str) -> bool:
    if not term:
        return True
    haystacks = (cart.customer.name, cart.customer.email, cart.customer.phone, cart.id)
    return any(term in h.lower() for h in haystacks)


def _matches_dates(cart: Cart, start: date | None, end: date | None) -> bool:
    abandoned = as_utc(cart.abandoned_at)
    if start and abandoned < datetime.combine(start, time.min, tzinfo=timezone.utc):
        return False
    # The end day is inclusive through 23:59:59
    if end and abandoned > datetime.combine(end, time(23, 59, 59), tzinfo=timezone.utc):
        return False
    return True


def filter_carts(carts: Iterable[Cart], filters: BoardFilters) -> list[Cart]:
    term = filters.search.strip().lower()
    return [
        cart
        for cart in sort_newest_first(carts)
        if _matches_search(cart, term)
        and (filters.status == "all" or effective_status(cart) == filters.status)
        and _matches_dates(cart, filters.start, filters.end)
    ]


class Page(BaseModel):
    items: list[Cart]
    page: int
    page_size: int
    total_pages: int
    total_items: int


def paginate(carts: list[Cart], page: int, page_size: int) -> Page:
    total_pages = math.ceil(len(carts) / page_size) if page_size > 0 else 0
    # Out-of-range pages fall back to the first page
    if page < 1 or page > total_pages:
        page = 1
    start = (page - 1) * page_size
    return Page(
        items=carts[start:start + page_size],
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        total_items=len(carts),
    )


# ── Date windows ───────────────────────────────────────────────────────────────

class DateWindow(BaseModel):
    start: date
    end: date


def default_window(today: date | None = None) -> DateWindow:
    today = today or utcnow().date()
    return DateWindow(start=today - timedelta(days=DATE_WINDOW_DAYS), end=today)


def previous_window(window: DateWindow) -> DateWindow:
    end = window.start - timedelta(days=1)
    return DateWindow(start=end - timedelta(days=DATE_WINDOW_DAYS - 1), end=end)


def next_window(window: DateWindow) -> DateWindow:
    start = window.end + timedelta(days=1)
    return DateWindow(start=start, end=start + timedelta(days=DATE_WINDOW_DAYS - 1))


# ── Metrics ────────────────────────────────────────────────────────────────────

def _percent(part: int, whole: int) -> str:
    if whole <= 0:
        return "0"
    return f"{part / whole * 100:.1f}"


def compute_metrics(carts: list[Cart]) -> Metrics:
    statuses = [(cart, effective_status(cart)) for cart in carts]
    by_status = {s: [c for c, cs in statuses if cs == s] for s in STATUSES}

    open_value = sum(c.cart_value for c in by_status["pending"] + by_status["in-progress"])
    awaiting = sum(1 for c in by_status["pending"] if not c.remarks) + sum(
        1 for c in by_status["in-progress"] if c.remarks and not c.remarks[-1].response
    )
    total_remarks = sum(len(c.remarks) for c in carts)
    answered = sum(1 for c in carts for r in c.remarks if r.response)

    return Metrics(
        total_carts=len(carts),
        pending_carts=len(by_status["pending"]),
        in_progress_carts=len(by_status["in-progress"]),
        converted_carts=len(by_status["completed"]),
        lost_carts=len(by_status["failed"]),
        conversion_rate=_percent(len(by_status["completed"]), len(carts)),
        total_value=sum(c.cart_value for c in carts),
        recovered_value=sum(c.cart_value for c in by_status["completed"]),
        potential_recovery_value=open_value * RECOVERY_RATE,
        urgent_carts=sum(
            1 for c, s in statuses if c.hours_since_abandoned < URGENT_WITHIN_HOURS and s != "completed"
        ),
        awaiting_follow_up=awaiting,
        response_rate=_percent(answered, total_remarks),
    )
