"""
Cart board
──────────
In-memory state for one dashboard view: the loaded carts keyed by id, each
with its remark history attached. All reads (filters, metrics, pages) are
projections of this one map, and ledger command results are reconciled into
it through the methods below.
"""
from datetime import datetime
from typing import Any, Iterable, Optional

from pydantic import BaseModel

from cartdesk.errors import NotFoundError
from cartdesk.services.cart_view import (
    BoardFilters,
    Cart,
    DateWindow,
    Metrics,
    Page,
    Remark,
    SourceKind,
    compute_metrics,
    effective_status,
    filter_carts,
    normalize,
    next_window,
    paginate,
    previous_window,
)
from cartdesk.utils.timeutils import utcnow


class BoardView(BaseModel):
    source: SourceKind
    filters: BoardFilters
    metrics: Metrics
    page: Page
    # Effective status per cart on the current page
    statuses: dict[str, str]
    # Date window shown, and the 3-day windows either side of it (None without a full date range)
    window: Optional[DateWindow] = None
    previous_window: Optional[DateWindow] = None
    next_window: Optional[DateWindow] = None


class CartBoard:
    def __init__(self, source: SourceKind = "stored"):
        self.source = source
        self._carts: dict[str, Cart] = {}

    @classmethod
    def from_records(
        cls,
        records: Iterable[dict[str, Any]],
        source: SourceKind,
        remarks_by_cart: dict[str, list[Remark]] | None = None,
        now: Optional[datetime] = None,
    ) -> "CartBoard":
        now = now or utcnow()
        board = cls(source)
        board.load(normalize(record, source, now=now) for record in records)
        for cart_id, remarks in (remarks_by_cart or {}).items():
            if cart_id in board._carts:
                board.replace_remarks(cart_id, remarks)
        return board

    def load(self, carts: Iterable[Cart]) -> None:
        self._carts = {}
        for cart in carts:
            # First occurrence of an id wins
            self._carts.setdefault(cart.id, cart)

    @property
    def carts(self) -> list[Cart]:
        return list(self._carts.values())

    def __len__(self) -> int:
        return len(self._carts)

    def get(self, cart_id: str) -> Cart:
        try:
            return self._carts[cart_id]
        except KeyError:
            raise NotFoundError(f"Cart {cart_id} is not on the board") from None

    def replace_remarks(self, cart_id: str, remarks: list[Remark]) -> Cart:
        cart = self.get(cart_id).model_copy(update={"remarks": list(remarks)})
        self._carts[cart_id] = cart
        return cart

    def apply_field(self, cart_id: str, field: str, value: Any) -> Cart:
        cart = self.get(cart_id).model_copy(update={field: value})
        self._carts[cart_id] = cart
        return cart

    def status_of(self, cart_id: str) -> str:
        return effective_status(self.get(cart_id))

    def view(self, filters: BoardFilters, page: int = 1, page_size: int = 10) -> BoardView:
        filtered = filter_carts(self._carts.values(), filters)
        current = paginate(filtered, page, page_size)
        window = DateWindow(start=filters.start, end=filters.end) if filters.start and filters.end else None
        return BoardView(
            source=self.source,
            filters=filters,
            metrics=compute_metrics(filtered),
            page=current,
            statuses={cart.id: self.status_of(cart.id) for cart in current.items},
            window=window,
            previous_window=previous_window(window) if window else None,
            next_window=next_window(window) if window else None,
        )
