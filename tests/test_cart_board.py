"""Tests for the in-memory cart board and its reconciliation methods."""
from datetime import date, datetime, timedelta, timezone

import pytest

from cartdesk.errors import NotFoundError
from cartdesk.services.cart_board import CartBoard
from cartdesk.services.cart_view import BoardFilters, DateWindow, Remark

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _record(cart_id, hours=1, value=10, status="pending"):
    return {
        "id": cart_id,
        "created_at": (NOW - timedelta(hours=hours)).isoformat(),
        "cart_value": value,
        "items": [{"title": "Tote", "quantity": 1, "price": value}],
        "status": status,
    }


@pytest.fixture
def board():
    records = [_record("a", hours=1), _record("b", hours=5, value=40), _record("a", hours=9, value=999)]
    return CartBoard.from_records(records, "stored", now=NOW)


def test_first_occurrence_wins(board):
    assert len(board) == 2
    assert board.get("a").cart_value == 10


def test_unknown_cart(board):
    with pytest.raises(NotFoundError):
        board.get("zzz")


def test_remarks_attached_only_to_loaded_carts():
    remark = Remark(id=1, cart_id="a", type="email", message="hi", created_at=NOW)
    board = CartBoard.from_records([_record("a")], "stored", {"a": [remark], "ghost": [remark]}, now=NOW)
    assert [r.id for r in board.get("a").remarks] == [1]
    assert len(board) == 1


def test_apply_field_changes_baseline(board):
    board.apply_field("a", "priority", "high")
    board.apply_field("a", "status", "completed")

    assert board.get("a").priority == "high"
    assert board.status_of("a") == "completed"


def test_view_projection(board):
    board.apply_field("b", "status", "completed")

    view = board.view(BoardFilters(), page=1, page_size=1)

    assert view.source == "stored"
    assert [c.id for c in view.page.items] == ["a"]
    assert view.page.total_pages == 2
    assert view.statuses == {"a": "pending"}
    assert view.metrics.converted_carts == 1
    assert view.metrics.recovered_value == 40


def test_view_carries_neighbouring_windows(board):
    view = board.view(BoardFilters(start=date(2026, 3, 7), end=date(2026, 3, 10)))

    assert view.window == DateWindow(start=date(2026, 3, 7), end=date(2026, 3, 10))
    assert view.previous_window == DateWindow(start=date(2026, 3, 4), end=date(2026, 3, 6))
    assert view.next_window == DateWindow(start=date(2026, 3, 11), end=date(2026, 3, 13))


def test_view_without_date_range_has_no_windows(board):
    view = board.view(BoardFilters())
    assert (view.window, view.previous_window, view.next_window) == (None, None, None)
