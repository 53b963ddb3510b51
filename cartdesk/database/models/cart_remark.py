"""
Cart Remark Model
─────────────────
Append-only follow-up history for a cart: contact attempts, customer
responses and status / priority changes. The newest remark carrying a
status decides the cart's effective status.
"""
from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cartdesk.database.engine import Base


class CartRemark(Base):
    __tablename__ = "abandoned_cart_remarks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cart_id: Mapped[str] = mapped_column(String(64), index=True)

    # email | sms | whatsapp | phone | response | status-change | system
    type: Mapped[str] = mapped_column(String(30))
    message: Mapped[str] = mapped_column(Text, default="")
    response: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Only set on status / priority changing remarks
    status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    priority: Mapped[str | None] = mapped_column(String(20), nullable=True)

    agent: Mapped[str | None] = mapped_column(String(120), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), index=True, default=lambda: datetime.now(timezone.utc)
    )
