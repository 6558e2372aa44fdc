"""Order model — a customer's placed order moving through fulfillment."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin, enum_type
from src.models.enums import OrderStatus


class Order(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "orders"

    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    shipper_id: Mapped[str | None] = mapped_column(String(64), default=None)
    status: Mapped[OrderStatus] = mapped_column(
        enum_type(OrderStatus, "orderstatus"),
        nullable=False,
        default=OrderStatus.PENDING,
        server_default=OrderStatus.PENDING.value,
    )

    # Payload
    items: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    shipping_details: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(50), nullable=False)
    payment_intent_id: Mapped[str | None] = mapped_column(String(255), unique=True)

    # Annotations
    notes: Mapped[str | None] = mapped_column(Text)
    admin_notes: Mapped[str | None] = mapped_column(Text)
    shipping_image: Mapped[str | None] = mapped_column(String(2048))
    # Item names and recipient name, filled at placement for free-text search
    search_text: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Status timestamps (stamped once, on first entry)
    processing_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    shipping_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    shipped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    canceled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_orders_user_id", "user_id"),
        Index("ix_orders_shipper_id", "shipper_id"),
        Index("ix_orders_status_created_at", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} status={self.status} shipper={self.shipper_id}>"
