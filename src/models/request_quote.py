"""RequestQuote model — a customer's request for a custom design quote."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin, enum_type
from src.models.enums import QuoteStatus, RequestQuoteType


class RequestQuote(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "request_quotes"

    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    designer_id: Mapped[str | None] = mapped_column(String(64), default=None)
    design_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, default=None)
    status: Mapped[QuoteStatus] = mapped_column(
        enum_type(QuoteStatus, "quotestatus"),
        nullable=False,
        default=QuoteStatus.PENDING,
        server_default=QuoteStatus.PENDING.value,
    )

    # Customer information
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email_address: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    company: Mapped[str | None] = mapped_column(String(255))
    street_address: Mapped[str] = mapped_column(String(255), nullable=False)
    suburb_city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    postcode: Mapped[str] = mapped_column(String(20), nullable=False)
    agree_terms: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Request details
    type: Mapped[RequestQuoteType] = mapped_column(
        enum_type(RequestQuoteType, "requestquotetype"), nullable=False
    )
    product_details: Mapped[dict | None] = mapped_column(JSONType)
    custom_need: Mapped[str | None] = mapped_column(Text)
    need_delivery_by: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    extra_information: Mapped[str | None] = mapped_column(Text)

    # Admin response (mirrors the current QuoteResponse version)
    quoted_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    price_breakdown: Mapped[dict | None] = mapped_column(JSONType)
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    admin_notes: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)
    current_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_revisions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Status timestamps (stamped once, on first entry)
    reviewing_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    quoted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_request_quotes_user_id", "user_id"),
        Index("ix_request_quotes_designer_id", "designer_id"),
        Index("ix_request_quotes_email_address", "email_address"),
        Index("ix_request_quotes_status_created_at", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<RequestQuote id={self.id} status={self.status} designer={self.designer_id}>"
