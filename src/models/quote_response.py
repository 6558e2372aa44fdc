"""QuoteResponse model — one versioned admin response to a request quote."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin, enum_type
from src.models.enums import QuoteStatus, RevisionReason


class QuoteResponse(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "quote_responses"

    request_quote_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("request_quotes.id", ondelete="CASCADE"),
        nullable=False,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[QuoteStatus] = mapped_column(
        enum_type(QuoteStatus, "quotestatus"), nullable=False
    )
    quoted_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    price_breakdown: Mapped[dict | None] = mapped_column(JSONType)
    production_details: Mapped[dict | None] = mapped_column(JSONType)
    response_message: Mapped[str | None] = mapped_column(Text)
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    admin_notes: Mapped[str | None] = mapped_column(Text)
    responded_by: Mapped[str] = mapped_column(String(64), nullable=False)
    responded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    valid_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    is_current_version: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    revision_reason: Mapped[RevisionReason | None] = mapped_column(
        enum_type(RevisionReason, "revisionreason")
    )
    customer_feedback: Mapped[dict | None] = mapped_column(JSONType)

    __table_args__ = (
        Index("ix_quote_responses_request_quote_id", "request_quote_id"),
        Index("uq_quote_responses_quote_version", "request_quote_id", "version", unique=True),
    )
