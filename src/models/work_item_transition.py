"""WorkItemTransition model — audit log of workflow changes on orders and quotes."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, UUIDPrimaryKeyMixin, enum_type, utcnow
from src.models.enums import WorkflowAction, WorkItemType


class WorkItemTransition(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "work_item_transitions"

    item_type: Mapped[WorkItemType] = mapped_column(
        enum_type(WorkItemType, "workitemtype"), nullable=False
    )
    item_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    # 1-based position within the item's history
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[WorkflowAction] = mapped_column(
        enum_type(WorkflowAction, "workflowaction"), nullable=False
    )
    from_status: Mapped[str] = mapped_column(String(32), nullable=False)
    to_status: Mapped[str] = mapped_column(String(32), nullable=False)
    actor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    actor_role: Mapped[str] = mapped_column(String(32), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index(
            "uq_work_item_transitions_item_sequence",
            "item_type",
            "item_id",
            "sequence",
            unique=True,
        ),
    )
