"""Audit hook: every successful workflow change leaves a history row and an outbox event."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.enums import WorkflowAction
from src.models.work_item_transition import WorkItemTransition
from src.modules.events.outbox_service import OutboxService
from src.modules.identity.auth import AuthenticatedUser
from src.modules.workflow.constants import ACTION_EVENT_SUFFIXES
from src.modules.workflow.registry import WorkflowDefinition
from src.modules.workflow.store import store_errors

logger = logging.getLogger(__name__)


def _status_value(status: Any) -> str:
    return getattr(status, "value", status)


class WorkflowAudit:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        definition: WorkflowDefinition,
        item: Any,
        action: WorkflowAction,
        actor: AuthenticatedUser,
        from_status: Any,
        to_status: Any,
        reason: str | None = None,
        extra: dict | None = None,
    ) -> WorkItemTransition:
        """Write the history row and publish the matching outbox event."""
        async with store_errors("audit"):
            last = await self.db.execute(
                select(func.max(WorkItemTransition.sequence)).where(
                    WorkItemTransition.item_type == definition.item_type,
                    WorkItemTransition.item_id == item.id,
                )
            )
            sequence = (last.scalar() or 0) + 1

            entry = WorkItemTransition(
                item_type=definition.item_type,
                item_id=item.id,
                sequence=sequence,
                action=action,
                from_status=_status_value(from_status),
                to_status=_status_value(to_status),
                actor_id=actor.id,
                actor_role=actor.primary_role.value,
                reason=reason,
            )
            self.db.add(entry)

            payload = {
                "item_id": str(item.id),
                "action": action.value,
                "from_status": entry.from_status,
                "to_status": entry.to_status,
                "actor_id": actor.id,
                "actor_role": entry.actor_role,
                "assignee_id": getattr(item, definition.assignee_field),
            }
            if reason:
                payload["reason"] = reason
            if extra:
                payload.update(extra)

            await OutboxService(self.db).publish_event(
                event_type=f"{definition.event_prefix}.{ACTION_EVENT_SUFFIXES[action]}",
                aggregate_type=definition.item_type.value,
                aggregate_id=str(item.id),
                payload=payload,
            )

        logger.info(
            "%s %s %s: %s -> %s by %s",
            definition.label,
            item.id,
            action.value,
            entry.from_status,
            entry.to_status,
            actor.id,
        )
        return entry

    async def history(self, definition: WorkflowDefinition, item_id: uuid.UUID) -> list[WorkItemTransition]:
        """Workflow history for one item, oldest first."""
        async with store_errors("history"):
            result = await self.db.execute(
                select(WorkItemTransition)
                .where(
                    WorkItemTransition.item_type == definition.item_type,
                    WorkItemTransition.item_id == item_id,
                )
                .order_by(WorkItemTransition.sequence.asc())
            )
        return list(result.scalars().all())
