"""Pydantic v2 schemas shared by work item endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import WorkflowAction, WorkItemType
from src.modules.identity.auth import AuthenticatedUser
from src.modules.identity.schemas import ActorSummary
from src.modules.workflow.payloads import WorkItemPayload, payload_of
from src.modules.workflow.registry import WorkflowDefinition, allowed_targets, status_timestamps


class TransitionRequest(BaseModel):
    """Target status plus any extra fields that status accepts."""

    model_config = ConfigDict(extra="allow")

    status: str = Field(..., min_length=1, max_length=32)

    def extra_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class AssigneeRequest(BaseModel):
    assignee_id: str = Field(..., min_length=1, max_length=64)


class TransitionRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sequence: int
    action: WorkflowAction
    from_status: str
    to_status: str
    actor_id: str
    actor_role: str
    reason: str | None = None
    created_at: datetime


class WorkItemResponse(BaseModel):
    """Common shape of an order or request quote as seen by one actor."""

    id: uuid.UUID
    type: WorkItemType
    owner_user_id: str
    assignee_id: str | None = None
    is_assigned: bool
    assignee: ActorSummary | None = None
    status: str
    status_timestamps: dict[str, datetime]
    allowed_transitions: list[str]
    notes: str | None = None
    admin_notes: str | None = None
    payload: WorkItemPayload
    created_at: datetime
    updated_at: datetime


def work_item_fields(
    definition: WorkflowDefinition,
    item: Any,
    actor: AuthenticatedUser,
    profiles: dict[str, ActorSummary] | None = None,
) -> dict[str, Any]:
    """Field values for ``WorkItemResponse`` with per-actor redaction.

    Only admins and the assignee see who holds an item; ``admin_notes`` are
    hidden from everyone but admins.
    """
    assignee_id = getattr(item, definition.assignee_field)
    show_assignee = actor.is_admin or (assignee_id is not None and assignee_id == actor.id)
    profiles = profiles or {}
    return {
        "id": item.id,
        "type": definition.item_type,
        "owner_user_id": item.user_id,
        "assignee_id": assignee_id if show_assignee else None,
        "is_assigned": assignee_id is not None,
        "assignee": profiles.get(assignee_id) if show_assignee and assignee_id else None,
        "status": item.status.value,
        "status_timestamps": status_timestamps(definition, item),
        "allowed_transitions": allowed_targets(definition.item_type, item.status),
        "notes": item.notes,
        "admin_notes": item.admin_notes if actor.is_admin else None,
        "payload": payload_of(definition.item_type, item),
        "created_at": item.created_at,
        "updated_at": item.updated_at,
    }
