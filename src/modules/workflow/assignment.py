"""Assignment broker — claim, release and admin assignment of work items.

Every operation is a single conditional UPDATE. When it touches no row the
item is reloaded to explain why, so two racing claimers get exactly one
success and one ``AlreadyAssigned``.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.exceptions import (
    AlreadyAssignedException,
    NotClaimableException,
    NotOwnerException,
    NotReleasableException,
    ValidationException,
)
from src.models.enums import WorkflowAction, WorkItemType
from src.modules.identity.auth import AuthenticatedUser
from src.modules.identity.service import IdentityService
from src.modules.workflow.audit import WorkflowAudit
from src.modules.workflow.permissions import Operation, require_operation
from src.modules.workflow.registry import WorkflowDefinition, get_definition
from src.modules.workflow.store import WorkItemStore

logger = logging.getLogger(__name__)


class AssignmentBroker:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = WorkItemStore(db)
        self.audit = WorkflowAudit(db)
        self.identity = IdentityService(db)

    # ------------------------------------------------------------------
    # Self-service
    # ------------------------------------------------------------------

    async def claim(self, item_type: WorkItemType, item_id: uuid.UUID, actor: AuthenticatedUser) -> Any:
        """Take an unassigned item in a claimable status."""
        definition = get_definition(item_type)
        require_operation(actor, definition.item_type, Operation.CLAIM)
        model = definition.model

        # The conditional UPDATE goes first so concurrent claimers serialise on the row.
        claimed = await self.store.conditional_update(
            definition,
            item_id,
            [
                model.status.in_(definition.claimable_statuses),
                definition.assignee_column.is_(None),
            ],
            {definition.assignee_field: actor.id},
        )
        item = await self.store.get(definition, item_id, refresh=True)

        if not claimed:
            holder = getattr(item, definition.assignee_field)
            if holder == actor.id and item.status in definition.claimable_statuses:
                return item
            if holder is not None:
                raise AlreadyAssignedException(
                    f"This {definition.label} is already assigned to another {definition.assignee_label}"
                )
            raise self._not_claimable(definition, item)

        await self.audit.record(
            definition, item, WorkflowAction.CLAIM, actor, item.status, item.status
        )
        return item

    async def release(self, item_type: WorkItemType, item_id: uuid.UUID, actor: AuthenticatedUser) -> Any:
        """Give an item back to the pool. Only its current assignee may do this."""
        definition = get_definition(item_type)
        require_operation(actor, definition.item_type, Operation.RELEASE)

        released = await self.store.conditional_update(
            definition,
            item_id,
            [definition.assignee_column == actor.id, *self._release_conditions(definition)],
            {definition.assignee_field: None},
        )
        item = await self.store.get(definition, item_id, refresh=True)

        if not released:
            if getattr(item, definition.assignee_field) != actor.id:
                raise NotOwnerException(f"This {definition.label} is not assigned to you")
            raise self._not_releasable(definition, item)

        await self.audit.record(
            definition, item, WorkflowAction.RELEASE, actor, item.status, item.status
        )
        return item

    # ------------------------------------------------------------------
    # Admin assignment
    # ------------------------------------------------------------------

    async def assign(
        self,
        item_type: WorkItemType,
        item_id: uuid.UUID,
        assignee_id: str,
        actor: AuthenticatedUser,
    ) -> Any:
        """Attach an assignee on their behalf; fails if someone already holds the item."""
        definition = get_definition(item_type)
        require_operation(actor, definition.item_type, Operation.ASSIGN)
        await self.store.get(definition, item_id)
        await self._require_assignee_role(definition, assignee_id)
        model = definition.model

        assigned = await self.store.conditional_update(
            definition,
            item_id,
            [
                model.status.in_(definition.claimable_statuses),
                definition.assignee_column.is_(None),
            ],
            {definition.assignee_field: assignee_id},
        )
        item = await self.store.get(definition, item_id, refresh=True)

        if not assigned:
            holder = getattr(item, definition.assignee_field)
            if holder == assignee_id:
                return item
            if holder is not None:
                raise AlreadyAssignedException(
                    f"This {definition.label} already has a {definition.assignee_label} "
                    f"assigned. Unassign the current {definition.assignee_label} first."
                )
            raise self._not_claimable(definition, item)

        await self.audit.record(
            definition, item, WorkflowAction.ASSIGN, actor, item.status, item.status,
            extra={"assignee_id": assignee_id},
        )
        return item

    async def unassign(self, item_type: WorkItemType, item_id: uuid.UUID, actor: AuthenticatedUser) -> Any:
        definition = get_definition(item_type)
        require_operation(actor, definition.item_type, Operation.UNASSIGN)
        current = await self.store.get(definition, item_id)
        previous = getattr(current, definition.assignee_field)

        removed = await self.store.conditional_update(
            definition,
            item_id,
            [definition.assignee_column.is_not(None), *self._release_conditions(definition)],
            {definition.assignee_field: None},
        )
        item = await self.store.get(definition, item_id, refresh=True)

        if not removed:
            if getattr(item, definition.assignee_field) is None:
                raise NotReleasableException(
                    f"This {definition.label} has no {definition.assignee_label} assigned"
                )
            raise self._not_releasable(definition, item)

        await self.audit.record(
            definition, item, WorkflowAction.UNASSIGN, actor, item.status, item.status,
            extra={"previous_assignee_id": previous},
        )
        return item

    async def reassign(
        self,
        item_type: WorkItemType,
        item_id: uuid.UUID,
        new_assignee_id: str,
        actor: AuthenticatedUser,
    ) -> Any:
        """Overwrite the assignee unconditionally."""
        definition = get_definition(item_type)
        require_operation(actor, definition.item_type, Operation.REASSIGN)
        current = await self.store.get(definition, item_id)
        previous = getattr(current, definition.assignee_field)
        await self._require_assignee_role(definition, new_assignee_id)

        await self.store.conditional_update(
            definition, item_id, [], {definition.assignee_field: new_assignee_id}
        )
        item = await self.store.get(definition, item_id, refresh=True)

        await self.audit.record(
            definition, item, WorkflowAction.REASSIGN, actor, item.status, item.status,
            extra={"previous_assignee_id": previous},
        )
        return item

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _release_conditions(self, definition: WorkflowDefinition) -> list[Any]:
        conditions: list[Any] = []
        if definition.releasable_statuses is not None:
            conditions.append(definition.model.status.in_(definition.releasable_statuses))
        if definition.release_guard_field is not None:
            conditions.append(getattr(definition.model, definition.release_guard_field).is_(None))
        return conditions

    async def _require_assignee_role(self, definition: WorkflowDefinition, assignee_id: str) -> None:
        if not await self.identity.has_role(assignee_id, definition.assignee_role):
            field = definition.assignee_field
            raise ValidationException(
                f"Selected user is not a {definition.assignee_label}",
                details=[{"field": field, "message": f"User must have the {definition.assignee_label} role"}],
            )

    @staticmethod
    def _not_claimable(definition: WorkflowDefinition, item: Any) -> NotClaimableException:
        allowed = sorted(s.value for s in definition.claimable_statuses)
        return NotClaimableException(
            f"Cannot assign a {definition.label} in status '{item.status.value}'. "
            f"Claimable statuses: {allowed}"
        )

    @staticmethod
    def _not_releasable(definition: WorkflowDefinition, item: Any) -> NotReleasableException:
        guard = definition.release_guard_field
        if guard is not None and getattr(item, guard) is not None:
            return NotReleasableException(
                f"Cannot unassign the {definition.assignee_label} after a primary design has been set"
            )
        allowed = sorted(s.value for s in definition.releasable_statuses or ())
        return NotReleasableException(
            f"Cannot release a {definition.label} in status '{item.status.value}'. "
            f"Releasable statuses: {allowed}"
        )
