"""Declarative authorization tables for workflow operations.

Two tables drive every decision:

* ``OPERATION_ROLES`` says which roles may attempt an assignment-style
  operation on a given item type at all.
* ``TRANSITION_ACTORS`` says, per target status, in which capacity an actor
  may move an item there: as an admin, as the item's owner, or as the
  item's current assignee.

The role gate runs before any state check so callers without the right role
get ``FORBIDDEN`` regardless of the item's status.
"""

from __future__ import annotations

import enum
from typing import Any

from src.exceptions import ForbiddenException, IllegalTransitionException
from src.models.enums import OrderStatus, QuoteStatus, UserRole, WorkItemType
from src.modules.identity.auth import AuthenticatedUser
from src.modules.workflow.registry import WorkflowDefinition


class Operation(str, enum.Enum):
    CLAIM = "claim"
    RELEASE = "release"
    ASSIGN = "assign"
    UNASSIGN = "unassign"
    REASSIGN = "reassign"
    UPLOAD_SHIPPING_IMAGE = "upload_shipping_image"
    REVISE = "revise"
    SET_DESIGN = "set_design"
    FEEDBACK = "feedback"


class Relation(str, enum.Enum):
    ADMIN = "admin"
    OWNER = "owner"
    ASSIGNEE = "assignee"


OPERATION_ROLES: dict[tuple[WorkItemType, Operation], frozenset[UserRole]] = {
    (WorkItemType.ORDER, Operation.CLAIM): frozenset({UserRole.SHIPPER}),
    (WorkItemType.ORDER, Operation.RELEASE): frozenset({UserRole.SHIPPER}),
    (WorkItemType.ORDER, Operation.UPLOAD_SHIPPING_IMAGE): frozenset({UserRole.SHIPPER}),
    (WorkItemType.REQUEST_QUOTE, Operation.ASSIGN): frozenset({UserRole.ADMIN}),
    (WorkItemType.REQUEST_QUOTE, Operation.UNASSIGN): frozenset({UserRole.ADMIN}),
    (WorkItemType.REQUEST_QUOTE, Operation.REASSIGN): frozenset({UserRole.ADMIN}),
    (WorkItemType.REQUEST_QUOTE, Operation.REVISE): frozenset({UserRole.ADMIN}),
    (WorkItemType.REQUEST_QUOTE, Operation.SET_DESIGN): frozenset(
        {UserRole.ADMIN, UserRole.DESIGNER}
    ),
    (WorkItemType.REQUEST_QUOTE, Operation.FEEDBACK): frozenset({UserRole.CUSTOMER}),
}

TRANSITION_ACTORS: dict[WorkItemType, dict[Any, frozenset[Relation]]] = {
    WorkItemType.ORDER: {
        OrderStatus.PROCESSING: frozenset({Relation.ADMIN}),
        OrderStatus.SHIPPING: frozenset({Relation.ADMIN}),
        OrderStatus.SHIPPED: frozenset({Relation.ADMIN, Relation.ASSIGNEE}),
        OrderStatus.DELIVERED: frozenset({Relation.ADMIN, Relation.ASSIGNEE}),
        OrderStatus.CANCELED: frozenset({Relation.ADMIN, Relation.OWNER}),
    },
    WorkItemType.REQUEST_QUOTE: {
        QuoteStatus.REVIEWING: frozenset({Relation.ADMIN}),
        QuoteStatus.QUOTED: frozenset({Relation.ADMIN}),
        QuoteStatus.APPROVED: frozenset({Relation.ADMIN, Relation.OWNER}),
        QuoteStatus.REJECTED: frozenset({Relation.ADMIN, Relation.OWNER}),
        QuoteStatus.COMPLETED: frozenset({Relation.ADMIN}),
    },
}

# Owners act only from these source statuses (customers cancel before work
# starts and answer a quote while it is on the table).
OWNER_SOURCE_STATUSES: dict[tuple[WorkItemType, Any], frozenset] = {
    (WorkItemType.ORDER, OrderStatus.CANCELED): frozenset({OrderStatus.PENDING}),
    (WorkItemType.REQUEST_QUOTE, QuoteStatus.APPROVED): frozenset({QuoteStatus.QUOTED}),
    (WorkItemType.REQUEST_QUOTE, QuoteStatus.REJECTED): frozenset({QuoteStatus.QUOTED}),
}


def require_operation(actor: AuthenticatedUser, item_type: WorkItemType, operation: Operation) -> None:
    """Raise ForbiddenException unless one of the actor's roles may attempt the operation."""
    roles = OPERATION_ROLES.get((item_type, operation), frozenset())
    if not roles & actor.roles:
        names = sorted(role.value for role in roles)
        raise ForbiddenException(
            f"Access denied. Requires one of {names} to {operation.value.replace('_', ' ')}"
        )


def is_assignee(definition: WorkflowDefinition, item: Any, actor: AuthenticatedUser) -> bool:
    return (
        actor.has_role(definition.assignee_role)
        and getattr(item, definition.assignee_field) == actor.id
    )


def is_owner(item: Any, actor: AuthenticatedUser) -> bool:
    return item.user_id == actor.id


def authorize_transition(
    definition: WorkflowDefinition,
    item: Any,
    actor: AuthenticatedUser,
    target: enum.Enum,
) -> Relation:
    """Return the capacity the actor acts in, or raise.

    Admin wins over assignee, assignee over owner. A target nobody may enter
    is reported as an illegal transition rather than a permission problem.
    """
    relations = TRANSITION_ACTORS[definition.item_type].get(target)
    if relations is None:
        raise IllegalTransitionException(
            f"No {definition.label} may be moved to '{target.value}'"
        )

    if actor.is_admin and Relation.ADMIN in relations:
        return Relation.ADMIN
    if Relation.ASSIGNEE in relations and is_assignee(definition, item, actor):
        return Relation.ASSIGNEE
    if Relation.OWNER in relations and is_owner(item, actor):
        sources = OWNER_SOURCE_STATUSES.get((definition.item_type, target))
        if sources is not None and item.status not in sources:
            allowed = sorted(s.value for s in sources)
            raise ForbiddenException(
                f"You can only move this {definition.label} to '{target.value}' "
                f"from {allowed}"
            )
        return Relation.OWNER

    raise ForbiddenException(
        f"You are not allowed to move this {definition.label} to '{target.value}'"
    )


def can_view(definition: WorkflowDefinition, item: Any, actor: AuthenticatedUser) -> bool:
    """Admins see everything; others see their own and assigned items plus the open claim pool."""
    if actor.is_admin or is_owner(item, actor):
        return True
    if getattr(item, definition.assignee_field) == actor.id:
        return True
    return can_claim_pool(definition, actor) and (
        item.status in definition.claimable_statuses
        and getattr(item, definition.assignee_field) is None
    )


def can_claim_pool(definition: WorkflowDefinition, actor: AuthenticatedUser) -> bool:
    """Whether the actor browses unassigned items of this type to claim them."""
    roles = OPERATION_ROLES.get((definition.item_type, Operation.CLAIM), frozenset())
    return bool(roles & actor.roles)


def require_view(definition: WorkflowDefinition, item: Any, actor: AuthenticatedUser) -> None:
    if not can_view(definition, item, actor):
        raise ForbiddenException(f"You do not have access to this {definition.label}")
