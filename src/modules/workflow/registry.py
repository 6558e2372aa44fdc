"""Per-type workflow definitions and the status transition registry.

Every status change in the system is checked against the graphs registered
here. ``is_valid_transition`` is a pure lookup: unknown statuses or types are
simply invalid, never an error.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.orm import InstrumentedAttribute

from src.exceptions import ValidationException
from src.models.enums import OrderStatus, QuoteStatus, UserRole, WorkItemType
from src.models.order import Order
from src.models.request_quote import RequestQuote
from src.modules.workflow.constants import (
    ORDER_CLAIMABLE_STATUSES,
    ORDER_RELEASABLE_STATUSES,
    ORDER_TIMESTAMP_FIELDS,
    ORDER_TRANSITIONS,
    QUOTE_CLAIMABLE_STATUSES,
    QUOTE_TIMESTAMP_FIELDS,
    QUOTE_TRANSITIONS,
)


@dataclass(frozen=True)
class WorkflowDefinition:
    """Everything the engine needs to know about one kind of work item."""

    item_type: WorkItemType
    model: type
    status_enum: type[enum.Enum]
    initial_status: enum.Enum
    transitions: dict[Any, frozenset]
    timestamp_fields: dict[Any, str]
    label: str
    assignee_field: str
    assignee_role: UserRole
    claimable_statuses: frozenset
    # None means the assignee may be removed in any status
    releasable_statuses: frozenset | None = None
    # Release is refused while this column holds a value
    release_guard_field: str | None = None
    search_columns: Callable[[], list] = field(default=lambda: [])

    @property
    def event_prefix(self) -> str:
        return self.item_type.value

    @property
    def assignee_column(self) -> InstrumentedAttribute:
        return getattr(self.model, self.assignee_field)

    @property
    def assignee_label(self) -> str:
        return self.assignee_role.value


_DEFINITIONS: dict[WorkItemType, WorkflowDefinition] = {}


def register(definition: WorkflowDefinition) -> WorkflowDefinition:
    _DEFINITIONS[definition.item_type] = definition
    return definition


def get_definition(item_type: WorkItemType | str) -> WorkflowDefinition:
    try:
        return _DEFINITIONS[WorkItemType(item_type)]
    except (KeyError, ValueError) as exc:
        raise ValidationException(
            f"Unknown work item type '{item_type}'",
            details=[{"field": "item_type", "message": "Unknown work item type"}],
        ) from exc


# ---------------------------------------------------------------------------
# Status lookups
# ---------------------------------------------------------------------------


def _coerce_status(definition: WorkflowDefinition, value: Any) -> enum.Enum | None:
    if isinstance(value, definition.status_enum):
        return value
    try:
        return definition.status_enum(value)
    except ValueError:
        return None


def parse_status(item_type: WorkItemType | str, value: Any, field_name: str = "status") -> enum.Enum:
    """Turn a raw status value into the type's status enum or raise a 422."""
    definition = get_definition(item_type)
    status = _coerce_status(definition, value)
    if status is None:
        allowed = [s.value for s in definition.status_enum]
        raise ValidationException(
            f"Invalid {definition.label} status '{value}'. Allowed: {allowed}",
            details=[{"field": field_name, "message": f"Must be one of {allowed}"}],
        )
    return status


def is_valid_transition(item_type: WorkItemType | str, from_status: Any, to_status: Any) -> bool:
    definition = _DEFINITIONS.get(_coerce_item_type(item_type))
    if definition is None:
        return False
    source = _coerce_status(definition, from_status)
    target = _coerce_status(definition, to_status)
    if source is None or target is None:
        return False
    return target in definition.transitions.get(source, frozenset())


def allowed_targets(item_type: WorkItemType | str, status: Any) -> list[str]:
    """Allowed next statuses as plain values, in enum declaration order."""
    definition = get_definition(item_type)
    source = _coerce_status(definition, status)
    targets = definition.transitions.get(source, frozenset())
    return [s.value for s in definition.status_enum if s in targets]


def is_terminal(item_type: WorkItemType | str, status: Any) -> bool:
    definition = get_definition(item_type)
    source = _coerce_status(definition, status)
    return source is not None and not definition.transitions.get(source)


def status_timestamps(definition: WorkflowDefinition, item: Any) -> dict[str, datetime]:
    """Map of status value -> time the item first entered it."""
    stamps: dict[str, datetime] = {}
    for status, column in definition.timestamp_fields.items():
        value = getattr(item, column, None)
        if value is not None:
            stamps[status.value] = value
    return stamps


def _coerce_item_type(item_type: WorkItemType | str) -> WorkItemType | None:
    try:
        return WorkItemType(item_type)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Registered workflows
# ---------------------------------------------------------------------------

ORDER_WORKFLOW = register(
    WorkflowDefinition(
        item_type=WorkItemType.ORDER,
        model=Order,
        status_enum=OrderStatus,
        initial_status=OrderStatus.PENDING,
        transitions=ORDER_TRANSITIONS,
        timestamp_fields=ORDER_TIMESTAMP_FIELDS,
        label="order",
        assignee_field="shipper_id",
        assignee_role=UserRole.SHIPPER,
        claimable_statuses=ORDER_CLAIMABLE_STATUSES,
        releasable_statuses=ORDER_RELEASABLE_STATUSES,
        search_columns=lambda: [Order.search_text],
    )
)

REQUEST_QUOTE_WORKFLOW = register(
    WorkflowDefinition(
        item_type=WorkItemType.REQUEST_QUOTE,
        model=RequestQuote,
        status_enum=QuoteStatus,
        initial_status=QuoteStatus.PENDING,
        transitions=QUOTE_TRANSITIONS,
        timestamp_fields=QUOTE_TIMESTAMP_FIELDS,
        label="request quote",
        assignee_field="designer_id",
        assignee_role=UserRole.DESIGNER,
        claimable_statuses=QUOTE_CLAIMABLE_STATUSES,
        releasable_statuses=None,
        release_guard_field="design_id",
        search_columns=lambda: [
            RequestQuote.first_name,
            RequestQuote.last_name,
            RequestQuote.email_address,
            RequestQuote.company,
        ],
    )
)
