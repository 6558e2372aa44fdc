"""Workflow transition graphs, timestamp columns, assignment rules and event names."""

from __future__ import annotations

from src.models.enums import OrderStatus, QuoteStatus, WorkflowAction

# ---------------------------------------------------------------------------
# Valid status transitions: current_status -> set of allowed next statuses
# ---------------------------------------------------------------------------

ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPING, OrderStatus.CANCELED}),
    OrderStatus.SHIPPING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELED: frozenset(),
}

QUOTE_TRANSITIONS: dict[QuoteStatus, frozenset[QuoteStatus]] = {
    QuoteStatus.PENDING: frozenset({QuoteStatus.REVIEWING, QuoteStatus.REJECTED}),
    QuoteStatus.REVIEWING: frozenset({QuoteStatus.QUOTED, QuoteStatus.REJECTED}),
    QuoteStatus.QUOTED: frozenset({QuoteStatus.APPROVED, QuoteStatus.REJECTED}),
    QuoteStatus.APPROVED: frozenset({QuoteStatus.COMPLETED}),
    # Re-open a rejected request for another review round
    QuoteStatus.REJECTED: frozenset({QuoteStatus.REVIEWING}),
    QuoteStatus.COMPLETED: frozenset(),
}

# ---------------------------------------------------------------------------
# Status -> timestamp column stamped on first entry
# ---------------------------------------------------------------------------

ORDER_TIMESTAMP_FIELDS: dict[OrderStatus, str] = {
    OrderStatus.PROCESSING: "processing_at",
    OrderStatus.SHIPPING: "shipping_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELED: "canceled_at",
}

QUOTE_TIMESTAMP_FIELDS: dict[QuoteStatus, str] = {
    QuoteStatus.REVIEWING: "reviewing_at",
    QuoteStatus.QUOTED: "quoted_at",
    QuoteStatus.APPROVED: "approved_at",
    QuoteStatus.REJECTED: "rejected_at",
    QuoteStatus.COMPLETED: "completed_at",
}

# ---------------------------------------------------------------------------
# Assignment rules
# ---------------------------------------------------------------------------

# Shippers pick up orders from the "shipping" pool and may hand them back
# only while still in "shipping".
ORDER_CLAIMABLE_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.SHIPPING})
ORDER_RELEASABLE_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.SHIPPING})

# Designers can be attached to any open request; removal is allowed in any
# status until a primary design has been set.
QUOTE_CLAIMABLE_STATUSES: frozenset[QuoteStatus] = frozenset(
    {
        QuoteStatus.PENDING,
        QuoteStatus.REVIEWING,
        QuoteStatus.QUOTED,
        QuoteStatus.APPROVED,
    }
)

# ---------------------------------------------------------------------------
# Event type suffixes for the outbox ("order.claimed", "request_quote.status_changed")
# ---------------------------------------------------------------------------

ACTION_EVENT_SUFFIXES: dict[WorkflowAction, str] = {
    WorkflowAction.TRANSITION: "status_changed",
    WorkflowAction.CLAIM: "claimed",
    WorkflowAction.RELEASE: "released",
    WorkflowAction.ASSIGN: "assignee_assigned",
    WorkflowAction.UNASSIGN: "assignee_unassigned",
    WorkflowAction.REASSIGN: "assignee_reassigned",
    WorkflowAction.SHIPPING_IMAGE: "shipping_image_uploaded",
    WorkflowAction.REVISION: "revised",
    WorkflowAction.DESIGN_SET: "design_set",
}

EVENT_ORDER_CREATED = "order.created"
EVENT_REQUEST_QUOTE_CREATED = "request_quote.created"
EVENT_REQUEST_QUOTE_FEEDBACK = "request_quote.feedback_submitted"
