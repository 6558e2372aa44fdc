# Import all models so SQLAlchemy metadata is populated for create_all / Alembic
from src.models.enums import (
    FeedbackAspect,
    OrderStatus,
    PrintingMethod,
    QuoteStatus,
    RequestQuoteType,
    RevisionReason,
    ShippingMethod,
    ShippingPriority,
    UserRole,
    WorkflowAction,
    WorkItemType,
)
from src.models.event_outbox import EventOutbox
from src.models.order import Order
from src.models.quote_response import QuoteResponse
from src.models.request_quote import RequestQuote
from src.models.user import User
from src.models.work_item_transition import WorkItemTransition

__all__ = [
    "EventOutbox",
    "FeedbackAspect",
    "Order",
    "OrderStatus",
    "PrintingMethod",
    "QuoteResponse",
    "QuoteStatus",
    "RequestQuote",
    "RequestQuoteType",
    "RevisionReason",
    "ShippingMethod",
    "ShippingPriority",
    "User",
    "UserRole",
    "WorkItemTransition",
    "WorkItemType",
    "WorkflowAction",
]
