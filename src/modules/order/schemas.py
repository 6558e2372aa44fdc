"""Pydantic v2 schemas for order endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from src.modules.workflow.payloads import OrderItem, ShippingDetails
from src.modules.workflow.schemas import WorkItemResponse
from src.schemas.responses import PageMeta

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class OrderCreate(BaseModel):
    items: list[OrderItem] = Field(..., min_length=1)
    shipping_details: ShippingDetails = Field(default_factory=ShippingDetails)
    payment_method: str = Field(..., min_length=1, max_length=50)
    payment_intent_id: str | None = Field(None, max_length=255)
    notes: str | None = Field(None, max_length=2000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class OrderResponse(WorkItemResponse):
    shipping_image: str | None = None
    payment_intent_id: str | None = None


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    meta: PageMeta
