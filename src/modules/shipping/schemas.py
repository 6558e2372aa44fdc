"""Pydantic v2 schemas for the shipper-facing order views."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from src.models.enums import ShippingMethod, ShippingPriority
from src.modules.workflow.payloads import OrderItem
from src.schemas.responses import PageMeta


class ShippingImageUpload(BaseModel):
    shipping_image: str = Field(..., min_length=1, max_length=2048)


class ShippingOrderView(BaseModel):
    id: uuid.UUID
    status: str
    customer_name: str
    customer_phone: str
    address: str
    shipping_method: ShippingMethod
    priority: ShippingPriority
    item_count: int
    total_amount: Decimal
    items: list[OrderItem]
    notes: str | None = None
    shipping_image: str | None = None
    assigned_to_me: bool
    is_assigned: bool
    tracking_number: str
    estimated_delivery: date
    allowed_transitions: list[str]
    status_timestamps: dict[str, datetime]
    created_at: datetime
    updated_at: datetime


class ShippingOrderListResponse(BaseModel):
    items: list[ShippingOrderView]
    meta: PageMeta
