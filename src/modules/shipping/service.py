"""Shipper views over orders: the open pool, own assignments and detail cards."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.exceptions import ForbiddenException
from src.models.enums import OrderStatus, ShippingMethod, ShippingPriority, UserRole, WorkItemType
from src.models.order import Order
from src.modules.identity.auth import AuthenticatedUser
from src.modules.shipping.schemas import ShippingOrderView
from src.modules.workflow.assignment import AssignmentBroker
from src.modules.workflow.executor import TransitionExecutor
from src.modules.workflow.payloads import OrderItem
from src.modules.workflow.permissions import require_view
from src.modules.workflow.projections import ListFilter, Page, WorkItemQueryService
from src.modules.workflow.registry import ORDER_WORKFLOW, allowed_targets, status_timestamps
from src.modules.workflow.store import WorkItemStore

# Statuses a shipper keeps seeing after claiming an order
SHIPPER_STATUSES = (OrderStatus.SHIPPING, OrderStatus.SHIPPED, OrderStatus.DELIVERED)


# ---------------------------------------------------------------------------
# View helpers
# ---------------------------------------------------------------------------


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def format_address(shipping_details: dict | None) -> str:
    address = (shipping_details or {}).get("address") or {}
    parts = [
        address.get(key)
        for key in ("line1", "line2", "city", "state", "postal_code", "country")
    ]
    parts = [p for p in parts if p]
    return ", ".join(parts) if parts else "No address provided"


def shipping_method_of(shipping_details: dict | None) -> ShippingMethod:
    raw = (shipping_details or {}).get("method")
    try:
        return ShippingMethod(raw)
    except ValueError:
        return ShippingMethod.STANDARD


def get_priority(
    created_at: datetime,
    method: ShippingMethod,
    now: datetime | None = None,
) -> ShippingPriority:
    if method == ShippingMethod.EXPRESS:
        return ShippingPriority.HIGH
    age = (now or datetime.now(UTC)) - as_utc(created_at)
    if age > timedelta(days=settings.priority_high_after_days):
        return ShippingPriority.HIGH
    if age > timedelta(days=settings.priority_medium_after_days):
        return ShippingPriority.MEDIUM
    return ShippingPriority.LOW


def estimated_delivery(created_at: datetime, method: ShippingMethod) -> date:
    days = (
        settings.express_delivery_days
        if method == ShippingMethod.EXPRESS
        else settings.standard_delivery_days
    )
    return (as_utc(created_at) + timedelta(days=days)).date()


def tracking_number(order_id: uuid.UUID, created_at: datetime) -> str:
    """Stable per order: creation date plus the tail of the id."""
    return f"TRK{as_utc(created_at):%y%m%d}{order_id.hex[-4:]}".upper()


def to_shipping_view(order: Order, actor: AuthenticatedUser) -> ShippingOrderView:
    details = order.shipping_details or {}
    method = shipping_method_of(details)
    items = [OrderItem.model_validate(item) for item in order.items or []]
    return ShippingOrderView(
        id=order.id,
        status=order.status.value,
        customer_name=details.get("name") or "Unknown",
        customer_phone=details.get("phone") or "",
        address=format_address(details),
        shipping_method=method,
        priority=get_priority(order.created_at, method),
        item_count=len(items),
        total_amount=order.total_amount,
        items=items,
        notes=order.notes,
        shipping_image=order.shipping_image,
        assigned_to_me=order.shipper_id == actor.id,
        is_assigned=order.shipper_id is not None,
        tracking_number=tracking_number(order.id, order.created_at),
        estimated_delivery=estimated_delivery(order.created_at, method),
        allowed_transitions=allowed_targets(WorkItemType.ORDER, order.status),
        status_timestamps=status_timestamps(ORDER_WORKFLOW, order),
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def _require_shipper_or_admin(actor: AuthenticatedUser) -> None:
    if not (actor.is_admin or actor.has_role(UserRole.SHIPPER)):
        raise ForbiddenException("Access denied. Shipper or admin role required.")


def _require_shipper(actor: AuthenticatedUser) -> None:
    if not actor.has_role(UserRole.SHIPPER):
        raise ForbiddenException("Access denied. Shipper role required.")


class ShippingService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.queries = WorkItemQueryService(db)

    async def list_available(self, actor: AuthenticatedUser, filters: ListFilter) -> Page[Order]:
        """Unclaimed orders ready for shipment."""
        _require_shipper_or_admin(actor)
        filters.status = OrderStatus.SHIPPING.value
        filters.unassigned_only = True
        return await self.queries.list_items(WorkItemType.ORDER, actor, filters)

    async def list_my_orders(self, actor: AuthenticatedUser, filters: ListFilter) -> Page[Order]:
        _require_shipper(actor)
        filters.assignee_id = actor.id
        if not filters.status:
            filters.statuses = tuple(s.value for s in SHIPPER_STATUSES)
        return await self.queries.list_items(WorkItemType.ORDER, actor, filters)

    async def get_order(self, order_id: uuid.UUID, actor: AuthenticatedUser) -> Order:
        _require_shipper_or_admin(actor)
        order = await WorkItemStore(self.db).get(ORDER_WORKFLOW, order_id)
        require_view(ORDER_WORKFLOW, order, actor)
        return order

    async def claim(self, order_id: uuid.UUID, actor: AuthenticatedUser) -> Order:
        return await AssignmentBroker(self.db).claim(WorkItemType.ORDER, order_id, actor)

    async def release(self, order_id: uuid.UUID, actor: AuthenticatedUser) -> Order:
        return await AssignmentBroker(self.db).release(WorkItemType.ORDER, order_id, actor)

    async def update_status(
        self,
        order_id: uuid.UUID,
        actor: AuthenticatedUser,
        status: str,
        extra_fields: dict[str, Any] | None = None,
    ) -> Order:
        _require_shipper_or_admin(actor)
        return await TransitionExecutor(self.db).transition(
            WorkItemType.ORDER, order_id, actor, status, extra_fields
        )

    async def upload_shipping_image(
        self, order_id: uuid.UUID, actor: AuthenticatedUser, url: str
    ) -> Order:
        return await TransitionExecutor(self.db).upload_shipping_image(order_id, actor, url)
