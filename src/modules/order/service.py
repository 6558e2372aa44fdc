"""Order service — placement, visibility-checked reads and status changes."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.exceptions import ValidationException
from src.models.enums import OrderStatus, WorkItemType
from src.models.order import Order
from src.models.work_item_transition import WorkItemTransition
from src.modules.events.outbox_service import OutboxService
from src.modules.identity.auth import AuthenticatedUser
from src.modules.identity.service import IdentityService
from src.modules.order.schemas import OrderCreate, OrderResponse
from src.modules.workflow.audit import WorkflowAudit
from src.modules.workflow.constants import EVENT_ORDER_CREATED
from src.modules.workflow.executor import TransitionExecutor
from src.modules.workflow.permissions import require_view
from src.modules.workflow.projections import ListFilter, Page, WorkItemQueryService
from src.modules.workflow.registry import ORDER_WORKFLOW
from src.modules.workflow.schemas import work_item_fields
from src.modules.workflow.store import WorkItemStore, store_errors

logger = logging.getLogger(__name__)


def _search_text(data: OrderCreate) -> str:
    names = [item.name for item in data.items]
    if data.shipping_details.name:
        names.append(data.shipping_details.name)
    return "\n".join(names)


class OrderService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = WorkItemStore(db)

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    async def create_order(self, owner: AuthenticatedUser, data: OrderCreate) -> Order:
        """Place an order. The total is derived from the line items plus shipping."""
        if data.payment_intent_id:
            async with store_errors("read"):
                existing = (
                    await self.db.execute(
                        select(Order).where(Order.payment_intent_id == data.payment_intent_id)
                    )
                ).scalar_one_or_none()
            if existing is not None:
                if existing.user_id == owner.id:
                    # Payment confirmations can arrive twice; the first order wins.
                    return existing
                raise ValidationException(
                    "Payment has already been used for another order",
                    details=[{"field": "payment_intent_id", "message": "Already used"}],
                )

        items_total = sum((item.total_price for item in data.items), Decimal("0"))
        total_amount = items_total + data.shipping_details.cost

        order = Order(
            user_id=owner.id,
            status=ORDER_WORKFLOW.initial_status,
            items=[item.model_dump(mode="json") for item in data.items],
            shipping_details=data.shipping_details.model_dump(mode="json"),
            total_amount=total_amount,
            payment_method=data.payment_method,
            payment_intent_id=data.payment_intent_id,
            notes=data.notes,
            search_text=_search_text(data),
        )
        async with store_errors("create order"):
            self.db.add(order)
            await self.db.flush()

            await OutboxService(self.db).publish_event(
                event_type=EVENT_ORDER_CREATED,
                aggregate_type=WorkItemType.ORDER.value,
                aggregate_id=str(order.id),
                payload={
                    "order_id": str(order.id),
                    "user_id": owner.id,
                    "total_amount": str(total_amount),
                    "item_count": sum(item.quantity for item in data.items),
                },
            )

        logger.info("Order %s placed by %s (total %s)", order.id, owner.id, total_amount)
        return order

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_order(self, order_id: uuid.UUID, actor: AuthenticatedUser) -> Order:
        order = await self.store.get(ORDER_WORKFLOW, order_id)
        require_view(ORDER_WORKFLOW, order, actor)
        return order

    async def list_orders(self, actor: AuthenticatedUser, filters: ListFilter) -> Page[Order]:
        return await WorkItemQueryService(self.db).list_items(WorkItemType.ORDER, actor, filters)

    async def count_by_status(self, actor: AuthenticatedUser, filters: ListFilter) -> dict[str, int]:
        return await WorkItemQueryService(self.db).count_by_status(
            WorkItemType.ORDER, actor, filters
        )

    async def get_history(
        self, order_id: uuid.UUID, actor: AuthenticatedUser
    ) -> list[WorkItemTransition]:
        await self.get_order(order_id, actor)
        return await WorkflowAudit(self.db).history(ORDER_WORKFLOW, order_id)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def update_status(
        self,
        order_id: uuid.UUID,
        actor: AuthenticatedUser,
        status: OrderStatus | str,
        extra_fields: dict | None = None,
    ) -> Order:
        return await TransitionExecutor(self.db).transition(
            WorkItemType.ORDER, order_id, actor, status, extra_fields
        )

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    async def to_responses(
        self, orders: Sequence[Order], actor: AuthenticatedUser
    ) -> list[OrderResponse]:
        """Build responses with assignee profiles resolved in one lookup."""
        profiles = await IdentityService(self.db).get_profiles(o.shipper_id for o in orders)
        return [
            OrderResponse(
                **work_item_fields(ORDER_WORKFLOW, order, actor, profiles),
                shipping_image=order.shipping_image,
                payment_intent_id=order.payment_intent_id if actor.is_admin else None,
            )
            for order in orders
        ]

    async def to_response(self, order: Order, actor: AuthenticatedUser) -> OrderResponse:
        return (await self.to_responses([order], actor))[0]
