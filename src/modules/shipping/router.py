"""Shipping orders API router — the shipper's work queue."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.session import get_db
from src.modules.identity.auth import AuthenticatedUser, get_current_user
from src.modules.shipping.schemas import (
    ShippingImageUpload,
    ShippingOrderListResponse,
    ShippingOrderView,
)
from src.modules.shipping.service import ShippingService, to_shipping_view
from src.modules.workflow.projections import ListFilter
from src.modules.workflow.schemas import TransitionRequest
from src.schemas.responses import WORKFLOW_ERROR_RESPONSES, PageMeta

router = APIRouter(prefix="/shipping-orders", tags=["shipping-orders"])


def _list_response(result, user: AuthenticatedUser) -> ShippingOrderListResponse:
    return ShippingOrderListResponse(
        items=[to_shipping_view(order, user) for order in result.items],
        meta=PageMeta.from_page(result),
    )


# ---------------------------------------------------------------------------
# Queues
# ---------------------------------------------------------------------------


@router.get("/", response_model=ShippingOrderListResponse)
async def list_available_orders(
    search: str | None = Query(None, max_length=255),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Orders in ``shipping`` that nobody has claimed yet, oldest first."""
    result = await ShippingService(db).list_available(
        user,
        ListFilter(search=search, page=page, page_size=page_size, sort_order="asc"),
    )
    return _list_response(result, user)


@router.get("/my-orders", response_model=ShippingOrderListResponse)
async def list_my_orders(
    status: str | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Orders claimed by the calling shipper."""
    result = await ShippingService(db).list_my_orders(
        user,
        ListFilter(status=status, page=page, page_size=page_size, sort_by="updated_at"),
    )
    return _list_response(result, user)


@router.get(
    "/{order_id}", response_model=ShippingOrderView, responses=WORKFLOW_ERROR_RESPONSES
)
async def get_shipping_order(
    order_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    order = await ShippingService(db).get_order(order_id, user)
    return to_shipping_view(order, user)


# ---------------------------------------------------------------------------
# Claiming and progress
# ---------------------------------------------------------------------------


@router.patch(
    "/{order_id}/assign", response_model=ShippingOrderView, responses=WORKFLOW_ERROR_RESPONSES
)
async def claim_order(
    order_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Claim an order from the shipping pool."""
    order = await ShippingService(db).claim(order_id, user)
    return to_shipping_view(order, user)


@router.patch(
    "/{order_id}/unassign", response_model=ShippingOrderView, responses=WORKFLOW_ERROR_RESPONSES
)
async def release_order(
    order_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Hand a claimed order back to the pool while it is still ``shipping``."""
    order = await ShippingService(db).release(order_id, user)
    return to_shipping_view(order, user)


@router.patch(
    "/{order_id}/status", response_model=ShippingOrderView, responses=WORKFLOW_ERROR_RESPONSES
)
async def update_shipping_status(
    order_id: uuid.UUID,
    body: TransitionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    order = await ShippingService(db).update_status(
        order_id, user, body.status, body.extra_fields()
    )
    return to_shipping_view(order, user)


@router.patch(
    "/{order_id}/upload-shipping-image",
    response_model=ShippingOrderView,
    responses=WORKFLOW_ERROR_RESPONSES,
)
async def upload_shipping_image(
    order_id: uuid.UUID,
    body: ShippingImageUpload,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Attach the shipment photo; an order still in ``shipping`` becomes ``shipped``."""
    order = await ShippingService(db).upload_shipping_image(order_id, user, body.shipping_image)
    return to_shipping_view(order, user)
