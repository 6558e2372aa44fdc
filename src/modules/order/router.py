"""Orders API router — placement, listing, status changes and history."""

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.database.session import get_db
from src.middleware.rate_limit import limiter
from src.modules.identity.auth import AuthenticatedUser, get_current_user
from src.modules.order.schemas import OrderCreate, OrderListResponse, OrderResponse
from src.modules.order.service import OrderService
from src.modules.workflow.projections import ListFilter
from src.modules.workflow.schemas import TransitionRecordResponse, TransitionRequest
from src.schemas.responses import WORKFLOW_ERROR_RESPONSES, PageMeta, StatusCountsResponse

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/", response_model=OrderResponse, status_code=201)
@limiter.limit(settings.rate_limit_intake)
async def create_order(
    request: Request,
    body: OrderCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Place an order in ``pending`` status."""
    svc = OrderService(db)
    order = await svc.create_order(user, body)
    return await svc.to_response(order, user)


@router.get("/", response_model=OrderListResponse)
async def list_orders(
    status: str | None = Query(None),
    search: str | None = Query(None, max_length=255),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    sort_by: Literal["created_at", "updated_at", "status"] = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Orders visible to the caller: all for admins, own or assigned otherwise."""
    svc = OrderService(db)
    result = await svc.list_orders(
        user,
        ListFilter(
            status=status,
            search=search,
            page=page,
            page_size=page_size,
            sort_by=sort_by,
            sort_order=sort_order,
        ),
    )
    return OrderListResponse(
        items=await svc.to_responses(result.items, user),
        meta=PageMeta.from_page(result),
    )


@router.get("/stats", response_model=StatusCountsResponse)
async def order_stats(
    search: str | None = Query(None, max_length=255),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Order counts per status, zeros included."""
    counts = await OrderService(db).count_by_status(user, ListFilter(search=search))
    return StatusCountsResponse(counts=counts, total=sum(counts.values()))


@router.get("/{order_id}", response_model=OrderResponse, responses=WORKFLOW_ERROR_RESPONSES)
async def get_order(
    order_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    svc = OrderService(db)
    order = await svc.get_order(order_id, user)
    return await svc.to_response(order, user)


@router.patch(
    "/{order_id}/status", response_model=OrderResponse, responses=WORKFLOW_ERROR_RESPONSES
)
async def update_order_status(
    order_id: uuid.UUID,
    body: TransitionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Move an order to a new status. Extra fields depend on the target status."""
    svc = OrderService(db)
    order = await svc.update_status(order_id, user, body.status, body.extra_fields())
    return await svc.to_response(order, user)


@router.get(
    "/{order_id}/history",
    response_model=list[TransitionRecordResponse],
    responses=WORKFLOW_ERROR_RESPONSES,
)
async def order_history(
    order_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Workflow history of an order, oldest first."""
    records = await OrderService(db).get_history(order_id, user)
    return [TransitionRecordResponse.model_validate(r) for r in records]
