"""Request quotes API router — intake, admin responses and designer assignment."""

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.database.session import get_db
from src.middleware.rate_limit import limiter
from src.models.enums import RequestQuoteType
from src.modules.identity.auth import AuthenticatedUser, get_current_user
from src.modules.request_quote.schemas import (
    DesignerAssignRequest,
    PrimaryDesignRequest,
    QuoteFeedbackRequest,
    QuoteResponseVersion,
    QuoteRevisionRequest,
    RequestQuoteCreate,
    RequestQuoteListResponse,
    RequestQuoteResponse,
)
from src.modules.request_quote.service import RequestQuoteService
from src.modules.workflow.projections import ListFilter
from src.modules.workflow.schemas import TransitionRecordResponse, TransitionRequest
from src.schemas.responses import WORKFLOW_ERROR_RESPONSES, PageMeta, StatusCountsResponse

router = APIRouter(prefix="/request-quotes", tags=["request-quotes"])


async def _list_response(svc: RequestQuoteService, result, user) -> RequestQuoteListResponse:
    return RequestQuoteListResponse(
        items=await svc.to_responses(result.items, user),
        meta=PageMeta.from_page(result),
    )


# ---------------------------------------------------------------------------
# Intake and listing
# ---------------------------------------------------------------------------


@router.post("/", response_model=RequestQuoteResponse, status_code=201)
@limiter.limit(settings.rate_limit_intake)
async def create_request_quote(
    request: Request,
    body: RequestQuoteCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Submit a quote request for a catalogue product or a custom job."""
    svc = RequestQuoteService(db)
    quote = await svc.create_quote(user, body)
    return await svc.to_response(quote, user)


@router.get("/", response_model=RequestQuoteListResponse)
async def list_request_quotes(
    status: str | None = Query(None),
    type: RequestQuoteType | None = Query(None),
    search: str | None = Query(None, max_length=255),
    unassigned_only: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    sort_by: Literal["created_at", "updated_at", "status"] = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    svc = RequestQuoteService(db)
    result = await svc.list_quotes(
        user,
        ListFilter(
            status=status,
            search=search,
            page=page,
            page_size=page_size,
            sort_by=sort_by,
            sort_order=sort_order,
            unassigned_only=unassigned_only,
            attributes={"type": type},
        ),
    )
    return await _list_response(svc, result, user)


@router.get("/stats", response_model=StatusCountsResponse)
async def request_quote_stats(
    type: RequestQuoteType | None = Query(None),
    search: str | None = Query(None, max_length=255),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    counts = await RequestQuoteService(db).count_by_status(
        user, ListFilter(search=search, attributes={"type": type})
    )
    return StatusCountsResponse(counts=counts, total=sum(counts.values()))


@router.get("/assigned", response_model=RequestQuoteListResponse)
async def list_assigned_request_quotes(
    status: str | None = Query(None),
    search: str | None = Query(None, max_length=255),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Quotes the calling designer is working on."""
    svc = RequestQuoteService(db)
    result = await svc.list_assigned(
        user, ListFilter(status=status, search=search, page=page, page_size=page_size)
    )
    return await _list_response(svc, result, user)


@router.get(
    "/{quote_id}", response_model=RequestQuoteResponse, responses=WORKFLOW_ERROR_RESPONSES
)
async def get_request_quote(
    quote_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    svc = RequestQuoteService(db)
    quote = await svc.get_quote(quote_id, user)
    return await svc.to_response(quote, user)


# ---------------------------------------------------------------------------
# Status and responses
# ---------------------------------------------------------------------------


@router.patch(
    "/{quote_id}/status", response_model=RequestQuoteResponse, responses=WORKFLOW_ERROR_RESPONSES
)
async def update_request_quote_status(
    quote_id: uuid.UUID,
    body: TransitionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Move a request quote to a new status.

    ``quoted`` requires ``quoted_price``; ``rejected`` requires ``rejection_reason``.
    """
    svc = RequestQuoteService(db)
    quote = await svc.update_status(quote_id, user, body.status, body.extra_fields())
    return await svc.to_response(quote, user)


@router.post(
    "/{quote_id}/revise", response_model=RequestQuoteResponse, responses=WORKFLOW_ERROR_RESPONSES
)
async def revise_request_quote(
    quote_id: uuid.UUID,
    body: QuoteRevisionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Issue a new version of a quote that is already on the table."""
    svc = RequestQuoteService(db)
    quote = await svc.revise(quote_id, user, body)
    return await svc.to_response(quote, user)


@router.get(
    "/{quote_id}/responses",
    response_model=list[QuoteResponseVersion],
    responses=WORKFLOW_ERROR_RESPONSES,
)
async def list_quote_responses(
    quote_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await RequestQuoteService(db).list_responses(quote_id, user)


@router.post(
    "/{quote_id}/feedback",
    response_model=QuoteResponseVersion,
    responses=WORKFLOW_ERROR_RESPONSES,
)
async def submit_quote_feedback(
    quote_id: uuid.UUID,
    body: QuoteFeedbackRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await RequestQuoteService(db).submit_feedback(quote_id, user, body)


@router.get(
    "/{quote_id}/history",
    response_model=list[TransitionRecordResponse],
    responses=WORKFLOW_ERROR_RESPONSES,
)
async def request_quote_history(
    quote_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    records = await RequestQuoteService(db).get_history(quote_id, user)
    return [TransitionRecordResponse.model_validate(r) for r in records]


# ---------------------------------------------------------------------------
# Designers
# ---------------------------------------------------------------------------


@router.patch(
    "/{quote_id}/assign-designer",
    response_model=RequestQuoteResponse,
    responses=WORKFLOW_ERROR_RESPONSES,
)
async def assign_designer(
    quote_id: uuid.UUID,
    body: DesignerAssignRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    svc = RequestQuoteService(db)
    quote = await svc.assign_designer(quote_id, body.designer_id, user)
    return await svc.to_response(quote, user)


@router.patch(
    "/{quote_id}/unassign-designer",
    response_model=RequestQuoteResponse,
    responses=WORKFLOW_ERROR_RESPONSES,
)
async def unassign_designer(
    quote_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    svc = RequestQuoteService(db)
    quote = await svc.unassign_designer(quote_id, user)
    return await svc.to_response(quote, user)


@router.patch(
    "/{quote_id}/reassign-designer",
    response_model=RequestQuoteResponse,
    responses=WORKFLOW_ERROR_RESPONSES,
)
async def reassign_designer(
    quote_id: uuid.UUID,
    body: DesignerAssignRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    svc = RequestQuoteService(db)
    quote = await svc.reassign_designer(quote_id, body.designer_id, user)
    return await svc.to_response(quote, user)


@router.patch(
    "/{quote_id}/design", response_model=RequestQuoteResponse, responses=WORKFLOW_ERROR_RESPONSES
)
async def set_primary_design(
    quote_id: uuid.UUID,
    body: PrimaryDesignRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Record the design produced for this request."""
    svc = RequestQuoteService(db)
    quote = await svc.set_primary_design(quote_id, body.design_id, user)
    return await svc.to_response(quote, user)
