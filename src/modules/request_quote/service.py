"""Request quote service — intake, designer assignment, responses and feedback."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.base import utcnow
from src.exceptions import (
    ForbiddenException,
    IllegalTransitionException,
    NotOwnerException,
    ValidationException,
)
from src.models.enums import QuoteStatus, RequestQuoteType, UserRole, WorkflowAction, WorkItemType
from src.models.quote_response import QuoteResponse
from src.models.request_quote import RequestQuote
from src.models.work_item_transition import WorkItemTransition
from src.modules.events.outbox_service import OutboxService
from src.modules.identity.auth import AuthenticatedUser
from src.modules.identity.service import IdentityService
from src.modules.request_quote.schemas import (
    QuoteFeedbackRequest,
    QuoteResponseVersion,
    QuoteRevisionRequest,
    RequestQuoteCreate,
    RequestQuoteResponse,
)
from src.modules.workflow.assignment import AssignmentBroker
from src.modules.workflow.audit import WorkflowAudit
from src.modules.workflow.constants import (
    EVENT_REQUEST_QUOTE_CREATED,
    EVENT_REQUEST_QUOTE_FEEDBACK,
)
from src.modules.workflow.executor import TransitionExecutor
from src.modules.workflow.fields import validate_transition_fields
from src.modules.workflow.permissions import Operation, is_owner, require_operation, require_view
from src.modules.workflow.projections import ListFilter, Page, WorkItemQueryService
from src.modules.workflow.registry import REQUEST_QUOTE_WORKFLOW
from src.modules.workflow.schemas import work_item_fields
from src.modules.workflow.store import WorkItemStore, store_errors

logger = logging.getLogger(__name__)


class RequestQuoteService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = WorkItemStore(db)

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    async def create_quote(self, owner: AuthenticatedUser, data: RequestQuoteCreate) -> RequestQuote:
        request = data.request
        quote = RequestQuote(
            user_id=owner.id,
            status=REQUEST_QUOTE_WORKFLOW.initial_status,
            first_name=data.first_name,
            last_name=data.last_name,
            email_address=data.email_address,
            phone=data.phone,
            company=data.company,
            street_address=data.street_address,
            suburb_city=data.suburb_city,
            state=data.state,
            country=data.country,
            postcode=data.postcode,
            agree_terms=data.agree_terms,
            type=RequestQuoteType(request.type),
            need_delivery_by=data.need_delivery_by,
            extra_information=data.extra_information,
        )
        if request.type == RequestQuoteType.PRODUCT.value:
            quote.product_details = request.model_dump(mode="json", exclude={"type"})
        else:
            quote.custom_need = request.custom_need

        async with store_errors("create request quote"):
            self.db.add(quote)
            await self.db.flush()

            await OutboxService(self.db).publish_event(
                event_type=EVENT_REQUEST_QUOTE_CREATED,
                aggregate_type=WorkItemType.REQUEST_QUOTE.value,
                aggregate_id=str(quote.id),
                payload={
                    "request_quote_id": str(quote.id),
                    "user_id": owner.id,
                    "type": quote.type.value,
                },
            )

        logger.info("Request quote %s (%s) submitted by %s", quote.id, quote.type.value, owner.id)
        return quote

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_quote(self, quote_id: uuid.UUID, actor: AuthenticatedUser) -> RequestQuote:
        quote = await self.store.get(REQUEST_QUOTE_WORKFLOW, quote_id)
        require_view(REQUEST_QUOTE_WORKFLOW, quote, actor)
        return quote

    async def list_quotes(self, actor: AuthenticatedUser, filters: ListFilter) -> Page[RequestQuote]:
        return await WorkItemQueryService(self.db).list_items(
            WorkItemType.REQUEST_QUOTE, actor, filters
        )

    async def list_assigned(self, actor: AuthenticatedUser, filters: ListFilter) -> Page[RequestQuote]:
        """Quotes assigned to the calling designer."""
        if not actor.has_role(UserRole.DESIGNER):
            raise ForbiddenException("Access denied. Designer role required.")
        filters.assignee_id = actor.id
        return await self.list_quotes(actor, filters)

    async def count_by_status(self, actor: AuthenticatedUser, filters: ListFilter) -> dict[str, int]:
        return await WorkItemQueryService(self.db).count_by_status(
            WorkItemType.REQUEST_QUOTE, actor, filters
        )

    async def get_history(
        self, quote_id: uuid.UUID, actor: AuthenticatedUser
    ) -> list[WorkItemTransition]:
        await self.get_quote(quote_id, actor)
        return await WorkflowAudit(self.db).history(REQUEST_QUOTE_WORKFLOW, quote_id)

    async def list_responses(
        self, quote_id: uuid.UUID, actor: AuthenticatedUser
    ) -> list[QuoteResponseVersion]:
        """All response versions, oldest first. Internal notes are admin-only."""
        await self.get_quote(quote_id, actor)
        async with store_errors("quote responses"):
            result = await self.db.execute(
                select(QuoteResponse)
                .where(QuoteResponse.request_quote_id == quote_id)
                .order_by(QuoteResponse.version.asc())
            )
        versions = [QuoteResponseVersion.model_validate(r) for r in result.scalars().all()]
        if not actor.is_admin:
            versions = [v.model_copy(update={"admin_notes": None}) for v in versions]
        return versions

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    async def update_status(
        self,
        quote_id: uuid.UUID,
        actor: AuthenticatedUser,
        status: QuoteStatus | str,
        extra_fields: dict[str, Any] | None = None,
    ) -> RequestQuote:
        return await TransitionExecutor(self.db).transition(
            WorkItemType.REQUEST_QUOTE, quote_id, actor, status, extra_fields
        )

    async def revise(
        self,
        quote_id: uuid.UUID,
        actor: AuthenticatedUser,
        data: QuoteRevisionRequest,
    ) -> RequestQuote:
        fields = validate_transition_fields(
            WorkItemType.REQUEST_QUOTE,
            QuoteStatus.QUOTED,
            data.model_dump(exclude={"revision_reason"}, exclude_none=True),
        )
        return await TransitionExecutor(self.db).revise_quote(
            quote_id, actor, fields, data.revision_reason
        )

    async def submit_feedback(
        self,
        quote_id: uuid.UUID,
        actor: AuthenticatedUser,
        data: QuoteFeedbackRequest,
    ) -> QuoteResponseVersion:
        """The requester asks for changes to the quote currently on the table."""
        require_operation(actor, WorkItemType.REQUEST_QUOTE, Operation.FEEDBACK)
        quote = await self.store.get(REQUEST_QUOTE_WORKFLOW, quote_id)
        if not is_owner(quote, actor):
            raise ForbiddenException("Only the requester can give feedback on this quote")
        if quote.status != QuoteStatus.QUOTED:
            raise IllegalTransitionException(
                f"Feedback can only be given on a quoted request (current: '{quote.status.value}')"
            )

        executor = TransitionExecutor(self.db)
        response = await executor.current_response(quote.id)
        if response is None:
            raise ValidationException("This request quote has no response to give feedback on")

        response.customer_feedback = {
            "requested_changes": [change.model_dump(mode="json") for change in data.requested_changes],
            "message": data.message,
            "submitted_at": utcnow().isoformat(),
        }
        async with store_errors("quote feedback"):
            await self.db.flush()
            await OutboxService(self.db).publish_event(
                event_type=EVENT_REQUEST_QUOTE_FEEDBACK,
                aggregate_type=WorkItemType.REQUEST_QUOTE.value,
                aggregate_id=str(quote.id),
                payload={
                    "request_quote_id": str(quote.id),
                    "version": response.version,
                    "aspects": [change.aspect.value for change in data.requested_changes],
                },
            )

        logger.info("Feedback on request quote %s v%d from %s", quote.id, response.version, actor.id)
        return QuoteResponseVersion.model_validate(response).model_copy(update={"admin_notes": None})

    # ------------------------------------------------------------------
    # Designers
    # ------------------------------------------------------------------

    async def assign_designer(
        self, quote_id: uuid.UUID, designer_id: str, actor: AuthenticatedUser
    ) -> RequestQuote:
        return await AssignmentBroker(self.db).assign(
            WorkItemType.REQUEST_QUOTE, quote_id, designer_id, actor
        )

    async def unassign_designer(self, quote_id: uuid.UUID, actor: AuthenticatedUser) -> RequestQuote:
        return await AssignmentBroker(self.db).unassign(WorkItemType.REQUEST_QUOTE, quote_id, actor)

    async def reassign_designer(
        self, quote_id: uuid.UUID, designer_id: str, actor: AuthenticatedUser
    ) -> RequestQuote:
        return await AssignmentBroker(self.db).reassign(
            WorkItemType.REQUEST_QUOTE, quote_id, designer_id, actor
        )

    async def set_primary_design(
        self,
        quote_id: uuid.UUID,
        design_id: uuid.UUID,
        actor: AuthenticatedUser,
    ) -> RequestQuote:
        """Record the design produced for this request. Locks the designer in place."""
        definition = REQUEST_QUOTE_WORKFLOW
        require_operation(actor, definition.item_type, Operation.SET_DESIGN)
        quote = await self.store.get(definition, quote_id)

        if quote.designer_id is None:
            raise ValidationException(
                "Assign a designer before setting the primary design",
                details=[{"field": "designer_id", "message": "No designer assigned"}],
            )
        if not actor.is_admin and quote.designer_id != actor.id:
            raise NotOwnerException("This request quote is not assigned to you")
        if quote.status not in definition.claimable_statuses:
            raise IllegalTransitionException(
                f"Cannot set a design on a request quote in status '{quote.status.value}'"
            )

        changed = await self.store.conditional_update(
            definition,
            quote.id,
            [
                RequestQuote.designer_id == quote.designer_id,
                RequestQuote.status.in_(definition.claimable_statuses),
            ],
            {"design_id": design_id},
        )
        quote = await self.store.get(definition, quote_id, refresh=True)
        if not changed:
            raise IllegalTransitionException(
                "The request quote changed while this update was in progress"
            )

        await WorkflowAudit(self.db).record(
            definition,
            quote,
            WorkflowAction.DESIGN_SET,
            actor,
            quote.status,
            quote.status,
            extra={"design_id": str(design_id)},
        )
        return quote

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    async def to_responses(
        self, quotes: Sequence[RequestQuote], actor: AuthenticatedUser
    ) -> list[RequestQuoteResponse]:
        profiles = await IdentityService(self.db).get_profiles(q.designer_id for q in quotes)
        return [
            RequestQuoteResponse(
                **work_item_fields(REQUEST_QUOTE_WORKFLOW, quote, actor, profiles),
                design_id=quote.design_id,
                quoted_price=quote.quoted_price,
                price_breakdown=quote.price_breakdown,
                rejection_reason=quote.rejection_reason,
                current_version=quote.current_version,
                total_revisions=quote.total_revisions,
            )
            for quote in quotes
        ]

    async def to_response(self, quote: RequestQuote, actor: AuthenticatedUser) -> RequestQuoteResponse:
        return (await self.to_responses([quote], actor))[0]
