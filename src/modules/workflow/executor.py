"""Transition executor — the only code path that changes a work item's status."""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.database.base import utcnow
from src.exceptions import IllegalTransitionException, NotOwnerException, ValidationException
from src.models.enums import OrderStatus, QuoteStatus, RevisionReason, WorkflowAction, WorkItemType
from src.models.quote_response import QuoteResponse
from src.models.request_quote import RequestQuote
from src.modules.identity.auth import AuthenticatedUser
from src.modules.workflow.audit import WorkflowAudit
from src.modules.workflow.fields import (
    QuotedFields,
    RejectedFields,
    TransitionFields,
    validate_shipping_image,
    validate_transition_fields,
)
from src.modules.workflow.permissions import (
    Operation,
    Relation,
    authorize_transition,
    require_operation,
)
from src.modules.workflow.registry import (
    ORDER_WORKFLOW,
    REQUEST_QUOTE_WORKFLOW,
    WorkflowDefinition,
    allowed_targets,
    get_definition,
    is_valid_transition,
    parse_status,
)
from src.modules.workflow.store import WorkItemStore, store_errors

logger = logging.getLogger(__name__)


class TransitionExecutor:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = WorkItemStore(db)
        self.audit = WorkflowAudit(db)

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    async def transition(
        self,
        item_type: WorkItemType,
        item_id: uuid.UUID,
        actor: AuthenticatedUser,
        target_status: Any,
        extra_fields: dict[str, Any] | None = None,
    ) -> Any:
        """Move an item to ``target_status`` or raise without changing it."""
        definition = get_definition(item_type)
        target = parse_status(definition.item_type, target_status)
        item = await self.store.get(definition, item_id)
        current = item.status

        relation = authorize_transition(definition, item, actor, target)

        if not is_valid_transition(definition.item_type, current, target):
            raise IllegalTransitionException(
                f"Cannot transition {definition.label} from '{current.value}' to "
                f"'{target.value}'. Allowed: {allowed_targets(definition.item_type, current)}"
            )

        fields = validate_transition_fields(definition.item_type, target, extra_fields)
        if isinstance(fields, QuotedFields):
            self._check_breakdown(item.id, fields)

        values = fields.column_values()
        values["status"] = target
        values.update(self._timestamp_values(definition, item, target))

        conditions = [definition.model.status == current]
        if relation is Relation.ASSIGNEE:
            conditions.append(definition.assignee_column == actor.id)

        changed = await self.store.conditional_update(definition, item.id, conditions, values)
        item = await self.store.get(definition, item_id, refresh=True)
        if not changed:
            raise IllegalTransitionException(
                f"The {definition.label} changed while this update was in progress; "
                f"it is now '{item.status.value}'"
            )

        if definition is REQUEST_QUOTE_WORKFLOW and relation is Relation.ADMIN:
            if isinstance(fields, QuotedFields | RejectedFields):
                await self._append_response(item, target, actor, fields)
                item = await self.store.get(definition, item_id, refresh=True)

        await self.audit.record(
            definition,
            item,
            WorkflowAction.TRANSITION,
            actor,
            current,
            target,
            reason=getattr(fields, "rejection_reason", None),
        )
        return item

    async def upload_shipping_image(
        self,
        order_id: uuid.UUID,
        actor: AuthenticatedUser,
        url: Any,
    ) -> Any:
        """Attach proof of shipment. From ``shipping`` this also marks the order shipped."""
        definition = ORDER_WORKFLOW
        require_operation(actor, definition.item_type, Operation.UPLOAD_SHIPPING_IMAGE)
        image_url = validate_shipping_image(url)
        order = await self.store.get(definition, order_id)

        if order.shipper_id != actor.id:
            raise NotOwnerException("This order is not assigned to you")

        current = order.status
        values: dict[str, Any] = {"shipping_image": image_url}
        if current == OrderStatus.SHIPPING:
            if not is_valid_transition(definition.item_type, current, OrderStatus.SHIPPED):
                raise IllegalTransitionException("Order cannot be marked as shipped")
            values["status"] = OrderStatus.SHIPPED
            values.update(self._timestamp_values(definition, order, OrderStatus.SHIPPED))
        elif current != OrderStatus.SHIPPED:
            raise IllegalTransitionException(
                f"Shipping images can only be uploaded while an order is 'shipping' or "
                f"'shipped' (current: '{current.value}')"
            )

        changed = await self.store.conditional_update(
            definition,
            order.id,
            [definition.model.status == current, definition.assignee_column == actor.id],
            values,
        )
        order = await self.store.get(definition, order_id, refresh=True)
        if not changed:
            raise IllegalTransitionException(
                f"The order changed while this update was in progress; it is now '{order.status.value}'"
            )

        await self.audit.record(
            definition,
            order,
            WorkflowAction.SHIPPING_IMAGE,
            actor,
            current,
            order.status,
            extra={"shipping_image": image_url},
        )
        return order

    # ------------------------------------------------------------------
    # Quote revisions
    # ------------------------------------------------------------------

    async def revise_quote(
        self,
        quote_id: uuid.UUID,
        actor: AuthenticatedUser,
        fields: QuotedFields,
        revision_reason: RevisionReason,
    ) -> RequestQuote:
        """Replace the price of a quote already on the table without a status change."""
        definition = REQUEST_QUOTE_WORKFLOW
        require_operation(actor, definition.item_type, Operation.REVISE)
        quote = await self.store.get(definition, quote_id)

        if quote.status != QuoteStatus.QUOTED:
            raise IllegalTransitionException(
                f"Only quoted requests can be revised (current: '{quote.status.value}')"
            )
        self._check_breakdown(quote.id, fields)

        changed = await self.store.conditional_update(
            definition,
            quote.id,
            [RequestQuote.status == QuoteStatus.QUOTED],
            fields.column_values(),
        )
        quote = await self.store.get(definition, quote_id, refresh=True)
        if not changed:
            raise IllegalTransitionException(
                f"The request quote changed while this update was in progress; "
                f"it is now '{quote.status.value}'"
            )

        response = await self._append_response(
            quote, QuoteStatus.QUOTED, actor, fields, revision_reason=revision_reason
        )
        quote = await self.store.get(definition, quote_id, refresh=True)

        await self.audit.record(
            definition,
            quote,
            WorkflowAction.REVISION,
            actor,
            quote.status,
            quote.status,
            reason=revision_reason.value,
            extra={"version": response.version, "quoted_price": str(fields.quoted_price)},
        )
        return quote

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _timestamp_values(definition: WorkflowDefinition, item: Any, target: Any) -> dict[str, Any]:
        """Stamp the status column only on first entry."""
        column = definition.timestamp_fields.get(target)
        if column is None or getattr(item, column) is not None:
            return {}
        return {column: utcnow()}

    @staticmethod
    def _check_breakdown(quote_id: uuid.UUID, fields: QuotedFields) -> None:
        if fields.price_breakdown is None:
            return
        computed = fields.price_breakdown.computed_total()
        if computed == fields.quoted_price:
            return
        if settings.quote_enforce_breakdown_total:
            raise ValidationException(
                "Price breakdown does not add up to the quoted price",
                details=[
                    {
                        "field": "price_breakdown",
                        "message": f"Components total {computed}, quoted price is {fields.quoted_price}",
                    }
                ],
            )
        logger.warning(
            "Quote %s breakdown total %s differs from quoted price %s; keeping quoted price",
            quote_id,
            computed,
            fields.quoted_price,
        )

    async def _append_response(
        self,
        quote: RequestQuote,
        status: QuoteStatus,
        actor: AuthenticatedUser,
        fields: TransitionFields,
        revision_reason: RevisionReason | None = None,
    ) -> QuoteResponse:
        """Add the next QuoteResponse version and make it the current one."""
        version = quote.current_version + 1
        response = QuoteResponse(
            request_quote_id=quote.id,
            version=version,
            status=status,
            admin_notes=fields.admin_notes,
            responded_by=actor.id,
            responded_at=utcnow(),
            is_current_version=True,
            revision_reason=revision_reason,
        )
        if isinstance(fields, QuotedFields):
            response.quoted_price = Decimal(fields.quoted_price)
            response.price_breakdown = fields.breakdown_json()
            response.production_details = (
                fields.production_details.model_dump(mode="json")
                if fields.production_details
                else None
            )
            response.response_message = fields.response_message
            response.valid_until = fields.valid_until
        elif isinstance(fields, RejectedFields):
            response.rejection_reason = fields.rejection_reason

        async with store_errors("quote response"):
            await self.db.execute(
                update(QuoteResponse)
                .where(
                    QuoteResponse.request_quote_id == quote.id,
                    QuoteResponse.is_current_version.is_(True),
                )
                .values(is_current_version=False)
                .execution_options(synchronize_session=False)
            )
            self.db.add(response)
            await self.db.flush()

        bumped = await self.store.conditional_update(
            REQUEST_QUOTE_WORKFLOW,
            quote.id,
            [RequestQuote.current_version == quote.current_version],
            {"current_version": version, "total_revisions": version - 1},
        )
        if not bumped:
            raise IllegalTransitionException("Another response was recorded for this request quote")

        logger.info(
            "Request quote %s response v%d (%s) by %s", quote.id, version, status.value, actor.id
        )
        return response

    async def current_response(self, quote_id: uuid.UUID) -> QuoteResponse | None:
        async with store_errors("quote response"):
            result = await self.db.execute(
                select(QuoteResponse).where(
                    QuoteResponse.request_quote_id == quote_id,
                    QuoteResponse.is_current_version.is_(True),
                )
            )
        return result.scalar_one_or_none()
