"""End-to-end workflows across services, one work item from intake to a terminal status."""

import uuid
from decimal import Decimal

import pytest

from src.exceptions import (
    AlreadyAssignedException,
    ForbiddenException,
    IllegalTransitionException,
    NotReleasableException,
)
from src.models.enums import FeedbackAspect, OrderStatus, QuoteStatus, WorkflowAction
from src.modules.order.service import OrderService
from src.modules.request_quote.schemas import (
    QuoteFeedbackRequest,
    QuoteRevisionRequest,
    RequestedChange,
)
from src.modules.request_quote.service import RequestQuoteService
from src.modules.shipping.service import ShippingService
from src.modules.workflow.projections import ListFilter
from tests.factories import (
    ADMIN,
    CUSTOMER,
    DESIGNER,
    OTHER_CUSTOMER,
    OTHER_SHIPPER,
    SHIPPER,
    place_order,
    quoted_fields,
    seed_users,
    submit_quote,
)


class TestOrderLifecycle:
    @pytest.mark.asyncio
    async def test_order_from_checkout_to_doorstep(self, db_session):
        orders = OrderService(db_session)
        shipping = ShippingService(db_session)
        order = await place_order(db_session)
        assert order.total_amount == Decimal("87.50")

        await orders.update_status(order.id, ADMIN, "processing")
        await orders.update_status(order.id, ADMIN, "shipping")

        pool = await shipping.list_available(SHIPPER, ListFilter())
        assert [o.id for o in pool.items] == [order.id]

        await shipping.claim(order.id, SHIPPER)
        with pytest.raises(AlreadyAssignedException):
            await shipping.claim(order.id, OTHER_SHIPPER)
        assert (await shipping.list_available(SHIPPER, ListFilter())).total == 0

        shipped = await shipping.upload_shipping_image(
            order.id, SHIPPER, "https://cdn.example.com/proof.jpg"
        )
        assert shipped.status == OrderStatus.SHIPPED

        delivered = await shipping.update_status(order.id, SHIPPER, "delivered")
        assert delivered.status == OrderStatus.DELIVERED
        with pytest.raises(IllegalTransitionException):
            await orders.update_status(order.id, ADMIN, "canceled")
        await db_session.commit()

        mine = await shipping.list_my_orders(SHIPPER, ListFilter())
        assert [o.id for o in mine.items] == [order.id]

        history = await orders.get_history(order.id, CUSTOMER)
        assert [(h.sequence, h.action, h.to_status) for h in history] == [
            (1, WorkflowAction.TRANSITION, "processing"),
            (2, WorkflowAction.TRANSITION, "shipping"),
            (3, WorkflowAction.CLAIM, "shipping"),
            (4, WorkflowAction.SHIPPING_IMAGE, "shipped"),
            (5, WorkflowAction.TRANSITION, "delivered"),
        ]

    @pytest.mark.asyncio
    async def test_released_order_returns_to_pool(self, db_session):
        shipping = ShippingService(db_session)
        order = await place_order(db_session, status=OrderStatus.SHIPPING)

        await shipping.claim(order.id, SHIPPER)
        released = await shipping.release(order.id, SHIPPER)
        assert released.shipper_id is None

        taken = await shipping.claim(order.id, OTHER_SHIPPER)
        assert taken.shipper_id == OTHER_SHIPPER.id

    @pytest.mark.asyncio
    async def test_customer_cannot_cancel_after_processing_starts(self, db_session):
        orders = OrderService(db_session)
        order = await place_order(db_session)
        await orders.update_status(order.id, ADMIN, "processing")

        with pytest.raises(ForbiddenException):
            await orders.update_status(order.id, CUSTOMER, "canceled")

        canceled = await orders.update_status(order.id, ADMIN, "canceled", {"admin_notes": "Refunded"})
        assert canceled.status == OrderStatus.CANCELED

    @pytest.mark.asyncio
    async def test_other_customer_cannot_see_order(self, db_session):
        order = await place_order(db_session)

        with pytest.raises(ForbiddenException):
            await OrderService(db_session).get_order(order.id, OTHER_CUSTOMER)

    @pytest.mark.asyncio
    async def test_duplicate_payment_intent_returns_first_order(self, db_session):
        first = await place_order(db_session, payment_intent_id="pi_123")
        again = await place_order(db_session, payment_intent_id="pi_123")

        assert again.id == first.id


class TestQuoteLifecycle:
    @pytest.mark.asyncio
    async def test_quote_from_request_to_completion(self, db_session):
        await seed_users(db_session)
        quotes = RequestQuoteService(db_session)
        quote = await submit_quote(db_session, kind="product")
        assert quote.product_details["quantity"] == 50

        await quotes.assign_designer(quote.id, DESIGNER.id, ADMIN)
        await quotes.update_status(quote.id, ADMIN, "reviewing")
        await quotes.update_status(quote.id, ADMIN, "quoted", quoted_fields("1200"))

        feedback = await quotes.submit_feedback(
            quote.id,
            CUSTOMER,
            QuoteFeedbackRequest(
                requested_changes=[
                    RequestedChange(aspect=FeedbackAspect.PRICE, description="Can we get it under 1000?")
                ]
            ),
        )
        assert feedback.version == 1
        assert feedback.customer_feedback["requested_changes"][0]["aspect"] == "price"

        revised = await quotes.revise(
            quote.id,
            ADMIN,
            QuoteRevisionRequest(quoted_price=Decimal("990"), admin_notes="Bulk discount"),
        )
        assert revised.current_version == 2

        design_id = uuid.uuid4()
        await quotes.set_primary_design(quote.id, design_id, DESIGNER)
        with pytest.raises(NotReleasableException):
            await quotes.unassign_designer(quote.id, ADMIN)

        approved = await quotes.update_status(quote.id, CUSTOMER, "approved")
        assert approved.approved_at is not None
        completed = await quotes.update_status(quote.id, ADMIN, "completed")
        assert completed.status == QuoteStatus.COMPLETED
        assert completed.design_id == design_id
        for target in ("approved", "rejected", "reviewing"):
            with pytest.raises(IllegalTransitionException):
                await quotes.update_status(quote.id, ADMIN, target)
        await db_session.commit()

        responses = await quotes.list_responses(quote.id, CUSTOMER)
        assert [(r.version, r.quoted_price, r.is_current_version) for r in responses] == [
            (1, Decimal("1200"), False),
            (2, Decimal("990"), True),
        ]
        assert all(r.admin_notes is None for r in responses)

        admin_view = await quotes.list_responses(quote.id, ADMIN)
        assert admin_view[1].admin_notes == "Bulk discount"

        history = await quotes.get_history(quote.id, DESIGNER)
        assert [h.action for h in history] == [
            WorkflowAction.ASSIGN,
            WorkflowAction.TRANSITION,
            WorkflowAction.TRANSITION,
            WorkflowAction.REVISION,
            WorkflowAction.DESIGN_SET,
            WorkflowAction.TRANSITION,
            WorkflowAction.TRANSITION,
        ]

    @pytest.mark.asyncio
    async def test_customer_rejects_quote(self, db_session):
        quotes = RequestQuoteService(db_session)
        quote = await submit_quote(db_session)
        await quotes.update_status(quote.id, ADMIN, "reviewing")
        await quotes.update_status(quote.id, ADMIN, "quoted", quoted_fields("300"))

        rejected = await quotes.update_status(
            quote.id, CUSTOMER, "rejected", {"rejection_reason": "Over budget"}
        )

        assert rejected.status == QuoteStatus.REJECTED
        assert rejected.rejection_reason == "Over budget"
        # Customer decisions do not add a response version
        assert rejected.current_version == 1

    @pytest.mark.asyncio
    async def test_customer_cannot_approve_before_quote(self, db_session):
        quote = await submit_quote(db_session)

        with pytest.raises(ForbiddenException):
            await RequestQuoteService(db_session).update_status(quote.id, CUSTOMER, "approved")

    @pytest.mark.asyncio
    async def test_feedback_requires_quoted_status(self, db_session):
        quote = await submit_quote(db_session)
        request = QuoteFeedbackRequest(
            requested_changes=[RequestedChange(aspect=FeedbackAspect.TIMELINE, description="Sooner")]
        )

        with pytest.raises(IllegalTransitionException):
            await RequestQuoteService(db_session).submit_feedback(quote.id, CUSTOMER, request)

    @pytest.mark.asyncio
    async def test_feedback_only_from_requester(self, db_session):
        quotes = RequestQuoteService(db_session)
        quote = await submit_quote(db_session)
        await quotes.update_status(quote.id, ADMIN, "reviewing")
        await quotes.update_status(quote.id, ADMIN, "quoted", quoted_fields("300"))
        request = QuoteFeedbackRequest(
            requested_changes=[RequestedChange(aspect=FeedbackAspect.OTHER, description="Colours")]
        )

        with pytest.raises(ForbiddenException):
            await quotes.submit_feedback(quote.id, OTHER_CUSTOMER, request)
