"""Tests for list/count projections and per-actor redaction of work items."""

import pytest

from src.exceptions import ValidationException
from src.models.enums import OrderStatus, QuoteStatus, WorkItemType
from src.modules.order.service import OrderService
from src.modules.request_quote.service import RequestQuoteService
from src.modules.workflow.projections import ListFilter, WorkItemQueryService
from tests.factories import (
    ADMIN,
    CUSTOMER,
    DESIGNER,
    OTHER_CUSTOMER,
    OTHER_SHIPPER,
    SHIPPER,
    place_order,
    seed_users,
    submit_quote,
)

ORDER = WorkItemType.ORDER
QUOTE = WorkItemType.REQUEST_QUOTE


@pytest.fixture
def queries(db_session):
    return WorkItemQueryService(db_session)


class TestVisibility:
    @pytest.mark.asyncio
    async def test_admin_sees_everything(self, db_session, queries):
        await place_order(db_session)
        await place_order(db_session, owner=OTHER_CUSTOMER)

        page = await queries.list_items(ORDER, ADMIN, ListFilter())

        assert page.total == 2

    @pytest.mark.asyncio
    async def test_customer_sees_only_own(self, db_session, queries):
        mine = await place_order(db_session)
        await place_order(db_session, owner=OTHER_CUSTOMER)

        page = await queries.list_items(ORDER, CUSTOMER, ListFilter())

        assert [o.id for o in page.items] == [mine.id]

    @pytest.mark.asyncio
    async def test_shipper_sees_pool_and_own_claims(self, db_session, queries):
        pool = await place_order(db_session, status=OrderStatus.SHIPPING)
        mine = await place_order(db_session, status=OrderStatus.SHIPPED, shipper_id=SHIPPER.id)
        await place_order(db_session, status=OrderStatus.SHIPPING, shipper_id=OTHER_SHIPPER.id)
        await place_order(db_session, status=OrderStatus.PROCESSING)

        page = await queries.list_items(ORDER, SHIPPER, ListFilter())

        assert {o.id for o in page.items} == {pool.id, mine.id}

    @pytest.mark.asyncio
    async def test_designer_sees_only_assigned_requests(self, db_session, queries):
        await seed_users(db_session)
        await submit_quote(db_session)
        assigned = await submit_quote(db_session, owner=OTHER_CUSTOMER)
        await RequestQuoteService(db_session).assign_designer(assigned.id, DESIGNER.id, ADMIN)

        page = await queries.list_items(QUOTE, DESIGNER, ListFilter())
        assert {q.id for q in page.items} == {assigned.id}

        mine = await RequestQuoteService(db_session).list_assigned(DESIGNER, ListFilter())
        assert [q.id for q in mine.items] == [assigned.id]


class TestFiltering:
    @pytest.mark.asyncio
    async def test_status_filter(self, db_session, queries):
        await place_order(db_session)
        shipping = await place_order(db_session, status=OrderStatus.SHIPPING)

        page = await queries.list_items(ORDER, ADMIN, ListFilter(status="shipping"))

        assert [o.id for o in page.items] == [shipping.id]

    @pytest.mark.asyncio
    async def test_unknown_status_filter(self, queries):
        with pytest.raises(ValidationException):
            await queries.list_items(ORDER, ADMIN, ListFilter(status="lost"))

    @pytest.mark.asyncio
    async def test_search_matches_payload(self, db_session, queries):
        await place_order(db_session)
        hoodie = await place_order(
            db_session,
            items=[
                {
                    "design_id": "design-9",
                    "name": "Club Hoodie",
                    "color": "navy",
                    "sizes": [{"size": "S", "quantity": 1, "price_per_unit": "60"}],
                }
            ],
        )

        page = await queries.list_items(ORDER, ADMIN, ListFilter(search="hoodie"))

        assert [o.id for o in page.items] == [hoodie.id]

    @pytest.mark.asyncio
    async def test_search_matches_recipient_name(self, db_session, queries):
        order = await place_order(db_session)

        page = await queries.list_items(ORDER, ADMIN, ListFilter(search="casey"))

        assert [o.id for o in page.items] == [order.id]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("term", ["phone", "quantity", "method", "price_per_unit", "sydney"])
    async def test_search_ignores_other_payload_text(self, db_session, queries, term):
        await place_order(db_session)

        page = await queries.list_items(ORDER, ADMIN, ListFilter(search=term))

        assert page.total == 0

    @pytest.mark.asyncio
    async def test_search_treats_wildcards_literally(self, db_session, queries):
        await place_order(db_session)

        page = await queries.list_items(ORDER, ADMIN, ListFilter(search="%"))

        assert page.total == 0

    @pytest.mark.asyncio
    async def test_quote_search_by_company(self, db_session, queries):
        acme = await submit_quote(db_session, company="Acme Rowing")
        await submit_quote(db_session, company="Harbour Swim")

        page = await queries.list_items(QUOTE, ADMIN, ListFilter(search="acme"))

        assert [q.id for q in page.items] == [acme.id]

    @pytest.mark.asyncio
    async def test_type_attribute_filter(self, db_session, queries):
        await submit_quote(db_session, kind="custom")
        product = await submit_quote(db_session, kind="product")

        page = await queries.list_items(
            QUOTE, ADMIN, ListFilter(attributes={"type": product.type})
        )

        assert [q.id for q in page.items] == [product.id]


class TestPagination:
    @pytest.mark.asyncio
    async def test_pages_cover_all_items_once(self, db_session, queries):
        placed = {(await place_order(db_session)).id for _ in range(5)}

        first = await queries.list_items(ORDER, ADMIN, ListFilter(page=1, page_size=2))
        second = await queries.list_items(ORDER, ADMIN, ListFilter(page=2, page_size=2))
        third = await queries.list_items(ORDER, ADMIN, ListFilter(page=3, page_size=2))

        assert first.total == 5
        assert first.total_pages == 3
        assert first.has_next_page and not first.has_prev_page
        assert not third.has_next_page and third.has_prev_page
        seen = [o.id for o in first.items + second.items + third.items]
        assert len(seen) == 5
        assert set(seen) == placed

    @pytest.mark.asyncio
    async def test_page_past_the_end_is_empty(self, db_session, queries):
        await place_order(db_session)

        page = await queries.list_items(ORDER, ADMIN, ListFilter(page=4, page_size=10))

        assert page.items == []
        assert page.total == 1

    @pytest.mark.asyncio
    async def test_invalid_paging(self, queries):
        with pytest.raises(ValidationException) as exc_info:
            await queries.list_items(
                ORDER, ADMIN, ListFilter(page=0, page_size=1000, sort_by="total_amount")
            )
        fields = {d["field"] for d in exc_info.value.details}
        assert fields == {"page", "page_size", "sort_by"}


class TestCounts:
    @pytest.mark.asyncio
    async def test_counts_include_zeroes_and_match_list_totals(self, db_session, queries):
        await place_order(db_session)
        await place_order(db_session)
        await place_order(db_session, status=OrderStatus.DELIVERED)
        await place_order(db_session, owner=OTHER_CUSTOMER)

        counts = await queries.count_by_status(ORDER, CUSTOMER)

        assert counts == {
            "pending": 2,
            "processing": 0,
            "shipping": 0,
            "shipped": 0,
            "delivered": 1,
            "canceled": 0,
        }
        for status, count in counts.items():
            page = await queries.list_items(ORDER, CUSTOMER, ListFilter(status=status))
            assert page.total == count

    @pytest.mark.asyncio
    async def test_quote_counts_for_admin(self, db_session, queries):
        await submit_quote(db_session)
        quote = await submit_quote(db_session)
        await RequestQuoteService(db_session).update_status(quote.id, ADMIN, QuoteStatus.REVIEWING)

        counts = await queries.count_by_status(QUOTE, ADMIN)

        assert counts["pending"] == 1
        assert counts["reviewing"] == 1
        assert sum(counts.values()) == 2


class TestRedaction:
    @pytest.mark.asyncio
    async def test_customer_does_not_see_shipper_or_admin_notes(self, db_session):
        await seed_users(db_session)
        order = await place_order(db_session, status=OrderStatus.SHIPPING, shipper_id=SHIPPER.id)
        await OrderService(db_session).update_status(
            order.id, ADMIN, "canceled", {"admin_notes": "Fraud check failed"}
        )
        svc = OrderService(db_session)
        order = await svc.get_order(order.id, CUSTOMER)

        as_customer = await svc.to_response(order, CUSTOMER)
        as_admin = await svc.to_response(order, ADMIN)

        assert as_customer.is_assigned is True
        assert as_customer.assignee_id is None
        assert as_customer.assignee is None
        assert as_customer.admin_notes is None
        assert as_admin.assignee_id == SHIPPER.id
        assert as_admin.assignee.name == "Sam Shipper"
        assert as_admin.admin_notes == "Fraud check failed"

    @pytest.mark.asyncio
    async def test_assignee_sees_themselves(self, db_session):
        order = await place_order(db_session, status=OrderStatus.SHIPPING, shipper_id=SHIPPER.id)
        svc = OrderService(db_session)

        view = await svc.to_response(order, SHIPPER)

        assert view.assignee_id == SHIPPER.id
        assert view.allowed_transitions == ["shipped", "canceled"]
        assert view.payload.kind == "order"
