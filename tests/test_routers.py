"""HTTP tests: routes, the error envelope and status codes through the full app."""

from __future__ import annotations

import uuid

import pytest

from src.models.enums import OrderStatus
from tests.factories import (
    ADMIN,
    CUSTOMER,
    DESIGNER,
    OTHER_SHIPPER,
    SHIPPER,
    auth_headers,
    order_create,
    place_order,
    quote_create,
    seed_users,
)

API = "/api/v1"


def _order_body(**overrides) -> dict:
    return order_create(**overrides).model_dump(mode="json")


def _quote_body(**overrides) -> dict:
    body = quote_create().model_dump(mode="json")
    body.update(overrides)
    return body


class TestErrorEnvelope:
    @pytest.mark.asyncio
    async def test_missing_token(self, async_client):
        resp = await async_client.get(f"{API}/orders/")

        assert resp.status_code == 401
        body = resp.json()
        assert body["error"]["code"] == "UNAUTHORIZED"
        assert body["error"]["requestId"] == resp.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_garbage_token(self, async_client):
        resp = await async_client.get(
            f"{API}/orders/", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_request_id_is_propagated(self, async_client):
        resp = await async_client.get(
            f"{API}/orders/{uuid.uuid4()}",
            headers={**auth_headers(ADMIN), "X-Request-ID": "req-42"},
        )

        assert resp.status_code == 404
        assert resp.json()["error"] == {
            "code": "NOT_FOUND",
            "message": resp.json()["error"]["message"],
            "details": [],
            "requestId": "req-42",
        }

    @pytest.mark.asyncio
    async def test_body_validation(self, async_client):
        resp = await async_client.post(
            f"{API}/orders/", json={"items": []}, headers=auth_headers(CUSTOMER)
        )

        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"
        assert resp.json()["error"]["details"]


class TestOrderRoutes:
    @pytest.mark.asyncio
    async def test_place_and_read_order(self, async_client):
        resp = await async_client.post(
            f"{API}/orders/", json=_order_body(), headers=auth_headers(CUSTOMER)
        )
        assert resp.status_code == 201
        created = resp.json()
        assert created["status"] == "pending"
        assert created["owner_user_id"] == CUSTOMER.id
        assert created["allowed_transitions"] == ["processing", "canceled"]
        assert created["payload"]["kind"] == "order"
        assert created["payload"]["total_amount"] in ("87.50", "87.5")

        resp = await async_client.get(
            f"{API}/orders/{created['id']}", headers=auth_headers(CUSTOMER)
        )
        assert resp.status_code == 200
        assert resp.json()["id"] == created["id"]

    @pytest.mark.asyncio
    async def test_list_and_stats(self, async_client, db_session):
        await place_order(db_session)
        await place_order(db_session, status=OrderStatus.SHIPPING)

        resp = await async_client.get(
            f"{API}/orders/", params={"page_size": 1}, headers=auth_headers(CUSTOMER)
        )
        assert resp.status_code == 200
        meta = resp.json()["meta"]
        assert meta["total_items"] == 2
        assert meta["total_pages"] == 2
        assert meta["has_next_page"] is True

        resp = await async_client.get(f"{API}/orders/stats", headers=auth_headers(CUSTOMER))
        assert resp.json()["counts"]["shipping"] == 1
        assert resp.json()["total"] == 2

    @pytest.mark.asyncio
    async def test_illegal_transition_is_409(self, async_client, db_session):
        order = await place_order(db_session)

        resp = await async_client.patch(
            f"{API}/orders/{order.id}/status",
            json={"status": "delivered"},
            headers=auth_headers(ADMIN),
        )

        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "ILLEGAL_TRANSITION"

    @pytest.mark.asyncio
    async def test_customer_cannot_process_order(self, async_client, db_session):
        order = await place_order(db_session)

        resp = await async_client.patch(
            f"{API}/orders/{order.id}/status",
            json={"status": "processing"},
            headers=auth_headers(CUSTOMER),
        )

        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_extra_status_fields(self, async_client, db_session):
        order = await place_order(db_session)

        resp = await async_client.patch(
            f"{API}/orders/{order.id}/status",
            json={"status": "canceled", "notes": "Changed my mind"},
            headers=auth_headers(CUSTOMER),
        )
        assert resp.status_code == 200
        assert resp.json()["notes"] == "Changed my mind"
        assert resp.json()["status_timestamps"].keys() == {"canceled"}

        resp = await async_client.get(
            f"{API}/orders/{order.id}/history", headers=auth_headers(CUSTOMER)
        )
        assert [(h["sequence"], h["to_status"]) for h in resp.json()] == [(1, "canceled")]

    @pytest.mark.asyncio
    async def test_invalid_status_filter(self, async_client):
        resp = await async_client.get(
            f"{API}/orders/", params={"status": "lost"}, headers=auth_headers(ADMIN)
        )

        assert resp.status_code == 422


class TestShippingRoutes:
    @pytest.mark.asyncio
    async def test_claim_race_and_ship(self, async_client, db_session):
        order = await place_order(db_session, status=OrderStatus.SHIPPING)
        url = f"{API}/shipping-orders/{order.id}"

        resp = await async_client.get(f"{API}/shipping-orders/", headers=auth_headers(SHIPPER))
        assert [o["id"] for o in resp.json()["items"]] == [str(order.id)]

        resp = await async_client.patch(f"{url}/assign", headers=auth_headers(SHIPPER))
        assert resp.status_code == 200
        assert resp.json()["assigned_to_me"] is True

        resp = await async_client.patch(f"{url}/assign", headers=auth_headers(OTHER_SHIPPER))
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "ALREADY_ASSIGNED"
        assert SHIPPER.id not in resp.json()["error"]["message"]

        resp = await async_client.patch(f"{url}/unassign", headers=auth_headers(OTHER_SHIPPER))
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "NOT_OWNER"

        resp = await async_client.patch(
            f"{url}/upload-shipping-image",
            json={"shipping_image": "https://cdn.example.com/box.jpg"},
            headers=auth_headers(SHIPPER),
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "shipped"

        resp = await async_client.patch(f"{url}/unassign", headers=auth_headers(SHIPPER))
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "NOT_RELEASABLE"

        resp = await async_client.get(
            f"{API}/shipping-orders/my-orders", headers=auth_headers(SHIPPER)
        )
        assert resp.json()["meta"]["total_items"] == 1

    @pytest.mark.asyncio
    async def test_claim_outside_pool(self, async_client, db_session):
        order = await place_order(db_session)

        resp = await async_client.patch(
            f"{API}/shipping-orders/{order.id}/assign", headers=auth_headers(SHIPPER)
        )

        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "NOT_CLAIMABLE"

    @pytest.mark.asyncio
    async def test_customer_cannot_claim(self, async_client, db_session):
        order = await place_order(db_session, status=OrderStatus.SHIPPING)

        resp = await async_client.patch(
            f"{API}/shipping-orders/{order.id}/assign", headers=auth_headers(CUSTOMER)
        )

        assert resp.status_code == 403


class TestRequestQuoteRoutes:
    @pytest.mark.asyncio
    async def test_terms_must_be_accepted(self, async_client):
        resp = await async_client.post(
            f"{API}/request-quotes/",
            json=_quote_body(agree_terms=False),
            headers=auth_headers(CUSTOMER),
        )

        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_quote_round_trip(self, async_client, db_session):
        await seed_users(db_session)
        resp = await async_client.post(
            f"{API}/request-quotes/", json=_quote_body(), headers=auth_headers(CUSTOMER)
        )
        assert resp.status_code == 201
        quote_id = resp.json()["id"]
        assert resp.json()["payload"]["request"]["type"] == "custom"
        url = f"{API}/request-quotes/{quote_id}"

        resp = await async_client.patch(
            f"{url}/assign-designer",
            json={"designer_id": SHIPPER.id},
            headers=auth_headers(ADMIN),
        )
        assert resp.status_code == 422

        resp = await async_client.patch(
            f"{url}/assign-designer",
            json={"designer_id": DESIGNER.id},
            headers=auth_headers(ADMIN),
        )
        assert resp.status_code == 200
        assert resp.json()["assignee"]["name"] == "Dana Designer"

        resp = await async_client.get(f"{API}/request-quotes/assigned", headers=auth_headers(DESIGNER))
        assert [q["id"] for q in resp.json()["items"]] == [quote_id]

        await async_client.patch(
            f"{url}/status", json={"status": "reviewing"}, headers=auth_headers(ADMIN)
        )
        resp = await async_client.patch(
            f"{url}/status", json={"status": "quoted"}, headers=auth_headers(ADMIN)
        )
        assert resp.status_code == 422

        resp = await async_client.patch(
            f"{url}/status",
            json={"status": "quoted", "quoted_price": "250.00", "admin_notes": "margin 30%"},
            headers=auth_headers(ADMIN),
        )
        assert resp.status_code == 200
        assert resp.json()["current_version"] == 1

        resp = await async_client.get(url, headers=auth_headers(CUSTOMER))
        assert resp.json()["assignee_id"] is None
        assert resp.json()["is_assigned"] is True
        assert resp.json()["admin_notes"] is None
        assert resp.json()["allowed_transitions"] == ["approved", "rejected"]

        resp = await async_client.post(
            f"{url}/feedback",
            json={"requested_changes": [{"aspect": "price", "description": "Too high"}]},
            headers=auth_headers(CUSTOMER),
        )
        assert resp.status_code == 200
        assert resp.json()["admin_notes"] is None

        resp = await async_client.post(
            f"{url}/revise",
            json={"quoted_price": "220.00", "revision_reason": "customer_request"},
            headers=auth_headers(ADMIN),
        )
        assert resp.status_code == 200
        assert resp.json()["total_revisions"] == 1

        resp = await async_client.patch(
            f"{url}/status", json={"status": "approved"}, headers=auth_headers(CUSTOMER)
        )
        assert resp.status_code == 200

        resp = await async_client.get(f"{url}/responses", headers=auth_headers(CUSTOMER))
        assert [r["version"] for r in resp.json()] == [1, 2]

        resp = await async_client.get(f"{API}/request-quotes/stats", headers=auth_headers(ADMIN))
        assert resp.json()["counts"]["approved"] == 1

    @pytest.mark.asyncio
    async def test_unknown_quote_field(self, async_client, db_session):
        resp = await async_client.post(
            f"{API}/request-quotes/", json=_quote_body(), headers=auth_headers(CUSTOMER)
        )
        url = f"{API}/request-quotes/{resp.json()['id']}"

        resp = await async_client.patch(
            f"{url}/status",
            json={"status": "reviewing", "shipping_image": "https://x.example.com/a.png"},
            headers=auth_headers(ADMIN),
        )

        assert resp.status_code == 422
        assert resp.json()["error"]["details"][0]["field"] == "shipping_image"


class TestIdentityRoutes:
    @pytest.mark.asyncio
    async def test_me(self, async_client, db_session):
        await seed_users(db_session)

        resp = await async_client.get(f"{API}/users/me", headers=auth_headers(SHIPPER))

        assert resp.status_code == 200
        assert resp.json()["roles"] == ["customer", "shipper"]
        assert resp.json()["profile"]["role"] == "shipper"

    @pytest.mark.asyncio
    async def test_designer_directory_is_admin_only(self, async_client, db_session):
        await seed_users(db_session)

        resp = await async_client.get(f"{API}/users/designers", headers=auth_headers(CUSTOMER))
        assert resp.status_code == 403

        resp = await async_client.get(f"{API}/users/designers", headers=auth_headers(ADMIN))
        assert [d["id"] for d in resp.json()] == [DESIGNER.id, "designer-2"]


@pytest.mark.asyncio
async def test_health(async_client):
    resp = await async_client.get("/health")

    assert resp.json() == {"status": "ok"}
