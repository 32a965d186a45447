import asyncio
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from app.agent.state import GeneratedReply
from app.api.events import READY_EVENT, event_stream
from app.core import container
from app.main import app
from app.store.notifier import ChangeNotifier


@pytest.fixture
def client(store, engine, arbiter, discounts, dashboards, customer, other_customer, staff, admin):
    app.dependency_overrides = {
        container.get_store: lambda: store,
        container.get_notifier: lambda: store.notifier,
        container.get_order_engine: lambda: engine,
        container.get_chat_arbiter: lambda: arbiter,
        container.get_discount_service: lambda: discounts,
        container.get_dashboards: lambda: dashboards,
    }
    yield TestClient(app)
    app.dependency_overrides = {}


def as_user(user):
    return {"X-User-Id": user.id}


@pytest.fixture
def placed_order(client, customer):
    response = client.post(
        "/orders",
        json={"items": [{"name": "Wash", "price": 90, "quantity": 1}]},
        headers=as_user(customer),
    )
    assert response.status_code == 201
    return response.json()


class TestAuth:

    def test_missing_user_header(self, client):
        assert client.get("/orders").status_code == 401

    def test_unknown_user(self, client):
        assert client.get("/orders", headers={"X-User-Id": "ghost"}).status_code == 401


class TestOrderRoutes:

    def test_place_order(self, placed_order, customer):
        assert placed_order["status"] == "PENDING"
        assert placed_order["total_amount"] == 90
        assert placed_order["customer_id"] == customer.id

    def test_staff_cannot_place_orders(self, client, staff):
        response = client.post("/orders", json={"items": [{"name": "Wash", "price": 90}]}, headers=as_user(staff))
        assert response.status_code == 403

    def test_empty_order_is_rejected(self, client, customer):
        response = client.post("/orders", json={"items": []}, headers=as_user(customer))
        assert response.status_code == 422

    def test_customer_cannot_advance(self, client, customer, placed_order):
        response = client.post(f"/orders/{placed_order['id']}/advance", headers=as_user(customer))
        assert response.status_code == 403

    def test_staff_advances_and_customer_is_notified(self, client, staff, customer, placed_order):
        response = client.post(f"/orders/{placed_order['id']}/advance", headers=as_user(staff))

        assert response.status_code == 200
        assert response.json()["status"] == "PICKING_UP"
        assert response.json()["staff_id"] == staff.id

        thread = client.get(f"/chat/{customer.id}", headers=as_user(customer)).json()
        assert len(thread["messages"]) == 1
        assert placed_order["id"] in thread["messages"][0]["text"]

    def test_advancing_delivered_order_returns_it_unchanged(self, client, staff, placed_order):
        for _ in range(4):
            client.post(f"/orders/{placed_order['id']}/advance", headers=as_user(staff))

        response = client.post(f"/orders/{placed_order['id']}/advance", headers=as_user(staff))

        assert response.status_code == 200
        assert response.json()["status"] == "DELIVERED"

    def test_advance_unknown_order(self, client, staff):
        assert client.post("/orders/RD-NOPE00/advance", headers=as_user(staff)).status_code == 404

    def test_customer_confirms_delivery(self, client, customer, placed_order):
        response = client.post(f"/orders/{placed_order['id']}/confirm", headers=as_user(customer))

        body = response.json()
        assert body["status"] == "DELIVERED"
        assert body["confirmed_by_customer"] is True
        assert body["completed_at"] is not None

    def test_other_customer_cannot_see_or_confirm(self, client, other_customer, placed_order):
        headers = as_user(other_customer)
        assert client.get(f"/orders/{placed_order['id']}", headers=headers).status_code == 404
        assert client.post(f"/orders/{placed_order['id']}/confirm", headers=headers).status_code == 404

    def test_staff_cannot_confirm_for_the_customer(self, client, staff, placed_order):
        response = client.post(f"/orders/{placed_order['id']}/confirm", headers=as_user(staff))
        assert response.status_code == 403

    def test_listing_is_scoped_for_customers(self, client, customer, other_customer, staff, placed_order):
        assert len(client.get("/orders", headers=as_user(customer)).json()) == 1
        assert client.get("/orders", headers=as_user(other_customer)).json() == []
        assert len(client.get("/orders", headers=as_user(staff)).json()) == 1


class TestChatRoutes:

    def test_customer_message_gets_automated_reply(self, client, customer):
        response = client.post(f"/chat/{customer.id}/messages", json={"text": "Hi"}, headers=as_user(customer))

        body = response.json()
        assert response.status_code == 200
        assert [m["sender_role"] for m in body["messages"]] == ["customer", "automated-agent"]
        assert body["human_owned"] is False
        assert body["agent_responding"] is False

    def test_cannot_write_into_someone_elses_thread(self, client, customer, other_customer):
        response = client.post(f"/chat/{customer.id}/messages", json={"text": "Hi"}, headers=as_user(other_customer))
        assert response.status_code == 403

    def test_cannot_read_someone_elses_thread(self, client, customer, other_customer):
        assert client.get(f"/chat/{customer.id}", headers=as_user(other_customer)).status_code == 403

    def test_takeover_reply_release_cycle(self, client, generator, customer, staff):
        client.post(f"/chat/{customer.id}/messages", json={"text": "Hi"}, headers=as_user(customer))

        body = client.post(f"/chat/{customer.id}/takeover", headers=as_user(staff)).json()
        assert body["human_owned"] is True
        assert all(m["is_human_owned"] for m in body["messages"])

        body = client.post(f"/chat/{customer.id}/messages", json={"text": "Still there?"}, headers=as_user(customer)).json()
        assert body["messages"][-1]["sender_role"] == "customer"
        assert len(generator.calls) == 1

        body = client.post(f"/chat/{customer.id}/replies", json={"text": "Yes!"}, headers=as_user(staff)).json()
        assert body["messages"][-1]["sender_name"] == "Staff Support"

        body = client.post(f"/chat/{customer.id}/release", headers=as_user(staff)).json()
        assert body["human_owned"] is False
        assert not any(m["is_human_owned"] or m["needs_human_attention"] for m in body["messages"])

    def test_customer_cannot_take_over(self, client, customer):
        assert client.post(f"/chat/{customer.id}/takeover", headers=as_user(customer)).status_code == 403

    def test_attention_inbox_and_viewers(self, client, generator, customer, admin):
        generator.replies.append(GeneratedReply(text="A team member will join shortly.", requires_human=True))
        client.post(f"/chat/{customer.id}/messages", json={"text": "human please"}, headers=as_user(customer))

        inbox = client.get("/chat/attention", headers=as_user(admin)).json()
        assert [t["customer_id"] for t in inbox] == [customer.id]

        client.post(f"/chat/{customer.id}/replies", json={"text": "Hi, I'm here"}, headers=as_user(admin))
        assert client.post(f"/chat/{customer.id}/viewers", headers=as_user(admin)).status_code == 204
        assert client.get("/chat/attention", headers=as_user(admin)).json() == []

        assert client.delete(f"/chat/{customer.id}/viewers", headers=as_user(admin)).status_code == 204
        assert len(client.get("/chat/attention", headers=as_user(admin)).json()) == 1


class TestDashboards:

    def test_staff_board_groups_orders(self, client, staff, placed_order):
        board = client.get("/dashboards/staff", headers=as_user(staff)).json()
        assert [o["id"] for o in board["pending"]] == [placed_order["id"]]
        assert board["picking_up"] == [] and board["in_progress"] == []

    def test_customer_board(self, client, customer, placed_order):
        board = client.get("/dashboards/customer", headers=as_user(customer)).json()
        assert board["active_order"]["id"] == placed_order["id"]
        assert board["history"] == []

    def test_admin_board_requires_admin(self, client, staff, admin):
        assert client.get("/dashboards/admin", headers=as_user(staff)).status_code == 403
        assert client.get("/dashboards/admin", headers=as_user(admin)).status_code == 200


class TestDiscountRoutes:

    def test_admin_grants_and_customer_claims(self, client, admin, customer):
        response = client.post("/discounts", json={"user_id": customer.id}, headers=as_user(admin))
        assert response.status_code == 201
        offer = response.json()
        assert offer["amount"] == 200
        assert offer["claimed"] is False

        thread = client.get(f"/chat/{customer.id}", headers=as_user(customer)).json()
        assert "DISCOUNT UNLOCKED" in thread["messages"][-1]["text"]

        claimed = client.post(f"/discounts/{offer['id']}/claim", headers=as_user(customer)).json()
        assert claimed["claimed"] is True

    def test_staff_cannot_grant(self, client, staff, customer):
        response = client.post("/discounts", json={"user_id": customer.id}, headers=as_user(staff))
        assert response.status_code == 403

    def test_grant_to_unknown_user(self, client, admin):
        response = client.post("/discounts", json={"user_id": "ghost"}, headers=as_user(admin))
        assert response.status_code == 404

    def test_cannot_claim_someone_elses_offer(self, client, admin, customer, other_customer):
        offer = client.post("/discounts", json={"user_id": customer.id}, headers=as_user(admin)).json()
        response = client.post(f"/discounts/{offer['id']}/claim", headers=as_user(other_customer))
        assert response.status_code == 404


def test_root(client):
    assert client.get("/").json()["status"] == "online"


def test_event_stream_ends_when_the_client_is_gone():
    notifier = ChangeNotifier()
    request = Mock()
    request.is_disconnected = AsyncMock(return_value=True)

    async def collect():
        return [chunk async for chunk in event_stream(request, notifier, heartbeat=0.01)]

    chunks = asyncio.run(collect())

    assert chunks == [READY_EVENT]
    assert notifier.subscriber_count == 0
