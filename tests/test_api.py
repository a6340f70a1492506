import pathlib
import sys

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

from floorpos.config import get_settings  # noqa: E402
from floorpos.main import create_app  # noqa: E402
from floorpos.models import AuditLog  # noqa: E402

PASSWORDS = {"admin": "adminpass", "waiter1": "waiterpass", "kitchen1": "kitchenpass"}


@pytest.fixture
def client(session_factory, clock):
    app = create_app(session_factory, get_settings(), clock)
    return TestClient(app)


def _auth(client, username):
    resp = client.post(
        "/login", json={"username": username, "password": PASSWORDS[username]}
    )
    assert resp.status_code == 200
    token = resp.json()["data"]["access_token"]
    return {"Authorization": f"Bearer {token}"}


def test_login_rejects_bad_password(client):
    resp = client.post("/login", json={"username": "admin", "password": "nope"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["ok"] is False
    assert body["error"]["message"] == "Invalid credentials"


def test_routes_require_token(client):
    resp = client.get("/tables")
    assert resp.status_code == 401
    assert resp.json()["ok"] is False


def test_kitchen_cannot_place_orders(client):
    resp = client.post(
        "/orders",
        json={"table_id": "t1", "items": [{"menu_item_id": "1"}]},
        headers=_auth(client, "kitchen1"),
    )
    assert resp.status_code == 403


def test_list_tables_and_menu(client):
    headers = _auth(client, "waiter1")
    tables = client.get("/tables", headers=headers).json()["data"]
    assert len(tables) == 15
    assert tables[0]["number"] == "01"
    assert tables[12]["capacity"] == 10

    menu = client.get("/menu", params={"category": "Main"}, headers=headers).json()["data"]
    assert {m["name"] for m in menu} == {"Margherita Pizza", "Grilled Salmon", "Pasta Carbonara"}

    summary = client.get("/tables/summary", headers=headers).json()["data"]
    assert summary["total"] == 15
    assert summary["by_status"] == {"AVAILABLE": 15}


def test_split_order_settle_flow(client, session_factory):
    waiter = _auth(client, "waiter1")
    kitchen = _auth(client, "kitchen1")

    resp = client.post("/tables/t12/split", json={"parts": 2}, headers=waiter)
    assert resp.status_code == 200
    children = resp.json()["data"]["children"]
    assert [c["number"] for c in children] == ["12.1", "12.2"]
    assert children[0]["parent_id"] == "t12"

    resp = client.post(
        "/orders",
        json={"table_id": children[0]["id"], "items": [{"menu_item_id": "1", "quantity": 1}]},
        headers=waiter,
    )
    assert resp.status_code == 200
    order = resp.json()["data"]
    assert order["total"] == 313.95
    assert order["waiter_name"] == "John Waiter"

    item_id = order["items"][0]["id"]
    resp = client.patch(
        f"/orders/{order['id']}/items/{item_id}/status",
        json={"status": "PREPARING"},
        headers=kitchen,
    )
    assert resp.json()["data"]["status"] == "PREPARING"

    queue = client.get("/kds/queue", headers=kitchen).json()["data"]
    assert [o["id"] for o in queue["orders"]] == [order["id"]]

    resp = client.post(
        f"/billing/tables/{children[0]['id']}/settle",
        json={"method": "CASH", "amount": 400},
        headers=waiter,
    )
    assert resp.status_code == 200
    result = resp.json()["data"]
    assert result["change"] == 86.05
    assert result["recombined"]["id"] == "t12"

    table = client.get("/tables/t12", headers=waiter).json()["data"]
    assert table["capacity"] == 8
    assert table["is_split"] is False
    assert table["status"] == "AVAILABLE"

    with session_factory() as session:
        actions = [a.action for a in session.query(AuditLog).order_by(AuditLog.id)]
    assert actions == ["table.split", "order.create", "order.item_status", "billing.settle"]


def test_merge_and_finalize_over_http(client):
    waiter = _auth(client, "waiter1")
    resp = client.post(
        "/tables/merge", json={"master_id": "t5", "table_ids": ["t6"]}, headers=waiter
    )
    master, member = resp.json()["data"]
    assert master["capacity"] == 6
    assert master["merged_with"] == ["t6"]
    assert member["status"] == "MERGED"
    assert member["master_table_id"] == "t5"

    client.post(
        "/orders", json={"table_id": "t5", "items": [{"menu_item_id": "1"}]}, headers=waiter
    )
    result = client.post("/billing/tables/t5/finalize", headers=waiter).json()["data"]
    assert result["finalized"] is True
    assert {t["id"]: t["capacity"] for t in result["released"]} == {"t5": 2, "t6": 4}


def test_domain_errors_use_envelope(client):
    waiter = _auth(client, "waiter1")

    resp = client.get("/tables/t99", headers={**waiter, "X-Request-ID": "req-1"})
    assert resp.status_code == 404
    body = resp.json()
    assert body["error"]["code"] == "NOT_FOUND"
    assert body["request_id"] == "req-1"
    assert resp.headers["X-Request-ID"] == "req-1"

    resp = client.post("/tables/t1/split", json={"parts": 5}, headers=waiter)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    resp = client.post(
        "/tables/reassign", json={"from_table_id": "t1", "to_table_id": "t2"}, headers=waiter
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "CONFLICT"


def test_unsafe_request_id_is_replaced(client):
    resp = client.get("/health", headers={"X-Request-ID": "bad id {json}"})
    issued = resp.headers["X-Request-ID"]
    assert issued != "bad id {json}"
    assert len(issued) == 36

    resp = client.get("/health", headers={"X-Request-ID": "x" * 65})
    assert resp.headers["X-Request-ID"] != "x" * 65


def test_request_validation_is_400(client):
    resp = client.post("/tables/t12/split", json={"parts": 1}, headers=_auth(client, "waiter1"))
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_discount_and_void_are_admin_only(client):
    waiter = _auth(client, "waiter1")
    admin = _auth(client, "admin")
    order = client.post(
        "/orders", json={"table_id": "t2", "items": [{"menu_item_id": "1"}]}, headers=waiter
    ).json()["data"]

    resp = client.post(
        f"/orders/{order['id']}/discount", json={"amount": 10, "kind": "PERCENTAGE"}, headers=waiter
    )
    assert resp.status_code == 403
    resp = client.post(
        f"/orders/{order['id']}/discount", json={"amount": 10, "kind": "PERCENTAGE"}, headers=admin
    )
    assert resp.json()["data"]["discount"] == 29.9

    client.post("/billing/tables/t2/finalize", headers=waiter)
    assert client.post(f"/billing/orders/{order['id']}/void", headers=waiter).status_code == 403
    voided = client.post(f"/billing/orders/{order['id']}/void", headers=admin).json()["data"]
    assert voided["status"] == "CANCELLED"
    assert voided["payment_status"] == "REFUNDED"


def test_order_listing_and_stats(client):
    waiter = _auth(client, "waiter1")
    for table_id in ("t1", "t2", "t3"):
        client.post(
            "/orders", json={"table_id": table_id, "items": [{"menu_item_id": "5"}]}, headers=waiter
        )
    client.post("/billing/tables/t1/finalize", headers=waiter)

    data = client.get("/orders", params={"limit": 2}, headers=waiter).json()["data"]
    assert data["pagination"]["total"] == 3
    assert data["pagination"]["pages"] == 2
    assert len(data["orders"]) == 2

    paid = client.get("/orders", params={"payment_status": "PAID"}, headers=waiter).json()["data"]
    assert [o["table_id"] for o in paid["orders"]] == ["t1"]

    assert client.get("/orders/stats/summary", headers=waiter).status_code == 403
    stats = client.get("/orders/stats/summary", headers=_auth(client, "admin")).json()["data"]
    assert stats["total_orders"] == 3
    assert stats["completed_orders"] == 1
    assert stats["revenue"]["total_revenue"] == 82.95
