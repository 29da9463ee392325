from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from checkout.api.deps import get_catalog_client, get_notifier
from checkout.data.database import get_db
from checkout.main import app
from tests.conftest import NOW, add_promotion

ALICE = {"X-User-Id": "1"}
BOB = {"X-User-Id": "2"}
ADMIN = {"X-User-Id": "3", "X-User-Role": "admin"}


@pytest.fixture
def client(db, catalog, notifier, users):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_catalog_client] = lambda: catalog
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_identity_header_required(client):
    r = client.get("/orders/")
    assert r.status_code == 401


def test_cart_to_paid_flow(client, db):
    add_promotion(db, "TENOFF", starts_at=NOW - timedelta(days=1), expires_at=NOW + timedelta(days=3650))

    r = client.post("/orders/", headers=ALICE)
    assert r.status_code == 200
    order_id = r.json()["id"]

    r = client.post(f"/orders/{order_id}/items", json={"game_id": 3}, headers=ALICE)
    assert r.status_code == 200
    assert r.json()["total_after"] == "40.00"

    r = client.post(f"/orders/{order_id}/promotion", json={"code": "tenoff"}, headers=ALICE)
    assert r.status_code == 200
    assert r.json()["total_after"] == "36.00"

    r = client.post(f"/orders/{order_id}/pay", headers=ALICE)
    assert r.status_code == 200
    body = r.json()
    assert body["charged"] == "36.00"
    assert body["order"]["status"] == "PAID"

    r = client.post(f"/orders/{order_id}/pay", headers=ALICE)
    assert r.status_code == 409
    assert r.json()["code"] == "NOT_DRAFT"

    assert client.get("/wallet/balance", headers=ALICE).json()["balance"] == "64.00"
    assert [g["game_id"] for g in client.get("/library/", headers=ALICE).json()] == [3]


def test_error_payloads(client):
    order_id = client.post("/orders/", headers=ALICE).json()["id"]

    r = client.get(f"/orders/{order_id}", headers=BOB)
    assert r.status_code == 404
    assert r.json()["code"] == "ORDER_NOT_FOUND"

    r = client.post(f"/orders/{order_id}/items", json={"game_id": 99}, headers=ALICE)
    assert r.status_code == 404
    assert r.json()["code"] == "GAME_NOT_FOUND"

    r = client.post(f"/orders/{order_id}/pay", headers=ALICE)
    assert r.status_code == 409
    assert r.json()["code"] == "EMPTY_CART"


def test_buy_now_accepts_comma_separated_games(client):
    r = client.post("/orders/buy", json={"games": "1,2,2,-5"}, headers=BOB)
    assert r.status_code == 201
    body = r.json()
    assert [i["game_id"] for i in body["order"]["items"]] == [1, 2]
    assert body["charged"] == "34.98"

    r = client.post("/orders/buy", json={"games": [2]}, headers=BOB)
    assert r.status_code == 409
    assert r.json()["code"] == "ALREADY_OWNED"
    assert r.json()["details"] == {"games": ["Celeste"]}

    r = client.post("/orders/buy", json={"games": [0]}, headers=BOB)
    assert r.status_code == 400
    assert r.json()["code"] == "EMPTY_GAME_LIST"


def test_wallet_endpoints(client):
    r = client.post("/wallet/top-up", json={"amount": "10.5"}, headers=BOB)
    assert r.status_code == 201
    assert r.json()["balance_after"] == "60.50"

    r = client.post("/wallet/transfer", json={"to_user_id": 1, "amount": "0.50"}, headers=BOB)
    assert r.status_code == 201
    assert r.json()["source"]["balance_after"] == "60.00"

    r = client.post("/wallet/withdraw", json={"amount": "1000"}, headers=BOB)
    assert r.status_code == 409
    assert r.json()["code"] == "INSUFFICIENT_FUNDS"

    r = client.post("/wallet/top-up", json={"amount": "-1"}, headers=BOB)
    assert r.status_code == 422

    r = client.post("/wallet/transfer", json={"to_user_id": 2, "amount": "1.00"}, headers=BOB)
    assert r.status_code == 400
    assert r.json()["code"] == "SELF_TRANSFER"

    page = client.get("/wallet/entries", params={"sort": "asc"}, headers=BOB).json()
    assert page["total"] == 2
    assert [e["type"] for e in page["items"]] == ["CREDIT", "DEBIT"]


def test_other_wallets_are_admin_only(client):
    assert client.get("/wallet/balance/1", headers=BOB).status_code == 403
    r = client.get("/wallet/balance/1", headers=ADMIN)
    assert r.status_code == 200
    assert r.json() == {"user_id": 1, "balance": "100.00"}


def test_promotion_admin(client):
    payload = {
        "code": "launch",
        "discount_type": "FIXED",
        "discount_value": "5.00",
        "max_uses": 2,
        "starts_at": "2024-01-01T00:00:00Z",
        "expires_at": "2099-01-01T00:00:00Z",
    }
    assert client.post("/promotions/", json=payload, headers=ALICE).status_code == 403

    r = client.post("/promotions/", json=payload, headers=ADMIN)
    assert r.status_code == 201
    promo_id = r.json()["id"]
    assert r.json()["code"] == "LAUNCH"

    assert client.post("/promotions/", json=payload, headers=ADMIN).status_code == 409

    r = client.patch(f"/promotions/{promo_id}", json={"max_uses": 5}, headers=ADMIN)
    assert r.json()["max_uses"] == 5

    r = client.post("/promotions/validate", json={"code": "launch"}, headers=ALICE)
    assert r.status_code == 200

    r = client.patch(f"/promotions/{promo_id}", json={"discount_type": "PERCENT", "discount_value": "150"}, headers=ADMIN)
    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_ERROR"

    r = client.delete(f"/promotions/{promo_id}", headers=ADMIN)
    assert r.json() == {"id": promo_id, "deleted": True, "soft_deactivated": False}


def test_reports_and_reset(client):
    client.post("/orders/buy", json={"games": [1]}, headers=ALICE)

    r = client.get("/reports/top-sellers")
    assert r.status_code == 200
    assert r.json()[0]["game_id"] == 1

    assert client.post("/admin/reset", headers=ALICE).status_code == 403
    r = client.post("/admin/reset", headers=ADMIN)
    assert r.status_code == 200
    assert r.json()["orders"] == 1
    assert client.get("/library/", headers=ALICE).json() == []


def test_promotion_window_without_offset(client):
    payload = {
        "code": "naive",
        "discount_type": "PERCENT",
        "discount_value": "10",
        "starts_at": "2024-01-01T00:00:00Z",
        "expires_at": "2024-02-01T00:00:00",
    }
    r = client.post("/promotions/", json=payload, headers=ADMIN)
    assert r.status_code == 201

    payload.update(code="backwards", expires_at="2023-12-01T00:00:00")
    assert client.post("/promotions/", json=payload, headers=ADMIN).status_code == 422
