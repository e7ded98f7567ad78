# tests/api/test_cart_api.py

from starlette.testclient import TestClient

from tests.utils.auth import get_user_authentication_headers
from tests.utils.catalog import create_event, create_tenant, create_ticket_type


def _setup_catalog(db_session):
    tenant = create_tenant(db_session, "rakrak")
    event = create_event(db_session, tenant, name="Rakrak Live")
    ga = create_ticket_type(db_session, event, name="GA", base_price=500)
    return event, ga


def test_cart_requires_authentication(client: TestClient):
    response = client.get("/api/cart")
    assert response.status_code == 401


def test_add_item_and_read_cart(client: TestClient, db_session):
    event, ga = _setup_catalog(db_session)
    headers = get_user_authentication_headers()

    response = client.post(
        "/api/cart/rakrak/items",
        json={"event_id": event.id, "ticket_type_id": ga.id, "quantity": 2},
        headers=headers,
    )

    assert response.status_code == 200
    line = response.json()["data"]
    assert line["ticket_type_name"] == "GA"
    assert line["quantity"] == 2
    assert line["line_total"] == 1000

    cart = client.get("/api/cart/rakrak", headers=headers).json()["data"]
    assert cart["subdomain"] == "rakrak"
    assert cart["item_count"] == 2
    assert cart["events"][0]["event_name"] == "Rakrak Live"

    count = client.get("/api/cart/count", headers=headers).json()
    assert count == {"data": {"count": 2}}


def test_update_and_remove_item(client: TestClient, db_session):
    event, ga = _setup_catalog(db_session)
    headers = get_user_authentication_headers()
    line = client.post(
        "/api/cart/rakrak/items",
        json={"event_id": event.id, "ticket_type_id": ga.id, "quantity": 1},
        headers=headers,
    ).json()["data"]

    updated = client.patch(f"/api/cart/items/{line['id']}", json={"quantity": 5}, headers=headers)
    assert updated.json()["data"]["quantity"] == 5

    removed = client.delete(f"/api/cart/items/{line['id']}", headers=headers)
    assert removed.json() == {"data": {"removed": True}}
    assert client.get("/api/cart/count", headers=headers).json()["data"]["count"] == 0


def test_quantity_out_of_range_is_validation_error(client: TestClient, db_session):
    event, ga = _setup_catalog(db_session)

    response = client.post(
        "/api/cart/rakrak/items",
        json={"event_id": event.id, "ticket_type_id": ga.id, "quantity": 11},
        headers=get_user_authentication_headers(),
    )

    assert response.status_code == 422


def test_unknown_store_returns_error_envelope(client: TestClient, db_session):
    event, ga = _setup_catalog(db_session)

    response = client.post(
        "/api/cart/nope/items",
        json={"event_id": event.id, "ticket_type_id": ga.id, "quantity": 1},
        headers=get_user_authentication_headers(),
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Store not found"}


def test_other_users_line_is_forbidden(client: TestClient, db_session):
    event, ga = _setup_catalog(db_session)
    line = client.post(
        "/api/cart/rakrak/items",
        json={"event_id": event.id, "ticket_type_id": ga.id, "quantity": 1},
        headers=get_user_authentication_headers(user_id="user_a"),
    ).json()["data"]

    response = client.patch(
        f"/api/cart/items/{line['id']}",
        json={"quantity": 3},
        headers=get_user_authentication_headers(user_id="user_b"),
    )

    assert response.status_code == 403
    assert response.json() == {"error": "Unauthorized"}


def test_clear_tenant_cart(client: TestClient, db_session):
    event, ga = _setup_catalog(db_session)
    headers = get_user_authentication_headers()
    client.post(
        "/api/cart/rakrak/items",
        json={"event_id": event.id, "ticket_type_id": ga.id, "quantity": 3},
        headers=headers,
    )

    response = client.delete("/api/cart/rakrak", headers=headers)

    assert response.json() == {"data": {"removed": 1}}
    summary = client.get("/api/cart", headers=headers).json()["data"]
    assert summary["item_count"] == 0
