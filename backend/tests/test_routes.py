"""
HTTP surface: authentication, role checks and error-kind status codes.
"""

from billbook.extensions import db
from billbook.models import Product, SyncStatus
from billbook.services.settings_service import get_sync_session

from conftest import basic_auth


def _create_order(client, headers, quantity=1, product_id="P1"):
    return client.post(
        "/api/orders",
        json={"items": [{"product_id": product_id, "quantity": quantity}], "customer": {"name": "Walk-in"}},
        headers=headers,
    )


def test_requests_without_credentials_are_rejected(client, products):
    assert client.get("/api/products").status_code == 401
    assert client.get("/api/products", headers=basic_auth("admin", "wrong")).status_code == 401


def test_list_products(client, products, employee_headers):
    response = client.get("/api/products?search=panel", headers=employee_headers)
    assert response.status_code == 200
    assert {p["id"] for p in response.get_json()["items"]} == {"P1", "P2"}


def test_issue_invoice(client, products, employee_headers):
    response = _create_order(client, employee_headers, quantity=3)

    assert response.status_code == 201
    body = response.get_json()
    assert body["ok"] is True
    assert body["data"]["serial_number"].startswith("TE/")
    assert body["data"]["total_amount"] == "3540.00"
    db.session.expire_all()
    assert db.session.get(Product, "P1").stock == 7


def test_invoice_errors_map_to_status_codes(client, products, employee_headers):
    response = _create_order(client, employee_headers, quantity=20)
    assert response.status_code == 409
    assert response.get_json()["kind"] == "InsufficientStock"

    response = client.post("/api/orders", json={"items": []}, headers=employee_headers)
    assert response.status_code == 400
    assert response.get_json()["kind"] == "InvalidOrderInput"

    response = client.post(
        "/api/orders",
        json={"items": [{"product_id": "P1", "quantity": 1}], "customer": "Walk-in"},
        headers=employee_headers,
    )
    assert response.status_code == 400
    assert response.get_json()["details"] == {"field": "customer"}

    response = _create_order(client, employee_headers, product_id="NOPE")
    assert response.status_code == 404
    assert response.get_json()["details"]["product_ids"] == ["NOPE"]

    assert client.get("/api/orders/missing", headers=employee_headers).status_code == 404


def test_only_admin_deletes_invoices(client, products, employee_headers, admin_headers):
    order_id = _create_order(client, employee_headers, quantity=2).get_json()["data"]["id"]

    response = client.delete(f"/api/orders/{order_id}", headers=employee_headers)
    assert response.status_code == 403
    assert response.get_json()["kind"] == "PermissionDenied"

    response = client.delete(f"/api/orders/{order_id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.get_json()["data"]["status"] == "Deleted"

    assert client.delete(f"/api/orders/{order_id}", headers=admin_headers).status_code == 404


def test_catalog_writes_require_admin(client, products, employee_headers, admin_headers):
    payload = {"id": "P9", "name": "Battery 100Ah", "price": "8999", "gst_rate": "28", "stock": 4}

    assert client.post("/api/products", json=payload, headers=employee_headers).status_code == 403

    response = client.post("/api/products", json=payload, headers=admin_headers)
    assert response.status_code == 201
    assert response.get_json()["data"]["stock"] == 4

    response = client.patch("/api/products/P9", json={"stock": 100}, headers=admin_headers)
    assert response.status_code == 400
    assert response.get_json()["kind"] == "InvalidInput"


def test_purchase_review_flow(client, products, employee_headers, admin_headers):
    response = client.post(
        "/api/purchases",
        json={
            "supplier_name": "Shenzhen Solar Co",
            "currency": "USD",
            "exchange_rate": 83,
            "items": [{"supplier_sku": "SZ-UNKNOWN", "quantity": 10, "unit_cost": 12}],
        },
        headers=employee_headers,
    )
    assert response.status_code == 201
    purchase = response.get_json()["data"]
    po_id, item_id = purchase["id"], purchase["items"][0]["id"]

    pending = client.get("/api/purchases/pending", headers=employee_headers).get_json()
    assert pending["count"] == 1

    response = client.post(f"/api/purchases/{po_id}/finalize", headers=employee_headers)
    assert response.status_code == 409
    assert response.get_json()["kind"] == "UnresolvedSku"

    response = client.patch(
        f"/api/purchases/{po_id}/items/{item_id}", json={"linked_sku": "P1"}, headers=employee_headers
    )
    assert response.status_code == 200

    response = client.post(f"/api/purchases/{po_id}/finalize", headers=employee_headers)
    assert response.status_code == 200
    assert response.get_json()["data"]["status"] == "Confirmed"

    assert client.post(f"/api/purchases/{po_id}/revert", headers=employee_headers).status_code == 403
    response = client.post(f"/api/purchases/{po_id}/revert", headers=admin_headers)
    assert response.status_code == 200
    assert response.get_json()["data"]["shortfalls"] == []

    assert client.get(f"/api/purchases/{po_id}", headers=admin_headers).status_code == 404


def test_company_settings(client, admin_headers, employee_headers):
    response = client.patch("/api/settings/company", json={"name": "Tevolta Energy"}, headers=employee_headers)
    assert response.status_code == 403

    response = client.patch("/api/settings/company", json={"name": "Tevolta Energy"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.get_json()["data"]["name"] == "Tevolta Energy"

    response = client.patch("/api/settings/company", json={"invoice_sequence": 1}, headers=admin_headers)
    assert response.status_code == 400

    assert client.put("/api/settings/low-stock-threshold", json={"value": 20}, headers=admin_headers).status_code == 200
    assert client.get("/api/settings/company", headers=employee_headers).get_json()["low_stock_threshold"] == 20


def test_reports(client, products, employee_headers, admin_headers):
    _create_order(client, employee_headers, quantity=1)

    assert client.get("/api/reports/gst", headers=employee_headers).status_code == 400
    year = client.get("/api/reports/dashboard", headers=employee_headers).get_json()["daily_revenue"][-1]["date"][:4]
    response = client.get(f"/api/reports/gst?year={year}", headers=employee_headers)
    assert response.status_code == 200
    assert response.get_json()["invoice_count"] == 1

    assert client.get("/api/reports/margin", headers=employee_headers).status_code == 403
    assert client.get("/api/reports/margin?start=not-a-date", headers=admin_headers).status_code == 400
    assert client.get("/api/reports/margin", headers=admin_headers).get_json()["revenue"] == "1000.00"


def test_sync_endpoints(client, products, admin_headers, employee_headers, drive):
    assert client.post("/api/sync/pull", headers=employee_headers).status_code == 503
    assert client.post("/api/sync/link", json={"access_token": "t"}, headers=employee_headers).status_code == 403

    response = client.post("/api/sync/link", json={"access_token": "t"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.get_json()["data"]["initialized"] is True

    status = client.get("/api/sync/status", headers=employee_headers).get_json()
    assert status["status"] == SyncStatus.SYNCED.value
    assert status["cloud_enabled"] is True

    drive.fail_status = 500
    response = client.post("/api/sync/push", headers=employee_headers)
    assert response.status_code == 503
    assert response.get_json()["kind"] == "SyncFailed"

    health = client.get("/api/system/health")
    assert health.status_code == 200
    assert health.get_json()["checks"]["sync"]["status"] == "degraded"


def test_health(client, admin_user):
    response = client.get("/api/system/health")
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "healthy"
    assert set(body["checks"]) == {"database", "auth", "sync"}
    db.session.expire_all()
    assert get_sync_session().status == SyncStatus.LOCAL
