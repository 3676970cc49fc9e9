"""
Tests for the HTTP surface.

Each test gets a fresh X-User-Id, so rows written by one test are never
visible to another.
"""

PRODUCT = {
    "name": "Rice 10kg",
    "category": "Groceries",
    "product_id": "P1",
    "current_stock": 50,
    "unit_price": 100,
    "cost_price": 70,
}


def _create(client, headers, **overrides):
    body = {**PRODUCT, **overrides}
    response = client.post("/inventory", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_status_lists_settings(self, client):
        body = client.get("/status").json()
        assert body["dashboard"]["currency_symbol"] == "₹"
        assert body["database"]["state"] == "ok"
        assert body["assistant"]["intents"] == 26

    def test_robots(self, client):
        response = client.get("/robots.txt")
        assert "Disallow: /" in response.text
        assert response.headers["X-Robots-Tag"].startswith("noindex")


class TestUserScope:

    def test_missing_header_is_rejected(self, client):
        response = client.get("/inventory")
        assert response.status_code == 400
        assert response.json()["detail"] == "Missing X-User-Id header"


class TestInventoryApi:

    def test_create_duplicate_and_invalid(self, client, headers):
        created = _create(client, headers)
        assert created["status"] == "healthy"

        duplicate = client.post("/inventory", json=PRODUCT, headers=headers)
        assert duplicate.status_code == 409

        invalid = client.post("/inventory", json={**PRODUCT, "product_id": "P2", "unit_price": -1}, headers=headers)
        assert invalid.status_code == 422
        assert invalid.json()["detail"]["errors"] == {"unit_price": "Unit price must be 0 or more"}

    def test_list_filters_and_summary(self, client, headers):
        _create(client, headers)
        _create(client, headers, name="Milk", category="Dairy", product_id="P2", current_stock=5)

        body = client.get("/inventory", params={"status": "low_stock"}, headers=headers).json()
        assert body["count"] == 1
        assert body["data"][0]["name"] == "Milk"

        body = client.get("/inventory", params={"category": "groc"}, headers=headers).json()
        assert [p["product_id"] for p in body["data"]] == ["P1"]

        summary = client.get("/inventory/summary", headers=headers).json()["data"]
        assert summary["total_products"] == 2
        assert summary["low_stock_products"] == 1

    def test_update_and_delete(self, client, headers):
        pk = _create(client, headers)["id"]

        response = client.put(f"/inventory/{pk}", json={**PRODUCT, "current_stock": 0}, headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "out_of_stock"

        assert client.delete(f"/inventory/{pk}", headers=headers).status_code == 200
        assert client.get(f"/inventory/{pk}", headers=headers).status_code == 404
        assert client.delete(f"/inventory/{pk}", headers=headers).status_code == 404

    def test_other_users_rows_are_hidden(self, client, headers):
        pk = _create(client, headers)["id"]
        other = {"X-User-Id": headers["X-User-Id"] + "-other"}
        assert client.get(f"/inventory/{pk}", headers=other).status_code == 404

    def test_bulk_upsert(self, client, headers):
        _create(client, headers)
        rows = [
            {"product_id": "P1", "name": "Rice 25kg", "current_stock": 80, "unit_price": 220},
            {"product_id": "", "name": "Broken"},
            {"product_id": "P3", "name": "Tea", "unit_price": "40"},
        ]
        body = client.post("/inventory/bulk", json={"rows": rows}, headers=headers).json()
        assert body["success"] is False
        assert body["data"] == {
            "created": 1,
            "updated": 1,
            "failed": 1,
            "errors": ["Row 3: Missing required fields."],
        }

    def test_export(self, client, headers):
        assert client.get("/inventory/export", headers=headers).status_code == 404

        _create(client, headers)
        response = client.get("/inventory/export", headers=headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        assert response.headers["cache-control"] == "no-store"
        assert response.text.splitlines()[0].startswith("Name,Category,Product ID")


class TestSalesApi:

    def test_record_sale(self, client, headers):
        _create(client, headers, current_stock=10)
        response = client.post(
            "/sales",
            json={"product_id": "P1", "quantity": 4, "customer_id": "C1"},
            headers=headers,
        )
        assert response.status_code == 201
        assert response.json()["data"]["total_amount"] == 400.0

        products = client.get("/sales/products", headers=headers).json()["data"]
        assert products[0]["current_stock"] == 6
        assert products[0]["total_products_sold"] == 4

        sales = client.get("/sales", headers=headers).json()
        assert sales["count"] == 1

    def test_bad_sales(self, client, headers):
        _create(client, headers)
        assert client.post("/sales", json={"product_id": "P1", "quantity": 0}, headers=headers).status_code == 400
        assert client.post("/sales", json={"product_id": "P9", "quantity": 1}, headers=headers).status_code == 404


class TestDashboardApi:

    def test_summary(self, client, headers):
        empty = client.get("/dashboard/summary", headers=headers).json()["data"]
        assert empty["kpis"]["total_products"] == 0
        assert empty["kpis"]["revenue_source"] == "inventory"

        _create(client, headers)
        client.post("/sales", json={"product_id": "P1", "quantity": 1}, headers=headers)

        kpis = client.get("/dashboard/summary", headers=headers).json()["data"]["kpis"]
        assert kpis["total_products"] == 1
        assert kpis["orders_today"] == 1
        assert kpis["revenue_source"] == "sales"
        assert kpis["total_revenue"] == 100.0


class TestAlertsApi:

    def test_refresh_and_resolve(self, client, headers):
        _create(client, headers, current_stock=0)
        _create(client, headers, name="Milk", product_id="P2", current_stock=5)

        refreshed = client.post("/alerts/refresh", headers=headers).json()["data"]
        assert refreshed["created"] == 2
        assert client.post("/alerts/refresh", headers=headers).json()["data"]["created"] == 0

        alerts = client.get("/alerts", headers=headers).json()["data"]
        alert_id = alerts[0]["id"]
        resolved = client.post(f"/alerts/{alert_id}/resolve", headers=headers)
        assert resolved.json()["data"]["is_resolved"] is True
        assert client.get("/alerts", headers=headers).json()["count"] == 1
        assert client.post("/alerts/999999/resolve", headers=headers).status_code == 404


class TestAssistantApi:

    def test_welcome(self, client):
        body = client.get("/assistant/welcome").json()
        assert body["message"]["type"] == "bot"
        assert "Show me performance trends" in body["quick_questions"]

    def test_ask(self, client, headers):
        _create(client, headers)
        client.post("/sales", json={"product_id": "P1", "quantity": 2}, headers=headers)

        body = client.post("/assistant/ask", json={"query": "How are my sales performing?"}, headers=headers).json()
        user_msg, bot_msg = body["messages"]
        assert user_msg["type"] == "user"
        assert bot_msg["analysis"]["intent"] == "sales_performance"
        assert "Total Revenue: ₹200" in bot_msg["content"]

    def test_blank_query(self, client, headers):
        response = client.post("/assistant/ask", json={"query": "   "}, headers=headers)
        assert response.status_code == 400
