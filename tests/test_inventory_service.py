"""
Tests for product validation, stock classification and the inventory,
sales and alert services against a scratch sqlite database.
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from shopwise.models.alert import InventoryAlert
from shopwise.services.alert_service import InventoryAlertService, AlertNotFoundError
from shopwise.services.dashboard_service import DashboardService, build_summary
from shopwise.services.analysis_service import BusinessData
from shopwise.services.business_data import load_business_data
from shopwise.services.inventory_service import (
    DuplicateProductError,
    InventoryService,
    ProductNotFoundError,
    ProductValidationError,
    product_values,
    stock_status,
    validate_product_form,
)
from shopwise.services.sales_service import SalesService, SaleValidationError
from shopwise.utils.cache import _MISS, get_cached, set_cached


def _form(**overrides):
    form = {
        "name": "Rice 10kg",
        "category": "Groceries",
        "product_id": "P1",
        "current_stock": "50",
        "unit_price": "100",
        "cost_price": "70",
        "min_stock_level": "",
        "max_stock_level": None,
    }
    form.update(overrides)
    return form


# ────────────────────────────────────────────
# VALIDATION
# ────────────────────────────────────────────


class TestValidation:

    def test_valid_form(self):
        assert validate_product_form(_form()) == {}

    def test_required_fields(self):
        errors = validate_product_form({"name": "  "})
        assert errors["name"] == "Name is required"
        assert errors["category"] == "Category is required"
        assert errors["product_id"] == "Product ID is required"
        assert errors["current_stock"] == "Stock must be 0 or more"
        assert errors["unit_price"] == "Unit price must be 0 or more"

    def test_negative_and_junk_numbers(self):
        errors = validate_product_form(_form(current_stock=-1, unit_price="abc", cost_price="-5"))
        assert set(errors) == {"current_stock", "unit_price", "cost_price"}

    @pytest.mark.parametrize("value", ["inf", "1e400", "nan", "-inf", float("inf"), 10 ** 400])
    def test_non_finite_numbers_are_rejected(self, value):
        errors = validate_product_form(_form(current_stock=value, unit_price=value, max_stock_level=value))
        assert set(errors) == {"current_stock", "unit_price", "max_stock_level"}

    def test_products_sold_must_be_a_number(self):
        assert validate_product_form(_form(total_products_sold="lots")) == {
            "total_products_sold": "Products sold must be 0 or more"
        }

    def test_blank_optional_numbers_become_null(self):
        values = product_values(_form(current_stock="12.0"))
        assert values["current_stock"] == 12
        assert values["min_stock_level"] is None
        assert values["max_stock_level"] is None
        assert values["cost_price"] == 70.0
        assert values["total_products_sold"] == 0


class TestStockStatus:

    NOW = datetime(2025, 6, 1)

    def _status(self, **row):
        row.setdefault("created_at", "2025-05-30T00:00:00")
        return stock_status(row, low_stock_threshold=10, dead_stock_days=90, now=self.NOW)

    def test_out_of_stock(self):
        assert self._status(current_stock=0) == "out_of_stock"

    def test_low_stock_uses_threshold_without_minimum(self):
        assert self._status(current_stock=5) == "low_stock"
        assert self._status(current_stock=10) == "healthy"

    def test_minimum_overrides_threshold(self):
        assert self._status(current_stock=5, min_stock_level=3) == "healthy"
        assert self._status(current_stock=15, min_stock_level=20) == "low_stock"

    def test_overstock(self):
        assert self._status(current_stock=50, max_stock_level=40) == "overstock"

    def test_dead_stock_needs_age_and_no_sales(self):
        old = (self.NOW - timedelta(days=120)).isoformat()
        assert self._status(current_stock=30, created_at=old) == "dead_stock"
        assert self._status(current_stock=30, created_at=old, total_products_sold=4) == "healthy"


# ────────────────────────────────────────────
# INVENTORY SERVICE
# ────────────────────────────────────────────


class TestInventoryService:

    def test_create_and_list(self, db, user_id):
        service = InventoryService(db)
        created = service.create_product(user_id, _form())
        assert created["status"] == "healthy"
        assert created["inventory_value"] == 5000.0

        service.create_product(user_id, _form(name="Milk", category="Dairy", product_id="P2", current_stock=5))
        assert [p["name"] for p in service.list_products(user_id)] == ["Milk", "Rice 10kg"]
        assert [p["name"] for p in service.list_products(user_id, search="dai")] == ["Milk"]
        assert [p["name"] for p in service.list_products(user_id, status="low_stock")] == ["Milk"]
        assert service.summary(user_id) == {
            "total_products": 2,
            "healthy_products": 1,
            "alert_products": 1,
            "low_stock_products": 1,
        }

    def test_rows_are_scoped_to_owner(self, db, user_id):
        service = InventoryService(db)
        service.create_product(user_id, _form())
        assert service.list_products(f"{user_id}-other") == []

    def test_duplicate_product_id(self, db, user_id):
        service = InventoryService(db)
        service.create_product(user_id, _form())
        with pytest.raises(DuplicateProductError):
            service.create_product(user_id, _form(name="Other"))

    def test_invalid_form(self, db, user_id):
        with pytest.raises(ProductValidationError) as excinfo:
            InventoryService(db).create_product(user_id, _form(name=""))
        assert excinfo.value.errors == {"name": "Name is required"}

    def test_update_and_delete(self, db, user_id):
        service = InventoryService(db)
        pk = service.create_product(user_id, _form())["id"]
        updated = service.update_product(user_id, pk, _form(current_stock=0))
        assert updated["status"] == "out_of_stock"

        service.delete_product(user_id, pk)
        with pytest.raises(ProductNotFoundError):
            service.get_product(user_id, pk)

    def test_bulk_upsert(self, db, user_id):
        service = InventoryService(db)
        service.create_product(user_id, _form())
        result = service.bulk_upsert(user_id, [
            {"product_id": "P1", "name": "Rice 25kg", "current_stock": "80", "unit_price": "220"},
            {"product_id": "P9", "name": "Tea", "category": "Beverages", "unit_price": "40"},
            {"product_id": "", "name": "No id"},
        ])
        assert result == {
            "created": 1,
            "updated": 1,
            "failed": 1,
            "errors": ["Row 4: Missing required fields."],
        }
        names = {p["product_id"]: p["name"] for p in service.list_products(user_id)}
        assert names == {"P1": "Rice 25kg", "P9": "Tea"}

    def test_infinite_stock_is_a_field_error(self, db, user_id):
        with pytest.raises(ProductValidationError) as excinfo:
            InventoryService(db).create_product(user_id, _form(current_stock="inf"))
        assert excinfo.value.errors == {"current_stock": "Stock must be 0 or more"}

    def test_bulk_upsert_reads_unparseable_numbers_as_zero(self, db, user_id):
        service = InventoryService(db)
        result = service.bulk_upsert(user_id, [
            {"product_id": "P1", "name": "Rice", "current_stock": "5"},
            {"product_id": "P2", "name": "Milk", "current_stock": "nan", "unit_price": "1e400"},
            {"product_id": "P3", "name": "Tea", "current_stock": "7"},
        ])
        assert result == {"created": 3, "updated": 0, "failed": 0, "errors": []}

        stock = {p["product_id"]: (p["current_stock"], p["unit_price"]) for p in service.list_products(user_id)}
        assert stock == {"P1": (5, 0.0), "P2": (0, 0.0), "P3": (7, 0.0)}

    def test_bulk_upsert_row_failure_does_not_stop_upload(self, db, user_id, monkeypatch):
        service = InventoryService(db)
        cache_key = f"dashboard_summary|{user_id}"
        set_cached(cache_key, {"stale": True}, 60, user_id=user_id)

        real_values = InventoryService._bulk_values

        def values_or_fail(name, row):
            if row["product_id"] == "P2":
                raise ValueError("bad row")
            return real_values(name, row)

        monkeypatch.setattr(InventoryService, "_bulk_values", staticmethod(values_or_fail))
        result = service.bulk_upsert(user_id, [
            {"product_id": "P1", "name": "Rice", "current_stock": "5"},
            {"product_id": "P2", "name": "Milk"},
            {"product_id": "P3", "name": "Tea"},
        ])

        assert result["created"] == 2
        assert result["failed"] == 1
        assert result["errors"] == ["Row 3: Unexpected error - bad row"]
        assert get_cached(cache_key) is _MISS

    def test_export_csv(self, db, user_id):
        service = InventoryService(db)
        with pytest.raises(ProductNotFoundError, match="No inventory data to export."):
            service.export_csv(user_id)

        service.create_product(user_id, _form())
        lines = service.export_csv(user_id).splitlines()
        assert lines[0].startswith("Name,Category,Product ID,Current Stock,Unit Price")
        assert lines[1].startswith("Rice 10kg,Groceries,P1,50,100.0,70.0,0,,,")


# ────────────────────────────────────────────
# SALES / ALERTS / DASHBOARD
# ────────────────────────────────────────────


class TestSalesService:

    def test_record_sale_moves_stock(self, db, user_id):
        InventoryService(db).create_product(user_id, _form(current_stock=3))
        sale = SalesService(db).record_sale(user_id, "P1", 5, customer_name="Asha")
        assert sale["total_amount"] == 500.0

        product = InventoryService(db).list_products(user_id)[0]
        assert product["current_stock"] == 0
        assert product["total_products_sold"] == 5
        assert SalesService(db).list_sales(user_id)[0]["customer_name"] == "Asha"

    def test_rejects_bad_quantity_and_unknown_product(self, db, user_id):
        with pytest.raises(SaleValidationError):
            SalesService(db).record_sale(user_id, "P1", 0)
        with pytest.raises(ProductNotFoundError):
            SalesService(db).record_sale(user_id, "nope", 1)

    def test_loader_orders_sales_oldest_first(self, db, user_id):
        InventoryService(db).create_product(user_id, _form())
        sales = SalesService(db)
        sales.record_sale(user_id, "P1", 1, total_amount=20, sale_date=datetime(2025, 3, 1))
        sales.record_sale(user_id, "P1", 1, total_amount=10, sale_date=datetime(2025, 1, 1))

        data = load_business_data(db, user_id)
        assert data.available
        assert [s["total_amount"] for s in data.sales] == [10.0, 20.0]


class TestAlertService:

    def test_refresh_opens_and_resolves(self, db, user_id):
        inventory = InventoryService(db)
        inventory.create_product(user_id, _form(product_id="P1", current_stock=0))
        milk = inventory.create_product(user_id, _form(name="Milk", product_id="P2", current_stock=5))

        alerts = InventoryAlertService(db)
        assert alerts.refresh_alerts(user_id) == {"created": 2, "resolved": 0, "open": 2}
        assert alerts.refresh_alerts(user_id)["created"] == 0

        severities = {a["product_id"]: a["severity"] for a in alerts.list_alerts(user_id)}
        assert severities == {"P1": "high", "P2": "medium"}

        inventory.update_product(user_id, milk["id"], _form(name="Milk", product_id="P2", current_stock=40))
        assert alerts.refresh_alerts(user_id) == {"created": 0, "resolved": 1, "open": 1}

    def test_resolve_alert(self, db, user_id):
        InventoryService(db).create_product(user_id, _form(current_stock=0))
        alerts = InventoryAlertService(db)
        alerts.refresh_alerts(user_id)
        alert_id = alerts.list_alerts(user_id)[0]["id"]

        assert alerts.resolve_alert(user_id, alert_id)["is_resolved"] is True
        assert alerts.list_alerts(user_id) == []
        assert len(alerts.list_alerts(user_id, include_resolved=True)) == 1
        with pytest.raises(AlertNotFoundError):
            alerts.resolve_alert(f"{user_id}-other", alert_id)


    def test_refresh_resolves_duplicate_open_alerts(self, db, user_id):
        inventory = InventoryService(db)
        inventory.create_product(user_id, _form(product_id="P1", current_stock=40))
        inventory.create_product(user_id, _form(name="Milk", product_id="P2", current_stock=0))
        for product_id, alert_type in [
            ("P1", "low_stock"), ("P1", "low_stock"),
            ("P2", "out_of_stock"), ("P2", "out_of_stock"),
        ]:
            db.add(InventoryAlert(user_id=user_id, product_id=product_id, alert_type=alert_type, severity="medium"))
        db.commit()

        result = InventoryAlertService(db).refresh_alerts(user_id)
        assert result == {"created": 0, "resolved": 3, "open": 1}

        still_open = InventoryAlertService(db).list_alerts(user_id)
        assert [(a["product_id"], a["alert_type"]) for a in still_open] == [("P2", "out_of_stock")]


class _UnavailableSession:
    """Session stand-in whose every query fails."""

    def __init__(self):
        self.rolled_back = False

    def query(self, *args, **kwargs):
        raise SQLAlchemyError("database is down")

    def rollback(self):
        self.rolled_back = True


class TestDataUnavailable:

    def test_loader_returns_empty_rows(self, user_id):
        session = _UnavailableSession()
        data = load_business_data(session, user_id)
        assert data.available is False
        assert (data.products, data.sales, data.alerts) == ([], [], [])
        assert session.rolled_back

    def test_dashboard_does_not_cache_failed_load(self, user_id):
        summary = DashboardService(_UnavailableSession()).get_summary(user_id)
        assert summary["data_available"] is False
        assert summary["kpis"]["total_products"] == 0
        assert get_cached(f"dashboard_summary|{user_id}") is _MISS


class TestDashboardCache:

    def test_sale_clears_only_the_sellers_summary(self, db, user_id):
        other = f"{user_id}-other"
        for owner in (user_id, other):
            InventoryService(db).create_product(owner, _form())
            assert DashboardService(db).get_summary(owner)["kpis"]["orders_today"] == 0

        SalesService(db).record_sale(user_id, "P1", 1)

        assert get_cached(f"dashboard_summary|{user_id}") is _MISS
        assert get_cached(f"dashboard_summary|{other}") is not _MISS
        assert DashboardService(db).get_summary(user_id)["kpis"]["orders_today"] == 1


class TestDashboardSummary:

    def test_inventory_value_stands_in_without_sales(self):
        data = BusinessData(products=[
            {"product_id": "P1", "name": "Rice", "category": "Groceries", "current_stock": 2, "unit_price": 50},
        ])
        kpis = build_summary(data)["kpis"]
        assert kpis["total_revenue"] == 100.0
        assert kpis["revenue_source"] == "inventory"

    def test_orders_today_and_charts(self):
        today = datetime(2025, 6, 1, 12, 0)
        data = BusinessData(
            products=[
                {"product_id": f"P{i}", "name": f"Item {i}", "category": "A" if i % 2 else "B",
                 "current_stock": i, "unit_price": 10}
                for i in range(1, 11)
            ],
            sales=[
                {"product_id": "P1", "total_amount": 30, "sale_date": "2025-06-01T08:00:00"},
                {"product_id": "P1", "total_amount": 20, "sale_date": "2025-05-31T08:00:00"},
            ],
            alerts=[
                {"id": n, "is_resolved": n == 1, "created_at": f"2025-05-{n:02d}T00:00:00"}
                for n in range(1, 8)
            ],
        )
        summary = build_summary(data, today=today, alert_limit=5)
        assert summary["kpis"]["total_revenue"] == 50.0
        assert summary["kpis"]["orders_today"] == 1
        assert summary["kpis"]["active_alerts"] == 6
        assert len(summary["revenue_by_product"]) == 8
        assert summary["revenue_by_product"][0]["name"] == "Item 10"
        assert [p["name"] for p in summary["top_products"]] == ["Item 10", "Item 9", "Item 8", "Item 7"]
        assert summary["category_distribution"] == [{"name": "A", "value": 5}, {"name": "B", "value": 5}]
        assert [a["id"] for a in summary["recent_alerts"]] == [7, 6, 5, 4, 3]
