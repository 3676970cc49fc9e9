"""
Inventory Service

Product CRUD for the inventory screen: filtered listing, stock status,
summary counts, validation, bulk upsert of pre-parsed rows and CSV export.
"""
import csv
import io
import math
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shopwise.config import get_settings
from shopwise.models.product import Product
from shopwise.services.business_data import product_row
from shopwise.utils.cache import clear_for_user
from shopwise.utils.helpers import parse_datetime, to_number
from shopwise.utils.logger import log

STOCK_STATUSES = ("out_of_stock", "low_stock", "overstock", "dead_stock", "healthy")

EXPORT_HEADERS = [
    "Name",
    "Category",
    "Product ID",
    "Current Stock",
    "Unit Price",
    "Cost Price",
    "Total Products Sold",
    "Min Stock Level",
    "Max Stock Level",
    "Created Date",
    "Updated Date",
]

_OPTIONAL_NUMERIC = {
    "cost_price": "Cost price must be 0 or more",
    "min_stock_level": "Min stock must be 0 or more",
    "max_stock_level": "Max stock must be 0 or more",
    "total_products_sold": "Products sold must be 0 or more",
}


class ProductValidationError(ValueError):
    def __init__(self, errors: Dict[str, str]):
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = errors


class ProductNotFoundError(LookupError):
    pass


class DuplicateProductError(ValueError):
    pass


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _non_negative(value: Any) -> bool:
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return False
    return math.isfinite(number) and number >= 0


def validate_product_form(form: Dict[str, Any]) -> Dict[str, str]:
    """Return field -> message for every problem; empty dict means valid."""
    errors: Dict[str, str] = {}
    if _blank(form.get("name")):
        errors["name"] = "Name is required"
    if _blank(form.get("category")):
        errors["category"] = "Category is required"
    if _blank(form.get("product_id")):
        errors["product_id"] = "Product ID is required"
    if _blank(form.get("current_stock")) or not _non_negative(form.get("current_stock")):
        errors["current_stock"] = "Stock must be 0 or more"
    if _blank(form.get("unit_price")) or not _non_negative(form.get("unit_price")):
        errors["unit_price"] = "Unit price must be 0 or more"
    for key, message in _OPTIONAL_NUMERIC.items():
        value = form.get(key)
        if not _blank(value) and not _non_negative(value):
            errors[key] = message
    return errors


def _optional_int(value: Any) -> Optional[int]:
    return None if _blank(value) else int(float(value))


def _optional_float(value: Any) -> Optional[float]:
    return None if _blank(value) else float(value)


def product_values(form: Dict[str, Any]) -> Dict[str, Any]:
    """Column values for a validated form; blank optional numbers become NULL."""
    return {
        "name": str(form["name"]).strip(),
        "category": str(form["category"]).strip(),
        "product_id": str(form["product_id"]).strip(),
        "current_stock": int(float(form["current_stock"])),
        "unit_price": float(form["unit_price"]),
        "cost_price": _optional_float(form.get("cost_price")),
        "min_stock_level": _optional_int(form.get("min_stock_level")),
        "max_stock_level": _optional_int(form.get("max_stock_level")),
        "total_products_sold": _optional_int(form.get("total_products_sold")) or 0,
    }


def stock_status(
    row: Dict[str, Any],
    low_stock_threshold: int = 10,
    dead_stock_days: int = 90,
    now: Optional[datetime] = None,
) -> str:
    """Classify a product row by its stock level."""
    stock = to_number(row.get("current_stock"))
    min_level = row.get("min_stock_level")
    max_level = row.get("max_stock_level")

    if stock <= 0:
        return "out_of_stock"
    if min_level is not None:
        if stock < min_level:
            return "low_stock"
    elif stock < low_stock_threshold:
        return "low_stock"
    if max_level is not None and stock > max_level:
        return "overstock"

    created = parse_datetime(row.get("created_at"))
    now = now or datetime.utcnow()
    if (
        not row.get("total_products_sold")
        and created is not None
        and created.replace(tzinfo=None) < now - timedelta(days=dead_stock_days)
    ):
        return "dead_stock"
    return "healthy"


class InventoryService:
    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    # ── helpers ──────────────────────────────────────

    def _status(self, row: Dict[str, Any]) -> str:
        return stock_status(
            row,
            low_stock_threshold=self.settings.low_stock_threshold,
            dead_stock_days=self.settings.dead_stock_days,
        )

    def _with_status(self, p: Product) -> Dict[str, Any]:
        row = product_row(p)
        row["status"] = self._status(row)
        row["inventory_value"] = row["current_stock"] * row["unit_price"]
        return row

    def _query(self, user_id: str):
        return self.db.query(Product).filter(Product.user_id == user_id)

    def _get(self, user_id: str, pk: int) -> Product:
        product = self._query(user_id).filter(Product.id == pk).first()
        if not product:
            raise ProductNotFoundError(f"Product {pk} not found")
        return product

    def _find_by_product_id(self, user_id: str, product_id: str) -> Optional[Product]:
        return self._query(user_id).filter(Product.product_id == product_id).first()

    # ── reads ────────────────────────────────────────

    def list_products(
        self,
        user_id: str,
        search: str = "",
        category: str = "all",
        status: str = "all",
    ) -> List[Dict[str, Any]]:
        """Products matching the search text, category and stock status filters."""
        term = (search or "").strip().lower()
        category_filter = (category or "all").strip().lower()
        status_filter = (status or "all").strip().lower()

        rows = []
        for p in self._query(user_id).order_by(Product.name).all():
            row = self._with_status(p)
            name = (row["name"] or "").lower()
            cat = (row["category"] or "").lower()
            if term and term not in name and term not in cat:
                continue
            if category_filter != "all" and category_filter not in cat:
                continue
            if status_filter != "all" and row["status"] != status_filter:
                continue
            rows.append(row)
        return rows

    def get_product(self, user_id: str, pk: int) -> Dict[str, Any]:
        return self._with_status(self._get(user_id, pk))

    def summary(self, user_id: str) -> Dict[str, int]:
        rows = [self._with_status(p) for p in self._query(user_id).all()]
        return {
            "total_products": len(rows),
            "healthy_products": sum(1 for r in rows if r["status"] == "healthy"),
            "alert_products": sum(1 for r in rows if r["status"] != "healthy"),
            "low_stock_products": sum(1 for r in rows if r["status"] == "low_stock"),
        }

    # ── writes ───────────────────────────────────────

    def create_product(self, user_id: str, form: Dict[str, Any]) -> Dict[str, Any]:
        errors = validate_product_form(form)
        if errors:
            raise ProductValidationError(errors)
        values = product_values(form)
        if self._find_by_product_id(user_id, values["product_id"]):
            raise DuplicateProductError(f"Product ID {values['product_id']} already exists")

        product = Product(user_id=user_id, updated_at=datetime.utcnow(), **values)
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)
        clear_for_user(user_id)
        log.info(f"Product created: {product.product_id} for user {user_id}")
        return self._with_status(product)

    def update_product(self, user_id: str, pk: int, form: Dict[str, Any]) -> Dict[str, Any]:
        product = self._get(user_id, pk)
        errors = validate_product_form(form)
        if errors:
            raise ProductValidationError(errors)
        values = product_values(form)
        clash = self._find_by_product_id(user_id, values["product_id"])
        if clash and clash.id != product.id:
            raise DuplicateProductError(f"Product ID {values['product_id']} already exists")

        for key, value in values.items():
            setattr(product, key, value)
        product.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(product)
        clear_for_user(user_id)
        log.info(f"Product updated: {product.product_id} for user {user_id}")
        return self._with_status(product)

    def delete_product(self, user_id: str, pk: int) -> None:
        product = self._get(user_id, pk)
        self.db.delete(product)
        self.db.commit()
        clear_for_user(user_id)
        log.info(f"Product deleted: {product.product_id} for user {user_id}")

    @staticmethod
    def _bulk_values(name: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Column values for an upload row; unreadable numbers count as 0."""
        max_level = int(to_number(row.get("max_stock_level")))
        return {
            "name": name,
            "category": row.get("category") or None,
            "unit_price": to_number(row.get("unit_price")),
            "cost_price": to_number(row.get("cost_price")),
            "current_stock": int(to_number(row.get("current_stock"))),
            "min_stock_level": int(to_number(row.get("min_stock_level"))),
            "max_stock_level": max_level or None,
            "updated_at": datetime.utcnow(),
        }

    def bulk_upsert(self, user_id: str, rows: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Insert or update products from already-parsed rows keyed by product_id.

        Row numbers in error messages count the header line, so the first data
        row is "Row 2".
        """
        created = updated = failed = 0
        errors: List[str] = []
        existing = {
            pid for (pid,) in self.db.query(Product.product_id).filter(Product.user_id == user_id).all()
        }

        for i, row in enumerate(rows):
            line = i + 2
            product_id = str(row.get("product_id") or "").strip()
            name = str(row.get("name") or "").strip()
            if not product_id or not name:
                failed += 1
                errors.append(f"Row {line}: Missing required fields.")
                continue

            is_update = product_id in existing
            try:
                values = self._bulk_values(name, row)
                if is_update:
                    self._query(user_id).filter(Product.product_id == product_id).update(values)
                else:
                    self.db.add(Product(user_id=user_id, product_id=product_id, **values))
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                failed += 1
                action = "Update" if is_update else "Insert"
                errors.append(f"Row {line}: {action} failed: {str(e)}")
                continue
            except Exception as e:
                self.db.rollback()
                failed += 1
                log.warning(f"Bulk upsert row {line} for user {user_id}: {e}")
                errors.append(f"Row {line}: Unexpected error - {str(e)}")
                continue

            if is_update:
                updated += 1
            else:
                created += 1
                existing.add(product_id)

        clear_for_user(user_id)
        log.info(f"Bulk upsert for user {user_id}: {created} created, {updated} updated, {failed} failed")
        return {"created": created, "updated": updated, "failed": failed, "errors": errors}

    # ── export ───────────────────────────────────────

    def export_csv(self, user_id: str) -> str:
        products = self._query(user_id).order_by(Product.name).all()
        if not products:
            raise ProductNotFoundError("No inventory data to export.")

        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(EXPORT_HEADERS)
        for p in products:
            writer.writerow([
                p.name,
                p.category or "",
                p.product_id,
                p.current_stock,
                p.unit_price,
                p.cost_price if p.cost_price is not None else "",
                p.total_products_sold or 0,
                p.min_stock_level if p.min_stock_level is not None else "",
                p.max_stock_level if p.max_stock_level is not None else "",
                p.created_at.date().isoformat() if p.created_at else "",
                p.updated_at.date().isoformat() if p.updated_at else "",
            ])
        return buffer.getvalue()
