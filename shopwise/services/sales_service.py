"""
Sales Service

Product sales listing for the sales screen, plus recording individual sales
into the sales_data table.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from shopwise.models.product import Product
from shopwise.models.sale import SaleRecord
from shopwise.services.business_data import product_row, sale_row
from shopwise.services.inventory_service import ProductNotFoundError
from shopwise.utils.cache import clear_for_user
from shopwise.utils.logger import log


class SaleValidationError(ValueError):
    pass


class SalesService:
    def __init__(self, db: Session):
        self.db = db

    def list_product_sales(self, user_id: str) -> List[Dict[str, Any]]:
        """Products newest first with inventory value and a low-stock flag."""
        products = (
            self.db.query(Product)
            .filter(Product.user_id == user_id)
            .order_by(Product.created_at.desc(), Product.id.desc())
            .all()
        )
        rows = []
        for p in products:
            row = product_row(p)
            row["inventory_value"] = row["current_stock"] * row["unit_price"]
            # Only flagged when the owner set a minimum
            row["is_low_stock"] = bool(p.min_stock_level) and row["current_stock"] < p.min_stock_level
            rows.append(row)
        return rows

    def list_sales(self, user_id: str, limit: int = 100) -> List[Dict[str, Any]]:
        sales = (
            self.db.query(SaleRecord)
            .filter(SaleRecord.user_id == user_id)
            .order_by(SaleRecord.sale_date.desc(), SaleRecord.id.desc())
            .limit(limit)
            .all()
        )
        return [sale_row(s) for s in sales]

    def record_sale(
        self,
        user_id: str,
        product_id: str,
        quantity: int,
        total_amount: Optional[float] = None,
        customer_id: Optional[str] = None,
        customer_name: Optional[str] = None,
        sale_date: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Record a sale and move the product's stock counters.

        Stock never goes below zero; total_amount defaults to quantity x unit price.
        """
        if quantity <= 0:
            raise SaleValidationError("Quantity must be greater than 0")
        if total_amount is not None and total_amount < 0:
            raise SaleValidationError("Total amount must be 0 or more")

        product = (
            self.db.query(Product)
            .filter(Product.user_id == user_id, Product.product_id == product_id)
            .first()
        )
        if not product:
            raise ProductNotFoundError(f"Product {product_id} not found")

        if total_amount is None:
            total_amount = quantity * (product.unit_price or 0.0)

        sale = SaleRecord(
            user_id=user_id,
            product_id=product.product_id,
            quantity_sold=quantity,
            total_amount=total_amount,
            customer_id=customer_id,
            customer_name=customer_name,
            sale_date=sale_date or datetime.utcnow(),
        )
        product.current_stock = max((product.current_stock or 0) - quantity, 0)
        product.total_products_sold = (product.total_products_sold or 0) + quantity
        product.updated_at = datetime.utcnow()

        self.db.add(sale)
        self.db.commit()
        self.db.refresh(sale)
        clear_for_user(user_id)
        log.info(f"Sale recorded: {quantity} x {product_id} for user {user_id}")
        return sale_row(sale)
