"""
Business data loader

Fetches a user's product, sale and alert rows from the hosted tables and
hands them to the analysis layer as plain dicts.
"""
from typing import Any, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shopwise.models.alert import InventoryAlert
from shopwise.models.product import Product
from shopwise.models.sale import SaleRecord
from shopwise.services.analysis_service import BusinessData
from shopwise.utils.logger import log


def _iso(value):
    return value.isoformat() if value else None


def product_row(p: Product) -> Dict[str, Any]:
    return {
        "id": p.id,
        "product_id": p.product_id,
        "name": p.name,
        "category": p.category,
        "current_stock": p.current_stock or 0,
        "unit_price": p.unit_price or 0.0,
        "cost_price": p.cost_price,
        "min_stock_level": p.min_stock_level,
        "max_stock_level": p.max_stock_level,
        "total_products_sold": p.total_products_sold or 0,
        "created_at": _iso(p.created_at),
        "updated_at": _iso(p.updated_at),
    }


def sale_row(s: SaleRecord) -> Dict[str, Any]:
    return {
        "id": s.id,
        "product_id": s.product_id,
        "quantity_sold": s.quantity_sold or 0,
        "total_amount": s.total_amount or 0.0,
        "customer_id": s.customer_id,
        "customer_name": s.customer_name,
        "sale_date": _iso(s.sale_date),
        "created_at": _iso(s.created_at),
    }


def alert_row(a: InventoryAlert) -> Dict[str, Any]:
    return {
        "id": a.id,
        "product_id": a.product_id,
        "alert_type": a.alert_type,
        "severity": a.severity,
        "message": a.message,
        "is_resolved": bool(a.is_resolved),
        "created_at": _iso(a.created_at),
        "resolved_at": _iso(a.resolved_at),
    }


def load_business_data(db: Session, user_id: str) -> BusinessData:
    """
    Load every row the assistant and dashboard aggregate over.

    Sales come back oldest first so the trend windows read the latest rows
    from the end of the list. A database failure yields empty rows with
    available=False instead of an error.
    """
    try:
        products = (
            db.query(Product)
            .filter(Product.user_id == user_id)
            .order_by(Product.id)
            .all()
        )
        sales = (
            db.query(SaleRecord)
            .filter(SaleRecord.user_id == user_id)
            .order_by(SaleRecord.sale_date, SaleRecord.id)
            .all()
        )
        alerts = (
            db.query(InventoryAlert)
            .filter(InventoryAlert.user_id == user_id)
            .order_by(InventoryAlert.created_at.desc(), InventoryAlert.id.desc())
            .all()
        )
    except SQLAlchemyError as e:
        log.error(f"Error loading business data for user {user_id}: {str(e)}")
        db.rollback()
        return BusinessData(available=False)

    return BusinessData(
        products=[product_row(p) for p in products],
        sales=[sale_row(s) for s in sales],
        alerts=[alert_row(a) for a in alerts],
    )
