"""Database models for Shopwise Insight"""

from shopwise.models.product import Product
from shopwise.models.sale import SaleRecord
from shopwise.models.alert import InventoryAlert

__all__ = [
    "Product",
    "SaleRecord",
    "InventoryAlert",
]
