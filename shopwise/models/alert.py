"""
Inventory alerts raised from stock levels
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text
from datetime import datetime

from shopwise.models.base import Base


class InventoryAlert(Base):
    __tablename__ = "inventory_alerts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    product_id = Column(String, index=True, nullable=False)

    alert_type = Column(String, nullable=False)  # low_stock, out_of_stock, overstock
    severity = Column(String, nullable=False)  # high, medium, low
    message = Column(Text, nullable=True)

    is_resolved = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    resolved_at = Column(DateTime, nullable=True)
