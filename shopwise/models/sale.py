"""
Recorded sales
"""
from sqlalchemy import Column, Integer, String, Float, DateTime
from datetime import datetime

from shopwise.models.base import Base


class SaleRecord(Base):
    """A single sale line; product_id is the product's business key"""
    __tablename__ = "sales_data"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    product_id = Column(String, index=True, nullable=False)

    quantity_sold = Column(Integer, default=0, nullable=False)
    total_amount = Column(Float, default=0.0, nullable=False)

    # Customer (either may be missing; analysis falls back to "Unknown")
    customer_id = Column(String, nullable=True, index=True)
    customer_name = Column(String, nullable=True)

    sale_date = Column(DateTime, default=datetime.utcnow, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
