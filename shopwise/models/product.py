"""
Product catalogue and stock levels
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, UniqueConstraint
from datetime import datetime

from shopwise.models.base import Base


class Product(Base):
    """One stocked product belonging to a shop owner"""
    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_products_user_product"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)

    # Business key shown to the owner (e.g. "P139")
    product_id = Column(String, index=True, nullable=False)

    # Basic info
    name = Column(String, nullable=False)
    category = Column(String, nullable=True, index=True)

    # Stock and pricing
    current_stock = Column(Integer, default=0, nullable=False)
    unit_price = Column(Float, default=0.0, nullable=False)
    cost_price = Column(Float, nullable=True)  # None = unknown, analysis assumes 60% of price
    min_stock_level = Column(Integer, nullable=True)
    max_stock_level = Column(Integer, nullable=True)

    total_products_sold = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
