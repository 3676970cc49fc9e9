"""
Sales API Routes
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from shopwise.api.deps import get_user_id
from shopwise.models.base import get_db
from shopwise.services.inventory_service import ProductNotFoundError
from shopwise.services.sales_service import SalesService, SaleValidationError
from shopwise.utils.logger import log

router = APIRouter(prefix="/sales", tags=["sales"])


class SaleCreate(BaseModel):
    product_id: str
    quantity: int
    total_amount: Optional[float] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    sale_date: Optional[datetime] = None


@router.get("/products")
async def list_product_sales(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Products newest first with inventory value and units sold."""
    try:
        rows = SalesService(db).list_product_sales(user_id)
        return {"success": True, "count": len(rows), "data": rows}
    except Exception as e:
        log.error(f"Error in /sales/products: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("")
async def list_sales(
    limit: int = Query(100, ge=1, le=1000),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Recorded sales, newest first."""
    try:
        rows = SalesService(db).list_sales(user_id, limit=limit)
        return {"success": True, "count": len(rows), "data": rows}
    except Exception as e:
        log.error(f"Error in /sales: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("", status_code=201)
async def record_sale(
    body: SaleCreate,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Record a sale; decrements stock and bumps the product's sold count."""
    try:
        sale = SalesService(db).record_sale(
            user_id,
            body.product_id,
            body.quantity,
            total_amount=body.total_amount,
            customer_id=body.customer_id,
            customer_name=body.customer_name,
            sale_date=body.sale_date,
        )
        return {"success": True, "data": sale}
    except SaleValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        log.error(f"Error recording sale: {e}")
        raise HTTPException(status_code=500, detail=str(e))
