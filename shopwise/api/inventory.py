"""
Inventory API Routes

Product CRUD, filtered listing, summary counts, bulk upsert and CSV export.
"""
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from shopwise.api.deps import get_user_id
from shopwise.models.base import get_db
from shopwise.services.inventory_service import (
    DuplicateProductError,
    InventoryService,
    ProductNotFoundError,
    ProductValidationError,
)
from shopwise.utils.logger import log

router = APIRouter(prefix="/inventory", tags=["inventory"])

Number = Optional[Union[float, str]]


# ── Schemas ──────────────────────────────────────────────

class ProductForm(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    product_id: Optional[str] = None
    current_stock: Number = None
    unit_price: Number = None
    cost_price: Number = None
    min_stock_level: Number = None
    max_stock_level: Number = None
    total_products_sold: Number = None


class BulkUpsertRequest(BaseModel):
    rows: List[Dict[str, Any]]


# ── Reads ────────────────────────────────────────────────

@router.get("")
async def list_products(
    search: str = Query("", description="Matches product name or category"),
    category: str = Query("all", description="Category substring, or 'all'"),
    status: str = Query("all", description="Stock status, or 'all'"),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Inventory listing with search, category and stock status filters."""
    try:
        products = InventoryService(db).list_products(user_id, search, category, status)
        return {"success": True, "count": len(products), "data": products}
    except Exception as e:
        log.error(f"Error in /inventory: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/summary")
async def inventory_summary(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Total, healthy, alert and low-stock product counts."""
    try:
        return {"success": True, "data": InventoryService(db).summary(user_id)}
    except Exception as e:
        log.error(f"Error in /inventory/summary: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/export")
async def export_inventory(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Download the inventory as CSV."""
    try:
        content = InventoryService(db).export_csv(user_id)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        log.error(f"Error in /inventory/export: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="inventory.csv"'},
    )


@router.get("/{product_pk}")
async def get_product(
    product_pk: int,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    try:
        return {"success": True, "data": InventoryService(db).get_product(user_id, product_pk)}
    except ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        log.error(f"Error in /inventory/{product_pk}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


# ── Writes ───────────────────────────────────────────────

@router.post("", status_code=201)
async def create_product(
    body: ProductForm,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Add a product. Invalid fields come back as a field -> message map."""
    try:
        product = InventoryService(db).create_product(user_id, body.model_dump())
        return {"success": True, "message": "Product created successfully.", "data": product}
    except ProductValidationError as e:
        raise HTTPException(status_code=422, detail={"errors": e.errors})
    except DuplicateProductError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        log.error(f"Error creating product: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/{product_pk}")
async def update_product(
    product_pk: int,
    body: ProductForm,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    try:
        product = InventoryService(db).update_product(user_id, product_pk, body.model_dump())
        return {"success": True, "message": "Product updated successfully.", "data": product}
    except ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ProductValidationError as e:
        raise HTTPException(status_code=422, detail={"errors": e.errors})
    except DuplicateProductError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        log.error(f"Error updating product {product_pk}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{product_pk}")
async def delete_product(
    product_pk: int,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    try:
        InventoryService(db).delete_product(user_id, product_pk)
        return {"success": True, "message": "Product deleted successfully."}
    except ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        log.error(f"Error deleting product {product_pk}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/bulk")
async def bulk_upsert_products(
    body: BulkUpsertRequest,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """
    Create or update many products at once, keyed by product_id.

    Rows are already parsed; the response counts created, updated and failed
    rows with one error line per failure.
    """
    try:
        result = InventoryService(db).bulk_upsert(user_id, body.rows)
        return {"success": result["failed"] == 0, "data": result}
    except Exception as e:
        log.error(f"Error in /inventory/bulk: {e}")
        raise HTTPException(status_code=500, detail=str(e))
