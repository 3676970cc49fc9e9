"""
Dashboard API Routes
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from shopwise.api.deps import get_user_id
from shopwise.models.base import get_db
from shopwise.services.dashboard_service import DashboardService
from shopwise.utils.logger import log

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/summary")
async def get_dashboard_summary(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """KPI cards, revenue/category charts and recent alerts."""
    try:
        data = DashboardService(db).get_summary(user_id)
        return {"success": True, "data": data}
    except Exception as e:
        log.error(f"Error in /dashboard/summary: {e}")
        raise HTTPException(status_code=500, detail=str(e))
