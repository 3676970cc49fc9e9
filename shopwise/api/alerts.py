"""
Inventory Alert API Routes
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from shopwise.api.deps import get_user_id
from shopwise.models.base import get_db
from shopwise.services.alert_service import AlertNotFoundError, InventoryAlertService
from shopwise.utils.logger import log

router = APIRouter(prefix="/alerts", tags=["alerts"])


@router.get("")
async def list_alerts(
    include_resolved: bool = Query(False),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    try:
        alerts = InventoryAlertService(db).list_alerts(user_id, include_resolved=include_resolved)
        return {"success": True, "count": len(alerts), "data": alerts}
    except Exception as e:
        log.error(f"Error in /alerts: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/refresh")
async def refresh_alerts(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Open alerts for new stock problems and resolve cleared ones."""
    try:
        return {"success": True, "data": InventoryAlertService(db).refresh_alerts(user_id)}
    except Exception as e:
        log.error(f"Error in /alerts/refresh: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{alert_id}/resolve")
async def resolve_alert(
    alert_id: int,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    try:
        return {"success": True, "data": InventoryAlertService(db).resolve_alert(user_id, alert_id)}
    except AlertNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        log.error(f"Error resolving alert {alert_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))
