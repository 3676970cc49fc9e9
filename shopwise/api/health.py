"""
Liveness and service status

/health answers without touching the database; /status also pings the
database and reports the thresholds the dashboard and assistant use.
"""
from datetime import datetime

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from shopwise import __version__
from shopwise.config import get_settings
from shopwise.models.base import engine
from shopwise.services.analysis_service import INTENTS
from shopwise.utils.logger import log

settings = get_settings()

router = APIRouter()


def _database_state() -> str:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return "ok"
    except SQLAlchemyError as e:
        log.error(f"Database ping failed: {e}")
        return "unreachable"


@router.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": __version__,
    }


@router.get("/status")
async def get_status():
    """Database reachability, backend dialect and analysis settings."""
    return {
        "app_name": settings.app_name,
        "version": __version__,
        "environment": settings.environment,
        "database": {
            "backend": engine.dialect.name,
            "state": _database_state(),
        },
        "assistant": {
            "intents": len(INTENTS),
            "external_ai": False,
        },
        "inventory": {
            "low_stock_threshold": settings.low_stock_threshold,
            "dead_stock_days": settings.dead_stock_days,
        },
        "dashboard": {
            "currency_symbol": settings.currency_symbol,
            "cache_seconds": settings.dashboard_cache_seconds,
            "recent_alerts": settings.alert_lookback_limit,
        },
        "timestamp": datetime.utcnow().isoformat(),
    }
