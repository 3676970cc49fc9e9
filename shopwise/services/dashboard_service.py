"""
Dashboard Service

KPI cards and chart series for the landing dashboard, aggregated in memory
from the user's rows.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from shopwise.config import get_settings
from shopwise.services.analysis_service import (
    BusinessData,
    calculate_inventory_value,
    get_category_distribution,
    get_total_revenue,
)
from shopwise.services.business_data import load_business_data
from shopwise.utils.cache import get_cached, set_cached, _MISS
from shopwise.utils.helpers import parse_datetime, to_number

REVENUE_CHART_SIZE = 8
TOP_PRODUCTS_SIZE = 4


def _stock_value(p: Dict[str, Any]) -> float:
    return to_number(p.get("unit_price")) * to_number(p.get("current_stock"))


def build_summary(
    data: BusinessData,
    today: Optional[datetime] = None,
    alert_limit: int = 5,
) -> Dict[str, Any]:
    """Dashboard payload from loaded rows; pure, no database access."""
    today = (today or datetime.utcnow()).date()

    sales_revenue = get_total_revenue(data)
    inventory_value = calculate_inventory_value(data)

    orders_today = 0
    for s in data.sales:
        when = parse_datetime(s.get("sale_date"))
        if when is not None and when.date() == today:
            orders_today += 1

    by_value = sorted(data.products, key=_stock_value, reverse=True)
    revenue_by_product = [
        {
            "name": p.get("name") or "Unknown",
            "revenue": _stock_value(p),
            "product_id": p.get("product_id") or "Unknown",
        }
        for p in by_value[:REVENUE_CHART_SIZE]
    ]
    top_products = [
        {"name": p.get("name"), "value": _stock_value(p)}
        for p in by_value[:TOP_PRODUCTS_SIZE]
    ]
    categories = [
        {"name": name, "value": count}
        for name, count in get_category_distribution(data).items()
    ]

    recent_alerts = sorted(
        data.alerts,
        key=lambda a: parse_datetime(a.get("created_at")) or datetime.min,
        reverse=True,
    )[:alert_limit]

    return {
        "kpis": {
            # Without recorded sales the stock value stands in for revenue
            "total_revenue": sales_revenue if data.sales else inventory_value,
            "revenue_source": "sales" if data.sales else "inventory",
            "inventory_value": inventory_value,
            "total_products": len(data.products),
            "orders_today": orders_today,
            "active_alerts": sum(1 for a in data.alerts if not a.get("is_resolved")),
        },
        "revenue_by_product": revenue_by_product,
        "category_distribution": categories,
        "top_products": top_products,
        "recent_alerts": recent_alerts,
        "data_available": data.available,
    }


class DashboardService:
    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def get_summary(self, user_id: str) -> Dict[str, Any]:
        cache_key = f"dashboard_summary|{user_id}"
        cached = get_cached(cache_key)
        if cached is not _MISS:
            return cached

        data = load_business_data(self.db, user_id)
        summary = build_summary(data, alert_limit=self.settings.alert_lookback_limit)
        if data.available:
            set_cached(cache_key, summary, self.settings.dashboard_cache_seconds, user_id=user_id)
        return summary
