"""
Inventory Alert Service
Raises and resolves stock-level alerts for a user's products.
"""
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Tuple

from sqlalchemy.orm import Session

from shopwise.config import get_settings
from shopwise.models.alert import InventoryAlert
from shopwise.models.product import Product
from shopwise.services.business_data import alert_row, product_row
from shopwise.services.inventory_service import stock_status
from shopwise.utils.cache import clear_for_user
from shopwise.utils.logger import log

# Stock statuses that raise an alert, with their severity
ALERT_SEVERITY = {
    "out_of_stock": "high",
    "low_stock": "medium",
    "overstock": "low",
}


class AlertNotFoundError(LookupError):
    pass


def alert_message(alert_type: str, row: Dict[str, Any]) -> str:
    name = row.get("name") or row.get("product_id")
    stock = row.get("current_stock")
    if alert_type == "out_of_stock":
        return f"{name} is out of stock"
    if alert_type == "low_stock":
        return f"{name} is running low ({stock} left)"
    return f"{name} is overstocked ({stock} on hand, max {row.get('max_stock_level')})"


class InventoryAlertService:
    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def list_alerts(self, user_id: str, include_resolved: bool = False) -> List[Dict[str, Any]]:
        query = self.db.query(InventoryAlert).filter(InventoryAlert.user_id == user_id)
        if not include_resolved:
            query = query.filter(InventoryAlert.is_resolved == False)  # noqa: E712
        alerts = query.order_by(InventoryAlert.created_at.desc(), InventoryAlert.id.desc()).all()
        return [alert_row(a) for a in alerts]

    def resolve_alert(self, user_id: str, alert_id: int) -> Dict[str, Any]:
        alert = (
            self.db.query(InventoryAlert)
            .filter(InventoryAlert.user_id == user_id, InventoryAlert.id == alert_id)
            .first()
        )
        if not alert:
            raise AlertNotFoundError(f"Alert {alert_id} not found")
        if not alert.is_resolved:
            alert.is_resolved = True
            alert.resolved_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(alert)
            clear_for_user(user_id)
        return alert_row(alert)

    def refresh_alerts(self, user_id: str) -> Dict[str, int]:
        """
        Sync open alerts with current stock levels.

        Opens one alert per product and condition that is not already open,
        resolves open alerts whose condition has cleared, and resolves all but
        the oldest when one condition has several open alerts.
        """
        products = self.db.query(Product).filter(Product.user_id == user_id).all()
        open_alerts = (
            self.db.query(InventoryAlert)
            .filter(InventoryAlert.user_id == user_id, InventoryAlert.is_resolved == False)  # noqa: E712
            .all()
        )
        open_by_key: Dict[Tuple[str, str], List[InventoryAlert]] = defaultdict(list)
        for a in open_alerts:
            open_by_key[(a.product_id, a.alert_type)].append(a)

        current = set()
        created = 0
        for p in products:
            row = product_row(p)
            status = stock_status(
                row,
                low_stock_threshold=self.settings.low_stock_threshold,
                dead_stock_days=self.settings.dead_stock_days,
            )
            if status not in ALERT_SEVERITY:
                continue
            key = (p.product_id, status)
            current.add(key)
            if key in open_by_key:
                continue
            self.db.add(InventoryAlert(
                user_id=user_id,
                product_id=p.product_id,
                alert_type=status,
                severity=ALERT_SEVERITY[status],
                message=alert_message(status, row),
            ))
            created += 1

        resolved = 0
        now = datetime.utcnow()
        for key, alerts in open_by_key.items():
            # Duplicates of a still-current condition collapse to the oldest
            stale = alerts if key not in current else sorted(alerts, key=lambda a: a.id)[1:]
            for alert in stale:
                alert.is_resolved = True
                alert.resolved_at = now
                resolved += 1

        self.db.commit()
        clear_for_user(user_id)
        log.info(f"Alerts refreshed for user {user_id}: {created} opened, {resolved} resolved")
        return {"created": created, "resolved": resolved, "open": len(current)}
