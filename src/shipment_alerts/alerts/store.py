# SPDX-License-Identifier: MIT
# src/shipment_alerts/alerts/store.py
"""
Alert storage and state management.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Sequence

from shipment_alerts.storage import KeyValueStore, ALERTS_KEY
from shipment_alerts.utils.dates import utcnow, to_iso
from .types import Alert

logger = logging.getLogger(__name__)


def summarize_alerts(alerts: Sequence[Alert]) -> Dict[str, Any]:
    """Totals by priority and by type."""
    summary: Dict[str, Any] = {
        "total": len(alerts),
        "high": sum(1 for a in alerts if a.get("priority") == "high"),
        "medium": sum(1 for a in alerts if a.get("priority") == "medium"),
        "low": sum(1 for a in alerts if a.get("priority") == "low"),
        "types": {},
    }
    for alert in alerts:
        alert_type = alert.get("type")
        summary["types"][alert_type] = summary["types"].get(alert_type, 0) + 1
    return summary


class AlertStore:
    """
    Owns the authoritative, ordered alert set (most recent first).

    The full set, dismissed alerts included, is what gets persisted: dismissed
    alerts keep their dedup key out of circulation until they expire. Callers
    that display alerts should use ``visible_alerts()``.

    Stored envelope: {"alerts": [...], "last_updated": iso}.
    """

    def __init__(self, backend: KeyValueStore, autoload: bool = True):
        """
        Args:
            backend: Persistence backend (see shipment_alerts.storage)
            autoload: Load the persisted set immediately
        """
        self.backend = backend
        self._alerts: List[Alert] = []
        if autoload:
            self.load()

    @property
    def alerts(self) -> List[Alert]:
        return list(self._alerts)

    def load(self) -> List[Alert]:
        data = self.backend.load(ALERTS_KEY, {"alerts": []})
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed alert envelope")
            data = {"alerts": []}
        self._alerts = [a for a in (data.get("alerts") or []) if isinstance(a, dict)]
        logger.debug(f"Loaded {len(self._alerts)} alerts from storage")
        return self.alerts

    def save(self) -> bool:
        envelope = {"alerts": self._alerts, "last_updated": to_iso(utcnow())}
        ok = self.backend.save(ALERTS_KEY, envelope)
        if ok:
            logger.debug(f"Persisted {len(self._alerts)} alerts")
        else:
            logger.error(f"Failed to persist {len(self._alerts)} alerts")
        return ok

    def replace(self, alerts: Sequence[Alert]) -> bool:
        """Swap in a new authoritative set and persist it."""
        self._alerts = list(alerts)
        return self.save()

    def visible_alerts(self) -> List[Alert]:
        return [a for a in self._alerts if not a.get("dismissed")]

    def get(self, alert_id: str) -> Optional[Alert]:
        return next((a for a in self._alerts if a.get("id") == alert_id), None)

    def _update(self, alert_id: str, **changes: Any) -> bool:
        found = False
        for i, alert in enumerate(self._alerts):
            if alert.get("id") == alert_id:
                self._alerts[i] = {**alert, **changes}
                found = True
        if not found:
            logger.debug(f"Alert {alert_id} not found")
            return False
        self.save()
        return True

    def dismiss(self, alert_id: str) -> bool:
        """Hide an alert. It stays stored, so the same condition won't re-alert until it expires."""
        ok = self._update(alert_id, dismissed=True, dismissed_at=to_iso(utcnow()))
        if ok:
            logger.info(f"Dismissed alert {alert_id}")
        return ok

    def mark_read(self, alert_id: str) -> bool:
        ok = self._update(alert_id, read=True, read_at=to_iso(utcnow()))
        if ok:
            logger.info(f"Marked alert {alert_id} as read")
        return ok

    def clear_all(self) -> bool:
        logger.info(f"Clearing all {len(self._alerts)} alerts")
        self._alerts = []
        return self.save()

    def get_alert_counts(self) -> Dict[str, Any]:
        """Counts over visible alerts: total, unread, per priority, per type."""
        visible = self.visible_alerts()
        summary = summarize_alerts(visible)
        return {
            "total": summary["total"],
            "unread": sum(1 for a in visible if not a.get("read")),
            "high": summary["high"],
            "medium": summary["medium"],
            "low": summary["low"],
            "by_type": {
                t: summary["types"].get(t, 0) for t in ("warning", "error", "info", "success")
            },
        }
