# SPDX-License-Identifier: MIT
# src/shipment_alerts/alerts/retention.py
"""
Removal of alerts whose triggering condition no longer holds.
"""
from __future__ import annotations
import logging
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from shipment_alerts.shipments.models import Shipment, ShipmentStatus, index_by_id
from shipment_alerts.utils.dates import parse_ts, utcnow
from .types import DELIVERY_TODAY_TITLE, WARNING, Alert

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE_DAYS = 7


def removal_reason(
    alert: Alert,
    shipment: Optional[Shipment],
    now: datetime,
    max_age: timedelta,
) -> Optional[str]:
    """Why ``alert`` should be dropped, or None to keep it."""
    if shipment is None:
        return "shipment removed"

    status = shipment.get("status")
    if alert.get("title") == DELIVERY_TODAY_TITLE and status != ShipmentStatus.OUT_FOR_DELIVERY:
        return "no longer out for delivery"
    if alert.get("type") == WARNING and status == ShipmentStatus.DELIVERED:
        return "shipment delivered"

    created = parse_ts(alert.get("timestamp"))
    if created is None:
        return "unreadable timestamp"
    if now - created > max_age:
        return "expired"
    return None


def cleanup_outdated_alerts(
    alerts: Sequence[Alert],
    shipments: Sequence[Shipment],
    now: Optional[datetime] = None,
    max_age_days: int = DEFAULT_MAX_AGE_DAYS,
) -> List[Alert]:
    """
    Drop alerts that no longer apply to the live shipments.

    Each alert is judged on its own against the same shipments and ``now``, so
    the pass is idempotent and does not depend on alert order. Dismissed alerts
    are subject to the same rules.
    """
    now = now or utcnow()
    max_age = timedelta(days=max_age_days)
    live = index_by_id(shipments)

    kept: List[Alert] = []
    reasons = {}
    for alert in alerts:
        reason = removal_reason(alert, live.get(alert.get("shipment_id")), now, max_age)
        if reason is None:
            kept.append(alert)
        else:
            reasons[reason] = reasons.get(reason, 0) + 1
            logger.debug(f"Removing alert {alert.get('id')}: {reason}")

    if reasons:
        logger.info(f"Cleaned up {len(alerts) - len(kept)} outdated alerts: {reasons}")
    return kept
