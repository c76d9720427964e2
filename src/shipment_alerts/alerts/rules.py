# SPDX-License-Identifier: MIT
# src/shipment_alerts/alerts/rules.py
"""
Alert rules: map one shipment snapshot (plus the status it had on the previous
cycle) to zero or more candidate alerts.

Every rule is a plain function ``rule(shipment, previous_status, now)`` that
returns one candidate or None. Rules are independent; a shipment can trip
several in one evaluation. Nothing here touches storage or the clock except
through ``now``.
"""
from __future__ import annotations
import logging
import math
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence

from shipment_alerts.shipments.models import (
    Shipment,
    ShipmentStatus,
    latest_status_event,
    shipment_label,
)
from shipment_alerts.utils.dates import parse_ts, to_iso, utcnow
from .types import ALERT_KINDS, Alert

logger = logging.getLogger(__name__)

STUCK_AFTER_HOURS = 48
USPS_STALE_HOURS = 72
FEDEX_MAX_TRANSIT_DAYS = 5
MIN_HISTORY_FOR_ROUTING = 3

# (substring in latest location, alert kind, human reason); first match wins
DELAY_REASONS = (
    ("weather", "weather_delay", "Weather conditions causing delays"),
    ("customs", "customs_delay", "Customs processing delay"),
    ("address", "address_issue", "Address verification required"),
)
DEFAULT_DELAY = ("delay_detected", "Unexpected delay in transit")

Rule = Callable[[Shipment, Optional[str], datetime], Optional[Alert]]


def new_alert_id(now: datetime) -> str:
    return f"alert_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:8]}"


def create_alert(
    kind: str,
    message: str,
    shipment: Shipment,
    now: datetime,
    priority: Optional[str] = None,
    **metadata: Any,
) -> Alert:
    """Build a candidate alert of a known kind, stamped with a fresh id and ``now``."""
    info = ALERT_KINDS[kind]
    return {
        "id": new_alert_id(now),
        "type": info["type"],
        "priority": priority or info["priority"],
        "title": info["title"],
        "message": message,
        "icon": info["icon"],
        "timestamp": to_iso(now),
        "shipment_id": shipment.get("shipment_id"),
        "tracking_number": shipment.get("tracking_number"),
        "dismissed": False,
        "read": False,
        "metadata": {
            "carrier": shipment.get("carrier"),
            "status": shipment.get("status"),
            "kind": kind,
            **metadata,
        },
    }


# ---- helpers -------------------------------------------------------------

def days_overdue(estimated_delivery: datetime, now: datetime) -> int:
    return math.ceil((now - estimated_delivery) / timedelta(days=1))


def hours_since_update(shipment: Shipment, now: datetime) -> Optional[int]:
    last_updated = parse_ts(shipment.get("last_updated"))
    if last_updated is None:
        return None
    return math.floor((now - last_updated) / timedelta(hours=1))


def classify_delay(shipment: Shipment) -> tuple:
    """(alert kind, reason) from the most recent history entry's location text."""
    latest = latest_status_event(shipment) or {}
    location = str(latest.get("location") or "").lower()
    for needle, kind, reason in DELAY_REASONS:
        if needle in location:
            return kind, reason
    return DEFAULT_DELAY


def has_unusual_routing(shipment: Shipment) -> bool:
    # coarse repeat-count heuristic: some location shows up again beyond the first revisit
    history = shipment.get("historical_statuses") or []
    if len(history) < MIN_HISTORY_FOR_ROUTING:
        return False
    locations = [entry.get("location") for entry in history]
    return len(locations) > len(set(locations)) + 1


def carrier_issue(shipment: Shipment, now: datetime) -> Optional[str]:
    carrier = (shipment.get("carrier") or "").lower()

    if carrier == "usps":
        hours = hours_since_update(shipment, now)
        if hours is not None and hours > USPS_STALE_HOURS:
            return "USPS packages often experience delays during peak seasons"

    if carrier == "fedex" and shipment.get("status") == ShipmentStatus.IN_TRANSIT:
        history = shipment.get("historical_statuses") or []
        first_seen = parse_ts(history[0].get("timestamp")) if history else None
        if first_seen is not None:
            transit_days = math.floor((now - first_seen) / timedelta(days=1))
            if transit_days > FEDEX_MAX_TRANSIT_DAYS:
                return "FedEx shipment has been in transit longer than typical"

    return None


# ---- standard rules ------------------------------------------------------

def check_overdue(shipment: Shipment, previous_status: Optional[str], now: datetime) -> Optional[Alert]:
    eta = parse_ts(shipment.get("estimated_delivery"))
    if eta is None or now <= eta:
        return None
    if shipment.get("status") in (ShipmentStatus.DELIVERED, ShipmentStatus.DELAYED):
        return None
    days = days_overdue(eta, now)
    return create_alert(
        "delay_detected",
        f"{shipment_label(shipment)} is {days} day(s) overdue",
        shipment, now,
        days_overdue=days,
    )


def check_explicit_delay(shipment: Shipment, previous_status: Optional[str], now: datetime) -> Optional[Alert]:
    if shipment.get("status") != ShipmentStatus.DELAYED:
        return None
    kind, reason = classify_delay(shipment)
    return create_alert(kind, f"{shipment_label(shipment)}: {reason}", shipment, now)


def check_out_for_delivery(shipment: Shipment, previous_status: Optional[str], now: datetime) -> Optional[Alert]:
    if shipment.get("status") != ShipmentStatus.OUT_FOR_DELIVERY:
        return None
    return create_alert(
        "delivery_soon",
        f"{shipment_label(shipment)} is out for delivery and should arrive today",
        shipment, now,
    )


def check_delivered(shipment: Shipment, previous_status: Optional[str], now: datetime) -> Optional[Alert]:
    # edge-triggered: steady-state "delivered" must not fire again
    if shipment.get("status") != ShipmentStatus.DELIVERED or previous_status == ShipmentStatus.DELIVERED:
        return None
    return create_alert(
        "delivered",
        f"{shipment_label(shipment)} has been successfully delivered",
        shipment, now,
    )


def check_stuck(shipment: Shipment, previous_status: Optional[str], now: datetime) -> Optional[Alert]:
    if shipment.get("status") not in ShipmentStatus.ACTIVE:
        return None
    hours = hours_since_update(shipment, now)
    if hours is None or hours <= STUCK_AFTER_HOURS:
        return None
    return create_alert(
        "exception",
        f"{shipment_label(shipment)} hasn't been updated in {hours} hours",
        shipment, now,
        hours_stalled=hours,
    )


# ---- premium pattern detection -------------------------------------------

def check_unusual_routing(shipment: Shipment, previous_status: Optional[str], now: datetime) -> Optional[Alert]:
    if not has_unusual_routing(shipment):
        return None
    return create_alert(
        "exception",
        f"{shipment_label(shipment)} is taking an unusual route - may indicate processing issues",
        shipment, now,
        pattern="unusual_routing",
    )


def check_carrier_issue(shipment: Shipment, previous_status: Optional[str], now: datetime) -> Optional[Alert]:
    issue = carrier_issue(shipment, now)
    if issue is None:
        return None
    return create_alert(
        "delay_detected",
        f"{shipment_label(shipment)}: {issue}",
        shipment, now,
        priority="medium",
        pattern="carrier_issue",
    )


STANDARD_RULES: Sequence[Rule] = (
    check_overdue,
    check_explicit_delay,
    check_out_for_delivery,
    check_delivered,
    check_stuck,
)

PREMIUM_RULES: Sequence[Rule] = (
    check_unusual_routing,
    check_carrier_issue,
)


def derive_alerts(
    shipment: Shipment,
    previous_status: Optional[str] = None,
    premium_active: bool = False,
    now: Optional[datetime] = None,
) -> List[Alert]:
    """
    Evaluate every rule against one shipment.

    Args:
        shipment: Current shipment snapshot
        previous_status: Status observed on the previous cycle (None if unseen)
        premium_active: Whether the advanced pattern rules should run
        now: Evaluation time (default: current UTC time)

    Returns:
        Candidate alerts, in rule order
    """
    now = now or utcnow()
    rules = list(STANDARD_RULES)
    if premium_active:
        rules.extend(PREMIUM_RULES)

    candidates: List[Alert] = []
    for rule in rules:
        alert = rule(shipment, previous_status, now)
        if alert is not None:
            candidates.append(alert)

    if candidates:
        logger.debug(
            f"Shipment {shipment.get('shipment_id')} produced {len(candidates)} candidates: "
            f"{[a['metadata']['kind'] for a in candidates]}"
        )
    return candidates
