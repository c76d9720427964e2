# SPDX-License-Identifier: MIT
# src/shipment_alerts/alerts/types.py
from __future__ import annotations
from typing import Any, Dict, Mapping, Optional, Tuple, TypedDict

# ---- Common type aliases ----
Alert = Dict[str, Any]           # alert record as stored and exported
DedupKey = Tuple[str, str, str]  # (shipment_id, type, title)

# UI severity class
INFO = "info"
WARNING = "warning"
ERROR = "error"
SUCCESS = "success"

HIGH = "high"
MEDIUM = "medium"
LOW = "low"

DELIVERY_TODAY_TITLE = "Delivery Today"


class AlertKind(TypedDict):
    type: str
    priority: str
    title: str
    icon: str


class AlertRecord(TypedDict, total=False):
    id: str
    type: str
    priority: str
    title: str
    message: str
    icon: str
    timestamp: str
    shipment_id: str
    tracking_number: str
    dismissed: bool
    read: bool
    dismissed_at: Optional[str]
    read_at: Optional[str]
    metadata: Dict[str, Any]


ALERT_KINDS: Dict[str, AlertKind] = {
    "delay_detected": {"type": WARNING, "priority": HIGH,   "title": "Shipment Delayed",   "icon": "⚠️"},
    "delivery_soon":  {"type": INFO,    "priority": MEDIUM, "title": DELIVERY_TODAY_TITLE, "icon": "📦"},
    "delivered":      {"type": SUCCESS, "priority": MEDIUM, "title": "Package Delivered",  "icon": "✅"},
    "exception":      {"type": ERROR,   "priority": HIGH,   "title": "Delivery Exception", "icon": "❌"},
    "weather_delay":  {"type": WARNING, "priority": MEDIUM, "title": "Weather Delay",      "icon": "🌧️"},
    "customs_delay":  {"type": WARNING, "priority": MEDIUM, "title": "Customs Processing", "icon": "🛃"},
    "address_issue":  {"type": ERROR,   "priority": HIGH,   "title": "Address Problem",    "icon": "🏠"},
}

# Fields an alert must carry before it may enter the authoritative set
REQUIRED_FIELDS = ("id", "shipment_id", "type", "title", "timestamp")


def dedup_key(alert: Mapping[str, Any]) -> DedupKey:
    return (alert.get("shipment_id"), alert.get("type"), alert.get("title"))
