# SPDX-License-Identifier: MIT
# src/shipment_alerts/shipments/models.py
"""
Shipment record shape and invariant checks.

Shipments arrive as JSON-style dicts from the tracking data source and are kept
that way end to end, so that fields this package does not know about (carrier
details, UI bookkeeping) survive storage and export untouched.
"""
from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Sequence, TypedDict


class ShipmentStatus:
    PENDING = "pending"
    IN_TRANSIT = "in_transit"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    DELAYED = "delayed"
    EXCEPTION = "exception"

    ALL = frozenset({PENDING, IN_TRANSIT, OUT_FOR_DELIVERY, DELIVERED, DELAYED, EXCEPTION})
    # statuses that still move through the carrier network
    ACTIVE = frozenset({PENDING, IN_TRANSIT})


class StatusEvent(TypedDict, total=False):
    status: str
    timestamp: str
    location: str
    description: str


class ShipmentRecord(TypedDict, total=False):
    shipment_id: str
    tracking_number: str
    carrier: str
    nickname: str
    status: str
    estimated_delivery: Optional[str]
    actual_delivery: Optional[str]
    last_updated: str
    historical_statuses: List[StatusEvent]


Shipment = Mapping[str, Any]


def shipment_label(shipment: Shipment) -> str:
    """Display name used in alert messages."""
    nickname = (shipment.get("nickname") or "").strip()
    if nickname:
        return nickname
    carrier = (shipment.get("carrier") or "").upper()
    return f"{carrier} Package" if carrier else f"Package {shipment.get('tracking_number', '')}".strip()


def latest_status_event(shipment: Shipment) -> Optional[StatusEvent]:
    history = shipment.get("historical_statuses") or []
    return history[-1] if history else None


def index_by_id(shipments: Sequence[Shipment]) -> Dict[str, Shipment]:
    """Map shipment_id -> shipment. Records without an id are skipped; on duplicate ids the last one wins."""
    return {s["shipment_id"]: s for s in shipments if s.get("shipment_id")}


def validate_shipment(shipment: Shipment) -> List[str]:
    """Return human-readable invariant violations (empty list when the record is consistent)."""
    problems = []
    if not shipment.get("shipment_id"):
        problems.append("missing shipment_id")

    status = shipment.get("status")
    if status not in ShipmentStatus.ALL:
        problems.append(f"unknown status {status!r}")

    delivered = status == ShipmentStatus.DELIVERED
    has_actual = bool(shipment.get("actual_delivery"))
    if delivered and not has_actual:
        problems.append("delivered without actual_delivery")
    elif has_actual and not delivered:
        problems.append(f"actual_delivery set while status is {status!r}")

    history = shipment.get("historical_statuses")
    if history is not None and not isinstance(history, list):
        problems.append("historical_statuses is not a list")
    return problems
