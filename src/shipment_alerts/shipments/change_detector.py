# SPDX-License-Identifier: MIT
# src/shipment_alerts/shipments/change_detector.py
"""
Diff the current shipment collection against the previously observed one.

Edge-triggered alert rules (e.g. "delivered") need the status a shipment had on
the previous cycle. Callers must compute this before they overwrite their copy
of the previous collection, otherwise the transition is lost for good.
"""
from __future__ import annotations
from typing import Dict, List, Optional, Sequence

from .models import Shipment, index_by_id


def previous_statuses(
    current: Sequence[Shipment],
    previous: Sequence[Shipment],
) -> Dict[str, Optional[str]]:
    """
    For every shipment in ``current``, the status the same shipment_id had in
    ``previous``, or None when it was not there.
    """
    prior = index_by_id(previous)
    result: Dict[str, Optional[str]] = {}
    for shipment in current:
        shipment_id = shipment.get("shipment_id")
        if not shipment_id:
            continue
        before = prior.get(shipment_id)
        result[shipment_id] = before.get("status") if before is not None else None
    return result


def diff_shipments(
    current: Sequence[Shipment],
    previous: Sequence[Shipment],
) -> Dict[str, List[str]]:
    """Ids that were added, removed, or changed status between two collections."""
    now_by_id = index_by_id(current)
    before_by_id = index_by_id(previous)

    added = [sid for sid in now_by_id if sid not in before_by_id]
    removed = [sid for sid in before_by_id if sid not in now_by_id]
    status_changed = [
        sid for sid, s in now_by_id.items()
        if sid in before_by_id and before_by_id[sid].get("status") != s.get("status")
    ]
    return {"added": added, "removed": removed, "status_changed": status_changed}
