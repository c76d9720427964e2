# SPDX-License-Identifier: MIT
# src/shipment_alerts/shipments/__init__.py
"""
Shipment records as seen by the alert engine: status vocabulary, persistence,
and the previous-vs-current diff that feeds edge-triggered rules.
"""

from .models import ShipmentStatus, validate_shipment
from .change_detector import previous_statuses, diff_shipments
from .store import ShipmentStore

__all__ = [
    "ShipmentStatus",
    "validate_shipment",
    "previous_statuses",
    "diff_shipments",
    "ShipmentStore",
]
