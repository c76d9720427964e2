# SPDX-License-Identifier: MIT
# src/shipment_alerts/alerts/__init__.py
"""
Alert system for shipment tracking.

This module provides:
- Alert rules that turn shipment state (and state changes) into candidate alerts
- Deduplication so a standing condition produces one outstanding alert
- Cleanup of alerts whose condition no longer holds
- Best-effort notification (email, webhook, Telegram) under user preferences
"""

from .rules import derive_alerts
from .detector import ShipmentAlertDetector
from .deduplicator import AlertDeduplicator
from .retention import cleanup_outdated_alerts
from .delivery import AlertDelivery
from .store import AlertStore
from .orchestration import AlertOrchestrator

__all__ = [
    "derive_alerts",
    "ShipmentAlertDetector",
    "AlertDeduplicator",
    "cleanup_outdated_alerts",
    "AlertDelivery",
    "AlertStore",
    "AlertOrchestrator",
]
