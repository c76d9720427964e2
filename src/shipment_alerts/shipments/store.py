# SPDX-License-Identifier: MIT
# src/shipment_alerts/shipments/store.py
"""
Shipment collection persistence.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from shipment_alerts.storage import KeyValueStore, SHIPMENTS_KEY
from shipment_alerts.utils.dates import utcnow, to_iso
from .models import Shipment, validate_shipment

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"


class ShipmentStore:
    """
    Reads and writes the shipment collection under a single storage key.

    Stored envelope: {"shipments": [...], "last_updated": iso, "version": "1.0"}.
    Newest shipments come first, matching how they are added.
    """

    def __init__(self, backend: KeyValueStore):
        self.backend = backend

    def load(self) -> List[Dict[str, Any]]:
        data = self.backend.load(SHIPMENTS_KEY, {"shipments": [], "last_updated": None})
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed shipment envelope")
            return []
        shipments = data.get("shipments") or []
        return [s for s in shipments if isinstance(s, dict)]

    def save(self, shipments: List[Shipment]) -> bool:
        for shipment in shipments:
            problems = validate_shipment(shipment)
            if problems:
                logger.warning(
                    f"Shipment {shipment.get('shipment_id', '?')} violates invariants: {', '.join(problems)}"
                )
        envelope = {
            "shipments": [dict(s) for s in shipments],
            "last_updated": to_iso(utcnow()),
            "version": SCHEMA_VERSION,
        }
        ok = self.backend.save(SHIPMENTS_KEY, envelope)
        if not ok:
            logger.error(f"Failed to persist {len(shipments)} shipments")
        return ok

    def get(self, shipment_id: str) -> Optional[Dict[str, Any]]:
        return next((s for s in self.load() if s.get("shipment_id") == shipment_id), None)

    def add(self, shipment: Shipment) -> bool:
        shipments = self.load()
        if any(s.get("tracking_number") == shipment.get("tracking_number") for s in shipments):
            logger.info(f"Tracking number {shipment.get('tracking_number')} is already tracked")
            return False
        return self.save([dict(shipment)] + shipments)

    def update(self, shipment_id: str, updates: Dict[str, Any]) -> bool:
        shipments = self.load()
        found = False
        for i, s in enumerate(shipments):
            if s.get("shipment_id") == shipment_id:
                shipments[i] = {**s, **updates, "last_updated": to_iso(utcnow())}
                found = True
        if not found:
            logger.debug(f"No shipment {shipment_id} to update")
            return False
        return self.save(shipments)

    def remove(self, shipment_id: str) -> bool:
        shipments = self.load()
        remaining = [s for s in shipments if s.get("shipment_id") != shipment_id]
        if len(remaining) == len(shipments):
            return False
        return self.save(remaining)
