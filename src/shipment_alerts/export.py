# SPDX-License-Identifier: MIT
# src/shipment_alerts/export.py
"""
Whole-state export/import as a single JSON document, plus a CSV export of the
shipment list.

Records are written exactly as stored, so a document produced by ``export_all``
restores the same field set through ``import_all``.
"""
from __future__ import annotations
import json
import logging
from typing import Any, Dict, Sequence

import pandas as pd

from shipment_alerts.alerts.store import AlertStore
from shipment_alerts.preferences import UserPreferences, load_preferences, save_preferences
from shipment_alerts.shipments.models import Shipment
from shipment_alerts.shipments.store import ShipmentStore
from shipment_alerts.storage import KeyValueStore
from shipment_alerts.utils.dates import parse_ts, to_iso, utcnow

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"

CSV_COLUMNS = {
    "tracking_number": "Tracking Number",
    "carrier": "Carrier",
    "nickname": "Nickname",
    "status": "Status",
    "estimated_delivery": "Estimated Delivery",
    "actual_delivery": "Actual Delivery",
    "last_updated": "Last Updated",
}
DATE_COLUMNS = ("estimated_delivery", "actual_delivery", "last_updated")


def export_all(backend: KeyValueStore) -> str:
    """Serialize shipments, alerts (dismissed included) and preferences into one JSON document."""
    document = {
        "shipments": ShipmentStore(backend).load(),
        "alerts": AlertStore(backend).alerts,
        "preferences": load_preferences(backend).to_dict(),
        "export_date": to_iso(utcnow()),
        "version": EXPORT_VERSION,
    }
    return json.dumps(document, ensure_ascii=False, indent=2)


def import_all(raw: str, backend: KeyValueStore) -> bool:
    """
    Restore state from an ``export_all`` document. Sections missing from the
    document are left untouched.

    Returns:
        True if every present section was written
    """
    try:
        document: Dict[str, Any] = json.loads(raw)
    except ValueError as e:
        logger.error(f"Import failed, not valid JSON: {e}")
        return False
    if not isinstance(document, dict):
        logger.error("Import failed, document is not a JSON object")
        return False

    ok = True
    if isinstance(document.get("shipments"), list):
        ok &= ShipmentStore(backend).save(document["shipments"])
    if isinstance(document.get("alerts"), list):
        ok &= AlertStore(backend, autoload=False).replace(document["alerts"])
    if isinstance(document.get("preferences"), dict):
        ok &= save_preferences(backend, UserPreferences.from_dict(document["preferences"]))

    logger.info(
        f"Imported {len(document.get('shipments') or [])} shipments and "
        f"{len(document.get('alerts') or [])} alerts (ok={ok})"
    )
    return bool(ok)


def _csv_date(value: Any) -> str:
    dt = parse_ts(value)
    return dt.strftime("%Y-%m-%d") if dt is not None else ""


def export_shipments_csv(shipments: Sequence[Shipment]) -> str:
    """One row per shipment with human-readable headers; dates as YYYY-MM-DD."""
    if not shipments:
        return ""
    rows = []
    for s in shipments:
        row = {col: s.get(col) for col in CSV_COLUMNS}
        # dates are formatted before pandas sees them, missing ones become ""
        for col in DATE_COLUMNS:
            row[col] = _csv_date(row[col])
        rows.append(row)
    df = pd.DataFrame(rows, columns=list(CSV_COLUMNS)).fillna("").rename(columns=CSV_COLUMNS)
    return df.to_csv(index=False)
