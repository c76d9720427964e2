# SPDX-License-Identifier: MIT
# src/shipment_alerts/alerts/orchestration.py
"""
Alert orchestration - integrates change detection, rules, deduplication,
cleanup, persistence and notification into one cycle per shipment update.
"""
from __future__ import annotations
import logging
from concurrent.futures import Future
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from shipment_alerts.config import Settings
from shipment_alerts.preferences import load_preferences
from shipment_alerts.shipments.change_detector import diff_shipments, previous_statuses
from shipment_alerts.shipments.models import Shipment
from shipment_alerts.shipments.store import ShipmentStore
from shipment_alerts.storage import JsonFileStore, KeyValueStore
from shipment_alerts.utils.dates import utcnow
from .deduplicator import AlertDeduplicator
from .delivery import AlertDelivery, build_channel
from .detector import ShipmentAlertDetector
from .retention import cleanup_outdated_alerts
from .store import AlertStore
from .types import Alert

logger = logging.getLogger(__name__)


class AlertOrchestrator:
    """
    Runs the alert cycle for each new shipment collection:

    1. Look up every shipment's previous status (before the snapshot is replaced)
    2. Run the alert rules
    3. Admit candidates that are not already outstanding
    4. Drop alerts that no longer apply
    5. Persist the alert set (and the new shipment snapshot)
    6. Notify about newly admitted alerts in the background

    Cycles must not overlap; the caller drives them one at a time.
    """

    def __init__(
        self,
        backend: Optional[KeyValueStore] = None,
        settings: Optional[Settings] = None,
        detector: Optional[ShipmentAlertDetector] = None,
        deduplicator: Optional[AlertDeduplicator] = None,
        delivery: Optional[AlertDelivery] = None,
        store: Optional[AlertStore] = None,
        shipment_store: Optional[ShipmentStore] = None,
        recipient: Optional[str] = None,
    ):
        """
        Initialize the alert orchestrator.

        Args:
            backend: Persistence backend shared by alerts, shipments and preferences
                     (default: JsonFileStore under settings.data_dir)
            settings: Runtime settings (default: from environment)
            detector: Alert detector instance
            deduplicator: Deduplicator instance
            delivery: Delivery manager instance
            store: Alert store instance
            shipment_store: Shipment store holding the previous snapshot
            recipient: Notification recipient (default: settings.notify_recipient)
        """
        self.settings = settings or Settings()
        self.backend = backend or JsonFileStore(self.settings.data_dir)
        self.store = store or AlertStore(self.backend)
        self.shipment_store = shipment_store or ShipmentStore(self.backend)
        self.detector = detector or ShipmentAlertDetector(premium_gate=self.settings.premium_active)
        self.deduplicator = deduplicator or AlertDeduplicator()
        self.delivery = delivery or AlertDelivery(
            channel=build_channel(self.settings),
            max_workers=self.settings.notify_workers,
        )
        self.recipient = recipient or self.settings.notify_recipient

        self._previous: List[Dict[str, Any]] = self.shipment_store.load()
        self.last_notification: Optional[Future] = None

    @property
    def previous_shipments(self) -> List[Dict[str, Any]]:
        return list(self._previous)

    def prune(self, now: Optional[datetime] = None) -> int:
        """Clean the stored alert set against the stored shipments (start-up pass)."""
        before = self.store.alerts
        cleaned = cleanup_outdated_alerts(
            before, self._previous, now=now, max_age_days=self.settings.alert_max_age_days
        )
        removed = len(before) - len(cleaned)
        if removed:
            self.store.replace(cleaned)
        return removed

    def preview(
        self,
        shipments: Sequence[Shipment],
        previous: Optional[Sequence[Shipment]] = None,
        now: Optional[datetime] = None,
    ) -> List[Alert]:
        """Alerts a cycle would admit, without touching any state (dry run)."""
        prior = self._previous if previous is None else previous
        candidates = self.detector.detect_alerts(shipments, previous_statuses(shipments, prior), now=now)
        admitted, _ = self.deduplicator.ingest(candidates, self.store.alerts)
        return admitted

    def process_shipments(
        self,
        shipments: Sequence[Shipment],
        previous: Optional[Sequence[Shipment]] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Run one alert cycle for a new shipment collection.

        Args:
            shipments: Current shipment collection
            previous: Previous collection (default: the snapshot from the last cycle)
            now: Evaluation time (default: current UTC time)

        Returns:
            Summary statistics dict
        """
        now = now or utcnow()
        prior = self._previous if previous is None else list(previous)

        # must happen before the snapshot is replaced or edge-triggered rules lose their edge
        prior_status = previous_statuses(shipments, prior)
        changes = diff_shipments(shipments, prior)
        logger.info(
            f"Processing {len(shipments)} shipments "
            f"(added={len(changes['added'])}, removed={len(changes['removed'])}, "
            f"status_changed={len(changes['status_changed'])})"
        )
        snapshot = [dict(s) for s in shipments]

        candidates = self.detector.detect_alerts(shipments, prior_status, now=now)
        admitted, merged = self.deduplicator.ingest(candidates, self.store.alerts)
        cleaned = cleanup_outdated_alerts(
            merged, shipments, now=now, max_age_days=self.settings.alert_max_age_days
        )

        # the snapshot only advances once the cycle has produced its alert set
        self._previous = snapshot
        persisted = self.store.replace(cleaned)
        if not self.shipment_store.save(self._previous):
            persisted = False

        surviving = {a.get("id") for a in cleaned}
        new_alerts = [a for a in admitted if a["id"] in surviving]

        self.last_notification = None
        if new_alerts:
            preferences = load_preferences(self.backend)
            self.last_notification = self.delivery.notify_async(new_alerts, self.recipient, preferences)

        stats = {
            "shipments_processed": len(shipments),
            "candidates": len(candidates),
            "admitted": len(new_alerts),
            "removed": len(merged) - len(cleaned),
            "persisted": persisted,
            "visible": len(self.store.visible_alerts()),
            "changes": changes,
        }
        logger.info(
            f"Alert cycle complete: {stats['candidates']} candidates, {stats['admitted']} admitted, "
            f"{stats['removed']} removed, {stats['visible']} visible"
        )
        return stats

    def wait_for_notifications(self, timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        """Block until the last cycle's notification task is done (CLI and tests)."""
        if self.last_notification is None:
            return None
        return self.last_notification.result(timeout=timeout)

    def send_weekly_digest(self, now: Optional[datetime] = None) -> bool:
        """Send the past week's visible alerts as one digest, if the user opted in."""
        preferences = load_preferences(self.backend)
        return self.delivery.send_weekly_digest(self.store.alerts, self.recipient, preferences, now=now)

    def close(self) -> None:
        self.delivery.shutdown(wait=True)


def load_settings_from_config(config_path: str, **overrides: Any) -> Settings:
    """
    Read Settings from a YAML/JSON config file.

    The ``alerts`` block overrides matching Settings fields, e.g.::

        alerts:
          premium_active: true
          notify_channel: webhook
          webhook_url: https://example.com/hooks/shipments

    Keyword ``overrides`` (e.g. CLI flags) win over the file; None values are ignored.
    """
    import yaml
    from pathlib import Path

    config_file = Path(config_path)

    if config_file.suffix in (".yaml", ".yml"):
        with open(config_file) as f:
            config = yaml.safe_load(f) or {}
    elif config_file.suffix == ".json":
        import json
        with open(config_file) as f:
            config = json.load(f)
    else:
        raise ValueError(f"Unsupported config format: {config_file.suffix}")

    values = dict(config.get("alerts") or {})
    values.update({k: v for k, v in overrides.items() if v is not None})
    return Settings.from_overrides(**values)


def create_orchestrator_from_config(
    config_path: str,
    backend: Optional[KeyValueStore] = None,
) -> AlertOrchestrator:
    """
    Create an AlertOrchestrator from a YAML/JSON config file.

    Args:
        config_path: Path to configuration file (see load_settings_from_config)
        backend: Optional persistence backend override

    Returns:
        Configured AlertOrchestrator instance
    """
    return AlertOrchestrator(backend=backend, settings=load_settings_from_config(config_path))
