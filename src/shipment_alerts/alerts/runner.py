#!/usr/bin/env python3
"""
Canonical CLI to run the shipment alert cycle and manage stored alerts.

Shipment snapshots come from the tracking data source as a JSON file, either a
bare list of shipments or an object with a "shipments" list.

Usage examples:
  # Run one cycle on a snapshot, wait for notifications before exiting
  shipment-alerts --shipments snapshot.json --wait

  # Show what would be admitted, without storing or notifying
  shipment-alerts --shipments snapshot.json --dry-run --premium

  # Manage alerts
  shipment-alerts --list
  shipment-alerts --dismiss alert_1718000000000_ab12cd34
  shipment-alerts --export backup.json

  # Weekly digest (honours the weekly_digest preference)
  shipment-alerts --weekly-digest
"""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from shipment_alerts.config import Settings
from shipment_alerts.export import export_all, export_shipments_csv, import_all
from shipment_alerts.storage import JsonFileStore
from shipment_alerts.alerts.orchestration import AlertOrchestrator, load_settings_from_config

logger = logging.getLogger(__name__)


def load_snapshot(path: str) -> List[Dict[str, Any]]:
    """Read a shipment snapshot file (list, or {"shipments": [...]})."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("shipments", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of shipments")
    return [s for s in data if isinstance(s, dict)]


def build_orchestrator(args: argparse.Namespace) -> AlertOrchestrator:
    overrides = {
        "data_dir": args.data_dir,
        "premium_active": True if args.premium else None,
        "notify_recipient": args.recipient,
    }
    if args.config:
        settings = load_settings_from_config(args.config, **overrides)
    else:
        settings = Settings.from_overrides(**overrides)
    return AlertOrchestrator(backend=JsonFileStore(settings.data_dir), settings=settings)


def print_alerts(orch: AlertOrchestrator) -> None:
    visible = orch.store.visible_alerts()
    if not visible:
        print("No active alerts.")
        return
    for alert in visible:
        flag = " " if alert.get("read") else "*"
        print(f"{flag} [{alert.get('priority', '?'):6}] {alert.get('id')}  {alert.get('title')}: {alert.get('message')}")
    counts = orch.store.get_alert_counts()
    print(f"\n{counts['total']} alerts ({counts['unread']} unread; high={counts['high']} "
          f"medium={counts['medium']} low={counts['low']})")


def main(argv: Optional[List[str]] = None) -> None:
    p = argparse.ArgumentParser(description="Derive, store and notify shipment alerts")
    p.add_argument("--shipments", help="Shipment snapshot JSON to run one alert cycle on")
    p.add_argument("--previous", help="Previous snapshot JSON (default: last stored snapshot)")
    p.add_argument("--dry-run", action="store_true", help="Show alerts that would be admitted; change nothing")
    p.add_argument("--premium", action="store_true", help="Enable premium pattern detection")
    p.add_argument("--recipient", help="Notification recipient")
    p.add_argument("--wait", action="store_true", help="Wait for notifications to finish before exiting")
    p.add_argument("--weekly-digest", action="store_true", help="Send the weekly digest of the past 7 days' alerts")
    p.add_argument("--list", action="store_true", help="List active alerts")
    p.add_argument("--dismiss", metavar="ALERT_ID", help="Dismiss an alert")
    p.add_argument("--mark-read", metavar="ALERT_ID", help="Mark an alert as read")
    p.add_argument("--clear", action="store_true", help="Remove all alerts")
    p.add_argument("--export", metavar="FILE", help="Export shipments, alerts and preferences to JSON")
    p.add_argument("--import", dest="import_file", metavar="FILE", help="Import a JSON export")
    p.add_argument("--export-csv", metavar="FILE", help="Export stored shipments to CSV")
    p.add_argument("--data-dir", help="State directory (default: $SHIPMENT_ALERTS_DATA_DIR)")
    p.add_argument("--config", help="YAML/JSON config file with an 'alerts' block")

    args = p.parse_args(argv)

    orch = build_orchestrator(args)
    logging.basicConfig(level=orch.settings.log_level, format='%(asctime)s - %(levelname)s - %(message)s')

    try:
        if args.import_file:
            raw = Path(args.import_file).read_text(encoding="utf-8")
            if not import_all(raw, orch.backend):
                p.exit(1, f"Import of {args.import_file} failed\n")
            # reload state written behind the orchestrator's back
            orch.close()
            orch = build_orchestrator(args)

        removed = orch.prune()
        if removed:
            logger.info(f"Start-up cleanup removed {removed} outdated alerts")

        if args.shipments:
            shipments = load_snapshot(args.shipments)
            previous = load_snapshot(args.previous) if args.previous else None
            if args.dry_run:
                preview = orch.preview(shipments, previous=previous)
                logger.info(f"✓ {len(preview)} alerts would be admitted (dry run)")
                for alert in preview:
                    print(f"[{alert['priority']:6}] {alert['title']}: {alert['message']}")
            else:
                stats = orch.process_shipments(shipments, previous=previous)
                logger.info("%s", "=" * 60)
                logger.info("Summary: shipments=%s candidates=%s admitted=%s removed=%s persisted=%s",
                            stats["shipments_processed"], stats["candidates"], stats["admitted"],
                            stats["removed"], stats["persisted"])
                logger.info("%s", "=" * 60)
                if args.wait:
                    result = orch.wait_for_notifications()
                    if result:
                        logger.info(f"Notifications: sent={result['sent']} failed={result['failed']}")

        if args.dismiss and not orch.store.dismiss(args.dismiss):
            logger.warning(f"No alert with id {args.dismiss}")
        if args.mark_read and not orch.store.mark_read(args.mark_read):
            logger.warning(f"No alert with id {args.mark_read}")
        if args.clear:
            orch.store.clear_all()

        if args.weekly_digest:
            if orch.send_weekly_digest():
                logger.info(f"Weekly digest sent to {orch.recipient}")
            else:
                logger.info("Weekly digest not sent (disabled or nothing to report)")

        if args.export:
            Path(args.export).write_text(export_all(orch.backend), encoding="utf-8")
            logger.info(f"Exported state to {args.export}")
        if args.export_csv:
            Path(args.export_csv).write_text(export_shipments_csv(orch.shipment_store.load()), encoding="utf-8")
            logger.info(f"Exported shipments to {args.export_csv}")

        if args.list:
            print_alerts(orch)
    finally:
        orch.close()


if __name__ == "__main__":
    main()
