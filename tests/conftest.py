# Ensure `src/` is on sys.path so tests can import `shipment_alerts` without requiring editable install
import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

HERE = os.path.dirname(__file__)
SRC = os.path.abspath(os.path.join(HERE, "..", "src"))
if os.path.isdir(SRC) and SRC not in sys.path:
    sys.path.insert(0, SRC)


NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def shipment_factory(now):
    """Build a shipment dict; recently updated and in transit unless overridden."""
    counter = {"n": 0}

    def make(**overrides):
        counter["n"] += 1
        shipment = {
            "shipment_id": f"ship_{counter['n']}",
            "tracking_number": f"1Z999AA1012345678{counter['n']}",
            "carrier": "ups",
            "nickname": "",
            "status": "in_transit",
            "estimated_delivery": (now + timedelta(days=2)).isoformat(),
            "actual_delivery": None,
            "last_updated": (now - timedelta(hours=1)).isoformat(),
            "historical_statuses": [
                {"status": "in_transit", "timestamp": (now - timedelta(hours=1)).isoformat(),
                 "location": "Louisville, KY", "description": "Departed facility"},
            ],
        }
        shipment.update(overrides)
        return shipment

    return make


@pytest.fixture
def alert_factory(now):
    """Build a stored alert dict attached to ``shipment_id``."""
    counter = {"n": 0}

    def make(shipment_id="ship_1", **overrides):
        counter["n"] += 1
        alert = {
            "id": f"alert_test_{counter['n']}",
            "type": "warning",
            "priority": "high",
            "title": "Shipment Delayed",
            "message": "UPS Package is 1 day(s) overdue",
            "icon": "⚠️",
            "timestamp": now.isoformat(),
            "shipment_id": shipment_id,
            "tracking_number": "1Z999AA10123456781",
            "dismissed": False,
            "read": False,
            "metadata": {"carrier": "ups", "status": "in_transit", "kind": "delay_detected"},
        }
        alert.update(overrides)
        return alert

    return make
