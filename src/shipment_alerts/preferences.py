# SPDX-License-Identifier: MIT
# src/shipment_alerts/preferences.py
"""
User notification preferences.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, asdict, fields
from typing import Any, Dict, Mapping

from shipment_alerts.storage import KeyValueStore, PREFERENCES_KEY

logger = logging.getLogger(__name__)

# camelCase keys written by the browser version of the app
_LEGACY_KEYS = {
    "emailNotifications": "email_notifications",
    "delayAlerts": "delay_alerts",
    "deliveryAlerts": "delivery_alerts",
    "weeklyDigest": "weekly_digest",
}


@dataclass(frozen=True)
class UserPreferences:
    email_notifications: bool = True
    delay_alerts: bool = True
    delivery_alerts: bool = True
    weekly_digest: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "UserPreferences":
        names = {f.name for f in fields(UserPreferences)}
        values = {}
        for key, value in (data or {}).items():
            key = _LEGACY_KEYS.get(key, key)
            if key in names and value is not None:
                values[key] = bool(value)
        return UserPreferences(**values)


def load_preferences(backend: KeyValueStore) -> UserPreferences:
    data = backend.load(PREFERENCES_KEY, None)
    if not isinstance(data, dict):
        if data is not None:
            logger.warning("Ignoring malformed preferences record, using defaults")
        return UserPreferences()
    return UserPreferences.from_dict(data)


def save_preferences(backend: KeyValueStore, preferences: UserPreferences) -> bool:
    ok = backend.save(PREFERENCES_KEY, preferences.to_dict())
    if not ok:
        logger.error("Failed to persist user preferences")
    return ok
