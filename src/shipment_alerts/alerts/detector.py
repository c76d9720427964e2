# SPDX-License-Identifier: MIT
# src/shipment_alerts/alerts/detector.py
"""
Alert detection across a shipment collection.
"""
from __future__ import annotations
import logging
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Union

from shipment_alerts.shipments.models import Shipment
from shipment_alerts.utils.dates import utcnow
from .rules import derive_alerts
from .types import Alert

logger = logging.getLogger(__name__)

FeatureGate = Union[bool, Callable[[], bool]]


class ShipmentAlertDetector:
    """
    Runs the alert rules over every shipment of a collection.

    The premium gate is supplied by the caller (subscription state lives outside
    this package). It may be a plain bool or a zero-argument callable; a callable
    is consulted once per shipment evaluation.
    """

    def __init__(self, premium_gate: FeatureGate = False):
        """
        Args:
            premium_gate: bool or callable deciding whether pattern rules run
        """
        self.premium_gate = premium_gate

    def _premium_active(self) -> bool:
        gate = self.premium_gate
        if callable(gate):
            try:
                return bool(gate())
            except Exception as e:
                logger.error(f"Premium gate check failed, treating as inactive: {e}", exc_info=True)
                return False
        return bool(gate)

    def detect_alerts(
        self,
        shipments: Sequence[Shipment],
        previous: Mapping[str, Optional[str]],
        now: Optional[datetime] = None,
    ) -> List[Alert]:
        """
        Evaluate each shipment and return all candidate alerts.

        Args:
            shipments: Current shipment collection
            previous: shipment_id -> status on the previous cycle (see change_detector)
            now: Evaluation time shared by every shipment in this pass

        Returns:
            Candidate alerts across all shipments
        """
        now = now or utcnow()
        candidates: List[Alert] = []
        failed = 0
        kinds: Dict[str, int] = {}

        for shipment in shipments:
            shipment_id = shipment.get("shipment_id")
            try:
                found = derive_alerts(
                    shipment,
                    previous_status=previous.get(shipment_id),
                    premium_active=self._premium_active(),
                    now=now,
                )
            except Exception as e:
                failed += 1
                logger.error(f"Error evaluating shipment {shipment_id or 'unknown'}: {e}", exc_info=True)
                continue

            for alert in found:
                kind = alert["metadata"]["kind"]
                kinds[kind] = kinds.get(kind, 0) + 1
            candidates.extend(found)

        logger.info(
            f"Detected {len(candidates)} candidate alerts from {len(shipments)} shipments"
            + (f" ({failed} failed)" if failed else "")
        )
        if kinds:
            logger.debug(f"Candidates by kind: {kinds}")
        return candidates
