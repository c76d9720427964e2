# SPDX-License-Identifier: MIT
# src/shipment_alerts/alerts/deduplicator.py
"""
Admission filter between candidate alerts and the authoritative alert set.

A candidate is admitted only if no outstanding (non-dismissed) alert already
covers the same (shipment_id, type, title). This is the anti-spam contract:
rules fire on every cycle for as long as their condition holds, and the
deduplicator is what turns that into a single alert.

Dismissed alerts do not block admission. They stay in the stored set until the
retention pass ages them out, see retention.py.
"""
from __future__ import annotations
import logging
from typing import Any, List, Mapping, Sequence, Set, Tuple

from .types import REQUIRED_FIELDS, Alert, DedupKey, dedup_key

logger = logging.getLogger(__name__)


def is_well_formed(alert: Mapping[str, Any]) -> bool:
    return all(alert.get(field) for field in REQUIRED_FIELDS)


class AlertDeduplicator:
    """
    Deduplicates candidate alerts against the outstanding alert set.

    Stateless: the outstanding set is passed in on every call, so the store
    remains the single source of truth.
    """

    def active_keys(self, existing: Sequence[Alert]) -> Set[DedupKey]:
        return {dedup_key(a) for a in existing if not a.get("dismissed")}

    def ingest(
        self,
        candidates: Sequence[Alert],
        existing: Sequence[Alert],
    ) -> Tuple[List[Alert], List[Alert]]:
        """
        Admit candidates that are not already outstanding.

        Args:
            candidates: Alerts produced by the rules this cycle
            existing: Current authoritative alert set (dismissed ones included)

        Returns:
            (admitted, merged) where merged = admitted + existing
        """
        blocked = self.active_keys(existing)
        admitted: List[Alert] = []
        duplicates = 0
        malformed = 0

        for candidate in candidates:
            if not is_well_formed(candidate):
                malformed += 1
                missing = [f for f in REQUIRED_FIELDS if not candidate.get(f)]
                logger.warning(f"Rejected malformed alert candidate (missing {', '.join(missing)})")
                continue

            key = dedup_key(candidate)
            if key in blocked:
                duplicates += 1
                logger.debug(f"Duplicate alert suppressed: {key}")
                continue

            # later candidates in the same batch are deduplicated against this one too
            blocked.add(key)
            admitted.append(candidate)

        logger.info(
            f"Admitted {len(admitted)} of {len(candidates)} candidates "
            f"({duplicates} duplicates, {malformed} malformed)"
        )
        return admitted, admitted + list(existing)
