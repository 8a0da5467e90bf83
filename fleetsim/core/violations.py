"""
Speed-violation records and the log that exposes them.

A violation is raised whenever a vehicle's raw computed speed exceeds the
hard limit before clamping. The log keeps a bounded window of recent
records for queries.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViolationRecord:
    """A single speed-limit violation."""
    vehicle_id: str
    observed_speed: float
    limit: float
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "speed_violation",
            "vehicle_id": self.vehicle_id,
            "observed_speed": round(self.observed_speed, 2),
            "limit": self.limit,
            "timestamp": self.timestamp.isoformat(),
        }


class ViolationLog:
    """Thread-safe bounded log of speed violations."""

    def __init__(self, max_records: int = 1000) -> None:
        self._records: deque[ViolationRecord] = deque(maxlen=max_records)
        self._lock = threading.Lock()
        self._total = 0

    def record(self, violation: ViolationRecord) -> None:
        """Store a violation and log it at WARNING."""
        with self._lock:
            self._records.append(violation)
            self._total += 1
        logger.warning(
            f"SPEED VIOLATION: {violation.vehicle_id} "
            f"{violation.observed_speed:.1f} km/h > {violation.limit:.0f} km/h "
            f"at {violation.timestamp.isoformat()}"
        )

    def get_recent(
        self, limit: int | None = None, vehicle_id: str | None = None,
    ) -> list[ViolationRecord]:
        """Most recent violations, oldest first, optionally for one vehicle."""
        with self._lock:
            records = list(self._records)
        if vehicle_id is not None:
            records = [r for r in records if r.vehicle_id == vehicle_id]
        if limit is not None:
            records = records[-limit:] if limit > 0 else []
        return records

    @property
    def count(self) -> int:
        """Total violations recorded since creation, including evicted ones."""
        with self._lock:
            return self._total
