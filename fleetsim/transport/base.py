"""
Transport adapter contract.

After every tick the loop hands each adapter the speed violations that tick
produced, one at a time, followed by a single TickBatch holding the stored
post-tick vehicles and their status reports.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from fleetsim.core.vehicle import Vehicle
from fleetsim.core.violations import ViolationRecord
from fleetsim.simulation.status import StatusReport


def vehicle_payload(vehicle: Vehicle, report: StatusReport | None) -> dict[str, Any]:
    """Vehicle dict with the latest status detail under `status_detail`."""
    data = vehicle.to_dict()
    data["status_detail"] = report.to_dict() if report is not None else None
    return data


@dataclass(frozen=True)
class TickBatch:
    """One tick's worth of vehicle state, ready for delivery."""
    tick: int
    sim_time: datetime
    vehicles: list[Vehicle]
    reports: dict[str, StatusReport] = field(default_factory=dict)

    def payloads(self) -> list[dict[str, Any]]:
        return [vehicle_payload(v, self.reports.get(v.vehicle_id)) for v in self.vehicles]


class TransportAdapter(ABC):
    """Delivers tick batches and speed violations over one protocol."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    async def connect(self) -> None:
        """Start delivering. Adapters without a connection leave this alone."""

    async def disconnect(self) -> None:
        """Stop delivering."""

    @abstractmethod
    async def push_violation(self, violation: ViolationRecord) -> None:
        ...

    @abstractmethod
    async def push_batch(self, batch: TickBatch) -> None:
        ...
