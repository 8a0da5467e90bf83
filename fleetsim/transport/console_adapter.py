"""
Debug transport adapter that prints vehicle lines to stdout.

Rate-limited per vehicle to avoid flooding the console. Speed violations
are always printed.
"""

import time

from fleetsim.core.vehicle import Vehicle
from fleetsim.core.violations import ViolationRecord
from fleetsim.simulation.status import StatusReport
from fleetsim.transport.base import TickBatch, TransportAdapter


class ConsoleAdapter(TransportAdapter):
    """Prints vehicle lines and speed violations to the console."""

    def __init__(self, min_interval: float = 5.0) -> None:
        """
        Args:
            min_interval: Minimum seconds between prints for the same vehicle.
        """
        self._min_interval = min_interval
        self._last_print: dict[str, float] = {}

    @property
    def name(self) -> str:
        return "console"

    async def connect(self) -> None:
        print("[CONSOLE] Transport adapter connected")

    async def disconnect(self) -> None:
        print("[CONSOLE] Transport adapter disconnected")

    async def push_batch(self, batch: TickBatch) -> None:
        now = time.monotonic()
        for vehicle in batch.vehicles:
            last = self._last_print.get(vehicle.vehicle_id)
            if last is not None and now - last < self._min_interval:
                continue
            self._last_print[vehicle.vehicle_id] = now
            print(self._format(vehicle, batch.reports.get(vehicle.vehicle_id)))

    async def push_violation(self, violation: ViolationRecord) -> None:
        print(
            f"[{violation.timestamp.isoformat()}] SPEED VIOLATION "
            f"{violation.vehicle_id}: {violation.observed_speed:.1f} km/h "
            f"> {violation.limit:.0f} km/h"
        )

    @staticmethod
    def _format(vehicle: Vehicle, report: StatusReport | None) -> str:
        pos = vehicle.position
        dest = vehicle.destination.address if vehicle.destination else "-"
        line = (
            f"{vehicle.vehicle_id:<5} {vehicle.driver_name:<18} "
            f"@ ({pos.lat:8.4f}, {pos.lng:8.4f}) "
            f"HDG {vehicle.heading:5.1f} "
            f"SPD {vehicle.current_speed:5.1f}km/h "
            f"{vehicle.status.value:<8} -> {dest}"
        )
        if report is not None and report.eta_difference_minutes is not None:
            line += f" (ETA {report.eta_difference_minutes:+.1f}m)"
        return line
