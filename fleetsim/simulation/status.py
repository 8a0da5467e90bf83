"""
On-route status classification.

Pure function of a vehicle's current fields: compares projected arrival
against the scheduled ETA and flags stalled vehicles.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from fleetsim.config import MotionConfig
from fleetsim.core.vehicle import Vehicle, VehicleStatus
from fleetsim.movement.geo import geodesic_km

# Projected ETA for a vehicle that is not moving
INDEFINITE_ETA = timedelta(days=365)


def as_utc(moment: datetime) -> datetime:
    """Treat a naive datetime as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass(frozen=True)
class StatusReport:
    status: VehicleStatus
    remaining_distance_km: float
    projected_eta: datetime
    required_average_speed: float | None = None
    eta_difference_minutes: float | None = None
    stalled_minutes: float | None = None

    def to_dict(self) -> dict[str, Any]:
        required = self.required_average_speed
        if required is not None and math.isinf(required):
            required = None
        return {
            "status": self.status.value,
            "remaining_distance_km": round(self.remaining_distance_km, 3),
            "projected_eta": self.projected_eta.isoformat(),
            "required_average_speed": round(required, 1) if required is not None else None,
            "eta_difference_minutes": (
                round(self.eta_difference_minutes, 1)
                if self.eta_difference_minutes is not None else None
            ),
            "stalled_minutes": (
                round(self.stalled_minutes, 1) if self.stalled_minutes is not None else None
            ),
        }


def required_average_speed(
    remaining_km: float, scheduled_eta: datetime, now: datetime,
) -> float:
    """Speed in km/h needed to cover remaining_km before scheduled_eta.

    Infinite once the ETA has passed with distance still to go.
    """
    if remaining_km <= 0:
        return 0.0
    hours_left = (scheduled_eta - now).total_seconds() / 3600.0
    if hours_left <= 0:
        return math.inf
    return remaining_km / hours_left


def projected_eta(remaining_km: float, speed_kmh: float, now: datetime) -> datetime:
    if remaining_km <= 0:
        return now
    if speed_kmh <= 0:
        return now + INDEFINITE_ETA
    return now + timedelta(hours=remaining_km / speed_kmh)


def classify(
    vehicle: Vehicle, now: datetime, config: MotionConfig | None = None,
) -> StatusReport:
    """Classify a vehicle as on-time, warning or critical.

    critical: below stall speed with a stop recorded more than
    stall_minutes ago. warning: a schedule exists and the vehicle is slower
    than the average speed it needs to make it. on-time otherwise.
    """
    cfg = config or MotionConfig()
    now = as_utc(now)
    if vehicle.destination is None:
        remaining_km = 0.0
    else:
        remaining_km = geodesic_km(vehicle.position, vehicle.destination.position)

    speed = vehicle.current_speed
    eta = projected_eta(remaining_km, speed, now)

    required = None
    difference = None
    if vehicle.scheduled_eta is not None:
        scheduled = as_utc(vehicle.scheduled_eta)
        required = required_average_speed(remaining_km, scheduled, now)
        difference = (eta - scheduled).total_seconds() / 60.0

    stalled = None
    if vehicle.last_stop_time is not None:
        stalled = (now - as_utc(vehicle.last_stop_time)).total_seconds() / 60.0

    if speed < cfg.stall_speed and stalled is not None and stalled > cfg.stall_minutes:
        status = VehicleStatus.CRITICAL
    elif required is not None and speed < required:
        status = VehicleStatus.WARNING
    else:
        status = VehicleStatus.ON_TIME

    return StatusReport(
        status=status,
        remaining_distance_km=remaining_km,
        projected_eta=eta,
        required_average_speed=required,
        eta_difference_minutes=difference,
        stalled_minutes=stalled,
    )
