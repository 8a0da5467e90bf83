"""
Vehicle data model for the fleet simulator.

One Vehicle per tracked unit. The motion engine never mutates a Vehicle in
place: every tick produces a new instance, sharing the route list with its
predecessor so an externally supplied route survives untouched.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class VehicleStatus(Enum):
    """On-route status derived from speed, position and schedule."""
    ON_TIME = "on-time"
    WARNING = "warning"
    CRITICAL = "critical"


class CargoStatus(Enum):
    FRESH = "Fresh"
    FROZEN = "Frozen"
    MIXED = "Mixed"


class MissingDestination(ValueError):
    """Raised when a vehicle without a destination is asked to move."""

    def __init__(self, vehicle_id: str) -> None:
        super().__init__(f"Vehicle {vehicle_id} has no destination")
        self.vehicle_id = vehicle_id


@dataclass(frozen=True)
class Position:
    """WGS84 latitude/longitude pair."""
    lat: float
    lng: float

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Position":
        return cls(lat=float(d["lat"]), lng=float(d["lng"]))


@dataclass(frozen=True)
class Destination:
    """Final target of a trip, with a human-readable label."""
    lat: float
    lng: float
    address: str = ""

    @property
    def position(self) -> Position:
        return Position(self.lat, self.lng)

    def to_dict(self) -> dict[str, Any]:
        return {"lat": self.lat, "lng": self.lng, "address": self.address}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Destination":
        return cls(lat=float(d["lat"]), lng=float(d["lng"]), address=d.get("address", ""))


@dataclass(frozen=True)
class StatusSnapshot:
    """One entry of a vehicle's rolling status history."""
    timestamp: datetime
    status: VehicleStatus
    speed: float
    position: Position

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "status": self.status.value,
            "speed": self.speed,
            "position": self.position.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "StatusSnapshot":
        return cls(
            timestamp=datetime.fromisoformat(d["timestamp"]),
            status=VehicleStatus(d["status"]),
            speed=float(d["speed"]),
            position=Position.from_dict(d["position"]),
        )


@dataclass
class Vehicle:
    """
    State of one tracked vehicle.

    `status` is derived by the status classifier every tick and should not be
    set by callers. `route` may be empty, meaning the vehicle drives straight
    at its destination.
    """
    vehicle_id: str
    driver_name: str
    position: Position
    destination: Destination | None
    current_speed: float = 0.0
    heading: float = 0.0
    route: list[Position] = field(default_factory=list)
    scheduled_eta: datetime | None = None
    status: VehicleStatus = VehicleStatus.ON_TIME
    status_history: list[StatusSnapshot] = field(default_factory=list)
    last_stop_time: datetime | None = None
    cargo_status: CargoStatus | None = None
    cargo_temperature: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dictionary."""
        return {
            "vehicle_id": self.vehicle_id,
            "driver_name": self.driver_name,
            "position": self.position.to_dict(),
            "destination": self.destination.to_dict() if self.destination else None,
            "current_speed": self.current_speed,
            "heading": self.heading,
            "route": [p.to_dict() for p in self.route],
            "scheduled_eta": self.scheduled_eta.isoformat() if self.scheduled_eta else None,
            "status": self.status.value,
            "status_history": [s.to_dict() for s in self.status_history],
            "last_stop_time": self.last_stop_time.isoformat() if self.last_stop_time else None,
            "cargo_status": self.cargo_status.value if self.cargo_status else None,
            "cargo_temperature": self.cargo_temperature,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Vehicle":
        """Deserialize from dictionary."""
        dest = d.get("destination")
        eta = d.get("scheduled_eta")
        stop = d.get("last_stop_time")
        cargo = d.get("cargo_status")
        return cls(
            vehicle_id=d["vehicle_id"],
            driver_name=d.get("driver_name", ""),
            position=Position.from_dict(d["position"]),
            destination=Destination.from_dict(dest) if dest else None,
            current_speed=float(d.get("current_speed", 0.0)),
            heading=float(d.get("heading", 0.0)),
            route=[Position.from_dict(p) for p in d.get("route", [])],
            scheduled_eta=datetime.fromisoformat(eta) if eta else None,
            status=VehicleStatus(d.get("status", "on-time")),
            status_history=[StatusSnapshot.from_dict(s) for s in d.get("status_history", [])],
            last_stop_time=datetime.fromisoformat(stop) if stop else None,
            cargo_status=CargoStatus(cargo) if cargo else None,
            cargo_temperature=d.get("cargo_temperature"),
        )
