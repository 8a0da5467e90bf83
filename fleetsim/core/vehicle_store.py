"""
Thread-safe in-memory vehicle store.

Central registry of all tracked vehicles. The tick loop is the only writer
of motion state and swaps a whole post-tick batch in at once, so readers
always see a consistent snapshot. Route producers replace individual
routes between ticks.
"""

import dataclasses
import threading

from fleetsim.core.vehicle import Position, Vehicle, VehicleStatus


class VehicleStore:
    """
    In-memory store for all tracked vehicles.

    Thread-safe via threading.Lock. Readers get list copies; writers
    swap in a fresh dict so an in-flight reader is never disturbed.
    """

    def __init__(self) -> None:
        self._vehicles: dict[str, Vehicle] = {}
        self._lock = threading.Lock()

    def add_vehicle(self, vehicle: Vehicle) -> None:
        """Add a new vehicle. Raises ValueError if vehicle_id already exists."""
        with self._lock:
            if vehicle.vehicle_id in self._vehicles:
                raise ValueError(f"Vehicle {vehicle.vehicle_id} already exists")
            self._vehicles[vehicle.vehicle_id] = vehicle

    def replace_all(self, vehicles: list[Vehicle]) -> None:
        """Swap in a post-tick batch.

        Only vehicles still present are replaced, so a vehicle removed while
        the tick was running stays removed. A route written while the tick
        was running wins over the route the tick started from.
        """
        with self._lock:
            fresh = dict(self._vehicles)
            for v in vehicles:
                current = fresh.get(v.vehicle_id)
                if current is None:
                    continue
                if current.route is not v.route:
                    v = dataclasses.replace(v, route=current.route)
                fresh[v.vehicle_id] = v
            self._vehicles = fresh

    def set_route(self, vehicle_id: str, route: list[Position]) -> None:
        """Replace a vehicle's planned route. Raises KeyError if not found."""
        with self._lock:
            current = self._vehicles.get(vehicle_id)
            if current is None:
                raise KeyError(f"Vehicle {vehicle_id} not found")
            updated = dataclasses.replace(current, route=list(route))
            self._vehicles[vehicle_id] = updated

    def get_vehicle(self, vehicle_id: str) -> Vehicle | None:
        """Get vehicle by ID, or None if not found."""
        with self._lock:
            return self._vehicles.get(vehicle_id)

    def get_all_vehicles(self) -> list[Vehicle]:
        """Get all vehicles."""
        with self._lock:
            return list(self._vehicles.values())

    def get_vehicles_by_status(self, status: VehicleStatus) -> list[Vehicle]:
        """Get all vehicles currently classified with the given status."""
        with self._lock:
            return [v for v in self._vehicles.values() if v.status == status]

    def get_vehicles_without_route(self) -> list[Vehicle]:
        with self._lock:
            return [
                v for v in self._vehicles.values()
                if not v.route and v.destination is not None
            ]

    def remove_vehicle(self, vehicle_id: str) -> None:
        """Remove a vehicle by ID. Raises KeyError if not found."""
        with self._lock:
            if vehicle_id not in self._vehicles:
                raise KeyError(f"Vehicle {vehicle_id} not found")
            fresh = dict(self._vehicles)
            del fresh[vehicle_id]
            self._vehicles = fresh

    @property
    def count(self) -> int:
        """Number of vehicles in the store."""
        with self._lock:
            return len(self._vehicles)
