"""
Per-vehicle motion update.

Advances one vehicle by one tick: perturbs its speed, steers it along its
planned route (or straight at the destination), moves it, handles arrival,
tracks stops, records history, drifts cargo temperature and reclassifies
its status. The input vehicle is never mutated; a new Vehicle is returned
that shares the input's route list.
"""

import dataclasses
import logging
import math
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from fleetsim.config import MotionConfig
from fleetsim.core.vehicle import MissingDestination, Position, StatusSnapshot, Vehicle
from fleetsim.core.violations import ViolationRecord
from fleetsim.movement.geo import (
    bearing_deg, closest_point_index, flat_distance_m, move_position,
)
from fleetsim.simulation.status import StatusReport, as_utc, classify

logger = logging.getLogger(__name__)

DEFAULT_TICK_S = 4.0

# Routes of this many points or fewer are treated as "no route"
MIN_ROUTE_POINTS = 2


class RandomSource(Protocol):
    """Uniform draws. random.Random satisfies this."""

    def random(self) -> float: ...

    def uniform(self, a: float, b: float) -> float: ...


@dataclass(frozen=True)
class MotionResult:
    """Outcome of one vehicle update."""
    vehicle: Vehicle
    report: StatusReport
    violation: ViolationRecord | None = None


@dataclass(frozen=True)
class RouteTarget:
    position: Position
    closest_index: int | None = None
    target_index: int | None = None  # None when steering at the destination


def perturb_speed(speed: float, rng: RandomSource, config: MotionConfig) -> float:
    """Apply traffic, clear-road and highway events, then jitter.

    Returns the raw speed before any clamping.
    """
    if rng.random() < config.traffic_probability:
        speed = max(config.traffic_floor, speed * config.traffic_factor)
    if rng.random() < config.clear_road_probability:
        speed = min(config.clear_road_cap, speed * config.clear_road_factor)
    if rng.random() < config.highway_probability:
        speed = rng.uniform(config.highway_min, config.highway_max)
    speed *= 1.0 + rng.uniform(-config.jitter_pct, config.jitter_pct)
    return speed


def clamp_speed(raw_speed: float, config: MotionConfig) -> tuple[float, bool]:
    """Clamp a raw speed. Returns (speed, exceeded_limit).

    Above the hard limit the speed is capped at the limit; otherwise it is
    held inside the normal band.
    """
    if raw_speed > config.speed_limit:
        return config.speed_limit, True
    speed = max(config.normal_min_speed, min(config.normal_max_speed, raw_speed))
    return min(speed, config.speed_limit), False


def choose_target(vehicle: Vehicle) -> RouteTarget:
    """Pick the point to steer at this tick.

    With a usable route, target the waypoint after the closest one, never
    further ahead, so the vehicle traces the route. Past the last waypoint
    (or without a usable route) steer at the destination.
    """
    dest = vehicle.destination.position
    route = vehicle.route
    if len(route) <= MIN_ROUTE_POINTS:
        return RouteTarget(position=dest)

    closest = closest_point_index(vehicle.position, route)
    if closest >= len(route) - 1:
        return RouteTarget(position=dest, closest_index=closest)
    return RouteTarget(
        position=route[closest + 1], closest_index=closest, target_index=closest + 1,
    )


def _sanitize_speed(speed: float, config: MotionConfig) -> float:
    if not math.isfinite(speed):
        return 0.0
    return max(0.0, min(config.speed_limit, speed))


def _append_history(
    history: list[StatusSnapshot], snapshot: StatusSnapshot, limit: int,
) -> list[StatusSnapshot]:
    if limit <= 0:
        return []
    return (history + [snapshot])[-limit:]


def update_vehicle(
    vehicle: Vehicle,
    dt: float = DEFAULT_TICK_S,
    rng: RandomSource | None = None,
    now: datetime | None = None,
    config: MotionConfig | None = None,
) -> MotionResult:
    """Advance one vehicle by dt seconds.

    Raises MissingDestination if the vehicle has no destination.
    """
    if vehicle.destination is None:
        raise MissingDestination(vehicle.vehicle_id)

    cfg = config or MotionConfig()
    rng = rng or random.Random()
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)
    dt = dt if math.isfinite(dt) and dt > 0 else 0.0

    prior_speed = _sanitize_speed(vehicle.current_speed, cfg)
    destination = vehicle.destination.position

    # 1. Speed
    raw_speed = perturb_speed(prior_speed, rng, cfg)
    new_speed, exceeded = clamp_speed(raw_speed, cfg)
    violation = None
    if exceeded:
        violation = ViolationRecord(
            vehicle_id=vehicle.vehicle_id,
            observed_speed=raw_speed,
            limit=cfg.speed_limit,
            timestamp=now,
        )

    # 2. Distance covered this tick, at the speed held during it
    distance_km = prior_speed * (dt / 3600.0)

    # 3. Direction
    target = choose_target(vehicle)
    heading = bearing_deg(vehicle.position, target.position)
    if target.target_index is not None:
        logger.debug(
            f"{vehicle.vehicle_id} following route: point "
            f"{target.closest_index}/{len(vehicle.route)} -> {target.target_index}, "
            f"heading {heading:.0f}"
        )
    elif target.closest_index is None:
        logger.debug(
            f"{vehicle.vehicle_id} no usable route ({len(vehicle.route)} points), "
            f"heading {heading:.0f} direct to destination"
        )

    # 4. Position
    new_position = move_position(vehicle.position, distance_km, heading)

    # 5. Arrival
    remaining_m = flat_distance_m(new_position, destination)
    if remaining_m < cfg.slowdown_radius_m:
        new_speed = min(new_speed, cfg.slowdown_speed)
    if remaining_m < cfg.arrival_radius_m:
        new_position = destination
        new_speed = 0.0

    # 6. Stops
    last_stop = vehicle.last_stop_time
    if new_speed < cfg.stationary_speed:
        if last_stop is None:
            last_stop = now
    else:
        last_stop = None

    # 7. History records the state as it was before this tick
    snapshot = StatusSnapshot(
        timestamp=now,
        status=vehicle.status,
        speed=prior_speed,
        position=vehicle.position,
    )
    history = _append_history(vehicle.status_history, snapshot, cfg.history_limit)

    # 8. Cargo temperature
    temperature = vehicle.cargo_temperature
    if temperature is not None:
        temperature += rng.uniform(-cfg.temperature_drift, cfg.temperature_drift)
        temperature = max(cfg.temperature_min, min(cfg.temperature_max, temperature))

    updated = dataclasses.replace(
        vehicle,
        position=new_position,
        current_speed=new_speed,
        heading=heading,
        last_stop_time=last_stop,
        status_history=history,
        cargo_temperature=temperature,
    )

    # 9. Status
    report = classify(updated, now, cfg)
    updated.status = report.status

    return MotionResult(vehicle=updated, report=report, violation=violation)
