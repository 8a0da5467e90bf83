"""
Fleet bootstrap.

Builds the demo fleet scattered around a city centre, and single vehicles
for trips that start at a pickup and end at a delivery address.
"""

import logging
import random
from datetime import datetime, timedelta

from fleetsim.config import SimulatorConfig
from fleetsim.core.vehicle import CargoStatus, Destination, Position, Vehicle
from fleetsim.movement.geo import bearing_deg, geodesic_km

logger = logging.getLogger(__name__)

DRIVER_NAMES = [
    "Jesse Pinkman", "Saul Goodman", "Hank Schrader", "Skyler White",
    "Mike Ehrmantraut", "Walter White", "Badger Mayhew", "Combo Ortega",
    "Huell Babineaux", "Kuby Patrick", "Tyrus Kitt", "Victor Santiago",
]

DISTRICTS = [
    "MG Road", "Koramangala", "Indiranagar", "Whitefield", "Electronic City",
    "Jayanagar", "HSR Layout", "Marathahalli", "BTM Layout", "Yelahanka",
    "JP Nagar", "Banashankari",
]

CITY_SUFFIX = "Bangalore, Karnataka"

INITIAL_SPEED_RANGE = (30.0, 60.0)    # km/h, city traffic
PLANNED_AVG_SPEED = (35.0, 45.0)      # km/h, used to schedule ETAs
REEFER_TEMPERATURE = (2.0, 6.0)       # degrees C for chilled cargo


def random_position(rng: random.Random, center: tuple[float, float], spread_deg: float) -> Position:
    """Uniform point in a square of side spread_deg around center."""
    return Position(
        lat=center[0] + (rng.random() - 0.5) * spread_deg,
        lng=center[1] + (rng.random() - 0.5) * spread_deg,
    )


def random_destination(
    rng: random.Random, center: tuple[float, float], spread_deg: float,
) -> Destination:
    pos = random_position(rng, center, spread_deg)
    district = rng.choice(DISTRICTS)
    return Destination(lat=pos.lat, lng=pos.lng, address=f"{district}, {CITY_SUFFIX}")


def scheduled_eta_for(
    origin: Position, destination: Position, avg_speed_kmh: float, now: datetime,
) -> datetime:
    """Schedule an arrival assuming avg_speed_kmh over the geodesic distance."""
    distance_km = geodesic_km(origin, destination)
    return now + timedelta(hours=distance_km / avg_speed_kmh)


def create_initial_fleet(
    rng: random.Random, now: datetime, config: SimulatorConfig | None = None,
) -> list[Vehicle]:
    """Create the demo fleet: vehicles v1..vN with random trips around the centre."""
    cfg = config or SimulatorConfig()
    vehicles = []
    for i in range(cfg.fleet_size):
        position = random_position(rng, cfg.center, cfg.spread_deg)
        destination = random_destination(rng, cfg.center, cfg.spread_deg)
        speed = min(cfg.motion.speed_limit, rng.uniform(*INITIAL_SPEED_RANGE))
        eta = scheduled_eta_for(
            position, destination.position, rng.uniform(*PLANNED_AVG_SPEED), now,
        )
        cargo = rng.choice(list(CargoStatus))
        temperature = None
        if cargo != CargoStatus.FRESH:
            temperature = rng.uniform(*REEFER_TEMPERATURE)

        vehicles.append(Vehicle(
            vehicle_id=f"v{i + 1}",
            driver_name=DRIVER_NAMES[i % len(DRIVER_NAMES)],
            position=position,
            destination=destination,
            current_speed=speed,
            heading=bearing_deg(position, destination.position),
            scheduled_eta=eta,
            cargo_status=cargo,
            cargo_temperature=temperature,
        ))

    logger.info(f"Created fleet of {len(vehicles)} vehicles around {cfg.center}")
    return vehicles


def start_trip(
    vehicle_id: str,
    driver_name: str,
    pickup: Position,
    delivery: Destination,
    scheduled_eta: datetime | None = None,
    speed: float = 0.0,
    cargo_status: CargoStatus | None = None,
    cargo_temperature: float | None = None,
) -> Vehicle:
    """Vehicle for a job that has just started at its pickup point."""
    return Vehicle(
        vehicle_id=vehicle_id,
        driver_name=driver_name,
        position=pickup,
        destination=delivery,
        current_speed=max(0.0, speed),
        heading=bearing_deg(pickup, delivery.position),
        scheduled_eta=scheduled_eta,
        cargo_status=cargo_status,
        cargo_temperature=cargo_temperature,
    )
