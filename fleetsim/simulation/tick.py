"""
Batch tick driver.

Applies the per-vehicle motion update to every vehicle independently. A
failure in one vehicle's update is logged and that vehicle passes through
unchanged; the rest of the batch still advances.
"""

import logging
import math
import random
from datetime import datetime, timezone
from typing import Callable

from fleetsim.config import MotionConfig
from fleetsim.core.vehicle import MissingDestination, Vehicle
from fleetsim.core.violations import ViolationRecord
from fleetsim.simulation.motion import DEFAULT_TICK_S, RandomSource, update_vehicle
from fleetsim.simulation.status import StatusReport

logger = logging.getLogger(__name__)


def advance(
    vehicles: list[Vehicle],
    tick_seconds: float = DEFAULT_TICK_S,
    rng: RandomSource | None = None,
    now: datetime | None = None,
    config: MotionConfig | None = None,
    on_violation: Callable[[ViolationRecord], None] | None = None,
    on_report: Callable[[str, StatusReport], None] | None = None,
) -> list[Vehicle]:
    """Advance every vehicle by one tick. Output order matches input order.

    on_report receives (vehicle_id, report) for each vehicle that updated;
    on_violation receives each speed violation. Both run after the batch.
    """
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)
    cfg = config or MotionConfig()
    if not math.isfinite(tick_seconds) or tick_seconds < 0:
        tick_seconds = 0.0

    updated: list[Vehicle] = []
    violations: list[ViolationRecord] = []
    reports: list[tuple[str, StatusReport]] = []
    for vehicle in vehicles:
        try:
            result = update_vehicle(vehicle, tick_seconds, rng=rng, now=now, config=cfg)
        except MissingDestination as e:
            logger.error(f"Skipping update: {e}")
            updated.append(vehicle)
            continue
        except Exception as e:
            logger.error(f"Update failed for {vehicle.vehicle_id}: {e}", exc_info=True)
            updated.append(vehicle)
            continue

        updated.append(result.vehicle)
        reports.append((vehicle.vehicle_id, result.report))
        if result.violation is not None:
            violations.append(result.violation)

    if on_violation is not None:
        for violation in violations:
            try:
                on_violation(violation)
            except Exception as e:
                logger.warning(f"Violation listener failed for {violation.vehicle_id}: {e}")

    if on_report is not None:
        for vehicle_id, report in reports:
            try:
                on_report(vehicle_id, report)
            except Exception as e:
                logger.warning(f"Report listener failed for {vehicle_id}: {e}")

    return updated
