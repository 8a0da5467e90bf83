"""
Owned tick loop.

One asyncio task drives one batch update per tick interval. Each tick reads
a snapshot of the store, advances it, swaps the result back in as a whole,
records speed violations and publishes the batch, with each vehicle's
status report, to the transports. stop() waits for the task to finish, so
a tick is never left half applied.
"""

import asyncio
import logging
import random
from datetime import datetime

from fleetsim.config import SimulatorConfig
from fleetsim.core.clock import SimulationClock
from fleetsim.core.vehicle_store import VehicleStore
from fleetsim.core.violations import ViolationLog, ViolationRecord
from fleetsim.simulation.motion import RandomSource
from fleetsim.simulation.status import StatusReport
from fleetsim.simulation.tick import advance
from fleetsim.transport.base import TickBatch
from fleetsim.transport.registry import TransportRegistry

logger = logging.getLogger(__name__)

STATUS_LOG_EVERY = 30


class TickLoop:
    """Scheduler handle for the simulation. Owned and controlled by the host."""

    def __init__(
        self,
        store: VehicleStore,
        clock: SimulationClock,
        config: SimulatorConfig | None = None,
        violation_log: ViolationLog | None = None,
        transports: TransportRegistry | None = None,
        rng: RandomSource | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._config = config or SimulatorConfig()
        self._violations = violation_log or ViolationLog()
        self._transports = transports
        self._rng = rng or random.Random(self._config.seed)
        self._task: asyncio.Task | None = None
        self._stop = asyncio.Event()
        self._tick_count = 0
        self._last_tick_time: datetime | None = None

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def violation_log(self) -> ViolationLog:
        return self._violations

    @property
    def last_tick_time(self) -> datetime | None:
        return self._last_tick_time

    async def run_once(self) -> list[ViolationRecord]:
        """Perform exactly one tick. Returns the violations it produced."""
        dt = self._config.tick_interval_s
        if self._clock.is_fixed_step:
            now = self._clock.step(dt)
        else:
            now = self._clock.get_sim_time()
        # Effective sim seconds this tick, honouring the clock multiplier
        tick_seconds = dt * self._clock.speed

        produced: list[ViolationRecord] = []
        reports: dict[str, StatusReport] = {}
        snapshot = self._store.get_all_vehicles()
        updated = advance(
            snapshot,
            tick_seconds=tick_seconds,
            rng=self._rng,
            now=now,
            config=self._config.motion,
            on_violation=produced.append,
            on_report=reports.__setitem__,
        )
        self._store.replace_all(updated)
        self._tick_count += 1
        self._last_tick_time = now

        for violation in produced:
            self._violations.record(violation)

        if self._transports is not None:
            batch = TickBatch(
                tick=self._tick_count,
                sim_time=now,
                vehicles=self._store.get_all_vehicles(),
                reports=reports,
            )
            await self._transports.publish(batch, produced)

        if self._tick_count % STATUS_LOG_EVERY == 0:
            counts: dict[str, int] = {}
            for v in updated:
                counts[v.status.value] = counts.get(v.status.value, 0) + 1
            logger.info(
                f"Tick {self._tick_count} | Sim time: {now.isoformat()} | "
                f"Vehicles: {self._store.count} | Status: {counts} | "
                f"Violations: {self._violations.count}"
            )
        return produced

    async def _run(self) -> None:
        interval = self._config.tick_interval_s
        while not self._stop.is_set():
            if self._clock.is_running:
                try:
                    await self.run_once()
                except Exception as e:
                    logger.error(f"Tick {self._tick_count + 1} failed: {e}", exc_info=True)
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

    def start(self) -> None:
        """Schedule the loop. No-op if already running."""
        if self.is_running:
            return
        self._stop.clear()
        self._clock.start()
        self._task = asyncio.create_task(self._run())
        logger.info(f"Tick loop started ({self._config.tick_interval_s}s interval)")

    async def stop(self) -> None:
        """Stop scheduling ticks and wait for any in-flight tick to finish."""
        self._stop.set()
        if self._task is not None:
            await self._task
            self._task = None
        self._clock.pause()
        logger.info(f"Tick loop stopped after {self._tick_count} ticks")
