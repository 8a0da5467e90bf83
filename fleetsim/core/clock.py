"""
Simulation clock with configurable speed multiplier.

Supplies the timestamp each tick is stamped with. In real-time mode it maps
wall-clock time to simulated time (1x, 2x, 10x ...) and supports
pause/resume. In fixed-step mode time only moves when step() is called,
which keeps replays and tests deterministic.
"""

import time
from datetime import datetime, timedelta, timezone


class SimulationClock:
    """
    Maps wall-clock time to simulated time.

    Not async: sim time is calculated from the wall clock when queried.
    """

    def __init__(
        self,
        start_time: datetime | None = None,
        speed: float = 1.0,
        fixed_step: bool = False,
    ) -> None:
        self._start_time = start_time or datetime.now(timezone.utc)
        self._speed = speed
        self._fixed_step = fixed_step
        self._running = False
        self._wall_start: float | None = None
        self._accumulated_sim: timedelta = timedelta()

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_fixed_step(self) -> bool:
        return self._fixed_step

    @property
    def start_time(self) -> datetime:
        return self._start_time

    def start(self) -> None:
        """Begin advancing time."""
        if self._running:
            return
        self._running = True
        if not self._fixed_step:
            self._wall_start = time.monotonic()

    def pause(self) -> None:
        """Pause time advancement. Accumulates elapsed sim time."""
        if not self._running:
            return
        self._accumulated_sim = self.get_elapsed()
        self._running = False
        self._wall_start = None

    def resume(self) -> None:
        self.start()

    def reset(self) -> None:
        """Reset elapsed time to zero. Clock is left paused."""
        self._running = False
        self._wall_start = None
        self._accumulated_sim = timedelta()

    def set_speed(self, multiplier: float) -> None:
        """Change speed multiplier. Accumulates elapsed time at old speed first."""
        if multiplier <= 0:
            raise ValueError(f"Clock speed must be positive, got {multiplier}")
        if self._running and not self._fixed_step:
            self._accumulated_sim = self.get_elapsed()
            self._wall_start = time.monotonic()
        self._speed = multiplier

    def step(self, seconds: float) -> datetime:
        """Advance a fixed-step clock by `seconds` of sim time (scaled by speed)."""
        if not self._fixed_step:
            raise RuntimeError("step() is only available on a fixed-step clock")
        if self._running:
            self._accumulated_sim += timedelta(seconds=seconds * self._speed)
        return self.get_sim_time()

    def get_elapsed(self) -> timedelta:
        """Elapsed simulation time since start."""
        if self._fixed_step or not self._running or self._wall_start is None:
            return self._accumulated_sim
        wall_elapsed = time.monotonic() - self._wall_start
        return self._accumulated_sim + timedelta(seconds=wall_elapsed * self._speed)

    def get_sim_time(self) -> datetime:
        """Current simulation datetime."""
        return self._start_time + self.get_elapsed()
