"""Tests for the SimulationClock."""

import time
from datetime import datetime, timedelta, timezone

import pytest

from fleetsim.core.clock import SimulationClock

START = datetime(2026, 4, 15, 8, 0, 0, tzinfo=timezone.utc)


class TestSimulationClock:
    def test_initial_state(self):
        clock = SimulationClock(start_time=START, speed=1.0)
        assert clock.speed == 1.0
        assert not clock.is_running
        assert not clock.is_fixed_step
        assert clock.start_time == START
        assert clock.get_sim_time() == START

    def test_start_advances_time(self):
        clock = SimulationClock(start_time=START, speed=1.0)
        clock.start()
        time.sleep(0.1)
        assert clock.get_sim_time() > START
        assert clock.get_elapsed().total_seconds() > 0.05

    def test_speed_multiplier(self):
        clock = SimulationClock(start_time=START, speed=10.0)
        clock.start()
        time.sleep(0.1)
        elapsed = clock.get_elapsed().total_seconds()
        # At 10x, 0.1s wall time = ~1.0s sim time (with tolerance)
        assert 0.5 < elapsed < 3.0

    def test_pause_stops_time(self):
        clock = SimulationClock(speed=1.0)
        clock.start()
        time.sleep(0.05)
        clock.pause()
        paused_time = clock.get_sim_time()
        time.sleep(0.1)
        assert clock.get_sim_time() == paused_time
        assert not clock.is_running

    def test_resume_continues(self):
        clock = SimulationClock(speed=1.0)
        clock.start()
        time.sleep(0.05)
        clock.pause()
        paused_elapsed = clock.get_elapsed()
        clock.resume()
        time.sleep(0.05)
        assert clock.get_elapsed() > paused_elapsed

    def test_set_speed_while_paused(self):
        clock = SimulationClock(speed=1.0)
        clock.start()
        time.sleep(0.05)
        clock.pause()
        paused_elapsed = clock.get_elapsed()
        clock.set_speed(5.0)
        assert clock.speed == 5.0
        assert clock.get_elapsed() == paused_elapsed

    @pytest.mark.parametrize("bad", [0, -1.0])
    def test_set_speed_rejects_non_positive(self, bad):
        clock = SimulationClock()
        with pytest.raises(ValueError, match="positive"):
            clock.set_speed(bad)
        assert clock.speed == 1.0

    def test_elapsed_when_not_started(self):
        assert SimulationClock().get_elapsed() == timedelta()

    def test_default_start_time(self):
        before = datetime.now(timezone.utc)
        clock = SimulationClock()
        after = datetime.now(timezone.utc)
        assert before <= clock.start_time <= after

    def test_reset(self):
        clock = SimulationClock(start_time=START)
        clock.start()
        time.sleep(0.05)
        clock.reset()
        assert not clock.is_running
        assert clock.get_sim_time() == START

    def test_step_requires_fixed_step(self):
        clock = SimulationClock()
        with pytest.raises(RuntimeError, match="fixed-step"):
            clock.step(4.0)


class TestFixedStepClock:
    def test_only_moves_on_step(self):
        clock = SimulationClock(start_time=START, fixed_step=True)
        clock.start()
        time.sleep(0.05)
        assert clock.get_sim_time() == START
        assert clock.step(4.0) == START + timedelta(seconds=4)
        assert clock.step(4.0) == START + timedelta(seconds=8)

    def test_step_scaled_by_speed(self):
        clock = SimulationClock(start_time=START, speed=2.5, fixed_step=True)
        clock.start()
        assert clock.step(4.0) == START + timedelta(seconds=10)

    def test_step_ignored_when_paused(self):
        clock = SimulationClock(start_time=START, fixed_step=True)
        clock.start()
        clock.step(4.0)
        clock.pause()
        assert clock.step(4.0) == START + timedelta(seconds=4)
        clock.resume()
        assert clock.step(4.0) == START + timedelta(seconds=8)
