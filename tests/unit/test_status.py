"""Tests for on-route status classification."""

import math
from datetime import timedelta

import pytest

from fleetsim.config import MotionConfig
from fleetsim.core.vehicle import Destination, Position, Vehicle, VehicleStatus
from fleetsim.simulation.status import (
    INDEFINITE_ETA, classify, projected_eta, required_average_speed,
)

# ~1.106 km due north of the start point
DEST = Destination(lat=12.98, lng=77.59)


def _vehicle(speed=30.0, **kwargs) -> Vehicle:
    defaults = {
        "vehicle_id": "v1",
        "driver_name": "Rajesh Kumar",
        "position": Position(12.97, 77.59),
        "destination": DEST,
        "current_speed": speed,
    }
    defaults.update(kwargs)
    return Vehicle(**defaults)


class TestRequiredSpeed:
    def test_basic(self, now):
        assert required_average_speed(10.0, now + timedelta(minutes=30), now) == pytest.approx(20.0)

    def test_eta_passed(self, now):
        assert math.isinf(required_average_speed(1.0, now - timedelta(minutes=1), now))

    def test_nothing_remaining(self, now):
        assert required_average_speed(0.0, now - timedelta(minutes=1), now) == 0.0


class TestProjectedEta:
    def test_moving(self, now):
        assert projected_eta(30.0, 60.0, now) == now + timedelta(minutes=30)

    def test_stationary_is_indefinite(self, now):
        assert projected_eta(5.0, 0.0, now) == now + INDEFINITE_ETA

    def test_arrived(self, now):
        assert projected_eta(0.0, 0.0, now) == now


class TestClassify:
    def test_no_schedule_is_on_time(self, now):
        report = classify(_vehicle(speed=6.0), now)
        assert report.status == VehicleStatus.ON_TIME
        assert report.required_average_speed is None
        assert report.eta_difference_minutes is None

    def test_too_slow_for_schedule_is_warning(self, now):
        # ~11 km/h needed to cover 1.1 km in 6 minutes
        v = _vehicle(speed=10.0, scheduled_eta=now + timedelta(minutes=6))
        report = classify(v, now)
        assert report.status == VehicleStatus.WARNING
        assert report.required_average_speed == pytest.approx(11.06, abs=0.05)

    def test_fast_enough_is_on_time(self, now):
        v = _vehicle(speed=30.0, scheduled_eta=now + timedelta(minutes=6))
        assert classify(v, now).status == VehicleStatus.ON_TIME

    def test_eta_passed_is_warning(self, now):
        v = _vehicle(speed=98.0, scheduled_eta=now - timedelta(minutes=1))
        report = classify(v, now)
        assert report.status == VehicleStatus.WARNING
        assert math.isinf(report.required_average_speed)
        assert report.to_dict()["required_average_speed"] is None

    def test_stalled_is_critical(self, now):
        v = _vehicle(speed=3.0, last_stop_time=now - timedelta(minutes=11))
        report = classify(v, now)
        assert report.status == VehicleStatus.CRITICAL
        assert report.stalled_minutes == pytest.approx(11.0)

    def test_short_stop_not_critical(self, now):
        v = _vehicle(speed=3.0, last_stop_time=now - timedelta(minutes=9))
        assert classify(v, now).status == VehicleStatus.ON_TIME

    def test_stall_speed_boundary(self, now):
        v = _vehicle(speed=8.0, last_stop_time=now - timedelta(minutes=11))
        assert classify(v, now).status == VehicleStatus.ON_TIME

    def test_critical_outranks_warning(self, now):
        v = _vehicle(
            speed=0.0,
            last_stop_time=now - timedelta(minutes=30),
            scheduled_eta=now + timedelta(minutes=5),
        )
        assert classify(v, now).status == VehicleStatus.CRITICAL

    def test_custom_thresholds(self, now):
        cfg = MotionConfig(stall_minutes=2.0)
        v = _vehicle(speed=3.0, last_stop_time=now - timedelta(minutes=3))
        assert classify(v, now, cfg).status == VehicleStatus.CRITICAL

    def test_stationary_projection(self, now):
        v = _vehicle(speed=0.0, scheduled_eta=now + timedelta(hours=1))
        report = classify(v, now)
        assert report.projected_eta == now + INDEFINITE_ETA
        assert report.status == VehicleStatus.WARNING

    def test_eta_difference(self, now):
        v = _vehicle(speed=30.0, scheduled_eta=now + timedelta(minutes=10))
        report = classify(v, now)
        # ~2.2 minutes to cover 1.1 km at 30 km/h, so ~7.8 minutes early
        assert report.eta_difference_minutes == pytest.approx(-7.79, abs=0.05)

    def test_arrived_is_on_time(self, now):
        v = _vehicle(
            speed=0.0, position=DEST.position,
            scheduled_eta=now + timedelta(minutes=5),
        )
        report = classify(v, now)
        assert report.remaining_distance_km == 0.0
        assert report.projected_eta == now
        assert report.status == VehicleStatus.ON_TIME

    def test_no_destination(self, now):
        report = classify(_vehicle(destination=None), now)
        assert report.remaining_distance_km == 0.0
        assert report.status == VehicleStatus.ON_TIME

    def test_to_dict(self, now):
        v = _vehicle(speed=30.0, scheduled_eta=now + timedelta(minutes=10))
        d = classify(v, now).to_dict()
        assert d["status"] == "on-time"
        assert d["remaining_distance_km"] == pytest.approx(1.106, abs=0.01)
        assert d["stalled_minutes"] is None

    def test_naive_times_read_as_utc(self, now):
        naive_now = now.replace(tzinfo=None)
        v = _vehicle(
            speed=30.0,
            scheduled_eta=naive_now + timedelta(minutes=10),
            last_stop_time=naive_now - timedelta(minutes=2),
        )
        report = classify(v, now)
        assert report.status == VehicleStatus.ON_TIME
        assert report.eta_difference_minutes == pytest.approx(-7.79, abs=0.05)
        assert report.stalled_minutes == pytest.approx(2.0)
        assert classify(v, naive_now) == report

    def test_latitude_past_pole_is_clamped(self, now):
        v = _vehicle(
            position=Position(95.0, 77.59),
            destination=Destination(89.0, 77.59),
            scheduled_eta=now + timedelta(hours=1),
        )
        report = classify(v, now)
        # Measured from the pole: one degree of latitude
        assert report.remaining_distance_km == pytest.approx(111.7, abs=0.5)
        assert report.status == VehicleStatus.WARNING
