"""Tests for transport registry."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from fleetsim.core.vehicle import Destination, Position, Vehicle, VehicleStatus
from fleetsim.core.violations import ViolationRecord
from fleetsim.simulation.status import StatusReport
from fleetsim.transport.base import TickBatch
from fleetsim.transport.registry import TransportRegistry

T0 = datetime(2026, 4, 15, 8, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_batch():
    vehicle = Vehicle(
        vehicle_id="v1",
        driver_name="Walter White",
        position=Position(12.97, 77.59),
        destination=Destination(12.98, 77.60, "MG Road, Bangalore, Karnataka"),
        current_speed=40.0,
    )
    return TickBatch(tick=1, sim_time=T0, vehicles=[vehicle])


def make_mock_adapter(name="mock"):
    adapter = MagicMock()
    adapter.name = name
    adapter.connect = AsyncMock()
    adapter.disconnect = AsyncMock()
    adapter.push_batch = AsyncMock()
    adapter.push_violation = AsyncMock()
    return adapter


class TestTransportRegistry:
    def test_register(self):
        registry = TransportRegistry()
        registry.register(make_mock_adapter("websocket"))
        assert registry.count == 1
        assert registry.transport_names == ["websocket"]

    @pytest.mark.asyncio
    async def test_publish_to_multiple(self, sample_batch):
        registry = TransportRegistry()
        a1 = make_mock_adapter("websocket")
        a2 = make_mock_adapter("console")
        registry.register(a1)
        registry.register(a2)

        await registry.publish(sample_batch, [])

        a1.push_batch.assert_awaited_once_with(sample_batch)
        a2.push_batch.assert_awaited_once_with(sample_batch)
        a1.push_violation.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_violations_before_batch(self, sample_batch):
        registry = TransportRegistry()
        order = []
        adapter = make_mock_adapter("websocket")
        adapter.push_violation = AsyncMock(side_effect=lambda v: order.append(v.vehicle_id))
        adapter.push_batch = AsyncMock(side_effect=lambda b: order.append("batch"))
        registry.register(adapter)

        violations = [ViolationRecord("v1", 101.0, 100.0, T0), ViolationRecord("v2", 104.0, 100.0, T0)]
        await registry.publish(sample_batch, violations)

        assert order == ["v1", "v2", "batch"]

    @pytest.mark.asyncio
    async def test_empty_batch_not_pushed(self):
        registry = TransportRegistry()
        adapter = make_mock_adapter()
        registry.register(adapter)
        violation = ViolationRecord("v1", 101.0, 100.0, T0)

        await registry.publish(TickBatch(tick=1, sim_time=T0, vehicles=[]), [violation])

        adapter.push_violation.assert_awaited_once_with(violation)
        adapter.push_batch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_one_failure_doesnt_stop_others(self, sample_batch):
        registry = TransportRegistry()
        a1 = make_mock_adapter("failing")
        a1.push_batch = AsyncMock(side_effect=Exception("boom"))
        a2 = make_mock_adapter("working")
        registry.register(a1)
        registry.register(a2)

        await registry.publish(sample_batch, [])

        a2.push_batch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connect_and_disconnect_all(self):
        registry = TransportRegistry()
        a1 = make_mock_adapter("websocket")
        a2 = make_mock_adapter("console")
        a1.connect = AsyncMock(side_effect=OSError("port in use"))
        registry.register(a1)
        registry.register(a2)

        await registry.connect_all()
        await registry.disconnect_all()

        a2.connect.assert_awaited_once()
        a1.disconnect.assert_awaited_once()
        a2.disconnect.assert_awaited_once()


class TestTickBatch:
    def test_payloads_carry_status_detail(self, sample_batch, now):
        report = StatusReport(
            status=VehicleStatus.WARNING, remaining_distance_km=1.2345,
            projected_eta=now, required_average_speed=45.04,
        )
        batch = TickBatch(tick=2, sim_time=now, vehicles=sample_batch.vehicles, reports={"v1": report})
        payload = batch.payloads()[0]
        assert payload["vehicle_id"] == "v1"
        assert payload["status_detail"] == report.to_dict()
        assert payload["status_detail"]["required_average_speed"] == 45.0

    def test_missing_report_is_null(self, sample_batch):
        assert sample_batch.payloads()[0]["status_detail"] is None
