"""
WebSocket server that broadcasts fleet updates to connected dashboard clients.

On connect a client receives a snapshot of every vehicle and the recent
speed violations. After that it receives `violation` messages, one
`vehicle_batch` message per tick, and a `clock` message every second. Each
vehicle carries its latest status report under `status_detail`.
Clients may send `pause`, `resume`, `set_speed` and `snapshot` commands;
other commands go to registered handlers.
"""

import asyncio
import json
import logging
from typing import Any

import websockets
from websockets.asyncio.server import ServerConnection, serve

from fleetsim.core.clock import SimulationClock
from fleetsim.core.vehicle_store import VehicleStore
from fleetsim.core.violations import ViolationLog, ViolationRecord
from fleetsim.simulation.status import StatusReport
from fleetsim.transport.base import TickBatch, TransportAdapter, vehicle_payload

logger = logging.getLogger(__name__)


class WebSocketAdapter(TransportAdapter):
    """WebSocket server broadcasting vehicle batches and speed violations."""

    def __init__(
        self,
        vehicle_store: VehicleStore,
        clock: SimulationClock,
        violation_log: ViolationLog | None = None,
        host: str = "0.0.0.0",
        port: int = 8765,
        clock_interval_s: float = 1.0,
    ) -> None:
        self._store = vehicle_store
        self._clock = clock
        self._violations = violation_log
        self._host = host
        self._port = port
        self._clock_interval_s = clock_interval_s
        self._clients: set[ServerConnection] = set()
        self._server: Any = None
        self._clock_task: asyncio.Task | None = None
        self._command_handlers: dict[str, Any] = {}
        self._reports: dict[str, StatusReport] = {}

    @property
    def name(self) -> str:
        return "websocket"

    def set_command_handler(self, command: str, handler: Any) -> None:
        """Register an async handler for an incoming client command."""
        self._command_handlers[command] = handler

    async def connect(self) -> None:
        self._server = await serve(self._handle_client, self._host, self._port)
        self._clock_task = asyncio.create_task(self._broadcast_clock())
        logger.info(f"WebSocket server started on ws://{self._host}:{self._port}")

    async def disconnect(self) -> None:
        if self._clock_task:
            self._clock_task.cancel()
            try:
                await self._clock_task
            except asyncio.CancelledError:
                pass
        if self._server:
            self._server.close()
            await self._server.wait_closed()
        logger.info("WebSocket server stopped")

    async def push_violation(self, violation: ViolationRecord) -> None:
        msg = json.dumps({"type": "violation", "violation": violation.to_dict()})
        await self._broadcast(msg)

    async def push_batch(self, batch: TickBatch) -> None:
        self._reports = dict(batch.reports)
        msg = json.dumps({
            "type": "vehicle_batch",
            "tick": batch.tick,
            "sim_time": batch.sim_time.isoformat(),
            "vehicles": batch.payloads(),
        })
        await self._broadcast(msg)

    async def push_vehicle_remove(self, vehicle_id: str) -> None:
        self._reports.pop(vehicle_id, None)
        msg = json.dumps({"type": "vehicle_remove", "vehicle_id": vehicle_id})
        await self._broadcast(msg)

    def _snapshot_message(self) -> str:
        vehicles = self._store.get_all_vehicles()
        return json.dumps({
            "type": "snapshot",
            "vehicles": [vehicle_payload(v, self._reports.get(v.vehicle_id)) for v in vehicles],
        })

    async def _handle_client(self, websocket: ServerConnection) -> None:
        self._clients.add(websocket)
        logger.info(f"Client connected ({len(self._clients)} total)")

        try:
            await websocket.send(self._snapshot_message())

            if self._violations is not None:
                recent = self._violations.get_recent(limit=100)
                if recent:
                    await websocket.send(json.dumps({
                        "type": "violation_history",
                        "violations": [r.to_dict() for r in recent],
                    }))

            async for message in websocket:
                await self._handle_message(message)

        except websockets.ConnectionClosed:
            pass
        finally:
            self._clients.discard(websocket)
            logger.info(f"Client disconnected ({len(self._clients)} total)")

    async def _handle_message(self, raw: str) -> None:
        """Process an incoming message from a client."""
        try:
            msg = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Invalid JSON from client: {raw[:100]}")
            return
        if not isinstance(msg, dict):
            logger.warning(f"Ignoring non-object message: {raw[:100]}")
            return

        msg_type = msg.get("cmd") or msg.get("type")

        if msg_type == "set_speed":
            try:
                speed = float(msg.get("speed", 1.0))
                self._clock.set_speed(speed)
            except (TypeError, ValueError) as e:
                logger.warning(f"Rejected set_speed: {e}")
                return
            logger.info(f"Clock speed set to {speed}x")
        elif msg_type == "pause":
            self._clock.pause()
            logger.info("Clock paused")
        elif msg_type == "resume":
            self._clock.resume()
            logger.info("Clock resumed")
        elif msg_type == "snapshot":
            await self._broadcast(self._snapshot_message())
        elif msg_type in self._command_handlers:
            await self._command_handlers[msg_type](msg)
        else:
            logger.debug(f"Unknown message type: {msg_type}")

    async def _broadcast(self, message: str) -> None:
        if not self._clients:
            return
        disconnected = set()
        for client in list(self._clients):
            try:
                await client.send(message)
            except websockets.ConnectionClosed:
                disconnected.add(client)
        self._clients -= disconnected

    async def _broadcast_clock(self) -> None:
        while True:
            try:
                msg = json.dumps({
                    "type": "clock",
                    "sim_time": self._clock.get_sim_time().isoformat(),
                    "speed": self._clock.speed,
                    "running": self._clock.is_running,
                })
                await self._broadcast(msg)
                await asyncio.sleep(self._clock_interval_s)
            except asyncio.CancelledError:
                break

    @property
    def client_count(self) -> int:
        return len(self._clients)
