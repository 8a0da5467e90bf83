"""
Health check and violation query HTTP endpoints for the simulator.

GET /health returns simulator status as JSON for container health checks.
GET /violations returns recent speed violations, optionally filtered by
vehicle_id and limited by limit.
"""

import logging
import time

from aiohttp import web

from fleetsim.core.vehicle import VehicleStatus
from fleetsim.core.vehicle_store import VehicleStore
from fleetsim.core.violations import ViolationLog

logger = logging.getLogger(__name__)

DEFAULT_VIOLATION_LIMIT = 100


class HealthServer:
    """Lightweight HTTP server exposing status and the violation stream."""

    def __init__(
        self,
        store: VehicleStore,
        violation_log: ViolationLog,
        host: str = "0.0.0.0",
        port: int = 8766,
    ):
        self._store = store
        self._violations = violation_log
        self._host = host
        self._port = port
        self._runner: web.AppRunner | None = None
        self._start_time = time.time()

        # Mutable state set by the host
        self.sim_time = ""
        self.speed = 1.0
        self.tick_count = 0
        self.transports: list[str] = []

        self.app = web.Application()
        self.app.router.add_get("/health", self._handle_health)
        self.app.router.add_get("/violations", self._handle_violations)

    async def start(self):
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._host, self._port)
        await site.start()
        logger.info(f"Health server on http://{self._host}:{self._port}/health")

    async def stop(self):
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    async def _handle_health(self, request: web.Request) -> web.Response:
        by_status = {
            s.value: len(self._store.get_vehicles_by_status(s)) for s in VehicleStatus
        }
        data = {
            "status": "running",
            "sim_time": self.sim_time,
            "speed": self.speed,
            "vehicles": self._store.count,
            "vehicle_status": by_status,
            "ticks": self.tick_count,
            "violations": self._violations.count,
            "uptime_seconds": int(time.time() - self._start_time),
            "transports": self.transports,
        }
        return web.json_response(data)

    async def _handle_violations(self, request: web.Request) -> web.Response:
        vehicle_id = request.query.get("vehicle_id") or None
        raw_limit = request.query.get("limit", str(DEFAULT_VIOLATION_LIMIT))
        try:
            limit = int(raw_limit)
        except ValueError:
            return web.json_response(
                {"error": f"limit must be an integer, got {raw_limit!r}"}, status=400,
            )
        if limit < 0:
            return web.json_response({"error": "limit must not be negative"}, status=400)
        records = self._violations.get_recent(limit=limit, vehicle_id=vehicle_id)
        return web.json_response({
            "total": self._violations.count,
            "violations": [r.to_dict() for r in records],
        })
