"""
Route lookup from an external routing service.

Routes are fetched out of band and written into the vehicle store; the
tick never waits on them. Every failure collapses to an empty route, and
a vehicle without a route drives straight at its destination until a
later refresh succeeds.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable

import aiohttp

from fleetsim.core.vehicle import Position, Vehicle
from fleetsim.core.vehicle_store import VehicleStore

logger = logging.getLogger(__name__)


class RouteSource(ABC):
    """Produces an ordered list of waypoints from origin to destination."""

    @abstractmethod
    async def fetch_route(self, origin: Position, destination: Position) -> list[Position]:
        """Return waypoints, or an empty list when no route is available."""
        ...


class OSRMRouteSource(RouteSource):
    """Driving routes from an OSRM server (`/route/v1/driving`)."""

    def __init__(
        self,
        base_url: str = "http://router.project-osrm.org",
        timeout_s: float = 10.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _route_url(self, origin: Position, destination: Position) -> str:
        # OSRM takes lon,lat
        return (
            f"{self._base_url}/route/v1/driving/"
            f"{origin.lng},{origin.lat};{destination.lng},{destination.lat}"
        )

    async def fetch_route(self, origin: Position, destination: Position) -> list[Position]:
        url = self._route_url(origin, destination)
        params = {"overview": "full", "geometries": "geojson"}
        try:
            session = await self._get_session()
            async with session.get(url, params=params, timeout=self._timeout) as resp:
                if resp.status != 200:
                    logger.warning(f"OSRM returned HTTP {resp.status} for {url}")
                    return []
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"OSRM request failed: {e!r}")
            return []
        except ValueError as e:
            logger.warning(f"OSRM returned invalid JSON: {e}")
            return []

        return self._parse_route(data)

    @staticmethod
    def _parse_route(data) -> list[Position]:
        if not isinstance(data, dict) or data.get("code") != "Ok":
            message = data.get("message", "Unknown error") if isinstance(data, dict) else data
            logger.warning(f"OSRM returned error: {message}")
            return []
        routes = data.get("routes") or []
        if not routes:
            logger.warning("OSRM returned no routes")
            return []
        try:
            coords = routes[0]["geometry"]["coordinates"]
            return [Position(lat=float(c[1]), lng=float(c[0])) for c in coords]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"Malformed OSRM geometry: {e!r}")
            return []


class RouteRefresher:
    """Fetches routes for vehicles that have none and writes them to the store.

    Vehicles already parked at their destination are skipped. A vehicle
    whose fetch came back empty is not asked for again until its retry
    delay has passed; the delay doubles with each consecutive failure, from
    retry_base_s up to retry_max_s, and resets once a route is written.
    """

    def __init__(
        self,
        store: VehicleStore,
        source: RouteSource,
        interval_s: float = 30.0,
        concurrency: int = 4,
        retry_base_s: float = 60.0,
        retry_max_s: float = 600.0,
        time_source: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._source = source
        self._interval_s = interval_s
        self._semaphore = asyncio.Semaphore(concurrency)
        self._retry_base_s = retry_base_s
        self._retry_max_s = retry_max_s
        self._time = time_source
        self._failures: dict[str, int] = {}
        self._retry_at: dict[str, float] = {}
        self._task: asyncio.Task | None = None
        self._stop = asyncio.Event()

    def _due(self, vehicle: Vehicle, now: float) -> bool:
        if vehicle.position == vehicle.destination.position:
            return False
        retry_at = self._retry_at.get(vehicle.vehicle_id)
        return retry_at is None or retry_at <= now

    def _forget(self, vehicle_id: str) -> None:
        self._failures.pop(vehicle_id, None)
        self._retry_at.pop(vehicle_id, None)

    def _back_off(self, vehicle_id: str) -> None:
        failures = self._failures.get(vehicle_id, 0) + 1
        self._failures[vehicle_id] = failures
        delay = min(self._retry_max_s, self._retry_base_s * 2 ** (failures - 1))
        self._retry_at[vehicle_id] = self._time() + delay
        logger.debug(f"{vehicle_id}: no route available, retrying in {delay:.0f}s")

    async def refresh_once(self) -> int:
        """Fetch routes for every due vehicle lacking one. Returns routes written."""
        pending = self._store.get_vehicles_without_route()
        waiting = {v.vehicle_id for v in pending}
        for vehicle_id in list(self._failures):
            if vehicle_id not in waiting:
                self._forget(vehicle_id)

        now = self._time()
        due = [v for v in pending if self._due(v, now)]
        if not due:
            return 0
        results = await asyncio.gather(*(self._refresh_vehicle(v.vehicle_id) for v in due))
        written = sum(1 for ok in results if ok)
        logger.info(f"Route refresh: {written}/{len(due)} routes fetched")
        return written

    async def _refresh_vehicle(self, vehicle_id: str) -> bool:
        async with self._semaphore:
            vehicle = self._store.get_vehicle(vehicle_id)
            if vehicle is None or vehicle.destination is None:
                return False
            route = await self._source.fetch_route(
                vehicle.position, vehicle.destination.position,
            )
        if not route:
            self._back_off(vehicle_id)
            return False
        try:
            self._store.set_route(vehicle_id, route)
        except KeyError:
            # Trip ended while the request was in flight
            self._forget(vehicle_id)
            return False
        self._forget(vehicle_id)
        logger.debug(f"{vehicle_id}: route set ({len(route)} points)")
        return True

    async def start(self) -> None:
        self._stop.clear()
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        while not self._stop.is_set():
            try:
                await self.refresh_once()
            except Exception as e:
                logger.warning(f"Route refresh error: {e}")
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._interval_s)
            except asyncio.TimeoutError:
                pass

    async def stop(self) -> None:
        self._stop.set()
        if self._task:
            await self._task
            self._task = None
