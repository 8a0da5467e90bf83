"""
Main entry point for the fleet simulator.

Loads configuration, builds the demo fleet, wires the vehicle store, tick
loop, route refresher, transports and health server together, and runs
until SIGINT/SIGTERM.
"""

import asyncio
import logging
import random
import signal

import click

from fleetsim.config import ConfigError, SimulatorConfig, apply_overrides, load_config
from fleetsim.core.clock import SimulationClock
from fleetsim.core.vehicle_store import VehicleStore
from fleetsim.core.violations import ViolationLog
from fleetsim.fleet.generator import create_initial_fleet
from fleetsim.host.health_server import HealthServer
from fleetsim.routing.route_source import OSRMRouteSource, RouteRefresher
from fleetsim.simulation.loop import TickLoop
from fleetsim.transport.console_adapter import ConsoleAdapter
from fleetsim.transport.registry import TransportRegistry
from fleetsim.transport.websocket_adapter import WebSocketAdapter

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


async def run(config: SimulatorConfig, fetch_routes: bool = True) -> None:
    """Run the simulator with an already validated config."""
    print(f"\nFleet Simulator v{VERSION}")
    print("=" * 40)

    rng = random.Random(config.seed)
    clock = SimulationClock(speed=config.clock_speed)
    store = VehicleStore()
    violations = ViolationLog()

    for vehicle in create_initial_fleet(rng, clock.get_sim_time(), config):
        store.add_vehicle(vehicle)
    print(f"Created {store.count} vehicles around {config.center}")

    registry = TransportRegistry()
    if "console" in config.transports:
        registry.register(ConsoleAdapter(min_interval=10.0))
    ws_adapter = None
    if "ws" in config.transports:
        ws_adapter = WebSocketAdapter(
            vehicle_store=store, clock=clock, violation_log=violations,
            port=config.ws_port,
        )
        registry.register(ws_adapter)
        print(f"WebSocket server on ws://0.0.0.0:{config.ws_port}")

    loop_handle = TickLoop(
        store=store, clock=clock, config=config,
        violation_log=violations, transports=registry, rng=rng,
    )

    if ws_adapter is not None:
        async def handle_remove(msg):
            vehicle_id = msg.get("vehicle_id")
            try:
                store.remove_vehicle(vehicle_id)
            except KeyError:
                logger.warning(f"Remove requested for unknown vehicle {vehicle_id!r}")
                return
            await ws_adapter.push_vehicle_remove(vehicle_id)
            logger.info(f"Vehicle {vehicle_id} removed by client")

        ws_adapter.set_command_handler("remove_vehicle", handle_remove)

    await registry.connect_all()

    health = HealthServer(store, violations, port=config.health_port)
    health.speed = config.clock_speed
    health.transports = registry.transport_names
    await health.start()

    route_source = None
    refresher = None
    if fetch_routes:
        route_source = OSRMRouteSource(config.osrm_url, timeout_s=config.route_timeout_s)
        refresher = RouteRefresher(store, route_source)
        await refresher.start()
        print(f"Fetching routes from {config.osrm_url}")

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    loop_handle.start()
    print(f"\nSimulation running (tick {config.tick_interval_s}s, speed {config.clock_speed}x)")
    print("Press Ctrl+C to stop\n")

    while not stop.is_set():
        health.tick_count = loop_handle.tick_count
        health.sim_time = clock.get_sim_time().isoformat()
        try:
            await asyncio.wait_for(stop.wait(), timeout=1.0)
        except asyncio.TimeoutError:
            pass

    print("\nShutting down...")
    await loop_handle.stop()
    if refresher is not None:
        await refresher.stop()
    if route_source is not None:
        await route_source.close()

    print(f"Ticks run: {loop_handle.tick_count}")
    print(f"Speed violations: {violations.count}")
    print(f"Vehicles tracked: {store.count}")

    await registry.disconnect_all()
    await health.stop()
    print("Simulator stopped")


@click.command()
@click.option("--config", "-c", "config_path", default=None, help="Path to fleet YAML config")
@click.option("--tick-interval", type=float, default=None, help="Seconds between ticks")
@click.option("--speed", type=float, default=None, help="Simulation speed multiplier")
@click.option("--seed", type=int, default=None, help="Random seed for reproducible runs")
@click.option("--port", type=int, default=None, help="WebSocket server port")
@click.option("--health-port", type=int, default=None, help="Health/violations HTTP port")
@click.option("--transport", default=None, help="Comma-separated transports (ws,console)")
@click.option("--no-routes", is_flag=True, help="Skip route fetching; drive direct lines")
def main(
    config_path: str | None, tick_interval: float | None, speed: float | None,
    seed: int | None, port: int | None, health_port: int | None,
    transport: str | None, no_routes: bool,
) -> None:
    """Fleet Simulator: simulated GPS feed with on-route status tracking."""
    try:
        config = apply_overrides(
            load_config(config_path),
            tick_interval_s=tick_interval,
            clock_speed=speed,
            seed=seed,
            ws_port=port,
            health_port=health_port,
            transports=tuple(t.strip() for t in transport.split(",")) if transport else None,
        )
    except ConfigError as e:
        raise click.UsageError(str(e)) from e
    asyncio.run(run(config, fetch_routes=not no_routes))


if __name__ == "__main__":
    main()
