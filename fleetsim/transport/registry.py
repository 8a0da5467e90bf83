"""
Fan-out of tick output to every registered transport.

A failing adapter is logged and skipped; the others still get the delivery.
"""

import logging
from typing import Awaitable, Callable

from fleetsim.core.violations import ViolationRecord
from fleetsim.transport.base import TickBatch, TransportAdapter

logger = logging.getLogger(__name__)


class TransportRegistry:
    def __init__(self) -> None:
        self._transports: list[TransportAdapter] = []

    def register(self, adapter: TransportAdapter) -> None:
        self._transports.append(adapter)
        logger.info(f"Registered transport: {adapter.name}")

    async def _each(
        self, action: str, call: Callable[[TransportAdapter], Awaitable[None]],
    ) -> None:
        for t in self._transports:
            try:
                await call(t)
            except Exception as e:
                logger.warning(f"Transport {t.name} {action} failed: {e}")

    async def connect_all(self) -> None:
        await self._each("connect", lambda t: t.connect())

    async def disconnect_all(self) -> None:
        await self._each("disconnect", lambda t: t.disconnect())

    async def publish(self, batch: TickBatch, violations: list[ViolationRecord]) -> None:
        """Deliver one tick: each violation, then the batch if it has vehicles."""
        for violation in violations:
            await self._each("violation push", lambda t: t.push_violation(violation))
        if batch.vehicles:
            await self._each("batch push", lambda t: t.push_batch(batch))

    @property
    def transport_names(self) -> list[str]:
        return [t.name for t in self._transports]

    @property
    def count(self) -> int:
        return len(self._transports)
