"""Shared fixtures for fleet simulator tests."""

from datetime import datetime, timezone

import pytest


class ScriptedRandom:
    """Random source with scripted draws.

    random() pops from `randoms`, then returns 0.999 so no random event fires.
    uniform(a, b) pops a fraction f from `fractions` and returns a + f * (b - a);
    once exhausted it returns the midpoint, which is zero jitter and zero drift.
    """

    def __init__(self, randoms=None, fractions=None):
        self.randoms = list(randoms or [])
        self.fractions = list(fractions or [])
        self.uniform_calls = []

    def random(self) -> float:
        if self.randoms:
            return self.randoms.pop(0)
        return 0.999

    def uniform(self, a: float, b: float) -> float:
        self.uniform_calls.append((a, b))
        f = self.fractions.pop(0) if self.fractions else 0.5
        return a + f * (b - a)


@pytest.fixture
def scripted_rng():
    """Factory for ScriptedRandom instances."""
    return ScriptedRandom


@pytest.fixture
def now():
    return datetime(2026, 4, 15, 8, 0, 0, tzinfo=timezone.utc)
