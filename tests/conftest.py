"""Shared fixtures for constellation planner tests."""

from datetime import datetime, timezone

import pytest

from constellation_planner.constellation import synthesize
from constellation_planner.propagation import (
    PropagationFailure,
    Propagator,
    SatellitePosition,
    ensure_utc,
)


EPOCH = datetime(2025, 6, 1, 0, 0, 0, tzinfo=timezone.utc)


class FakePropagator(Propagator):
    """Returns fixed positions by satellite id; ids in ``failing`` raise."""

    def __init__(self, positions, failing=()):
        self.positions = dict(positions)
        self.failing = set(failing)
        self.calls = 0

    def propagate(self, satellite, timestamp):
        self.calls += 1
        sat_id = satellite.satellite_id
        if sat_id in self.failing:
            raise PropagationFailure(sat_id, ensure_utc(timestamp), "satellite has decayed")
        return self.positions[sat_id]


@pytest.fixture
def epoch():
    return EPOCH


@pytest.fixture
def walker_12():
    """12 satellites in 3 planes at 400/500/600 km."""
    return synthesize(12, 3, [400.0, 500.0, 600.0], epoch=EPOCH)


@pytest.fixture
def spread_positions(walker_12):
    """Fake sub-satellite points spread along the equator, 550 km up."""
    return {
        e.satellite_id: SatellitePosition(lat_deg=0.0, lng_deg=-180.0 + 30.0 * i, height_km=550.0)
        for i, e in enumerate(walker_12)
    }


@pytest.fixture
def fake_propagator():
    """Factory for ``FakePropagator`` instances."""
    return FakePropagator
