"""Tests for propagation through Skyfield and trajectory sampling."""

from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest

from constellation_planner.constellation import synthesize
from constellation_planner.propagation import (
    PropagationFailure,
    SatellitePosition,
    SkyfieldPropagator,
    as_tle,
    ensure_utc,
    propagate_trajectory,
    trajectory_time_step_s,
)
from constellation_planner.tle import TLEData


@pytest.fixture(scope='module')
def propagator():
    return SkyfieldPropagator()


class TestSkyfieldPropagator:

    def test_position_at_epoch(self, propagator, epoch):
        element = synthesize(1, 1, [550.0], epoch=epoch)[0]
        position = propagator.propagate(element, epoch)
        # RAAN 0, anomaly 0: at the ascending node
        assert abs(position.lat_deg) < 1.0
        assert position.height_km == pytest.approx(550.0, abs=40.0)

    def test_accepts_tle_data(self, propagator, walker_12, epoch):
        from_elements = propagator.propagate(walker_12[5], epoch)
        from_tle = propagator.propagate(as_tle(walker_12[5]), epoch)
        assert from_elements == from_tle

    def test_latitude_bounded_by_inclination(self, propagator, walker_12, epoch):
        for hours in range(0, 6):
            for element in walker_12:
                position = propagator.propagate(element, epoch + timedelta(hours=hours))
                assert abs(position.lat_deg) <= 66.0
                assert -180.0 <= position.lng_deg <= 180.0

    def test_higher_plane_is_higher(self, propagator, walker_12, epoch):
        low = propagator.propagate(walker_12[0], epoch)
        high = propagator.propagate(walker_12[-1], epoch)
        assert high.height_km > low.height_km

    def test_naive_timestamp_is_utc(self, propagator, walker_12, epoch):
        naive = epoch.replace(tzinfo=None)
        assert propagator.propagate(walker_12[0], naive) == propagator.propagate(walker_12[0], epoch)

    def test_cache_reused(self, walker_12, epoch):
        propagator = SkyfieldPropagator()
        propagator.propagate(walker_12[0], epoch)
        propagator.propagate(walker_12[0], epoch + timedelta(minutes=1))
        assert len(propagator._satellites) == 1
        propagator.clear_cache()
        assert len(propagator._satellites) == 0


class TestEnsureUtc:

    def test_naive(self):
        assert ensure_utc(datetime(2025, 1, 1)).tzinfo == timezone.utc

    def test_offset_converted(self):
        local = datetime(2025, 1, 1, 3, tzinfo=timezone(timedelta(hours=3)))
        assert ensure_utc(local) == datetime(2025, 1, 1, tzinfo=timezone.utc)

    def test_pandas_timestamp(self):
        converted = ensure_utc(pd.Timestamp('2025-01-01T00:00:00Z'))
        assert isinstance(converted, datetime)
        assert converted.tzinfo is not None


class TestTrajectory:

    @pytest.mark.parametrize("num_satellites, step", [
        (1, 60), (8, 60), (9, 120), (16, 120), (17, 240), (32, 240), (33, 300), (60, 300),
    ])
    def test_time_step_tiers(self, num_satellites, step):
        assert trajectory_time_step_s(num_satellites) == step

    def test_samples(self, propagator, walker_12, epoch):
        df = propagate_trajectory(propagator, walker_12[0], epoch, epoch + timedelta(minutes=10), 60)
        assert list(df.columns) == ['Satellite', 'Epoch', 'Latitude', 'Longitude', 'Altitude_km']
        assert len(df) == 11
        assert (df['Satellite'] == walker_12[0].satellite_id).all()
        assert df['Epoch'].iloc[0] == pd.Timestamp(epoch)
        assert df['Epoch'].dt.tz is not None

    def test_default_window_is_three_days(self, fake_propagator, walker_12, epoch):
        position = SatellitePosition(0.0, 0.0, 500.0)
        fake = fake_propagator({walker_12[0].satellite_id: position})
        df = propagate_trajectory(fake, walker_12[0], epoch, time_step_s=3600)
        assert len(df) == 3 * 24 + 1
        assert df['Epoch'].iloc[-1] == pd.Timestamp(epoch + timedelta(days=3))

    def test_failures_skipped(self, walker_12, epoch):
        class FlakyPropagator(SkyfieldPropagator):
            def propagate(self, satellite, timestamp):
                if timestamp.minute % 2:
                    raise PropagationFailure(satellite.satellite_id, timestamp, "flaky")
                return super().propagate(satellite, timestamp)

        df = propagate_trajectory(FlakyPropagator(), walker_12[0], epoch,
                                  epoch + timedelta(minutes=10), 60)
        assert len(df) == 6

    def test_all_failures_give_empty_frame(self, fake_propagator, walker_12, epoch):
        fake = fake_propagator({}, failing={walker_12[0].satellite_id})
        df = propagate_trajectory(fake, walker_12[0], epoch, epoch + timedelta(minutes=5), 60)
        assert df.empty
        assert 'Latitude' in df.columns

    def test_invalid_step(self, propagator, walker_12, epoch):
        with pytest.raises(ValueError):
            propagate_trajectory(propagator, walker_12[0], epoch, time_step_s=0)


def test_propagation_failure_fields(epoch):
    error = PropagationFailure(30000, epoch, "decayed")
    assert error.satellite_id == 30000
    assert error.reason == "decayed"
    assert "30000" in str(error)
