"""Tests for parameter intake, the parameter store and the poller."""

import threading

import pytest

from constellation_planner.config import PlannerConfig
from constellation_planner.constellation import InvalidParameter
from constellation_planner.intake import (
    ConstellationParams,
    ParameterPoller,
    ParameterStore,
    latest_constellation,
    parse_constellation_request,
    submit_constellation,
)

VALID = {'numSatellites': 12, 'numPlanes': 3, 'altitudesPerPlane': [400, 500, 600]}


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def store():
    return ParameterStore(clock=FakeClock())


class TestParseRequest:

    def test_valid(self):
        params = parse_constellation_request(VALID)
        assert params == ConstellationParams(12, 3, [400.0, 500.0, 600.0])

    def test_scalar_altitude_broadcast(self):
        params = parse_constellation_request({'numSatellites': 8, 'numPlanes': 4, 'altitudesPerPlane': 550})
        assert params.altitudes_per_plane == [550.0] * 4

    def test_whole_float_counts_accepted(self):
        params = parse_constellation_request({'numSatellites': 8.0, 'numPlanes': 4.0, 'altitudesPerPlane': 550})
        assert params.num_satellites == 8
        assert isinstance(params.num_planes, int)

    def test_payload_round_trip(self):
        assert parse_constellation_request(VALID).to_payload() == {
            'numSatellites': 12, 'numPlanes': 3, 'altitudesPerPlane': [400.0, 500.0, 600.0],
        }

    @pytest.mark.parametrize("payload, message", [
        (None, "Invalid request body"),
        ([1, 2], "Invalid request body"),
        ({'numPlanes': 3, 'altitudesPerPlane': 500}, "numSatellites is required"),
        ({'numSatellites': '12', 'numPlanes': 3, 'altitudesPerPlane': 500}, "numSatellites is required"),
        ({'numSatellites': 12, 'altitudesPerPlane': 500}, "numPlanes is required"),
        ({'numSatellites': 12, 'numPlanes': 3}, "altitudesPerPlane is required"),
        ({'numSatellites': 12, 'numPlanes': 3, 'altitudesPerPlane': [400, 'x', 600]}, "must be numbers"),
        ({'numSatellites': 12.5, 'numPlanes': 3, 'altitudesPerPlane': 500}, "whole number"),
        ({'numSatellites': float('inf'), 'numPlanes': 3, 'altitudesPerPlane': 500}, "whole number"),
        ({'numSatellites': 3, 'numPlanes': 5, 'altitudesPerPlane': 500}, "at least numPlanes"),
        ({'numSatellites': 12, 'numPlanes': 3, 'altitudesPerPlane': [400, 500]}, "Number of altitudes"),
        ({'numSatellites': 12, 'numPlanes': 3, 'altitudesPerPlane': 100}, "between 160 and 2000"),
    ])
    def test_rejected(self, payload, message):
        with pytest.raises(InvalidParameter, match=message):
            parse_constellation_request(payload)


class TestSubmit:

    def test_success(self, store):
        response = submit_constellation(VALID, store)
        assert response == {'success': True, 'satelliteCount': 12}

        latest = latest_constellation(store)
        assert latest['success']
        assert latest['data']['params'] == parse_constellation_request(VALID).to_payload()
        assert latest['data']['timestamp'] == 1_700_000_000_000

    def test_failure_leaves_store_untouched(self, store):
        response = submit_constellation({'numSatellites': 0, 'numPlanes': 1, 'altitudesPerPlane': 500}, store)
        assert response['success'] is False
        assert 'numSatellites' in response['error']
        assert latest_constellation(store) == {'success': True, 'data': None}

    def test_later_submission_wins(self, store):
        submit_constellation(VALID, store)
        submit_constellation({'numSatellites': 8, 'numPlanes': 4, 'altitudesPerPlane': 550}, store)
        assert latest_constellation(store)['data']['params']['numSatellites'] == 8


class TestParameterStore:

    def test_timestamps_strictly_increase(self, store):
        first = store.set('key', 1)
        second = store.set('key', 2)
        assert second.timestamp_ms > first.timestamp_ms
        assert store.get('key').value == 2

    def test_missing_key(self, store):
        assert store.get('missing') is None

    def test_clear(self, store):
        store.set('key', 1)
        store.clear()
        assert store.get('key') is None


class TestParameterPoller:

    def test_delivers_new_parameters_once(self, store):
        received = []
        poller = ParameterPoller(lambda: latest_constellation(store),
                                 lambda params, ts: received.append((params, ts)))

        assert not poller.poll_once()
        submit_constellation(VALID, store)
        assert poller.poll_once()
        assert not poller.poll_once()

        assert len(received) == 1
        params, timestamp = received[0]
        assert params == parse_constellation_request(VALID)
        assert poller.last_timestamp == timestamp

    def test_newer_submission_delivered(self, store):
        received = []
        poller = ParameterPoller(lambda: latest_constellation(store),
                                 lambda params, ts: received.append(params))
        submit_constellation(VALID, store)
        poller.poll_once()
        submit_constellation(VALID, store)
        assert poller.poll_once()
        assert len(received) == 2

    def test_pull_errors_are_not_fatal(self):
        def broken_pull():
            raise ConnectionError("endpoint unavailable")

        received = []
        poller = ParameterPoller(broken_pull, lambda params, ts: received.append(params))
        assert not poller.poll_once()
        assert received == []

    def test_unsuccessful_response_ignored(self):
        poller = ParameterPoller(lambda: {'success': False, 'error': 'boom'},
                                 lambda params, ts: pytest.fail("should not be called"))
        assert not poller.poll_once()

    def test_start_polls_immediately_and_cancel_stops(self, store):
        received = []
        submit_constellation(VALID, store)
        poller = ParameterPoller(lambda: latest_constellation(store),
                                 lambda params, ts: received.append(params),
                                 interval_s=60.0)
        poller.start()
        try:
            assert len(received) == 1
            assert not poller.cancelled
        finally:
            poller.cancel()
        assert poller.cancelled
        assert poller._timer is None
        poller.cancel()

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            ParameterPoller(lambda: {}, lambda params, ts: None, interval_s=0)

    def test_consumer_error_is_retried(self, store):
        received = []
        attempts = []

        def flaky_update(params, ts):
            attempts.append(ts)
            if len(attempts) == 1:
                raise RuntimeError("consumer failed")
            received.append(params)

        submit_constellation(VALID, store)
        poller = ParameterPoller(lambda: latest_constellation(store), flaky_update)

        assert not poller.poll_once()
        assert poller.last_timestamp == 0
        assert poller.poll_once()
        assert len(received) == 1
        assert poller.last_timestamp == attempts[-1]

    def test_malformed_response_ignored(self):
        responses = [
            {'success': True, 'data': {'timestamp': 5}},
            {'success': True, 'data': {'params': {'numSatellites': 4}, 'timestamp': 6}},
            {'success': True, 'data': {'params': VALID}},
        ]
        poller = ParameterPoller(lambda: responses.pop(0),
                                 lambda params, ts: pytest.fail("should not be called"))
        for _ in range(3):
            assert not poller.poll_once()
        assert poller.last_timestamp == 0

    def test_timer_keeps_running_after_consumer_error(self, store):
        submit_constellation(VALID, store)
        pulls = []
        polled_again = threading.Event()

        def pull():
            pulls.append(1)
            if len(pulls) > 1:
                polled_again.set()
            return latest_constellation(store)

        def failing_update(params, ts):
            raise RuntimeError("consumer failed")

        poller = ParameterPoller(pull, failing_update, interval_s=0.05)
        poller.start()
        try:
            assert polled_again.wait(timeout=5.0)
        finally:
            poller.cancel()
        assert poller.last_timestamp == 0

    def test_from_config_uses_poll_interval(self, store):
        config = PlannerConfig()
        config.simulation.poll_interval_s = 2.5
        poller = ParameterPoller.from_config(config, lambda: latest_constellation(store),
                                             lambda params, ts: None)
        assert poller.interval_s == 2.5
