"""
Parameter intake boundary.

Validates constellation requests coming from a front end, keeps the last
accepted parameter set in an injectable store, and provides a scheduled
poller so a decoupled consumer can pick up new parameters.
"""

import logging
import math
import threading
import time
from dataclasses import asdict, dataclass
from numbers import Real
from typing import Any, Callable, Dict, List, Optional

from .config import PlannerConfig
from .constants import POLL_INTERVAL_S
from .constellation import InvalidParameter, synthesize

logger = logging.getLogger(__name__)

LATEST_CONSTELLATION_KEY = 'latest_constellation'


@dataclass(frozen=True)
class ConstellationParams:
    """A validated constellation request."""
    num_satellites: int
    num_planes: int
    altitudes_per_plane: List[float]

    def to_payload(self) -> Dict[str, Any]:
        """Front-end field names."""
        return {
            'numSatellites': self.num_satellites,
            'numPlanes': self.num_planes,
            'altitudesPerPlane': list(self.altitudes_per_plane),
        }


@dataclass(frozen=True)
class StoredValue:
    """One store entry with its write time in epoch milliseconds."""
    value: Any
    timestamp_ms: int


class ParameterStore:
    """
    Thread-safe key-value store with write timestamps.

    A plain read-through cache; there are no transactions and the last
    writer wins.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._values: Dict[str, StoredValue] = {}
        self._lock = threading.Lock()
        self._last_ms = 0

    def _now_ms(self) -> int:
        # Strictly increasing so every write is seen as newer by pollers
        now = int(self._clock() * 1000)
        self._last_ms = max(now, self._last_ms + 1)
        return self._last_ms

    def set(self, key: str, value: Any) -> StoredValue:
        with self._lock:
            entry = StoredValue(value=value, timestamp_ms=self._now_ms())
            self._values[key] = entry
        return entry

    def get(self, key: str) -> Optional[StoredValue]:
        with self._lock:
            return self._values.get(key)

    def clear(self) -> None:
        with self._lock:
            self._values.clear()


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def parse_constellation_request(payload: Any) -> ConstellationParams:
    """
    Validate a constellation request payload.

    Accepts ``{numSatellites, numPlanes, altitudesPerPlane}`` where
    ``altitudesPerPlane`` is a number (broadcast to every plane) or a list
    of numbers. Full range validation is delegated to ``synthesize`` so the
    intake and the generator can never disagree.

    Raises
    ------
    InvalidParameter
        With a human-readable message naming the offending field.
    """
    if not isinstance(payload, dict):
        raise InvalidParameter('body', 'Invalid request body. Expected JSON object.')

    num_satellites = payload.get('numSatellites')
    num_planes = payload.get('numPlanes')
    altitudes = payload.get('altitudesPerPlane')

    if not _is_number(num_satellites):
        raise InvalidParameter('numSatellites', 'numSatellites is required and must be a number.')
    if not _is_number(num_planes):
        raise InvalidParameter('numPlanes', 'numPlanes is required and must be a number.')

    for name, value in (('numSatellites', num_satellites), ('numPlanes', num_planes)):
        if not math.isfinite(value) or float(value) != int(value):
            raise InvalidParameter(name, f"{name} must be a whole number, got {value}.")
    num_satellites = int(num_satellites)
    num_planes = int(num_planes)

    if _is_number(altitudes):
        altitudes_array = [float(altitudes)] * max(num_planes, 0)
    elif isinstance(altitudes, list):
        if not all(_is_number(alt) for alt in altitudes):
            raise InvalidParameter(
                'altitudesPerPlane', 'All values in altitudesPerPlane array must be numbers.'
            )
        altitudes_array = [float(alt) for alt in altitudes]
    else:
        raise InvalidParameter(
            'altitudesPerPlane',
            'altitudesPerPlane is required and must be a number or array of numbers.',
        )

    # Raises InvalidParameter for every range violation
    synthesize(num_satellites, num_planes, altitudes_array)

    return ConstellationParams(
        num_satellites=num_satellites,
        num_planes=num_planes,
        altitudes_per_plane=altitudes_array,
    )


def submit_constellation(payload: Any, store: ParameterStore) -> Dict[str, Any]:
    """
    Accept or reject a constellation request.

    On success the parameters are written to ``store`` for pollers.

    Returns
    -------
    Dict[str, Any]
        ``{'success': True, 'satelliteCount': n}`` or
        ``{'success': False, 'error': message}``.
    """
    try:
        params = parse_constellation_request(payload)
    except InvalidParameter as e:
        logger.error(f"Constellation request rejected: {e}")
        return {'success': False, 'error': str(e)}

    store.set(LATEST_CONSTELLATION_KEY, params)
    logger.info(f"Stored constellation parameters for polling: {params.to_payload()}")
    return {'success': True, 'satelliteCount': params.num_satellites}


def latest_constellation(store: ParameterStore) -> Dict[str, Any]:
    """
    Read the last accepted parameters.

    Returns
    -------
    Dict[str, Any]
        ``{'success': True, 'data': {'params': ..., 'timestamp': ms} or None}``.
    """
    entry = store.get(LATEST_CONSTELLATION_KEY)
    if entry is None:
        return {'success': True, 'data': None}
    return {
        'success': True,
        'data': {'params': entry.value.to_payload(), 'timestamp': entry.timestamp_ms},
    }


class ParameterPoller:
    """
    Periodically pull the latest parameters and report new ones.

    ``pull`` returns a ``latest_constellation``-style response.
    ``on_update`` is called with ``(params, timestamp)`` only when the
    timestamp is newer than the last one seen. ``cancel()`` sets the
    cancellation token and stops the timer chain.
    """

    def __init__(
        self,
        pull: Callable[[], Dict[str, Any]],
        on_update: Callable[[ConstellationParams, int], None],
        interval_s: float = POLL_INTERVAL_S,
    ):
        if interval_s <= 0:
            raise ValueError(f"interval_s must be positive, got {interval_s}")
        self.pull = pull
        self.on_update = on_update
        self.interval_s = interval_s
        self.last_timestamp = 0
        self._cancelled = threading.Event()
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: PlannerConfig,
        pull: Callable[[], Dict[str, Any]],
        on_update: Callable[[ConstellationParams, int], None],
    ) -> 'ParameterPoller':
        """Build a poller using ``simulation.poll_interval_s``."""
        return cls(pull, on_update, interval_s=config.simulation.poll_interval_s)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def poll_once(self) -> bool:
        """
        Run one poll. Returns True if a new parameter set was delivered.

        Pull errors, malformed responses and consumer errors are logged
        and treated as "nothing new". ``last_timestamp`` only advances once
        ``on_update`` has returned, so a failed delivery is retried on the
        next poll.
        """
        try:
            response = self.pull()
        except Exception as e:
            logger.error(f"Error polling for constellation updates: {e}")
            return False

        data = response.get('data') if response and response.get('success') else None
        if not data:
            return False

        try:
            timestamp = int(data['timestamp'])
            if timestamp <= self.last_timestamp:
                return False
            payload = data['params']
            params = ConstellationParams(
                num_satellites=payload['numSatellites'],
                num_planes=payload['numPlanes'],
                altitudes_per_plane=list(payload['altitudesPerPlane']),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Malformed constellation response: {e!r}")
            return False

        logger.info(f"New constellation parameters detected: {asdict(params)}")
        try:
            self.on_update(params, timestamp)
        except Exception as e:
            logger.error(f"Error applying constellation update: {e}")
            return False
        self.last_timestamp = timestamp
        return True

    def _run(self) -> None:
        if self.cancelled:
            return
        try:
            self.poll_once()
        finally:
            self._schedule()

    def _schedule(self) -> None:
        with self._lock:
            if self.cancelled:
                return
            self._timer = threading.Timer(self.interval_s, self._run)
            self._timer.daemon = True
            self._timer.start()

    def start(self) -> None:
        """Poll immediately, then every ``interval_s`` seconds."""
        self._cancelled.clear()
        self._run()

    def cancel(self) -> None:
        """Stop polling. Safe to call more than once."""
        self._cancelled.set()
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
