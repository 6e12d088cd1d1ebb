"""
Orbit propagation capability.

The engine only needs "elements + time -> sub-satellite point". That is
modelled as the ``Propagator`` interface; ``SkyfieldPropagator`` implements
it with Skyfield's SGP4 satellite model and WGS84 geodetic transform.
"""

import logging
import math
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple, Union

import numpy as np
import pandas as pd
from skyfield.api import load, EarthSatellite, wgs84

from .constants import (
    SIMULATION_DAYS,
    TRAJECTORY_STEP_MAX_S,
    TRAJECTORY_STEP_TIERS,
)
from .constellation import OrbitalElementSet
from .tle import TLEData, encode

logger = logging.getLogger(__name__)

SatelliteLike = Union[OrbitalElementSet, TLEData]


class PropagationFailure(RuntimeError):
    """A satellite could not be propagated to the requested instant."""

    def __init__(self, satellite_id: int, timestamp: datetime, reason: str):
        super().__init__(f"Satellite {satellite_id} at {timestamp.isoformat()}: {reason}")
        self.satellite_id = satellite_id
        self.timestamp = timestamp
        self.reason = reason


@dataclass(frozen=True)
class SatellitePosition:
    """Sub-satellite geodetic position at one instant."""
    lat_deg: float
    lng_deg: float
    height_km: float


def ensure_utc(timestamp: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if isinstance(timestamp, pd.Timestamp):
        timestamp = timestamp.to_pydatetime()
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


def as_tle(satellite: SatelliteLike) -> TLEData:
    """Return the TLE form of a satellite, encoding element sets on demand."""
    if isinstance(satellite, TLEData):
        return satellite
    return encode(satellite)


class Propagator(ABC):
    """Propagates one satellite to one instant."""

    @abstractmethod
    def propagate(self, satellite: SatelliteLike, timestamp: datetime) -> SatellitePosition:
        """
        Compute the sub-satellite point at ``timestamp``.

        Raises
        ------
        PropagationFailure
            If the propagator cannot produce a position.
        """


class SkyfieldPropagator(Propagator):
    """
    SGP4 propagation through Skyfield.

    Parsed ``EarthSatellite`` objects are cached per instance, keyed by the
    TLE lines, so repeated calls for the same satellite skip TLE parsing.
    """

    def __init__(self, timescale=None):
        self.ts = timescale if timescale is not None else load.timescale()
        self._satellites: Dict[Tuple[str, str], EarthSatellite] = {}
        self._lock = threading.Lock()

    def _earth_satellite(self, tle: TLEData) -> EarthSatellite:
        key = (tle.line1, tle.line2)
        with self._lock:
            satellite = self._satellites.get(key)
            if satellite is None:
                satellite = EarthSatellite(tle.line1, tle.line2, str(tle.satellite_id), self.ts)
                self._satellites[key] = satellite
        return satellite

    def propagate(self, satellite: SatelliteLike, timestamp: datetime) -> SatellitePosition:
        tle = as_tle(satellite)
        timestamp = ensure_utc(timestamp)

        try:
            earth_satellite = self._earth_satellite(tle)
        except ValueError as e:
            raise PropagationFailure(tle.satellite_id, timestamp, f"TLE rejected: {e}") from e

        t = self.ts.from_datetime(timestamp)
        geocentric = earth_satellite.at(t)

        # SGP4 errors surface as NaN positions plus a message, not exceptions
        message = getattr(geocentric, 'message', None)
        if message or not np.all(np.isfinite(geocentric.position.km)):
            raise PropagationFailure(tle.satellite_id, timestamp, message or "non-finite position")

        subpoint = wgs84.geographic_position_of(geocentric)
        lat = float(subpoint.latitude.degrees)
        lon = float(subpoint.longitude.degrees)
        height = float(subpoint.elevation.km)

        if not (math.isfinite(lat) and math.isfinite(lon) and math.isfinite(height)):
            raise PropagationFailure(tle.satellite_id, timestamp, "non-finite geodetic position")

        return SatellitePosition(lat_deg=lat, lng_deg=lon, height_km=height)

    def clear_cache(self) -> None:
        """Drop all parsed satellites."""
        with self._lock:
            self._satellites.clear()


def trajectory_time_step_s(num_satellites: int) -> int:
    """
    Trajectory sample spacing for a constellation of the given size.

    Larger constellations get coarser sampling to bound the sample count.

    Examples
    --------
    >>> trajectory_time_step_s(8)
    60
    >>> trajectory_time_step_s(40)
    300
    """
    for max_satellites, step_s in TRAJECTORY_STEP_TIERS:
        if num_satellites <= max_satellites:
            return step_s
    return TRAJECTORY_STEP_MAX_S


def propagate_trajectory(
    propagator: Propagator,
    satellite: SatelliteLike,
    start_time: datetime,
    end_time: Optional[datetime] = None,
    time_step_s: float = 60.0,
) -> pd.DataFrame:
    """
    Sample a satellite trajectory over a time window.

    Samples that fail to propagate are logged and skipped; a satellite
    with no successful samples yields an empty DataFrame.

    Parameters
    ----------
    propagator : Propagator
        Propagation capability.
    satellite : OrbitalElementSet or TLEData
        Satellite to propagate.
    start_time : datetime
        Window start (naive values are taken as UTC).
    end_time : datetime, optional
        Window end, inclusive. Defaults to ``SIMULATION_DAYS`` after start.
    time_step_s : float
        Sample spacing in seconds.

    Returns
    -------
    pd.DataFrame
        DataFrame with columns: Satellite, Epoch, Latitude, Longitude, Altitude_km
    """
    if time_step_s <= 0:
        raise ValueError(f"time_step_s must be positive, got {time_step_s}")

    start_time = ensure_utc(start_time)
    end_time = ensure_utc(end_time) if end_time is not None else start_time + timedelta(days=SIMULATION_DAYS)
    tle = as_tle(satellite)

    orbit_points = []
    failures = 0
    step = timedelta(seconds=time_step_s)
    current = start_time

    while current <= end_time:
        try:
            position = propagator.propagate(tle, current)
        except PropagationFailure as e:
            failures += 1
            logger.debug(f"Skipping trajectory sample: {e}")
        else:
            orbit_points.append({
                'Satellite': tle.satellite_id,
                'Epoch': current,
                'Latitude': position.lat_deg,
                'Longitude': position.lng_deg,
                'Altitude_km': position.height_km,
            })
        current = current + step

    if failures:
        logger.warning(f"Satellite {tle.satellite_id}: {failures} trajectory samples failed to propagate")

    df = pd.DataFrame(orbit_points, columns=['Satellite', 'Epoch', 'Latitude', 'Longitude', 'Altitude_km'])
    if not df.empty:
        df['Epoch'] = pd.to_datetime(df['Epoch'], utc=True)

    return df
