"""
Instantaneous ground-coverage evaluation.

Samples a latitude/longitude lattice over the sphere and counts the points
that lie inside at least one satellite's visibility radius.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .constants import EARTH_RADIUS_KM, GRID_RESOLUTION_DEG, MIN_ELEVATION_DEG
from .propagation import (
    PropagationFailure,
    Propagator,
    SatelliteLike,
    SatellitePosition,
    ensure_utc,
)
from .utils import calculate_coverage_radius_km, haversine_distance_km

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroundPoint:
    """A location on Earth's reference sphere."""
    lat_deg: float
    lng_deg: float


@dataclass(frozen=True)
class CoverageResult:
    """Output of one aggregation pass."""
    global_percentage: float
    covered_point_count: int
    total_point_count: int
    evaluated_at: datetime
    contributing_satellites: int = 0


def _grid_steps(resolution_deg: float) -> Tuple[int, int]:
    if not resolution_deg > 0:
        raise ValueError(f"Grid resolution must be positive, got {resolution_deg}")
    # Small tolerance so 360/r that is integral in exact arithmetic stays integral
    lng_steps = int(np.ceil(360.0 / resolution_deg - 1e-9))
    lat_steps = int(np.floor(180.0 / resolution_deg + 1e-9)) + 1
    return lng_steps, lat_steps


@lru_cache(maxsize=16)
def grid_arrays(resolution_deg: float = GRID_RESOLUTION_DEG) -> Tuple[np.ndarray, np.ndarray]:
    """
    Latitude and longitude arrays of the sampling lattice.

    Longitude-major ordering, identical to ``generate_earth_grid``. The
    returned arrays are read-only because they are shared between callers.

    Parameters
    ----------
    resolution_deg : float
        Lattice spacing in degrees.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        (latitudes, longitudes) in degrees.
    """
    lng_steps, lat_steps = _grid_steps(resolution_deg)
    lngs = -180.0 + np.arange(lng_steps) * resolution_deg
    lats = -90.0 + np.arange(lat_steps) * resolution_deg

    lng_grid, lat_grid = np.meshgrid(lngs, lats, indexing='ij')
    lat_flat = lat_grid.ravel()
    lng_flat = lng_grid.ravel()
    lat_flat.setflags(write=False)
    lng_flat.setflags(write=False)
    return lat_flat, lng_flat


def generate_earth_grid(resolution_deg: float = GRID_RESOLUTION_DEG) -> List[GroundPoint]:
    """
    Generate a grid of points covering Earth's surface.

    Longitude runs from -180 (inclusive) to +180 (exclusive) and latitude
    from -90 to +90 inclusive, both in steps of ``resolution_deg``.

    Parameters
    ----------
    resolution_deg : float
        Grid resolution in degrees (default 2).

    Returns
    -------
    List[GroundPoint]
        ``(360/r) * (180/r + 1)`` lattice points.
    """
    lats, lngs = grid_arrays(resolution_deg)
    return [GroundPoint(lat_deg=float(lat), lng_deg=float(lng)) for lat, lng in zip(lats, lngs)]


def is_point_covered(
    sat_position: SatellitePosition,
    ground_point: GroundPoint,
    min_elevation_deg: float = MIN_ELEVATION_DEG,
) -> bool:
    """
    Check if a ground point is inside a satellite's visibility radius.

    Parameters
    ----------
    sat_position : SatellitePosition
        Sub-satellite point and height.
    ground_point : GroundPoint
        Point to test.
    min_elevation_deg : float
        Minimum elevation angle in degrees.

    Returns
    -------
    bool
        True if the great-circle distance is within the coverage radius.
    """
    distance = haversine_distance_km(
        ground_point.lat_deg, ground_point.lng_deg,
        sat_position.lat_deg, sat_position.lng_deg,
    )
    return bool(distance <= calculate_coverage_radius_km(sat_position.height_km, min_elevation_deg))


def calculate_elevation_angle(sat_position: SatellitePosition, ground_point: GroundPoint) -> float:
    """
    Elevation angle of a satellite seen from a ground point, spherical Earth.

    Informational only: coverage decisions use the distance threshold in
    ``is_point_covered``.

    Returns
    -------
    float
        Elevation angle in degrees (negative below the horizon).
    """
    central_angle = haversine_distance_km(
        ground_point.lat_deg, ground_point.lng_deg,
        sat_position.lat_deg, sat_position.lng_deg,
    ) / EARTH_RADIUS_KM

    ratio = EARTH_RADIUS_KM / (EARTH_RADIUS_KM + sat_position.height_km)
    # Angle between local horizon and the line of sight
    elevation = np.arctan2(np.cos(central_angle) - ratio, np.sin(central_angle))
    return float(np.degrees(elevation))


def covered_mask(
    positions: Sequence[SatellitePosition],
    resolution_deg: float = GRID_RESOLUTION_DEG,
    min_elevation_deg: float = MIN_ELEVATION_DEG,
) -> np.ndarray:
    """
    Boolean mask over the lattice: True where any satellite covers the point.

    Overlapping footprints are OR-ed, so a point is counted once.
    """
    lats, lngs = grid_arrays(resolution_deg)
    mask = np.zeros(lats.shape, dtype=bool)

    for position in positions:
        radius_km = calculate_coverage_radius_km(position.height_km, min_elevation_deg)
        distances = haversine_distance_km(lats, lngs, position.lat_deg, position.lng_deg)
        mask |= distances <= radius_km

    return mask


def _round_half_up(value: float, decimals: int = 2) -> float:
    factor = 10 ** decimals
    return float(np.floor(value * factor + 0.5) / factor)


def coverage_from_positions(
    positions: Sequence[SatellitePosition],
    evaluated_at: datetime,
    grid_resolution_deg: float = GRID_RESOLUTION_DEG,
    min_elevation_deg: float = MIN_ELEVATION_DEG,
) -> CoverageResult:
    """
    Global coverage percentage for a set of sub-satellite points.

    Parameters
    ----------
    positions : Sequence[SatellitePosition]
        Satellite positions at one instant.
    evaluated_at : datetime
        Instant the positions belong to.
    grid_resolution_deg : float
        Lattice spacing in degrees.
    min_elevation_deg : float
        Minimum elevation angle in degrees.

    Returns
    -------
    CoverageResult
        Percentage rounded to 2 decimals plus point counts.
    """
    mask = covered_mask(positions, grid_resolution_deg, min_elevation_deg)
    covered = int(mask.sum())
    total = int(mask.size)

    return CoverageResult(
        global_percentage=_round_half_up(100.0 * covered / total),
        covered_point_count=covered,
        total_point_count=total,
        evaluated_at=evaluated_at,
        contributing_satellites=len(positions),
    )


def _propagate_or_none(
    propagator: Propagator,
    satellite: SatelliteLike,
    timestamp: datetime,
) -> Optional[SatellitePosition]:
    try:
        return propagator.propagate(satellite, timestamp)
    except PropagationFailure as e:
        logger.warning(f"Skipping satellite in coverage pass: {e}")
        return None


def propagate_positions(
    satellites: Sequence[SatelliteLike],
    timestamp: datetime,
    propagator: Propagator,
    max_workers: Optional[int] = None,
) -> List[Optional[SatellitePosition]]:
    """
    Propagate every satellite to one instant.

    Returns one entry per input satellite, in input order, with ``None``
    where propagation failed. With ``max_workers`` > 1 the calls run on a
    thread pool; the output is identical to sequential execution.
    """
    if max_workers is None or max_workers <= 1 or len(satellites) <= 1:
        return [_propagate_or_none(propagator, sat, timestamp) for sat in satellites]

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(
            lambda sat: _propagate_or_none(propagator, sat, timestamp),
            satellites,
        ))


def calculate_instantaneous_coverage(
    satellites: Sequence[SatelliteLike],
    timestamp: datetime,
    propagator: Propagator,
    grid_resolution_deg: float = GRID_RESOLUTION_DEG,
    min_elevation_deg: float = MIN_ELEVATION_DEG,
    max_workers: Optional[int] = None,
) -> CoverageResult:
    """
    Calculate instantaneous global coverage percentage for a constellation.

    Satellites whose propagation fails are logged and left out; they do
    not abort the pass.

    Parameters
    ----------
    satellites : Sequence[OrbitalElementSet or TLEData]
        Constellation members.
    timestamp : datetime
        Instant to evaluate.
    propagator : Propagator
        Propagation capability.
    grid_resolution_deg : float
        Lattice spacing in degrees.
    min_elevation_deg : float
        Minimum elevation angle in degrees.
    max_workers : int, optional
        Thread count for propagation. Sequential when None.

    Returns
    -------
    CoverageResult
        Coverage at ``timestamp``.
    """
    timestamp = ensure_utc(timestamp)
    results = propagate_positions(satellites, timestamp, propagator, max_workers)
    positions = [p for p in results if p is not None]

    if len(positions) < len(satellites):
        logger.warning(
            f"Coverage at {timestamp.isoformat()}: {len(satellites) - len(positions)} of "
            f"{len(satellites)} satellites could not be propagated"
        )

    result = coverage_from_positions(positions, timestamp, grid_resolution_deg, min_elevation_deg)
    logger.info(
        f"Coverage at {timestamp.isoformat()}: {result.global_percentage:.2f}% "
        f"({result.covered_point_count}/{result.total_point_count} points, "
        f"{len(positions)} satellites)"
    )
    return result
