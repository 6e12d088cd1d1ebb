"""
Coverage footprint polygons.

Builds the ring of surface points at a fixed great-circle distance from a
sub-satellite point, for hand-off to a polygon-rendering sink.
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

import numpy as np
from shapely.geometry import Polygon

from .constants import EARTH_RADIUS_KM, FOOTPRINT_SEGMENTS, MIN_ELEVATION_DEG
from .coverage import GroundPoint
from .propagation import PropagationFailure, Propagator, SatelliteLike, SatellitePosition
from .utils import calculate_coverage_radius_km, normalize_longitude

logger = logging.getLogger(__name__)


def build_footprint(
    center: GroundPoint,
    radius_km: float,
    segments: int = FOOTPRINT_SEGMENTS,
) -> List[GroundPoint]:
    """
    Create a circular coverage ring around a point using spherical geometry.

    Each vertex is the destination point reached from ``center`` after
    travelling ``radius_km`` along a great circle at an evenly spaced
    bearing.

    Parameters
    ----------
    center : GroundPoint
        Centre of the footprint (sub-satellite point).
    radius_km : float
        Coverage radius in km.
    segments : int
        Number of polygon segments (default 32).

    Returns
    -------
    List[GroundPoint]
        ``segments + 1`` vertices forming a closed ring, longitudes in
        [-180, 180).
    """
    if segments < 3:
        raise ValueError(f"A footprint needs at least 3 segments, got {segments}")
    if radius_km < 0:
        raise ValueError(f"Footprint radius must be non-negative, got {radius_km}")

    lat_rad = np.radians(center.lat_deg)
    lng_rad = np.radians(center.lng_deg)
    angular_radius = radius_km / EARTH_RADIUS_KM

    bearings = 2 * np.pi * np.arange(segments + 1) / segments

    lats = np.arcsin(
        np.sin(lat_rad) * np.cos(angular_radius) +
        np.cos(lat_rad) * np.sin(angular_radius) * np.cos(bearings)
    )
    lngs = lng_rad + np.arctan2(
        np.sin(bearings) * np.sin(angular_radius) * np.cos(lat_rad),
        np.cos(angular_radius) - np.sin(lat_rad) * np.sin(lats)
    )

    lat_deg = np.degrees(lats)
    lng_deg = normalize_longitude(np.degrees(lngs))

    return [GroundPoint(lat_deg=float(lat), lng_deg=float(lng)) for lat, lng in zip(lat_deg, lng_deg)]


def position_footprint(
    position: SatellitePosition,
    min_elevation_deg: float = MIN_ELEVATION_DEG,
    segments: int = FOOTPRINT_SEGMENTS,
) -> List[GroundPoint]:
    """Footprint ring around an already propagated sub-satellite point."""
    radius_km = calculate_coverage_radius_km(position.height_km, min_elevation_deg)
    return build_footprint(
        GroundPoint(lat_deg=position.lat_deg, lng_deg=position.lng_deg),
        radius_km,
        segments,
    )


def satellite_footprint(
    satellite: SatelliteLike,
    timestamp: datetime,
    propagator: Propagator,
    min_elevation_deg: float = MIN_ELEVATION_DEG,
    segments: int = FOOTPRINT_SEGMENTS,
) -> Optional[List[GroundPoint]]:
    """
    Footprint ring of one satellite at one instant.

    Returns
    -------
    List[GroundPoint] or None
        The ring, or None if the satellite could not be propagated.
    """
    try:
        position = propagator.propagate(satellite, timestamp)
    except PropagationFailure as e:
        logger.warning(f"Could not build footprint: {e}")
        return None

    return position_footprint(position, min_elevation_deg, segments)


def unwrap_longitudes(footprint: Sequence[GroundPoint]) -> np.ndarray:
    """
    Longitudes made continuous across the antimeridian.

    Consecutive vertices never jump by more than 180 deg, so rings that
    cross +/-180 come out as one contiguous shape (possibly outside
    [-180, 180)).
    """
    lngs = np.radians([p.lng_deg for p in footprint])
    return np.degrees(np.unwrap(lngs))


def footprint_to_polygon(footprint: Sequence[GroundPoint]) -> Polygon:
    """
    Convert a footprint ring into a Shapely polygon in (lon, lat) order.

    Parameters
    ----------
    footprint : Sequence[GroundPoint]
        Closed ring from ``build_footprint``.

    Returns
    -------
    Polygon
        Polygon in WGS84 coordinates with unwrapped longitudes.
    """
    lngs = unwrap_longitudes(footprint)
    lats = [p.lat_deg for p in footprint]
    return Polygon(zip(lngs, lats))
