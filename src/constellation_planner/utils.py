"""
Shared utility functions for constellation coverage analysis.

Consolidates the spherical-Earth math used by both the coverage evaluator
and the footprint builder, so the two never disagree.
"""

from typing import Union
import numpy as np

from .constants import (
    EARTH_RADIUS_KM,
    EARTH_MU_KM3_S2,
    MIN_ELEVATION_DEG,
    MINUTES_PER_DAY,
    SECONDS_PER_MINUTE,
)


def haversine_distance_km(
    lat1: Union[float, np.ndarray],
    lon1: Union[float, np.ndarray],
    lat2: Union[float, np.ndarray],
    lon2: Union[float, np.ndarray],
) -> Union[float, np.ndarray]:
    """
    Calculate great-circle distance using Haversine formula.

    Fully vectorized - works with scalars or arrays of any compatible shape.

    Parameters
    ----------
    lat1, lon1 : float or array
        First point(s) latitude and longitude in degrees.
    lat2, lon2 : float or array
        Second point(s) latitude and longitude in degrees.

    Returns
    -------
    float or array
        Distance(s) in kilometers on a sphere of radius EARTH_RADIUS_KM.

    Examples
    --------
    >>> haversine_distance_km(0, 0, 0, 1)  # ~111 km at equator
    111.31...
    """
    lat1_rad = np.radians(lat1)
    lat2_rad = np.radians(lat2)
    dlat = lat2_rad - lat1_rad
    dlon = np.radians(lon2) - np.radians(lon1)

    a = np.sin(dlat / 2) ** 2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon / 2) ** 2
    # Clamp so rounding never pushes sqrt(1 - a) into NaN for antipodal points
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def get_orbital_period_seconds(altitude_km: float) -> float:
    """
    Calculate orbital period for a circular orbit via Kepler's third law.

    Parameters
    ----------
    altitude_km : float
        Orbital altitude above Earth's surface in km.

    Returns
    -------
    float
        Orbital period in seconds.

    Examples
    --------
    >>> get_orbital_period_seconds(550) / 60
    95.6...
    """
    semi_major_axis_km = EARTH_RADIUS_KM + altitude_km
    return float(2 * np.pi * np.sqrt(semi_major_axis_km ** 3 / EARTH_MU_KM3_S2))


def get_orbital_period_minutes(altitude_km: float) -> float:
    """Orbital period of a circular orbit in minutes."""
    return get_orbital_period_seconds(altitude_km) / SECONDS_PER_MINUTE


def altitude_to_mean_motion(altitude_km: float) -> float:
    """
    Convert circular-orbit altitude to mean motion.

    Parameters
    ----------
    altitude_km : float
        Orbital altitude in km.

    Returns
    -------
    float
        Mean motion in revolutions per day.
    """
    return MINUTES_PER_DAY / get_orbital_period_minutes(altitude_km)


def calculate_horizon_distance_km(height_km: float) -> float:
    """
    Straight-line distance from a satellite to its geometric horizon.

    Parameters
    ----------
    height_km : float
        Height above Earth's surface in km.

    Returns
    -------
    float
        Line-of-sight distance to the horizon in km.
    """
    return float(np.sqrt(height_km * (2 * EARTH_RADIUS_KM + height_km)))


def calculate_coverage_radius_km(
    height_km: float,
    min_elevation_deg: float = MIN_ELEVATION_DEG,
) -> float:
    """
    Calculate ground coverage radius for a satellite at given height
    and minimum elevation angle constraint.

    Uses the simplified spherical-Earth approximation: the horizon distance
    scaled by cos(elevation). Strictly increasing in height for a fixed
    elevation angle.

    Parameters
    ----------
    height_km : float
        Satellite height in km.
    min_elevation_deg : float
        Minimum elevation angle from ground in degrees.

    Returns
    -------
    float
        Coverage radius on ground in km.

    Examples
    --------
    >>> calculate_coverage_radius_km(550, 35.0)
    2216.0...
    """
    horizon = calculate_horizon_distance_km(height_km)
    return float(horizon * np.cos(np.radians(min_elevation_deg)))


def normalize_longitude(lon: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Normalize longitude to [-180, 180) range.

    Parameters
    ----------
    lon : float or array
        Longitude(s) in degrees.

    Returns
    -------
    float or array
        Normalized longitude(s) in [-180, 180).
    """
    return ((lon + 180) % 360) - 180


def normalize_angle_deg(angle: float) -> float:
    """Wrap an angle into [0, 360)."""
    wrapped = angle % 360.0
    # -1e-15 % 360 rounds up to exactly 360.0
    return 0.0 if wrapped >= 360.0 else wrapped
