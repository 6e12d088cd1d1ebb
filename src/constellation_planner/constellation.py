"""
Orbital element synthesis for circular-orbit constellations.

Produces evenly spaced element sets from constellation parameters. All
functions are pure: the only input not taken from the arguments is the
default epoch ("now", UTC).
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from numbers import Integral, Real
from typing import Any, Dict, List, Optional, Sequence

from .constants import (
    CONSTELLATION_INCLINATION_DEG,
    CUSTOM_SATELLITE_ID_BASE,
    DEMO_ALTITUDE_KM,
    DEMO_PLANES,
    DEMO_SATELLITE_ID_BASE,
    DEMO_SATS_PER_PLANE,
    DEMO_TRUE_ANOMALIES_DEG,
    MAX_ALTITUDE_KM,
    MAX_PLANES,
    MAX_SATELLITES,
    MIN_ALTITUDE_KM,
    MIN_PLANES,
    MIN_SATELLITES,
)

logger = logging.getLogger(__name__)


class InvalidParameter(ValueError):
    """Constellation parameters rejected before any element is generated."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


@dataclass(frozen=True)
class OrbitalElementSet:
    """
    Circular-orbit elements for one satellite.

    Eccentricity is 0 and argument of perigee is 0 by convention.
    """
    altitude_km: float
    inclination_deg: float
    raan_deg: float
    true_anomaly_deg: float
    epoch: datetime
    satellite_id: int
    plane_index: int = 0


def _is_integer(value: Any) -> bool:
    return isinstance(value, Integral) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _validate_count(name: str, value: Any, low: int, high: int) -> None:
    if not _is_integer(value):
        raise InvalidParameter(name, f"{name} must be an integer, got {value!r}")
    if value < low or value > high:
        raise InvalidParameter(name, f"{name} must be between {low} and {high}, got {value}")


def validate_parameters(
    num_satellites: int,
    num_planes: int,
    altitudes_per_plane: Sequence[float],
) -> None:
    """
    Check constellation parameters against the planner's limits.

    Raises
    ------
    InvalidParameter
        Naming the offending field and the bound it violates.
    """
    _validate_count('numSatellites', num_satellites, MIN_SATELLITES, MAX_SATELLITES)
    _validate_count('numPlanes', num_planes, MIN_PLANES, MAX_PLANES)

    if len(altitudes_per_plane) != num_planes:
        raise InvalidParameter(
            'altitudesPerPlane',
            f"Number of altitudes ({len(altitudes_per_plane)}) must equal number of planes ({num_planes})",
        )

    for i, altitude in enumerate(altitudes_per_plane):
        if not _is_number(altitude) or not math.isfinite(altitude):
            raise InvalidParameter(
                'altitudesPerPlane',
                f"altitudesPerPlane[{i}] must be a finite number, got {altitude!r}",
            )
        if altitude < MIN_ALTITUDE_KM or altitude > MAX_ALTITUDE_KM:
            raise InvalidParameter(
                'altitudesPerPlane',
                f"altitudesPerPlane[{i}] must be between {MIN_ALTITUDE_KM:g} and "
                f"{MAX_ALTITUDE_KM:g} km, got {altitude:g}",
            )

    if num_satellites < num_planes:
        raise InvalidParameter(
            'numSatellites',
            f"numSatellites ({num_satellites}) must be at least numPlanes ({num_planes})",
        )


def plane_sizes(num_satellites: int, num_planes: int) -> List[int]:
    """
    Distribute satellites over planes as evenly as possible.

    The first ``num_satellites % num_planes`` planes receive one extra
    satellite.

    Examples
    --------
    >>> plane_sizes(10, 3)
    [4, 3, 3]
    """
    base, remainder = divmod(num_satellites, num_planes)
    return [base + (1 if i < remainder else 0) for i in range(num_planes)]


def plane_index_for(satellite_index: int, num_satellites: int, num_planes: int) -> int:
    """Plane of the ``satellite_index``-th satellite in plane-major order."""
    if satellite_index < 0 or satellite_index >= num_satellites:
        raise IndexError(f"Satellite index {satellite_index} out of range for {num_satellites} satellites")

    satellites_so_far = 0
    for plane, size in enumerate(plane_sizes(num_satellites, num_planes)):
        satellites_so_far += size
        if satellite_index < satellites_so_far:
            return plane
    # Unreachable for num_satellites >= num_planes
    return num_planes - 1


def plane_raans(num_planes: int) -> List[float]:
    """RAAN values evenly spaced around the equator, starting at 0."""
    return [i * 360.0 / num_planes for i in range(num_planes)]


def synthesize(
    num_satellites: int,
    num_planes: int,
    altitudes_per_plane: Sequence[float],
    epoch: Optional[datetime] = None,
) -> List[OrbitalElementSet]:
    """
    Generate evenly spaced circular-orbit elements for a constellation.

    Parameters
    ----------
    num_satellites : int
        Total satellites, 1-60.
    num_planes : int
        Orbital planes, 1-10, not more than ``num_satellites``.
    altitudes_per_plane : Sequence[float]
        One altitude (160-2000 km) per plane.
    epoch : datetime, optional
        Element epoch. Defaults to the current UTC time.

    Returns
    -------
    List[OrbitalElementSet]
        Elements in plane-major order with sequential satellite IDs.

    Raises
    ------
    InvalidParameter
        If any parameter is out of range. Nothing is generated in that case.
    """
    validate_parameters(num_satellites, num_planes, altitudes_per_plane)

    if epoch is None:
        epoch = datetime.now(timezone.utc)

    elements = []
    satellite_id = CUSTOM_SATELLITE_ID_BASE
    raans = plane_raans(num_planes)

    for plane_index, sats_in_plane in enumerate(plane_sizes(num_satellites, num_planes)):
        for sat_index in range(sats_in_plane):
            elements.append(OrbitalElementSet(
                altitude_km=float(altitudes_per_plane[plane_index]),
                inclination_deg=CONSTELLATION_INCLINATION_DEG,
                raan_deg=raans[plane_index],
                true_anomaly_deg=sat_index * 360.0 / sats_in_plane,
                epoch=epoch,
                satellite_id=satellite_id,
                plane_index=plane_index,
            ))
            satellite_id += 1

    logger.info(f"Synthesized {len(elements)} satellites in {num_planes} planes")
    return elements


def generate_demo_constellation(
    altitudes_per_plane: Optional[Sequence[float]] = None,
    epoch: Optional[datetime] = None,
) -> List[OrbitalElementSet]:
    """
    Generate the fixed 8-satellite reference constellation.

    Four planes at RAAN 0/90/180/270 with two satellites each at 65 deg
    inclination. Satellites are staggered in anomaly so the planes do not
    appear synchronized.

    Parameters
    ----------
    altitudes_per_plane : Sequence[float], optional
        Four per-plane altitudes in km. Defaults to 550 km everywhere.
    epoch : datetime, optional
        Element epoch. Defaults to the current UTC time.
    """
    if altitudes_per_plane is None:
        altitudes_per_plane = [DEMO_ALTITUDE_KM] * DEMO_PLANES
    validate_parameters(DEMO_PLANES * DEMO_SATS_PER_PLANE, DEMO_PLANES, altitudes_per_plane)

    if epoch is None:
        epoch = datetime.now(timezone.utc)

    elements = []
    satellite_id = DEMO_SATELLITE_ID_BASE
    spacing = 360.0 / DEMO_SATS_PER_PLANE

    for plane_index, raan in enumerate(plane_raans(DEMO_PLANES)):
        first_anomaly = DEMO_TRUE_ANOMALIES_DEG[plane_index % len(DEMO_TRUE_ANOMALIES_DEG)]
        for sat_index in range(DEMO_SATS_PER_PLANE):
            elements.append(OrbitalElementSet(
                altitude_km=float(altitudes_per_plane[plane_index]),
                inclination_deg=CONSTELLATION_INCLINATION_DEG,
                raan_deg=raan,
                true_anomaly_deg=(first_anomaly + sat_index * spacing) % 360.0,
                epoch=epoch,
                satellite_id=satellite_id,
                plane_index=plane_index,
            ))
            satellite_id += 1

    return elements


def validate_constellation(elements: Sequence[OrbitalElementSet]) -> Dict[str, Any]:
    """
    Run sanity checks on a generated constellation.

    Parameters
    ----------
    elements : Sequence[OrbitalElementSet]
        Elements from ``synthesize`` or ``generate_demo_constellation``.

    Returns
    -------
    Dict[str, Any]
        Validation results with 'passed', 'errors', 'warnings' and 'stats'.
    """
    results = {
        'passed': True,
        'errors': [],
        'warnings': [],
        'stats': {},
    }

    if not elements:
        results['passed'] = False
        results['errors'].append("Constellation is empty")
        return results

    ids = [e.satellite_id for e in elements]
    if len(set(ids)) != len(ids):
        results['passed'] = False
        results['errors'].append("Duplicate satellite IDs found")

    planes: Dict[int, List[OrbitalElementSet]] = {}
    for e in elements:
        planes.setdefault(e.plane_index, []).append(e)

    counts = [len(members) for members in planes.values()]
    if max(counts) - min(counts) > 1:
        results['passed'] = False
        results['errors'].append(f"Uneven plane populations: {counts}")

    for plane_index, members in planes.items():
        raans = {round(m.raan_deg, 9) for m in members}
        if len(raans) != 1:
            results['passed'] = False
            results['errors'].append(f"Plane {plane_index} has mixed RAAN values: {sorted(raans)}")

    altitudes = [e.altitude_km for e in elements]
    results['stats'] = {
        'num_satellites': len(elements),
        'num_planes': len(planes),
        'satellites_per_plane': counts,
        'altitude_min_km': min(altitudes),
        'altitude_max_km': max(altitudes),
    }

    if results['errors']:
        logger.warning(f"Constellation validation failed: {results['errors']}")

    return results
