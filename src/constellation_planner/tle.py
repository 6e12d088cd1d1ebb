"""
Two-line element (TLE) encoding for synthesized circular orbits.

Downstream SGP4 propagators parse TLEs by column position, so every field
is written at its fixed width and any value that does not fit raises
``EncodingDefect`` instead of producing a malformed line.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Sequence, Tuple

from .constants import (
    SECONDS_PER_DAY,
    TLE_CLASSIFICATION,
    TLE_ELEMENT_SET_NUMBER,
    TLE_EPHEMERIS_TYPE,
    TLE_LINE_LENGTH,
    TLE_MAX_CATALOG_NUMBER,
)
from .constellation import OrbitalElementSet
from .utils import altitude_to_mean_motion, normalize_angle_deg


class EncodingDefect(ValueError):
    """A value cannot be represented in its fixed-width TLE field."""


@dataclass(frozen=True)
class TLEData:
    """Container for TLE lines and the orbital parameters they encode."""
    satellite_id: int
    line1: str
    line2: str
    inclination_deg: float
    altitude_km: float
    raan_deg: float
    mean_motion_rev_per_day: float


def calculate_checksum(line: str) -> int:
    """
    Calculate the checksum for a TLE line.

    Parameters
    ----------
    line : str
        TLE line, with or without its checksum digit. Only the first 68
        characters are summed.

    Returns
    -------
    int
        Checksum digit (0-9).
    """
    checksum = 0
    for char in line[:TLE_LINE_LENGTH - 1]:
        if char.isdigit():
            checksum += int(char)
        elif char == '-':
            checksum += 1
    return checksum % 10


def verify_tle_line(line: str) -> bool:
    """True if the line has the fixed TLE length and a matching checksum."""
    if len(line) != TLE_LINE_LENGTH or not line[-1].isdigit():
        return False
    return calculate_checksum(line) == int(line[-1])


def _to_utc(epoch: datetime) -> datetime:
    if epoch.tzinfo is None:
        return epoch
    return epoch.astimezone(timezone.utc).replace(tzinfo=None)


def format_epoch(epoch: datetime) -> str:
    """
    Convert a datetime to the TLE epoch field ``YYDDD.DDDDDDDD``.

    Naive datetimes are taken to be UTC.

    Examples
    --------
    >>> format_epoch(datetime(2024, 1, 1, 12, 0, 0))
    '24001.50000000'
    """
    epoch = _to_utc(epoch)
    year = epoch.year % 100
    day_of_year = epoch.timetuple().tm_yday
    seconds = epoch.hour * 3600 + epoch.minute * 60 + epoch.second + epoch.microsecond / 1e6
    fraction = seconds / SECONDS_PER_DAY

    epoch_str = f"{year:02d}{day_of_year + fraction:012.8f}"
    if len(epoch_str) != 14:
        raise EncodingDefect(f"Epoch {epoch.isoformat()} does not fit the TLE epoch field: {epoch_str!r}")
    return epoch_str


def _fixed(value: float, width: int, decimals: int, field: str) -> str:
    text = f"{value:{width}.{decimals}f}"
    if len(text) != width:
        raise EncodingDefect(f"{field} value {value} does not fit in {width} columns")
    return text


def _international_designator(epoch: datetime, satellite_id: int) -> str:
    # Synthetic launch: epoch year, launch number from the catalog number, piece A
    return f"{_to_utc(epoch).year % 100:02d}{satellite_id % 1000:03d}A"


def _check_elements(elements: OrbitalElementSet, mean_motion: float) -> None:
    sat_id = elements.satellite_id
    if isinstance(sat_id, bool) or not isinstance(sat_id, int) or not 0 <= sat_id <= TLE_MAX_CATALOG_NUMBER:
        raise EncodingDefect(f"Satellite ID {sat_id!r} is not a 5-digit catalog number")

    for name in ('altitude_km', 'inclination_deg', 'raan_deg', 'true_anomaly_deg'):
        if not math.isfinite(getattr(elements, name)):
            raise EncodingDefect(f"{name} must be finite, got {getattr(elements, name)}")

    if not 0.0 <= elements.inclination_deg <= 180.0:
        raise EncodingDefect(f"Inclination {elements.inclination_deg} outside [0, 180] deg")

    if not math.isfinite(mean_motion) or not 0.0 < mean_motion < 100.0:
        raise EncodingDefect(
            f"Mean motion {mean_motion} rev/day for altitude {elements.altitude_km} km "
            f"cannot be encoded"
        )


def generate_tle_lines(elements: OrbitalElementSet) -> Tuple[str, str]:
    """
    Generate the two TLE lines for a circular orbit.

    Eccentricity and argument of perigee are zero; mean anomaly equals the
    true anomaly, which holds exactly for a circular orbit.

    Parameters
    ----------
    elements : OrbitalElementSet
        Orbit to encode.

    Returns
    -------
    tuple of (str, str)
        The two 69-column lines of the TLE, checksums included.

    Raises
    ------
    EncodingDefect
        If any value does not fit its field.
    """
    if elements.altitude_km <= -6378.0:
        raise EncodingDefect(f"Altitude {elements.altitude_km} km is below Earth's centre")
    mean_motion = altitude_to_mean_motion(elements.altitude_km)
    _check_elements(elements, mean_motion)

    sat_num_str = f"{elements.satellite_id:05d}"
    epoch_str = format_epoch(elements.epoch)
    designator = _international_designator(elements.epoch, elements.satellite_id)

    # Line 1: catalog, classification, designator, epoch, n-dot, n-ddot, BSTAR, ephemeris, element set
    line1 = (
        f"1 {sat_num_str}{TLE_CLASSIFICATION} {designator:<8} {epoch_str} "
        f" .00000000  00000-0  00000-0 {TLE_EPHEMERIS_TYPE} {TLE_ELEMENT_SET_NUMBER:>4d}"
    )
    line1 = line1 + str(calculate_checksum(line1))

    inclination = _fixed(elements.inclination_deg, 8, 4, 'Inclination')
    raan = _fixed(normalize_angle_deg(elements.raan_deg), 8, 4, 'RAAN')
    arg_perigee = _fixed(0.0, 8, 4, 'Argument of perigee')
    mean_anomaly = _fixed(normalize_angle_deg(elements.true_anomaly_deg), 8, 4, 'Mean anomaly')
    mean_motion_str = _fixed(mean_motion, 11, 8, 'Mean motion')
    rev_number = 0

    # Line 2: catalog, inclination, RAAN, eccentricity, arg perigee, mean anomaly, mean motion, rev number
    line2 = (
        f"2 {sat_num_str} {inclination} {raan} 0000000 {arg_perigee} "
        f"{mean_anomaly} {mean_motion_str}{rev_number:05d}"
    )
    line2 = line2 + str(calculate_checksum(line2))

    for number, line in ((1, line1), (2, line2)):
        if len(line) != TLE_LINE_LENGTH:
            raise EncodingDefect(f"TLE line {number} is {len(line)} columns, expected {TLE_LINE_LENGTH}: {line!r}")

    return line1, line2


def encode(elements: OrbitalElementSet) -> TLEData:
    """
    Encode one element set as TLE data.

    Parameters
    ----------
    elements : OrbitalElementSet
        Orbit to encode.

    Returns
    -------
    TLEData
        TLE lines plus the parameters they were derived from.
    """
    line1, line2 = generate_tle_lines(elements)
    return TLEData(
        satellite_id=elements.satellite_id,
        line1=line1,
        line2=line2,
        inclination_deg=elements.inclination_deg,
        altitude_km=elements.altitude_km,
        raan_deg=elements.raan_deg,
        mean_motion_rev_per_day=altitude_to_mean_motion(elements.altitude_km),
    )


def encode_constellation(elements: Sequence[OrbitalElementSet]) -> Dict[int, TLEData]:
    """Encode every element set, keyed by satellite ID."""
    return {e.satellite_id: encode(e) for e in elements}
