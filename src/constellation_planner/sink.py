"""
Rendering sink interface and a GeoJSON implementation.

The engine pushes satellite positions and coverage footprints to a sink by
entity id; the sink decides how to draw them. ``GeoJSONSink`` keeps the
entities in memory and exports them as a GeoDataFrame or GeoJSON file.
"""

import colorsys
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import geopandas as gpd
from matplotlib.colors import to_hex
from shapely.geometry import Point

from .constants import (
    FOOTPRINT_SEGMENTS,
    MIN_ELEVATION_DEG,
    PLANE_COLOR_LIGHTNESS,
    PLANE_COLOR_SATURATION,
)
from .constellation import OrbitalElementSet
from .coverage import GroundPoint
from .footprint import footprint_to_polygon, position_footprint, satellite_footprint
from .propagation import Propagator, SatellitePosition, SatelliteLike

logger = logging.getLogger(__name__)

COVERAGE_PREFIX = 'coverage-'


def coverage_entity_id(satellite_id: int) -> str:
    """Entity id of a satellite's coverage zone."""
    return f"{COVERAGE_PREFIX}{satellite_id}"


def generate_plane_colors(num_planes: int) -> List[str]:
    """
    One colour per orbital plane, hues evenly spread around the wheel.

    Parameters
    ----------
    num_planes : int
        Number of planes.

    Returns
    -------
    List[str]
        Hex colour strings, e.g. ``'#eb4747'`` for the first plane.
    """
    colors = []
    for i in range(num_planes):
        hue = i / num_planes
        rgb = colorsys.hls_to_rgb(hue, PLANE_COLOR_LIGHTNESS, PLANE_COLOR_SATURATION)
        colors.append(to_hex(rgb))
    return colors


class RenderSink(ABC):
    """Receives per-entity position and footprint updates."""

    @abstractmethod
    def update_position(self, entity_id: str, position: SatellitePosition) -> None:
        """Create or move a satellite marker."""

    @abstractmethod
    def update_footprint(self, entity_id: str, footprint: Sequence[GroundPoint], color: str) -> None:
        """Create or replace a surface-draped footprint polygon."""

    @abstractmethod
    def remove(self, entity_id: str) -> bool:
        """Remove an entity. Returns False if it did not exist."""

    @abstractmethod
    def entity_ids(self) -> List[str]:
        """Ids of all entities currently held."""


class GeoJSONSink(RenderSink):
    """
    In-memory sink exporting entities as GeoJSON features.

    Positions become Point features with a height property; footprints
    become Polygon features with fill colour and opacity properties.
    """

    def __init__(self, fill_opacity: float = 0.4, outline_opacity: float = 0.8):
        self.fill_opacity = fill_opacity
        self.outline_opacity = outline_opacity
        self._positions: Dict[str, SatellitePosition] = {}
        self._footprints: Dict[str, Tuple[List[GroundPoint], str]] = {}

    def update_position(self, entity_id: str, position: SatellitePosition) -> None:
        self._positions[entity_id] = position

    def update_footprint(self, entity_id: str, footprint: Sequence[GroundPoint], color: str) -> None:
        self._footprints[entity_id] = (list(footprint), color)

    def remove(self, entity_id: str) -> bool:
        removed = self._positions.pop(entity_id, None) is not None
        removed = self._footprints.pop(entity_id, None) is not None or removed
        return removed

    def entity_ids(self) -> List[str]:
        return list(self._positions) + list(self._footprints)

    def footprint(self, entity_id: str) -> Optional[List[GroundPoint]]:
        entry = self._footprints.get(entity_id)
        return entry[0] if entry else None

    def to_geodataframe(self) -> gpd.GeoDataFrame:
        """All entities as a GeoDataFrame in EPSG:4326."""
        records = []
        for entity_id, position in self._positions.items():
            records.append({
                'id': entity_id,
                'kind': 'satellite',
                'height_km': position.height_km,
                'color': None,
                'fill_opacity': None,
                'outline_opacity': None,
                'geometry': Point(position.lng_deg, position.lat_deg),
            })
        for entity_id, (footprint, color) in self._footprints.items():
            records.append({
                'id': entity_id,
                'kind': 'coverage',
                'height_km': 0.0,
                'color': color,
                'fill_opacity': self.fill_opacity,
                'outline_opacity': self.outline_opacity,
                'geometry': footprint_to_polygon(footprint),
            })

        columns = ['id', 'kind', 'height_km', 'color', 'fill_opacity', 'outline_opacity', 'geometry']
        return gpd.GeoDataFrame(records, columns=columns, geometry='geometry', crs='EPSG:4326')

    def write_geojson(self, output_path: Path) -> Path:
        """Write all entities to a GeoJSON file."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        self.to_geodataframe().to_file(output_path, driver='GeoJSON')
        return output_path


def _satellite_id(satellite: SatelliteLike) -> int:
    return satellite.satellite_id


def _zone_color(satellite: SatelliteLike, index: int, colors: Sequence[str]) -> str:
    # Element sets are coloured by plane, anything else by position
    if isinstance(satellite, OrbitalElementSet):
        return colors[satellite.plane_index % len(colors)]
    return colors[index % len(colors)]


def add_satellite_coverage_zone(
    sink: RenderSink,
    satellite: SatelliteLike,
    color: str,
    timestamp: datetime,
    propagator: Propagator,
    min_elevation_deg: float = MIN_ELEVATION_DEG,
    segments: int = FOOTPRINT_SEGMENTS,
) -> Optional[str]:
    """
    Push one satellite's coverage footprint to the sink.

    Returns
    -------
    str or None
        The coverage entity id, or None if propagation failed.
    """
    footprint = satellite_footprint(satellite, timestamp, propagator, min_elevation_deg, segments)
    if footprint is None:
        return None

    entity_id = coverage_entity_id(_satellite_id(satellite))
    sink.update_footprint(entity_id, footprint, color)
    return entity_id


def add_constellation_coverage_zones(
    sink: RenderSink,
    satellites: Sequence[SatelliteLike],
    colors: Sequence[str],
    timestamp: datetime,
    propagator: Propagator,
    min_elevation_deg: float = MIN_ELEVATION_DEG,
    segments: int = FOOTPRINT_SEGMENTS,
) -> List[str]:
    """
    Push coverage footprints for a whole constellation.

    Element sets are coloured by their plane; other satellites cycle
    through ``colors`` by position.

    Returns
    -------
    List[str]
        Ids of the coverage entities created.
    """
    if not colors:
        raise ValueError("At least one colour is required")

    created = []
    for index, satellite in enumerate(satellites):
        color = _zone_color(satellite, index, colors)
        entity_id = add_satellite_coverage_zone(
            sink, satellite, color, timestamp, propagator, min_elevation_deg, segments
        )
        if entity_id:
            created.append(entity_id)

    logger.info(f"Added {len(created)} coverage zones for constellation")
    return created


def remove_all_coverage_zones(sink: RenderSink) -> int:
    """Remove every coverage entity from the sink. Returns the count removed."""
    removed = 0
    for entity_id in sink.entity_ids():
        if entity_id.startswith(COVERAGE_PREFIX) and sink.remove(entity_id):
            removed += 1
    logger.info(f"Removed {removed} coverage zones")
    return removed


def update_coverage_zones(
    sink: RenderSink,
    satellites: Sequence[SatelliteLike],
    colors: Sequence[str],
    timestamp: datetime,
    propagator: Propagator,
    min_elevation_deg: float = MIN_ELEVATION_DEG,
    segments: int = FOOTPRINT_SEGMENTS,
) -> List[str]:
    """Replace all coverage zones with footprints at ``timestamp``."""
    remove_all_coverage_zones(sink)
    return add_constellation_coverage_zones(
        sink, satellites, colors, timestamp, propagator, min_elevation_deg, segments
    )


def publish_positions(
    sink: RenderSink,
    satellites: Sequence[SatelliteLike],
    positions: Sequence[Optional[SatellitePosition]],
) -> int:
    """Push sub-satellite points to the sink, skipping failed propagations."""
    published = 0
    for satellite, position in zip(satellites, positions):
        if position is None:
            continue
        sink.update_position(f"satellite-{_satellite_id(satellite)}", position)
        published += 1
    return published


def publish_coverage_zones(
    sink: RenderSink,
    satellites: Sequence[SatelliteLike],
    positions: Sequence[Optional[SatellitePosition]],
    colors: Sequence[str],
    min_elevation_deg: float = MIN_ELEVATION_DEG,
    segments: int = FOOTPRINT_SEGMENTS,
) -> List[str]:
    """
    Push footprints built from positions that were already propagated.

    ``positions`` lines up with ``satellites`` (as returned by
    ``propagate_positions``); ``None`` entries are skipped.
    """
    if not colors:
        raise ValueError("At least one colour is required")

    created = []
    for index, (satellite, position) in enumerate(zip(satellites, positions)):
        if position is None:
            continue
        entity_id = coverage_entity_id(_satellite_id(satellite))
        sink.update_footprint(
            entity_id,
            position_footprint(position, min_elevation_deg, segments),
            _zone_color(satellite, index, colors),
        )
        created.append(entity_id)

    logger.info(f"Added {len(created)} coverage zones for constellation")
    return created
