"""
Constellation Coverage Planner

Synthesizes Walker-style orbital elements, encodes them as TLEs, and
evaluates instantaneous ground coverage and footprint polygons.
"""

__version__ = "0.1.0"

from .constants import (
    EARTH_RADIUS_KM,
    MIN_ELEVATION_DEG,
    GRID_RESOLUTION_DEG,
    FOOTPRINT_SEGMENTS,
)
from .utils import (
    haversine_distance_km,
    calculate_coverage_radius_km,
    calculate_horizon_distance_km,
    altitude_to_mean_motion,
)
from .constellation import (
    InvalidParameter,
    OrbitalElementSet,
    validate_parameters,
    synthesize,
    generate_demo_constellation,
    validate_constellation,
)
from .tle import (
    EncodingDefect,
    TLEData,
    calculate_checksum,
    encode,
    encode_constellation,
)
from .propagation import (
    PropagationFailure,
    SatellitePosition,
    Propagator,
    SkyfieldPropagator,
    propagate_trajectory,
    trajectory_time_step_s,
)
from .coverage import (
    GroundPoint,
    CoverageResult,
    generate_earth_grid,
    is_point_covered,
    calculate_elevation_angle,
    calculate_instantaneous_coverage,
)
from .footprint import (
    build_footprint,
    position_footprint,
    satellite_footprint,
    footprint_to_polygon,
)
from .sink import (
    RenderSink,
    GeoJSONSink,
    generate_plane_colors,
    add_constellation_coverage_zones,
    remove_all_coverage_zones,
    update_coverage_zones,
    publish_positions,
    publish_coverage_zones,
)
from .intake import (
    ConstellationParams,
    ParameterStore,
    ParameterPoller,
    parse_constellation_request,
    submit_constellation,
    latest_constellation,
)
from .config import (
    PlannerConfig,
    ConstellationConfig,
    CoverageConfig,
    SimulationConfig,
    load_config,
    save_config,
)
