"""
Physical, orbital and planning constants used throughout the planner.

Centralizes magic numbers so the encoder, evaluator and footprint builder
always agree on the same Earth model.
"""

# =============================================================================
# Earth Parameters (WGS84, spherical approximation)
# =============================================================================
EARTH_RADIUS_KM = 6378.137  # Equatorial radius in km
EARTH_MU_KM3_S2 = 398600.4418  # Gravitational parameter (km^3/s^2)

# =============================================================================
# Coverage Defaults
# =============================================================================
MIN_ELEVATION_DEG = 35.0  # Usable-link elevation threshold
GRID_RESOLUTION_DEG = 2.0  # Sampling lattice spacing
FOOTPRINT_SEGMENTS = 32  # Polygon segments per footprint ring

# =============================================================================
# Constellation Limits
# =============================================================================
MIN_SATELLITES = 1
MAX_SATELLITES = 60
MIN_PLANES = 1
MAX_PLANES = 10
MIN_ALTITUDE_KM = 160.0
MAX_ALTITUDE_KM = 2000.0

CONSTELLATION_INCLINATION_DEG = 65.0

# Catalog number offsets for synthetic satellites
DEMO_SATELLITE_ID_BASE = 25000
CUSTOM_SATELLITE_ID_BASE = 30000

# =============================================================================
# Demo Constellation
# =============================================================================
DEMO_PLANES = 4
DEMO_SATS_PER_PLANE = 2
DEMO_ALTITUDE_KM = 550.0
# Anomaly of the first satellite in each demo plane
DEMO_TRUE_ANOMALIES_DEG = (45.0, 135.0, 225.0, 315.0)

# =============================================================================
# TLE Field Values
# =============================================================================
TLE_LINE_LENGTH = 69
TLE_CLASSIFICATION = 'U'
TLE_ELEMENT_SET_NUMBER = 999
TLE_EPHEMERIS_TYPE = 0
TLE_MAX_CATALOG_NUMBER = 99999

# =============================================================================
# Simulation Defaults
# =============================================================================
SIMULATION_DAYS = 3
POLL_INTERVAL_S = 5.0

# Trajectory sample spacing by constellation size: (max satellites, step seconds)
TRAJECTORY_STEP_TIERS = (
    (8, 60),
    (16, 120),
    (32, 240),
)
TRAJECTORY_STEP_MAX_S = 300

# Plane colour palette (HSL)
PLANE_COLOR_SATURATION = 0.8
PLANE_COLOR_LIGHTNESS = 0.6

# =============================================================================
# Time Constants
# =============================================================================
SECONDS_PER_MINUTE = 60
SECONDS_PER_DAY = 86400
MINUTES_PER_DAY = 1440
