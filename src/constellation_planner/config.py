"""
Configuration dataclasses and loading utilities.

All configuration is managed through typed dataclasses for validation
and IDE support.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List
import yaml

from .constants import (
    DEMO_ALTITUDE_KM,
    FOOTPRINT_SEGMENTS,
    GRID_RESOLUTION_DEG,
    MIN_ELEVATION_DEG,
    POLL_INTERVAL_S,
    SIMULATION_DAYS,
)


@dataclass
class ConstellationConfig:
    """Constellation to generate."""
    # 'demo' for the fixed 8-satellite reference, 'custom' for synthesize()
    mode: str = 'custom'
    num_satellites: int = 12
    num_planes: int = 3
    altitudes_per_plane: List[float] = field(default_factory=lambda: [400.0, 500.0, 600.0])

    @property
    def is_demo(self) -> bool:
        return self.mode == 'demo'


@dataclass
class CoverageConfig:
    """Coverage evaluation settings."""
    grid_resolution_deg: float = GRID_RESOLUTION_DEG
    min_elevation_deg: float = MIN_ELEVATION_DEG
    footprint_segments: int = FOOTPRINT_SEGMENTS
    # Threads for per-satellite propagation (1 = sequential)
    max_workers: int = 1


@dataclass
class SimulationConfig:
    """Time window for trajectories and the coverage instant."""
    # ISO 8601 timestamp; empty means "now"
    start_time: str = ''
    duration_days: float = SIMULATION_DAYS
    # 0 selects the step from the constellation size
    time_step_s: float = 0.0
    poll_interval_s: float = POLL_INTERVAL_S


@dataclass
class PlannerConfig:
    """Main configuration for a planning run."""
    constellation: ConstellationConfig = field(default_factory=ConstellationConfig)
    coverage: CoverageConfig = field(default_factory=CoverageConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)

    # Output paths
    output_dir: str = "results"
    excel_filename: str = "constellation_summary.xlsx"
    geojson_filename: str = "coverage_zones.geojson"
    plots_subdir: str = "plots"

    # Plot settings
    plot_dpi: int = 200
    plot_figsize: tuple = (15, 8)
    land_color: str = "#fafaf9"
    ocean_color: str = "#d4dbdc"
    border_color: str = "#ebd6d9"

    @property
    def start_datetime(self) -> datetime:
        """Parse start time to a UTC datetime, defaulting to now."""
        if not self.simulation.start_time:
            return datetime.now(timezone.utc)
        start = datetime.fromisoformat(self.simulation.start_time)
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        return start.astimezone(timezone.utc)

    @property
    def output_path(self) -> Path:
        """Get output directory path."""
        return Path(self.output_dir)

    @property
    def plots_path(self) -> Path:
        """Get plots subdirectory path."""
        return self.output_path / self.plots_subdir


def _parse_altitudes(value: Any, num_planes: int) -> List[float]:
    """Scalar altitudes are broadcast to every plane."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return [float(value)] * num_planes
    return [float(v) for v in value]


def _parse_constellation(data: Dict[str, Any]) -> ConstellationConfig:
    """Parse constellation config from dict."""
    mode = data.get('mode', 'custom')
    if mode not in ('demo', 'custom'):
        raise ValueError(f"constellation.mode must be 'demo' or 'custom', got {mode!r}")

    num_planes = data.get('num_planes', 4 if mode == 'demo' else 3)
    default_altitudes = [DEMO_ALTITUDE_KM] * 4 if mode == 'demo' else [400.0, 500.0, 600.0]
    return ConstellationConfig(
        mode=mode,
        num_satellites=data.get('num_satellites', 8 if mode == 'demo' else 12),
        num_planes=num_planes,
        altitudes_per_plane=_parse_altitudes(data.get('altitudes_per_plane', default_altitudes), num_planes),
    )


def _parse_coverage(data: Dict[str, Any]) -> CoverageConfig:
    """Parse coverage config from dict."""
    return CoverageConfig(
        grid_resolution_deg=data.get('grid_resolution_deg', GRID_RESOLUTION_DEG),
        min_elevation_deg=data.get('min_elevation_deg', MIN_ELEVATION_DEG),
        footprint_segments=data.get('footprint_segments', FOOTPRINT_SEGMENTS),
        max_workers=data.get('max_workers', 1),
    )


def _parse_simulation(data: Dict[str, Any]) -> SimulationConfig:
    """Parse simulation config from dict."""
    start_time = data.get('start_time', '')
    if isinstance(start_time, datetime):
        # YAML parses unquoted timestamps itself
        start_time = start_time.isoformat()
    return SimulationConfig(
        start_time=start_time or '',
        duration_days=data.get('duration_days', SIMULATION_DAYS),
        time_step_s=data.get('time_step_s', 0.0),
        poll_interval_s=data.get('poll_interval_s', POLL_INTERVAL_S),
    )


def load_config(config_path: str) -> PlannerConfig:
    """
    Load configuration from a YAML file.

    Parameters
    ----------
    config_path : str
        Path to the YAML configuration file.

    Returns
    -------
    PlannerConfig
        Parsed configuration. Missing sections take their defaults.
    """
    with open(config_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    return PlannerConfig(
        constellation=_parse_constellation(data.get('constellation', {})),
        coverage=_parse_coverage(data.get('coverage', {})),
        simulation=_parse_simulation(data.get('simulation', {})),
        output_dir=data.get('output_dir', 'results'),
        excel_filename=data.get('excel_filename', 'constellation_summary.xlsx'),
        geojson_filename=data.get('geojson_filename', 'coverage_zones.geojson'),
        plots_subdir=data.get('plots_subdir', 'plots'),
        plot_dpi=data.get('plot_dpi', 200),
        plot_figsize=tuple(data.get('plot_figsize', [15, 8])),
        land_color=data.get('land_color', '#fafaf9'),
        ocean_color=data.get('ocean_color', '#d4dbdc'),
        border_color=data.get('border_color', '#ebd6d9'),
    )


def save_config(config: PlannerConfig, config_path: str) -> None:
    """
    Save configuration to a YAML file.

    Parameters
    ----------
    config : PlannerConfig
        Configuration to save.
    config_path : str
        Path to write the YAML file.
    """
    data = {
        'constellation': {
            'mode': config.constellation.mode,
            'num_satellites': config.constellation.num_satellites,
            'num_planes': config.constellation.num_planes,
            'altitudes_per_plane': list(config.constellation.altitudes_per_plane),
        },
        'coverage': {
            'grid_resolution_deg': config.coverage.grid_resolution_deg,
            'min_elevation_deg': config.coverage.min_elevation_deg,
            'footprint_segments': config.coverage.footprint_segments,
            'max_workers': config.coverage.max_workers,
        },
        'simulation': {
            'start_time': config.simulation.start_time,
            'duration_days': config.simulation.duration_days,
            'time_step_s': config.simulation.time_step_s,
            'poll_interval_s': config.simulation.poll_interval_s,
        },
        'output_dir': config.output_dir,
        'excel_filename': config.excel_filename,
        'geojson_filename': config.geojson_filename,
        'plots_subdir': config.plots_subdir,
        'plot_dpi': config.plot_dpi,
        'plot_figsize': list(config.plot_figsize),
        'land_color': config.land_color,
        'ocean_color': config.ocean_color,
        'border_color': config.border_color,
    }

    with open(config_path, 'w') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
