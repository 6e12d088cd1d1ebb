"""
Excel summary of a planning run.
"""

from pathlib import Path
from typing import Dict, Optional, Sequence

import pandas as pd

from .config import PlannerConfig
from .constellation import OrbitalElementSet
from .coverage import CoverageResult
from .tle import TLEData


def _convert_datetimes_to_string(df: pd.DataFrame) -> pd.DataFrame:
    """Convert datetime columns to strings; Excel cannot store timezone-aware values."""
    df = df.copy()
    for col in df.columns:
        if 'datetime' in str(df[col].dtype):
            if df[col].dt.tz is not None:
                df[col] = df[col].dt.tz_convert('UTC').dt.tz_localize(None)
            df[col] = df[col].dt.strftime('%Y-%m-%d %H:%M:%S')
        elif df[col].dtype == 'object' and not df[col].dropna().empty:
            if hasattr(df[col].dropna().iloc[0], 'strftime'):
                df[col] = df[col].apply(
                    lambda x: x.strftime('%Y-%m-%d %H:%M:%S') if hasattr(x, 'strftime') else x
                )
    return df


def elements_to_dataframe(elements: Sequence[OrbitalElementSet]) -> pd.DataFrame:
    """One row per satellite with its orbital elements."""
    rows = [{
        'Satellite ID': e.satellite_id,
        'Plane': e.plane_index + 1,
        'Altitude (km)': e.altitude_km,
        'Inclination (deg)': e.inclination_deg,
        'RAAN (deg)': e.raan_deg,
        'True Anomaly (deg)': e.true_anomaly_deg,
        'Epoch': pd.Timestamp(e.epoch),
    } for e in elements]
    return pd.DataFrame(rows)


def tles_to_dataframe(tles: Dict[int, TLEData]) -> pd.DataFrame:
    """One row per satellite with both TLE lines."""
    rows = [{
        'Satellite ID': sat_id,
        'Line 1': tle.line1,
        'Line 2': tle.line2,
        'Mean Motion (rev/day)': round(tle.mean_motion_rev_per_day, 8),
    } for sat_id, tle in tles.items()]
    return pd.DataFrame(rows)


def coverage_to_dataframe(results: Sequence[CoverageResult]) -> pd.DataFrame:
    """One row per evaluated instant."""
    rows = [{
        'Evaluated At': pd.Timestamp(r.evaluated_at),
        'Global Coverage (%)': r.global_percentage,
        'Covered Points': r.covered_point_count,
        'Total Points': r.total_point_count,
        'Contributing Satellites': r.contributing_satellites,
    } for r in results]
    return pd.DataFrame(rows)


def generate_excel_report(
    config: PlannerConfig,
    elements: Sequence[OrbitalElementSet],
    tles: Dict[int, TLEData],
    coverage_results: Sequence[CoverageResult],
    output_path: Optional[Path] = None,
) -> Path:
    """
    Generate Excel report for a planning run.

    Parameters
    ----------
    config : PlannerConfig
        Run configuration.
    elements : Sequence[OrbitalElementSet]
        Synthesized orbital elements.
    tles : Dict[int, TLEData]
        Encoded TLEs keyed by satellite id.
    coverage_results : Sequence[CoverageResult]
        Coverage at one or more instants.
    output_path : Path, optional
        Output path for the Excel file.

    Returns
    -------
    Path
        Path to the generated Excel file.
    """
    if output_path is None:
        output_path = config.output_path / config.excel_filename
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    constellation = config.constellation
    with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
        config_data = {
            'Parameter': [
                'Mode',
                'Number of Satellites',
                'Number of Planes',
                'Altitudes per Plane (km)',
                'Grid Resolution (deg)',
                'Min Elevation (deg)',
                'Footprint Segments',
                'Simulation Days',
            ],
            'Value': [
                constellation.mode,
                len(elements),
                constellation.num_planes,
                ', '.join(f"{alt:g}" for alt in constellation.altitudes_per_plane),
                config.coverage.grid_resolution_deg,
                config.coverage.min_elevation_deg,
                config.coverage.footprint_segments,
                config.simulation.duration_days,
            ]
        }
        pd.DataFrame(config_data).to_excel(writer, sheet_name='Config', index=False)

        _convert_datetimes_to_string(elements_to_dataframe(elements)).to_excel(
            writer, sheet_name='Elements', index=False
        )
        tles_to_dataframe(tles).to_excel(writer, sheet_name='TLEs', index=False)

        if coverage_results:
            _convert_datetimes_to_string(coverage_to_dataframe(coverage_results)).to_excel(
                writer, sheet_name='Coverage', index=False
            )

    return output_path
