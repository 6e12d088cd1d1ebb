"""
Map plots of constellation coverage.

Uses matplotlib + cartopy on a PlateCarree projection.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import matplotlib.patches as mpatches
import cartopy.crs as ccrs
import cartopy.feature as cfeature

from .config import PlannerConfig
from .coverage import CoverageResult, GroundPoint, covered_mask, grid_arrays
from .footprint import footprint_to_polygon
from .propagation import SatellitePosition


def _get_map_features(config: PlannerConfig) -> Tuple[Any, Any]:
    """
    Create land and ocean features.

    Returns
    -------
    Tuple[land_feature, ocean_feature]
    """
    land = cfeature.NaturalEarthFeature(
        category='physical',
        name='land',
        scale='110m',
        edgecolor='face',
        facecolor=config.land_color
    )
    ocean = cfeature.NaturalEarthFeature(
        category='physical',
        name='ocean',
        scale='110m',
        edgecolor='face',
        facecolor=config.ocean_color
    )
    return land, ocean


def _setup_map_axes(ax: plt.Axes, config: PlannerConfig) -> None:
    land, ocean = _get_map_features(config)
    ax.add_feature(ocean, zorder=0)
    ax.add_feature(land, zorder=1)
    ax.add_feature(cfeature.BORDERS, linewidth=0.5, edgecolor=config.border_color, zorder=2)
    ax.set_global()
    ax.gridlines()


def plot_coverage_map(
    positions: Dict[int, SatellitePosition],
    footprints: Dict[int, List[GroundPoint]],
    colors: Dict[int, str],
    result: CoverageResult,
    config: PlannerConfig,
    output_path: Optional[Path] = None,
) -> plt.Figure:
    """
    Plot instantaneous coverage: footprints, sub-satellite points and the
    covered lattice points.

    Parameters
    ----------
    positions : Dict[int, SatellitePosition]
        Sub-satellite points keyed by satellite id.
    footprints : Dict[int, List[GroundPoint]]
        Footprint rings keyed by satellite id.
    colors : Dict[int, str]
        Plot colour per satellite id.
    result : CoverageResult
        Coverage at the plotted instant (used for the title).
    config : PlannerConfig
        Run configuration.
    output_path : Path, optional
        Path to save the figure.

    Returns
    -------
    plt.Figure
        The matplotlib figure.
    """
    fig = plt.figure(figsize=config.plot_figsize)
    ax = plt.axes(projection=ccrs.PlateCarree())
    _setup_map_axes(ax, config)

    lats, lngs = grid_arrays(config.coverage.grid_resolution_deg)
    mask = covered_mask(list(positions.values()), config.coverage.grid_resolution_deg,
                        config.coverage.min_elevation_deg)
    ax.scatter(lngs[mask], lats[mask], s=2, color='black', alpha=0.4,
               transform=ccrs.PlateCarree(), zorder=3)

    legend_groups: Dict[str, List[int]] = {}
    for sat_id, ring in footprints.items():
        color = colors.get(sat_id, 'tab:blue')
        polygon = footprint_to_polygon(ring)
        # Unwrapped rings can extend past +/-180; draw the shifted copy too
        minx, _, maxx, _ = polygon.bounds
        shifts = [0.0]
        if maxx > 180:
            shifts.append(-360.0)
        if minx < -180:
            shifts.append(360.0)
        x, y = polygon.exterior.xy
        for shift in shifts:
            ax.fill(np.asarray(x) + shift, y, facecolor=color, edgecolor=color,
                    alpha=0.4, linewidth=1, transform=ccrs.PlateCarree(), zorder=4)
        legend_groups.setdefault(color, []).append(sat_id)

    for sat_id, position in positions.items():
        ax.plot(position.lng_deg, position.lat_deg, 'o',
                color=colors.get(sat_id, 'tab:blue'), markeredgecolor='black',
                markersize=5, transform=ccrs.PlateCarree(), zorder=5)

    if legend_groups:
        handles = []
        for color, ids in legend_groups.items():
            label = f'Sat-{ids[0]}' if len(ids) == 1 else f'Sat-{ids[0]}..{ids[-1]}'
            handles.append(mpatches.Patch(color=color, alpha=0.6, label=label))
        ax.legend(handles=handles, loc='lower left', fontsize=8)

    timestamp = result.evaluated_at.strftime('%Y-%m-%d %H:%M:%S UTC')
    plt.title(f'Instantaneous Coverage {result.global_percentage:.2f}% at {timestamp}')
    plt.tight_layout()

    if output_path:
        fig.savefig(output_path, dpi=config.plot_dpi, bbox_inches='tight')

    return fig


def plot_ground_tracks(
    trajectories: Sequence[pd.DataFrame],
    colors: Dict[int, str],
    config: PlannerConfig,
    output_path: Optional[Path] = None,
) -> plt.Figure:
    """
    Plot sampled trajectories as ground tracks.

    Parameters
    ----------
    trajectories : Sequence[pd.DataFrame]
        Output of ``propagate_trajectory``, one frame per satellite.
    colors : Dict[int, str]
        Plot colour per satellite id.
    config : PlannerConfig
        Run configuration.
    output_path : Path, optional
        Path to save the figure.
    """
    fig = plt.figure(figsize=config.plot_figsize)
    ax = plt.axes(projection=ccrs.PlateCarree())
    ax.add_feature(cfeature.COASTLINE)
    ax.add_feature(cfeature.BORDERS, linestyle=':')
    ax.set_global()
    ax.gridlines()

    for track in trajectories:
        if track.empty:
            continue
        sat_id = int(track['Satellite'].iloc[0])
        color = colors.get(sat_id, 'tab:blue')

        # Break the line where it wraps at the antimeridian
        lons = track['Longitude'].to_numpy(dtype=float)
        lats = track['Latitude'].to_numpy(dtype=float)
        breaks = np.where(np.abs(np.diff(lons)) > 180)[0] + 1
        for seg_lons, seg_lats in zip(np.split(lons, breaks), np.split(lats, breaks)):
            ax.plot(seg_lons, seg_lats, color=color, linewidth=0.8,
                    transform=ccrs.PlateCarree())
        ax.plot(lons[0], lats[0], 'o', color=color, markersize=5,
                transform=ccrs.PlateCarree(), label=f'Sat-{sat_id}')

    ax.legend(loc='upper right', fontsize=7, ncol=2)
    plt.title('Satellite Ground Tracks')
    plt.tight_layout()

    if output_path:
        fig.savefig(output_path, dpi=config.plot_dpi, bbox_inches='tight')

    return fig
