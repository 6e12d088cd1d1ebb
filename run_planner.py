#!/usr/bin/env python3
"""
Constellation Coverage Planner CLI

Generate a constellation, encode its TLEs, and evaluate ground coverage.

Usage:
    python run_planner.py --config configs/constellation_default.yaml
    python run_planner.py --demo
"""

import argparse
import logging
import sys
from datetime import timedelta
from pathlib import Path
from typing import List, Optional


def apply_overrides(config, args: argparse.Namespace):
    """Apply command-line overrides on top of the loaded configuration."""
    constellation = config.constellation
    config_planes = constellation.num_planes

    if args.demo:
        constellation.mode = 'demo'
        constellation.num_satellites = 8
        constellation.num_planes = 4
        if not args.altitudes:
            constellation.altitudes_per_plane = [550.0] * 4
    if args.num_satellites is not None:
        constellation.mode = 'custom'
        constellation.num_satellites = args.num_satellites
    if args.num_planes is not None:
        constellation.mode = 'custom'
        constellation.num_planes = args.num_planes
    if args.altitudes:
        # A single altitude applies to every plane
        if len(args.altitudes) == 1:
            constellation.altitudes_per_plane = args.altitudes * constellation.num_planes
        else:
            constellation.altitudes_per_plane = list(args.altitudes)
    elif constellation.num_planes != config_planes and len(set(constellation.altitudes_per_plane)) == 1:
        # A uniform (or scalar) config altitude follows the new plane count
        altitude = constellation.altitudes_per_plane[0]
        constellation.altitudes_per_plane = [altitude] * constellation.num_planes

    if args.time:
        config.simulation.start_time = args.time
    if args.grid_resolution is not None:
        config.coverage.grid_resolution_deg = args.grid_resolution
    if args.min_elevation is not None:
        config.coverage.min_elevation_deg = args.min_elevation
    if args.output_dir:
        config.output_dir = args.output_dir

    return config


def run_planner(args: argparse.Namespace) -> Path:
    """
    Run one planning pass.

    Returns:
        Path to the output directory containing results
    """
    from constellation_planner.config import PlannerConfig, load_config
    from constellation_planner.constellation import (
        InvalidParameter, synthesize, generate_demo_constellation, validate_constellation
    )
    from constellation_planner.tle import encode_constellation
    from constellation_planner.propagation import (
        SkyfieldPropagator, propagate_trajectory, trajectory_time_step_s
    )
    from constellation_planner.coverage import coverage_from_positions, propagate_positions
    from constellation_planner.sink import (
        GeoJSONSink, generate_plane_colors, coverage_entity_id,
        publish_coverage_zones, publish_positions
    )

    import matplotlib
    matplotlib.use('Agg')  # Non-interactive backend for CLI
    import matplotlib.pyplot as plt

    print("=" * 60)
    print("Constellation Coverage Planner")
    print("=" * 60)

    if args.config:
        print(f"\nLoading configuration from: {args.config}")
        config = load_config(args.config)
    else:
        config = PlannerConfig()
    config = apply_overrides(config, args)

    output_path = config.output_path
    plots_path = config.plots_path
    output_path.mkdir(parents=True, exist_ok=True)
    if not args.skip_plots:
        plots_path.mkdir(parents=True, exist_ok=True)

    start = config.start_datetime
    constellation = config.constellation
    print(f"Output directory: {output_path}")
    print(f"Evaluation time: {start.strftime('%Y-%m-%d %H:%M:%S')} UTC")

    # =========================================================================
    # Generate constellation
    # =========================================================================
    print("\nGenerating constellation...")
    try:
        if constellation.is_demo:
            elements = generate_demo_constellation(constellation.altitudes_per_plane, epoch=start)
        else:
            elements = synthesize(
                constellation.num_satellites,
                constellation.num_planes,
                constellation.altitudes_per_plane,
                epoch=start,
            )
    except InvalidParameter as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    validation = validate_constellation(elements)
    stats = validation['stats']
    print(f"  Satellites: {stats['num_satellites']}")
    print(f"  Planes: {stats['num_planes']}")
    print(f"  Altitude range: {stats['altitude_min_km']:.0f} - {stats['altitude_max_km']:.0f} km")
    for warning in validation['warnings']:
        print(f"  WARNING: {warning}")
    for error in validation['errors']:
        print(f"  ERROR: {error}")

    tles = encode_constellation(elements)
    print(f"  Encoded {len(tles)} TLEs")
    if args.verbose:
        for tle in list(tles.values())[:3]:
            print(f"    {tle.line1}")
            print(f"    {tle.line2}")

    # =========================================================================
    # Instantaneous coverage
    # =========================================================================
    print("\nCalculating instantaneous coverage...")
    propagator = SkyfieldPropagator()
    satellites = [tles[e.satellite_id] for e in elements]
    positions = propagate_positions(satellites, start, propagator, config.coverage.max_workers)
    result = coverage_from_positions(
        [p for p in positions if p is not None],
        start,
        grid_resolution_deg=config.coverage.grid_resolution_deg,
        min_elevation_deg=config.coverage.min_elevation_deg,
    )
    print(f"  Global coverage: {result.global_percentage:.2f}%")
    print(f"  Covered points: {result.covered_point_count} / {result.total_point_count}")

    # =========================================================================
    # Coverage zones
    # =========================================================================
    plane_colors = generate_plane_colors(stats['num_planes'])
    sat_colors = {e.satellite_id: plane_colors[e.plane_index % len(plane_colors)] for e in elements}

    sink = GeoJSONSink()
    publish_positions(sink, elements, positions)
    publish_coverage_zones(
        sink, elements, positions, plane_colors,
        config.coverage.min_elevation_deg, config.coverage.footprint_segments,
    )
    geojson_path = sink.write_geojson(output_path / config.geojson_filename)
    print(f"  Coverage zones written to: {geojson_path}")

    # =========================================================================
    # Trajectories
    # =========================================================================
    time_step_s = config.simulation.time_step_s or trajectory_time_step_s(len(elements))
    end = start + timedelta(days=config.simulation.duration_days)
    print(f"\nPropagating trajectories ({config.simulation.duration_days} days, {time_step_s:.0f} s step)...")
    trajectories = [
        propagate_trajectory(propagator, tles[e.satellite_id], start, end, time_step_s)
        for e in elements
    ]
    print(f"  Samples: {sum(len(t) for t in trajectories)}")

    # =========================================================================
    # Outputs
    # =========================================================================
    if not args.skip_excel:
        from constellation_planner.reports import generate_excel_report
        excel_path = generate_excel_report(config, elements, tles, [result])
        print(f"\nExcel report: {excel_path}")

    if not args.skip_plots:
        from constellation_planner.plots import plot_coverage_map, plot_ground_tracks
        print("\nGenerating plots...")

        position_map = {}
        footprint_map = {}
        for element, position in zip(elements, positions):
            if position is None:
                continue
            position_map[element.satellite_id] = position
            ring = sink.footprint(coverage_entity_id(element.satellite_id))
            if ring is not None:
                footprint_map[element.satellite_id] = ring

        fig = plot_coverage_map(position_map, footprint_map, sat_colors, result, config,
                                plots_path / 'coverage_map.png')
        plt.close(fig)

        # First 100 minutes keeps the tracks readable
        track_end = start + timedelta(minutes=100)
        first_orbits = [t[t['Epoch'] <= track_end] for t in trajectories]
        fig = plot_ground_tracks(first_orbits, sat_colors, config, plots_path / 'ground_tracks.png')
        plt.close(fig)
        print(f"  Plots saved to: {plots_path}")

    print("\n" + "=" * 60)
    print("Planning Complete")
    print("=" * 60)

    return output_path


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Constellation Coverage Planner',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python run_planner.py --config configs/constellation_default.yaml
    python run_planner.py --demo --time 2025-06-01T00:00:00
    python run_planner.py --num-satellites 24 --num-planes 4 --altitudes 550
        """
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default=None,
        help='Path to YAML configuration file'
    )

    parser.add_argument(
        '--demo',
        action='store_true',
        help='Use the fixed 8-satellite reference constellation'
    )

    parser.add_argument(
        '--num-satellites', '-n',
        type=int,
        default=None,
        help='Total number of satellites (1-60)'
    )

    parser.add_argument(
        '--num-planes', '-p',
        type=int,
        default=None,
        help='Number of orbital planes (1-10)'
    )

    parser.add_argument(
        '--altitudes', '-a',
        type=float,
        nargs='+',
        default=None,
        help='Altitude per plane in km; a single value applies to all planes'
    )

    parser.add_argument(
        '--time', '-t',
        type=str,
        default=None,
        help='Evaluation time (ISO 8601, UTC if no offset). Defaults to now'
    )

    parser.add_argument(
        '--grid-resolution',
        type=float,
        default=None,
        help='Coverage grid spacing in degrees'
    )

    parser.add_argument(
        '--min-elevation',
        type=float,
        default=None,
        help='Minimum elevation angle in degrees'
    )

    parser.add_argument(
        '--output-dir', '-o',
        type=str,
        default=None,
        help='Override output directory from config'
    )

    parser.add_argument(
        '--skip-plots',
        action='store_true',
        help='Skip plot generation'
    )

    parser.add_argument(
        '--skip-excel',
        action='store_true',
        help='Skip Excel report generation'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    """CLI entry point for the constellation planner."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    run_planner(args)


if __name__ == '__main__':
    main()
