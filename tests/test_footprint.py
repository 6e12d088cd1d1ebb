"""Tests for footprint ring construction."""

import pytest

from constellation_planner.coverage import GroundPoint
from constellation_planner.footprint import (
    build_footprint,
    footprint_to_polygon,
    position_footprint,
    satellite_footprint,
    unwrap_longitudes,
)
from constellation_planner.propagation import SatellitePosition
from constellation_planner.utils import calculate_coverage_radius_km, haversine_distance_km


class TestBuildFootprint:

    def test_vertex_count(self):
        assert len(build_footprint(GroundPoint(10.0, 20.0), 2000.0)) == 33

    def test_custom_segments(self):
        assert len(build_footprint(GroundPoint(10.0, 20.0), 2000.0, segments=8)) == 9

    def test_closed_ring(self):
        ring = build_footprint(GroundPoint(-35.0, 140.0), 1500.0)
        assert ring[0].lat_deg == pytest.approx(ring[-1].lat_deg)
        assert ring[0].lng_deg == pytest.approx(ring[-1].lng_deg)

    def test_first_vertex_due_north(self):
        ring = build_footprint(GroundPoint(0.0, 0.0), 1000.0)
        assert ring[0].lng_deg == pytest.approx(0.0, abs=1e-9)
        assert ring[0].lat_deg > 0.0

    @pytest.mark.parametrize("center", [
        GroundPoint(0.0, 0.0),
        GroundPoint(45.0, -120.0),
        GroundPoint(-60.0, 179.5),
        GroundPoint(80.0, 10.0),
    ])
    def test_vertices_at_radius(self, center):
        radius = calculate_coverage_radius_km(550.0, 35.0)
        for vertex in build_footprint(center, radius):
            distance = haversine_distance_km(center.lat_deg, center.lng_deg, vertex.lat_deg, vertex.lng_deg)
            assert distance == pytest.approx(radius, rel=1e-6)

    def test_longitudes_normalized(self):
        ring = build_footprint(GroundPoint(0.0, 179.0), 1000.0)
        assert all(-180.0 <= p.lng_deg < 180.0 for p in ring)
        assert any(p.lng_deg < 0.0 for p in ring)

    def test_latitudes_in_range_over_pole(self):
        ring = build_footprint(GroundPoint(85.0, 0.0), 2000.0)
        assert all(-90.0 <= p.lat_deg <= 90.0 for p in ring)

    def test_zero_radius(self):
        ring = build_footprint(GroundPoint(12.0, 34.0), 0.0)
        assert all(p.lat_deg == pytest.approx(12.0) for p in ring)
        assert all(p.lng_deg == pytest.approx(34.0) for p in ring)

    def test_too_few_segments(self):
        with pytest.raises(ValueError):
            build_footprint(GroundPoint(0.0, 0.0), 1000.0, segments=2)

    def test_negative_radius(self):
        with pytest.raises(ValueError):
            build_footprint(GroundPoint(0.0, 0.0), -1.0)


class TestPolygon:

    def test_polygon_valid(self):
        polygon = footprint_to_polygon(build_footprint(GroundPoint(30.0, 30.0), 1000.0))
        assert polygon.is_valid
        assert polygon.area > 0.0
        assert polygon.contains(polygon.centroid)

    def test_antimeridian_ring_stays_contiguous(self):
        ring = build_footprint(GroundPoint(0.0, 179.0), 1000.0)
        lngs = unwrap_longitudes(ring)
        assert max(abs(b - a) for a, b in zip(lngs, lngs[1:])) < 180.0

        polygon = footprint_to_polygon(ring)
        assert polygon.is_valid
        minx, _, maxx, _ = polygon.bounds
        assert maxx - minx < 30.0


class TestSatelliteFootprint:

    def test_ring_around_subsatellite_point(self, fake_propagator, walker_12, epoch):
        position = SatellitePosition(lat_deg=20.0, lng_deg=-40.0, height_km=550.0)
        propagator = fake_propagator({walker_12[0].satellite_id: position})
        ring = satellite_footprint(walker_12[0], epoch, propagator)
        assert len(ring) == 33
        radius = calculate_coverage_radius_km(550.0, 35.0)
        distance = haversine_distance_km(20.0, -40.0, ring[7].lat_deg, ring[7].lng_deg)
        assert distance == pytest.approx(radius, rel=1e-6)

    def test_propagation_failure_returns_none(self, fake_propagator, walker_12, epoch):
        propagator = fake_propagator({}, failing={walker_12[0].satellite_id})
        assert satellite_footprint(walker_12[0], epoch, propagator) is None

    def test_ring_from_known_position(self):
        position = SatellitePosition(lat_deg=-10.0, lng_deg=170.0, height_km=600.0)
        ring = position_footprint(position, min_elevation_deg=20.0, segments=16)
        assert len(ring) == 17
        radius = calculate_coverage_radius_km(600.0, 20.0)
        distance = haversine_distance_km(-10.0, 170.0, ring[3].lat_deg, ring[3].lng_deg)
        assert distance == pytest.approx(radius, rel=1e-6)
