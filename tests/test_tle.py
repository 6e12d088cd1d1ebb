"""Tests for TLE encoding."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from constellation_planner.constellation import OrbitalElementSet
from constellation_planner.tle import (
    EncodingDefect,
    calculate_checksum,
    encode,
    encode_constellation,
    format_epoch,
    generate_tle_lines,
    verify_tle_line,
)

# Published ISS example element set
ISS_LINE1 = "1 25544U 98067A   08264.51782528 -.00002182  00000-0 -11606-4 0  2927"
ISS_LINE2 = "2 25544  51.6416 247.4627 0006703 130.5360 325.0288 15.72125391563537"


def _reference_checksum(line):
    total = sum(int(c) for c in line[:68] if c.isdigit())
    total += line[:68].count('-')
    return total % 10


@pytest.fixture
def elements(epoch):
    return OrbitalElementSet(
        altitude_km=550.0,
        inclination_deg=65.0,
        raan_deg=90.0,
        true_anomaly_deg=45.0,
        epoch=epoch,
        satellite_id=25000,
    )


class TestChecksum:

    def test_published_tle(self):
        assert calculate_checksum(ISS_LINE1) == 7
        assert calculate_checksum(ISS_LINE2) == 7
        assert verify_tle_line(ISS_LINE1)
        assert verify_tle_line(ISS_LINE2)

    def test_minus_counts_as_one(self):
        assert calculate_checksum("-" * 68) == 68 % 10

    def test_letters_and_spaces_ignored(self):
        assert calculate_checksum("1 ABC  . +" + " " * 58) == 1

    def test_corrupted_line_rejected(self):
        corrupted = ISS_LINE1[:20] + "9" + ISS_LINE1[21:]
        assert not verify_tle_line(corrupted)
        assert not verify_tle_line(ISS_LINE1[:-1])


class TestEpoch:

    def test_noon_on_new_year(self):
        assert format_epoch(datetime(2024, 1, 1, 12, 0, 0)) == '24001.50000000'

    def test_leap_year_last_day(self):
        assert format_epoch(datetime(2024, 12, 31, tzinfo=timezone.utc)) == '24366.00000000'

    def test_aware_datetime_converted_to_utc(self):
        local = datetime(2024, 1, 1, 14, 0, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_epoch(local) == '24001.50000000'

    def test_fixed_width(self, epoch):
        assert len(format_epoch(epoch)) == 14
        assert format_epoch(epoch) == '25152.00000000'


class TestGenerateLines:

    def test_line_lengths(self, elements):
        line1, line2 = generate_tle_lines(elements)
        assert len(line1) == 69
        assert len(line2) == 69

    def test_checksums(self, elements):
        for line in generate_tle_lines(elements):
            assert int(line[-1]) == _reference_checksum(line)
            assert verify_tle_line(line)

    def test_line1_fields(self, elements, epoch):
        line1, _ = generate_tle_lines(elements)
        assert line1.startswith("1 25000U ")
        assert line1[9:17] == "25000A  "
        assert line1[18:32] == format_epoch(epoch)
        assert line1[33:43] == " .00000000"

    def test_line2_fields(self, elements):
        _, line2 = generate_tle_lines(elements)
        assert line2.startswith("2 25000 ")
        assert line2[8:16] == " 65.0000"
        assert line2[17:25] == " 90.0000"
        assert line2[26:33] == "0000000"
        assert line2[34:42] == "  0.0000"
        assert line2[43:51] == " 45.0000"
        assert float(line2[52:63]) == pytest.approx(15.05, abs=0.05)
        assert line2[63:68] == "00000"

    def test_angles_normalized(self, elements):
        _, line2 = generate_tle_lines(replace(elements, raan_deg=-90.0, true_anomaly_deg=405.0))
        assert line2[17:25] == "270.0000"
        assert line2[43:51] == " 45.0000"

    def test_mean_motion_decreases_with_altitude(self, elements):
        low = encode(replace(elements, altitude_km=400.0))
        high = encode(replace(elements, altitude_km=1200.0))
        assert low.mean_motion_rev_per_day > high.mean_motion_rev_per_day

    @pytest.mark.parametrize("changes", [
        {'satellite_id': 100000},
        {'satellite_id': -1},
        {'inclination_deg': 181.0},
        {'raan_deg': float('inf')},
        {'altitude_km': -6000.0},
    ])
    def test_unencodable_values(self, elements, changes):
        with pytest.raises(EncodingDefect):
            generate_tle_lines(replace(elements, **changes))


class TestEncode:

    def test_tle_data(self, elements):
        tle = encode(elements)
        assert tle.satellite_id == 25000
        assert tle.altitude_km == 550.0
        assert tle.raan_deg == 90.0
        assert float(tle.line2[52:63]) == pytest.approx(tle.mean_motion_rev_per_day, abs=1e-8)

    def test_constellation(self, walker_12):
        tles = encode_constellation(walker_12)
        assert len(tles) == 12
        assert set(tles) == {e.satellite_id for e in walker_12}
        for tle in tles.values():
            assert verify_tle_line(tle.line1)
            assert verify_tle_line(tle.line2)
        assert {tle.line2[17:25] for tle in tles.values()} == {"  0.0000", "120.0000", "240.0000"}

    def test_constellation_parses_with_sgp4(self, walker_12):
        from skyfield.api import EarthSatellite, load

        ts = load.timescale()
        for tle in encode_constellation(walker_12).values():
            satellite = EarthSatellite(tle.line1, tle.line2, str(tle.satellite_id), ts)
            assert satellite.model.satnum == tle.satellite_id
