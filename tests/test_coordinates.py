"""
Tests for WGS84 / UTM zone 32N conversion and coordinate system selection.
"""

import pyproj
import pytest

from unearthed.geo.coordinates import (
    format_location,
    format_utm32,
    format_wgs84,
    get_effective_system,
    is_in_utm32_zone,
    parse_location_text,
    resolve_position,
    utm32_to_wgs84,
    wgs84_to_utm32,
)

REFERENCE_POINTS = [
    (60.0, 10.0),
    (59.9139, 10.7522),   # Oslo
    (60.3913, 5.3221),    # Bergen
    (58.1467, 7.9956),    # Kristiansand
    (69.5, 3.2),
    (62.0, 11.95),
]


@pytest.mark.parametrize("lon", [3.0, 3.0001, 5.32, 9.0, 10.75, 11.9999, 12.0])
def test_utm32_kept_inside_zone(lon):
    assert is_in_utm32_zone(lon)
    assert get_effective_system("utm32", lon) == "utm32"


@pytest.mark.parametrize("lon", [-180.0, -5.0, 0.0, 2.9999, 12.0001, 15.0, 20.5, 31.0, 180.0])
def test_utm32_falls_back_outside_zone(lon):
    assert not is_in_utm32_zone(lon)
    assert get_effective_system("utm32", lon) == "wgs84"


@pytest.mark.parametrize("lon", [-5.0, 9.0, 20.5])
def test_wgs84_preference_is_kept(lon):
    assert get_effective_system("wgs84", lon) == "wgs84"


def test_central_meridian_and_equator_are_exact():
    easting, northing = wgs84_to_utm32(0.0, 9.0)
    assert easting == pytest.approx(500000.0, abs=1e-6)
    assert northing == pytest.approx(0.0, abs=1e-6)


def test_northing_grows_with_latitude():
    _, south = wgs84_to_utm32(58.0, 9.0)
    _, north = wgs84_to_utm32(63.0, 9.0)
    assert north > south
    # One degree of latitude is roughly 111 km in the north
    assert (north - south) / 5 == pytest.approx(111300, rel=0.01)


@pytest.mark.parametrize("lat,lon", REFERENCE_POINTS)
def test_forward_matches_utm_zone_32_definition(lat, lon):
    utm32 = pyproj.CRS.from_proj4("+proj=utm +zone=32 +north +datum=WGS84 +units=m +no_defs")
    transformer = pyproj.Transformer.from_crs("EPSG:4326", utm32, always_xy=True)
    expected_e, expected_n = transformer.transform(lon, lat)

    easting, northing = wgs84_to_utm32(lat, lon)

    assert easting == pytest.approx(expected_e, abs=0.5)
    assert northing == pytest.approx(expected_n, abs=0.5)


@pytest.mark.parametrize("lat,lon", REFERENCE_POINTS)
def test_inverse_round_trip(lat, lon):
    easting, northing = wgs84_to_utm32(lat, lon)
    back_lat, back_lon = utm32_to_wgs84(northing, easting)
    assert back_lat == pytest.approx(lat, abs=1e-6)
    assert back_lon == pytest.approx(lon, abs=1e-6)


def test_resolve_position_only_projects_inside_zone():
    inside = resolve_position(60.39, 5.32)
    assert inside.has_utm32

    outside = resolve_position(69.65, 20.5)
    assert not outside.has_utm32
    assert outside.northing is None and outside.easting is None


def test_parse_wgs84_location_text():
    assert parse_location_text("Lat: 69.650000, Lon: 20.500000") == (69.65, 20.5)
    assert parse_location_text("lat:-1.5,lon:+2") == (-1.5, 2.0)


def test_parse_utm32_location_text():
    easting, northing = wgs84_to_utm32(60.3913, 5.3221)
    text = format_utm32(northing, easting)

    lat, lon = parse_location_text(text)

    # Rounded to whole metres on the way out
    assert lat == pytest.approx(60.3913, abs=1e-4)
    assert lon == pytest.approx(5.3221, abs=1e-4)


@pytest.mark.parametrize("text", ["", "somewhere near the old barn", "Lat: north, Lon: east", "N: 12"])
def test_parse_unrecognized_location_text(text):
    assert parse_location_text(text) is None


def test_format_location():
    position = resolve_position(60.0, 10.0)
    utm = format_location(position, "utm32")
    assert utm.startswith("N: ") and ", E: " in utm
    assert "." not in utm

    assert format_location(position, "wgs84") == "Lat: 60.000000, Lon: 10.000000"
    assert format_wgs84(69.65, 20.5) == "Lat: 69.650000, Lon: 20.500000"

    # No UTM32 coordinates outside the zone, even if asked for
    outside = resolve_position(69.65, 20.5)
    assert format_location(outside, "utm32") == "Lat: 69.650000, Lon: 20.500000"


def test_transformer_is_built_once():
    from unearthed.geo.coordinates import _utm32_transformer

    wgs84_to_utm32(60.0, 10.0)
    utm32_to_wgs84(6651411.0, 555776.0)

    assert _utm32_transformer.cache_info().currsize == 1
    assert _utm32_transformer().target_crs.to_epsg() == 25832
