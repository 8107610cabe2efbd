"""
WGS84 <-> UTM zone 32N conversion.

Projection goes through pyproj (EPSG:4326 <-> EPSG:25832). Outside zone 32
the transform stays total but distorts, which is why callers fall back to
WGS84 there.
"""

import re
from functools import lru_cache
from typing import Optional, Tuple

import pyproj
from pyproj.enums import TransformDirection

from unearthed.core.types import ResolvedLocation

WGS84_CRS = "EPSG:4326"
UTM32_CRS = "EPSG:25832"

# Zone 32N
ZONE_WEST = 3.0
ZONE_EAST = 12.0

UTM32 = "utm32"
WGS84 = "wgs84"

DATUM_LABELS = {
    UTM32: "UTM32N (EPSG:25832)",
    WGS84: "WGS84 (EPSG:4326)",
}

_WGS84_PATTERN = re.compile(
    r"Lat:\s*([-+]?\d+(?:\.\d+)?)\s*,\s*Lon:\s*([-+]?\d+(?:\.\d+)?)", re.IGNORECASE
)
_UTM32_PATTERN = re.compile(
    r"N:\s*([-+]?\d+(?:\.\d+)?)\s*,\s*E:\s*([-+]?\d+(?:\.\d+)?)", re.IGNORECASE
)


@lru_cache(maxsize=1)
def _utm32_transformer() -> pyproj.Transformer:
    # always_xy: (lon, lat) in, (easting, northing) out
    return pyproj.Transformer.from_crs(WGS84_CRS, UTM32_CRS, always_xy=True)


def wgs84_to_utm32(lat: float, lon: float) -> Tuple[float, float]:
    """
    Project a WGS84 position into UTM zone 32N.

    Args:
        lat: Latitude in degrees
        lon: Longitude in degrees

    Returns:
        (easting, northing) in metres
    """
    easting, northing = _utm32_transformer().transform(lon, lat)
    return float(easting), float(northing)


def utm32_to_wgs84(northing: float, easting: float) -> Tuple[float, float]:
    """
    Inverse of wgs84_to_utm32.

    Args:
        northing: UTM32N northing in metres
        easting: UTM32N easting in metres

    Returns:
        (lat, lon) in degrees
    """
    lon, lat = _utm32_transformer().transform(
        easting, northing, direction=TransformDirection.INVERSE
    )
    return float(lat), float(lon)


def is_in_utm32_zone(lon: float) -> bool:
    """Whether a longitude lies inside zone 32 (3°E to 12°E, inclusive)."""
    return ZONE_WEST <= lon <= ZONE_EAST


def get_effective_system(preferred_system: str, lon: float) -> str:
    """
    Coordinate system actually used for display and the PDF GPS fields.

    UTM32 silently degrades to WGS84 outside zone 32.
    """
    if preferred_system == UTM32 and not is_in_utm32_zone(lon):
        return WGS84
    return preferred_system


def resolve_position(lat: float, lon: float) -> ResolvedLocation:
    """WGS84 position plus UTM32 coordinates when the zone test passes."""
    position = ResolvedLocation(lat=lat, lon=lon)
    if is_in_utm32_zone(lon):
        position.easting, position.northing = wgs84_to_utm32(lat, lon)
    return position


def parse_location_text(text: str) -> Optional[Tuple[float, float]]:
    """
    Read a location string back into WGS84.

    Accepts "Lat: 60.123456, Lon: 10.123456" and "N: 6651234, E: 555123"
    (UTM32N, converted with utm32_to_wgs84).

    Returns:
        (lat, lon) or None if the text matches neither shape
    """
    if not text:
        return None

    match = _WGS84_PATTERN.search(text)
    if match:
        return float(match.group(1)), float(match.group(2))

    match = _UTM32_PATTERN.search(text)
    if match:
        return utm32_to_wgs84(float(match.group(1)), float(match.group(2)))

    return None


def format_wgs84(lat: float, lon: float) -> str:
    return f"Lat: {lat:.6f}, Lon: {lon:.6f}"


def format_utm32(northing: float, easting: float) -> str:
    return f"N: {round(northing)}, E: {round(easting)}"


def format_location(position: ResolvedLocation, system: str) -> str:
    """Location string in the given system (UTM32 only if available)."""
    if system == UTM32 and position.has_utm32:
        return format_utm32(position.northing, position.easting)
    return format_wgs84(position.lat, position.lon)
