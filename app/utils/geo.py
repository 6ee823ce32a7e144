# path: route-replay-api/app/utils/geo.py

from __future__ import annotations

from typing import Dict, Iterable, Sequence
import math

from app.models.playback import Coordinate


EARTH_RADIUS_M = 6371000.0


def bbox_wgs84(coords: Iterable[Coordinate]) -> Dict[str, float]:
    lats = []
    lons = []
    for c in coords:
        lats.append(c.lat)
        lons.append(c.lon)
    if not lats:
        raise ValueError("bbox requires at least one coordinate")
    return {
        "min_lat": min(lats),
        "min_lon": min(lons),
        "max_lat": max(lats),
        "max_lon": max(lons),
    }


def haversine_m(a: Coordinate, b: Coordinate) -> float:
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    dphi = math.radians(b.lat - a.lat)
    dlmb = math.radians(b.lon - a.lon)

    s = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(min(1.0, s)))


def bearing_deg_true(a: Coordinate, b: Coordinate) -> float:
    # Initial bearing (forward azimuth), degrees true, [0,360)
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    dlmb = math.radians(b.lon - a.lon)

    y = math.sin(dlmb) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlmb)
    brng = (math.degrees(math.atan2(y, x)) + 360.0) % 360.0
    # (-tiny + 360) % 360 rounds up to 360.0
    return 0.0 if brng >= 360.0 else brng


def polyline_length_m(coords: Sequence[Coordinate]) -> float:
    total = 0.0
    for i in range(1, len(coords)):
        total += haversine_m(coords[i - 1], coords[i])
    return total


def lerp_coordinate(a: Coordinate, b: Coordinate, t: float) -> Coordinate:
    """Plain linear interpolation in lat/lon. Only meant for short sub-segments."""
    return Coordinate(
        lat=a.lat + t * (b.lat - a.lat),
        lon=a.lon + t * (b.lon - a.lon),
    )
