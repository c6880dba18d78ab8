"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

from shapely.geometry import LineString, MultiPoint

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return haversine_km(lat1, lon1, lat2, lon2) * 1000.0


def route_bounds(coordinates: Sequence[tuple[float, float]]) -> tuple[tuple[float, float], tuple[float, float]] | None:
    """Return ((south, west), (north, east)) around (lat, lon) points, for fitting a map view."""

    if not coordinates:
        return None
    points = [(lon, lat) for lat, lon in coordinates]
    geometry = LineString(points) if len(points) > 1 else MultiPoint(points)
    min_lon, min_lat, max_lon, max_lat = geometry.bounds
    return (min_lat, min_lon), (max_lat, max_lon)


def group_overlapping_stops(
    coordinates: Sequence[tuple[float, float]],
    threshold_m: float = 50.0,
) -> list[dict]:
    """Group route positions whose map markers would overlap.

    Each position joins the first existing group whose anchor lies within
    ``threshold_m`` metres, otherwise it anchors a new group.
    """

    groups: list[dict] = []
    for position, (lat, lon) in enumerate(coordinates):
        for group in groups:
            anchor_lat, anchor_lon = group["coordinate"]
            if haversine_m(lat, lon, anchor_lat, anchor_lon) <= threshold_m:
                group["positions"].append(position)
                break
        else:
            groups.append({"coordinate": (lat, lon), "positions": [position]})
    return groups
