"""Geographic regrouping of a distance-refined route.

Points that lie within a straight-line radius of a seed are visited together,
trading some road distance for a route that does not criss-cross the map.
Clusters are formed around a single seed (no transitive growth), so a cluster
never spans more than twice the radius.
"""

from __future__ import annotations

from typing import Sequence

from ...models.domain import Outlet
from ..geospatial import haversine_m
from .models import DistanceMatrix, Route


def _seed_clusters(route: Route, outlets: Sequence[Outlet], radius_m: float) -> list[list[int]]:
    clusters: list[list[int]] = []
    clustered: set[int] = set()
    for seed in route.destinations:
        if seed in clustered:
            continue
        cluster = [seed]
        clustered.add(seed)
        if radius_m > 0:
            seed_outlet = outlets[seed - 1]
            for other in route.destinations:
                if other in clustered:
                    continue
                other_outlet = outlets[other - 1]
                distance = haversine_m(
                    seed_outlet.latitude, seed_outlet.longitude, other_outlet.latitude, other_outlet.longitude
                )
                if distance <= radius_m:
                    cluster.append(other)
                    clustered.add(other)
        clusters.append(cluster)
    return clusters


def _chain_in_walk_order(distances: DistanceMatrix, route: Route, members: Sequence[int]) -> Route:
    # Equal distances keep the member that comes first in the refined walk.
    remaining = list(members)
    while remaining:
        nearest = remaining[0]
        for candidate in remaining[1:]:
            if distances[route.last][candidate] < distances[route.last][nearest]:
                nearest = candidate
        route = route.appended(nearest)
        remaining.remove(nearest)
    return route


def sequence_flow(
    route: Route,
    distances: DistanceMatrix,
    outlets: Sequence[Outlet],
    radius_m: float,
) -> Route:
    """Reorder ``route`` into spatial clusters visited by increasing distance from start.

    ``outlets[i - 1]`` holds the coordinates of route index ``i``. A radius of
    zero or less forms singleton clusters only. Inside a cluster the entry is
    the member nearest the last placed stop, then nearest-neighbor onwards.
    """
    if len(route) <= 2:
        return route

    clusters = _seed_clusters(route, outlets, radius_m)
    clusters.sort(key=lambda cluster: sum(distances[0][index] for index in cluster) / len(cluster))

    result = Route()
    for cluster in clusters:
        result = _chain_in_walk_order(distances, result, cluster)
    return result
