"""Construction heuristics producing an initial visiting order.

Every builder takes the distance matrix (start at index 0, destinations at
1..n) and returns an immutable :class:`Route`. Nearest-neighbor selection is
shared by all of them through :func:`_nearest`, which breaks ties towards the
lowest index so results are reproducible.
"""

from __future__ import annotations

import itertools
import logging
import math
import random
from typing import Collection, Iterable, Sequence

import numpy as np
from sklearn.cluster import AgglomerativeClustering

from .models import Cluster, DistanceMatrix, Route
from .ranking import path_cost

logger = logging.getLogger(__name__)


def _nearest(distances: DistanceMatrix, current: int, candidates: Collection[int]) -> int | None:
    best: int | None = None
    best_distance = math.inf
    for index in sorted(candidates):
        if distances[current][index] < best_distance:
            best = index
            best_distance = distances[current][index]
    return best


def chain_nearest(distances: DistanceMatrix, route: Route, remaining: frozenset[int]) -> Route:
    """Extend ``route`` by repeatedly appending the nearest remaining index."""
    while remaining:
        nearest = _nearest(distances, route.last, remaining)
        route = route.appended(nearest)
        remaining = remaining - {nearest}
    return route


def nearest_neighbor(distances: DistanceMatrix, n: int) -> Route:
    return chain_nearest(distances, Route(), frozenset(range(1, n + 1)))


def randomized_nearest_neighbor(
    distances: DistanceMatrix,
    n: int,
    trials: int = 10,
    seed: int | None = None,
) -> Route:
    """Best of ``trials`` nearest-neighbor runs, each from a random first destination.

    The random source is created from ``seed`` for this call only, so two
    calls with the same seed return the same route.
    """
    if trials < 1:
        raise ValueError("At least one trial is required.")
    if n == 0:
        return Route()

    rng = random.Random(seed)
    destinations = frozenset(range(1, n + 1))
    best_route = None
    best_distance = math.inf
    for _ in range(trials):
        first = rng.randint(1, n)
        candidate = chain_nearest(distances, Route((0, first)), destinations - {first})
        distance = path_cost(candidate, distances)
        if distance < best_distance:
            best_route = candidate
            best_distance = distance
    return best_route


def farthest_insertion(distances: DistanceMatrix, n: int) -> Route:
    """Farthest-selection insertion using open-path insertion cost.

    Appending after the last stop costs d(last, new) only; there is no
    return leg to the start, and position 0 is never displaced.
    """
    if n == 0:
        return Route()

    remaining = sorted(range(1, n + 1))
    farthest = max(remaining, key=lambda index: distances[0][index])
    route = Route((0, farthest))
    remaining.remove(farthest)

    while remaining:
        selected = max(remaining, key=lambda index: min(distances[stop][index] for stop in route))
        route = route.inserted(_cheapest_insertion(distances, route, selected), selected)
        remaining.remove(selected)
    return route


def _cheapest_insertion(distances: DistanceMatrix, route: Route, new: int) -> int:
    best_position = len(route)
    best_increase = math.inf
    for position in range(1, len(route) + 1):
        previous = route[position - 1]
        if position == len(route):
            increase = distances[previous][new]
        else:
            following = route[position]
            increase = distances[previous][new] + distances[new][following] - distances[previous][following]
        if increase < best_increase:
            best_position = position
            best_increase = increase
    return best_position


def geographic_sort(distances: DistanceMatrix, n: int) -> Route:
    ordered = sorted(range(1, n + 1), key=lambda index: (distances[0][index], index))
    return Route((0, *ordered))


def detect_clusters(
    distances: DistanceMatrix,
    indices: Iterable[int],
    threshold: float,
    *,
    kind: str = "regular",
) -> list[Cluster]:
    """Single-linkage groups of ``indices`` whose chained distance stays under ``threshold``.

    The matrix is symmetrized with the larger of both directions, so two
    points link only when they are close both ways. Singletons are dropped.
    """
    members = sorted(indices)
    if len(members) < 2 or threshold <= 0:
        return []

    sub_matrix = np.asarray(distances, dtype=float)[np.ix_(members, members)]
    symmetric = np.maximum(sub_matrix, sub_matrix.T)
    model = AgglomerativeClustering(
        n_clusters=None,
        distance_threshold=threshold,
        metric="precomputed",
        linkage="single",
    )
    labels = model.fit_predict(symmetric)

    groups: dict[int, list[int]] = {}
    for index, label in zip(members, labels):
        groups.setdefault(int(label), []).append(index)
    return [
        Cluster(members=tuple(group), kind=kind)
        for group in sorted(groups.values(), key=lambda group: group[0])
        if len(group) > 1
    ]


def exhaustive_order(
    distances: DistanceMatrix,
    members: Sequence[int],
    entry: int | None = None,
) -> tuple[int, ...]:
    """Optimal open-path order of ``members``, counting the edge from ``entry`` if given."""
    if not members:
        return ()

    best_order: tuple[int, ...] = ()
    best_cost = math.inf
    for order in itertools.permutations(sorted(members)):
        cost = path_cost(order, distances)
        if entry is not None:
            cost += distances[entry][order[0]]
        if cost < best_cost:
            best_order = order
            best_cost = cost
    return best_order


def cluster_aware_greedy(
    distances: DistanceMatrix,
    n: int,
    *,
    micro_threshold: float = 500.0,
    regular_threshold: float = 2000.0,
    exhaustive_limit: int = 8,
) -> Route:
    """Greedy walk that consumes whole clusters once it reaches one of their members."""
    destinations = range(1, n + 1)
    micro = detect_clusters(distances, destinations, micro_threshold, kind="micro")
    in_micro = {index for cluster in micro for index in cluster.members}
    regular = detect_clusters(
        distances,
        [index for index in destinations if index not in in_micro],
        regular_threshold,
        kind="regular",
    )
    membership = {index: cluster for cluster in (*micro, *regular) for index in cluster.members}
    logger.debug(f"Cluster-aware greedy: {len(micro)} micro and {len(regular)} regular clusters over {n} outlets")

    route = Route()
    remaining = frozenset(destinations)
    while remaining:
        candidate = _nearest(distances, route.last, remaining)
        cluster = membership.get(candidate)
        if cluster is None:
            route = route.appended(candidate)
            remaining = remaining - {candidate}
            continue

        members = frozenset(cluster.members)
        if len(members) <= exhaustive_limit:
            route = route.appended(*exhaustive_order(distances, sorted(members), entry=route.last))
        else:
            route = chain_nearest(distances, route, members)
        remaining = remaining - members
    return route
