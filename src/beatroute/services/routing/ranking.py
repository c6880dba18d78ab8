"""Route metrics, option ranking and selection."""

from __future__ import annotations

from typing import Iterable, Sequence

from .errors import InputError
from .models import CostMatrix, DistanceMatrix, Route, RouteOption


def path_cost(route: Route | Sequence[int], matrix: DistanceMatrix) -> float:
    """Sum of consecutive matrix entries along the route as an open path."""
    stops = tuple(route)
    return float(sum(matrix[stops[k]][stops[k + 1]] for k in range(len(stops) - 1)))


def build_option(name: str, route: Route, matrix: CostMatrix, description: str) -> RouteOption:
    route.check_permutation(matrix.destination_count)
    return RouteOption(
        name=name,
        route=route,
        total_distance=path_cost(route, matrix.distances),
        total_duration=path_cost(route, matrix.durations),
        description=description,
    )


def rank_options(options: Iterable[RouteOption]) -> list[RouteOption]:
    """Shortest first; equal distances keep their catalogue order."""
    return sorted(options, key=lambda option: option.total_distance)


def select_option(options: Sequence[RouteOption], index: int = 0) -> RouteOption:
    if not options:
        raise InputError("No route options are available to select from.")
    if not 0 <= index < len(options):
        raise InputError(f"Route option index {index} is out of range (0..{len(options) - 1}).")
    return options[index]
