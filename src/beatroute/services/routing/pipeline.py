"""Candidate generation: heuristic -> 2-opt -> sequence flow -> ranked options."""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from ...config import settings
from ...models.domain import Outlet
from .errors import InputError, OptimizationCancelled
from .heuristics import (
    cluster_aware_greedy,
    farthest_insertion,
    geographic_sort,
    nearest_neighbor,
    randomized_nearest_neighbor,
)
from .local_search import TwoOptGate, two_opt
from .models import CostMatrix, Route, RouteOption
from .ranking import build_option, rank_options
from .sequence_flow import sequence_flow

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class OptimizerConfig:
    randomized_trials: int = settings.randomized_trials
    two_opt_max_passes: int = settings.two_opt_max_passes
    micro_cluster_threshold: float = settings.micro_cluster_threshold
    regular_cluster_threshold: float = settings.regular_cluster_threshold
    exhaustive_search_limit: int = settings.exhaustive_search_limit
    gated_two_opt_min_improvement: float = settings.gated_two_opt_min_improvement
    gated_two_opt_proximity: float = settings.gated_two_opt_proximity
    tight_cluster_radius_m: float = settings.tight_cluster_radius_m
    medium_cluster_radius_m: float = settings.medium_cluster_radius_m
    loose_cluster_radius_m: float = settings.loose_cluster_radius_m
    standard_cluster_radius_m: float = settings.standard_cluster_radius_m

    @property
    def two_opt_gate(self) -> TwoOptGate:
        return TwoOptGate(
            min_improvement=self.gated_two_opt_min_improvement,
            proximity_threshold=self.gated_two_opt_proximity,
        )


class CancellationToken:
    """Set by the caller to abandon a request; checked between pipeline stages."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str) -> None:
        if self._event.is_set():
            raise OptimizationCancelled(f"Optimization cancelled before {stage}.")


Builder = Callable[[CostMatrix, OptimizerConfig, int], Route]


@dataclass(slots=True, frozen=True)
class RouteStrategy:
    name: str
    description: str
    build: Builder
    flow_radius: Optional[Callable[[OptimizerConfig], float]] = None
    gated: bool = False


DEFAULT_OPTIONS: tuple[RouteStrategy, ...] = (
    RouteStrategy(
        name="Optimized Distance (Tight Clusters)",
        description="Prioritizes shortest distance with tight geographic grouping",
        build=lambda matrix, config, seed: nearest_neighbor(matrix.distances, matrix.destination_count),
        flow_radius=lambda config: config.tight_cluster_radius_m,
    ),
    RouteStrategy(
        name="Balanced Flow (Medium Clusters)",
        description="Balances distance and logical sequence flow",
        build=lambda matrix, config, seed: farthest_insertion(matrix.distances, matrix.destination_count),
        flow_radius=lambda config: config.medium_cluster_radius_m,
    ),
    RouteStrategy(
        name="Sequence Flow (Loose Clusters)",
        description="Prioritizes smooth sequence flow over distance",
        build=lambda matrix, config, seed: randomized_nearest_neighbor(
            matrix.distances, matrix.destination_count, config.randomized_trials, seed
        ),
        flow_radius=lambda config: config.loose_cluster_radius_m,
    ),
    RouteStrategy(
        name="Geographic Order",
        description="Simple distance-based ordering with clustering",
        build=lambda matrix, config, seed: geographic_sort(matrix.distances, matrix.destination_count),
        flow_radius=lambda config: config.standard_cluster_radius_m,
    ),
    RouteStrategy(
        name="Cluster-Aware Greedy",
        description="Visits tight outlet clusters in one sweep, ordering small clusters optimally",
        build=lambda matrix, config, seed: cluster_aware_greedy(
            matrix.distances,
            matrix.destination_count,
            micro_threshold=config.micro_cluster_threshold,
            regular_threshold=config.regular_cluster_threshold,
            exhaustive_limit=config.exhaustive_search_limit,
        ),
        gated=True,
    ),
)


def generate_route_options(
    matrix: CostMatrix,
    outlets: Sequence[Outlet],
    *,
    config: OptimizerConfig | None = None,
    seed: int | None = None,
    cancel: CancellationToken | None = None,
    strategies: Sequence[RouteStrategy] = DEFAULT_OPTIONS,
) -> list[RouteOption]:
    """Run every option pipeline over one validated matrix and rank the results.

    ``outlets[i - 1]`` must correspond to matrix index ``i``. Without a seed a
    fresh request-scoped one is drawn so randomized builders stay independent
    of other requests.
    """
    if len(outlets) != matrix.destination_count:
        raise InputError(
            f"Matrix covers {matrix.destination_count} destinations but {len(outlets)} outlets were given."
        )
    config = config or OptimizerConfig()
    cancel = cancel or CancellationToken()
    if seed is None:
        seed = random.SystemRandom().randrange(2**32)

    candidates: list[RouteOption] = []
    for strategy in strategies:
        cancel.raise_if_cancelled(f"'{strategy.name}' construction")
        route = strategy.build(matrix, config, seed)

        cancel.raise_if_cancelled(f"'{strategy.name}' refinement")
        route = two_opt(
            route,
            matrix.distances,
            max_passes=config.two_opt_max_passes,
            gate=config.two_opt_gate if strategy.gated else None,
        )

        if strategy.flow_radius is not None:
            cancel.raise_if_cancelled(f"'{strategy.name}' sequence flow")
            route = sequence_flow(route, matrix.distances, outlets, strategy.flow_radius(config))

        candidates.append(build_option(strategy.name, route, matrix, strategy.description))

    cancel.raise_if_cancelled("ranking")
    ranked = rank_options(candidates)
    if ranked:
        logger.info(
            f"Generated {len(ranked)} route options for {matrix.destination_count} outlets; "
            f"best is '{ranked[0].name}' at {ranked[0].total_distance:.1f}"
        )
    return ranked
