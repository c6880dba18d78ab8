"""2-opt refinement for open-path routes."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .models import DistanceMatrix, Route

logger = logging.getLogger(__name__)

# Gains smaller than this are float noise from summing the same edges in another order.
IMPROVEMENT_EPSILON = 1e-9


@dataclass(slots=True, frozen=True)
class TwoOptGate:
    """Extra acceptance rule for improving moves.

    A move is applied when its gain exceeds ``min_improvement`` or when the
    two segment endpoints are at most ``proximity_threshold`` apart.
    """

    min_improvement: float
    proximity_threshold: float

    def accepts(self, gain: float, endpoint_distance: float) -> bool:
        return gain > self.min_improvement or endpoint_distance <= self.proximity_threshold


def _reversal_gain(distances: DistanceMatrix, stops: tuple[int, ...], i: int, j: int) -> float:
    """Distance saved by reversing stops[i..j]; edges inside the segment flip direction."""
    before = distances[stops[i - 1]][stops[i]]
    after = distances[stops[i - 1]][stops[j]]
    for k in range(i, j):
        before += distances[stops[k]][stops[k + 1]]
        after += distances[stops[k + 1]][stops[k]]
    if j + 1 < len(stops):
        before += distances[stops[j]][stops[j + 1]]
        after += distances[stops[i]][stops[j + 1]]
    return before - after


def two_opt(
    route: Route,
    distances: DistanceMatrix,
    *,
    max_passes: int = 100,
    gate: TwoOptGate | None = None,
) -> Route:
    """Apply strictly improving segment reversals until a full pass finds none.

    The start (position 0) never moves. Total open-path distance never
    increases, so the search terminates; ``max_passes`` bounds the work.
    """
    best = route
    for pass_number in range(1, max_passes + 1):
        improved = False
        for i in range(1, len(best) - 1):
            for j in range(i + 1, len(best)):
                gain = _reversal_gain(distances, best.stops, i, j)
                if gain <= IMPROVEMENT_EPSILON:
                    continue
                if gate is not None and not gate.accepts(gain, distances[best[i]][best[j]]):
                    continue
                best = best.reversed_segment(i, j)
                improved = True
        if not improved:
            logger.debug(f"2-opt converged after {pass_number} pass(es)")
            return best
    logger.debug(f"2-opt stopped at the {max_passes}-pass cap")
    return best
