"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Sequence

import numpy as np

from .errors import InvariantViolation, MatrixIncompleteError

DistanceMatrix = Sequence[Sequence[float]]


@dataclass(slots=True, frozen=True)
class Route:
    """Immutable visiting order; index 0 is the start location."""

    stops: tuple[int, ...] = (0,)

    def __iter__(self) -> Iterator[int]:
        return iter(self.stops)

    def __len__(self) -> int:
        return len(self.stops)

    def __getitem__(self, position: int) -> int:
        return self.stops[position]

    @property
    def last(self) -> int:
        return self.stops[-1]

    @property
    def destinations(self) -> tuple[int, ...]:
        return self.stops[1:]

    def appended(self, *indices: int) -> Route:
        return Route(self.stops + tuple(indices))

    def inserted(self, position: int, index: int) -> Route:
        if position < 1:
            raise ValueError("The start location cannot be displaced.")
        return Route(self.stops[:position] + (index,) + self.stops[position:])

    def reversed_segment(self, i: int, j: int) -> Route:
        """Return a copy with positions i..j (inclusive) reversed."""
        if i < 1 or j <= i or j >= len(self.stops):
            raise ValueError(f"Invalid 2-opt segment ({i}, {j}) for route of length {len(self.stops)}.")
        return Route(self.stops[:i] + self.stops[i : j + 1][::-1] + self.stops[j + 1 :])

    def check_permutation(self, n: int) -> None:
        """Raise InvariantViolation unless this is 0 followed by a permutation of 1..n."""
        if not self.stops or self.stops[0] != 0:
            raise InvariantViolation(f"Route must begin at the start location: {self.stops}")
        if len(self.stops) != n + 1 or sorted(self.stops) != list(range(n + 1)):
            raise InvariantViolation(f"Route is not a permutation of 0..{n}: {self.stops}")


@dataclass(slots=True, frozen=True)
class CostMatrix:
    """Validated distance/duration matrices for one request (start at index 0)."""

    distances: tuple[tuple[float, ...], ...]
    durations: tuple[tuple[float, ...], ...]

    @property
    def size(self) -> int:
        return len(self.distances)

    @property
    def destination_count(self) -> int:
        return self.size - 1

    @classmethod
    def from_table(cls, table: dict, expected_size: int) -> CostMatrix:
        """Validate a provider response and freeze it.

        Raises MatrixIncompleteError if either matrix is missing, not square
        over ``expected_size`` points, or holds missing, negative or
        non-finite entries, or a non-zero diagonal.
        """
        if not isinstance(table, dict):
            raise MatrixIncompleteError("Cost matrix response is not a mapping.")
        return cls(
            distances=_validated(table.get("distances"), "distances", expected_size),
            durations=_validated(table.get("durations"), "durations", expected_size),
        )

    @classmethod
    def from_rows(cls, distances: DistanceMatrix, durations: DistanceMatrix | None = None) -> CostMatrix:
        """Build from in-memory rows; durations default to zeros."""
        size = len(distances)
        if durations is None:
            durations = [[0.0] * size for _ in range(size)]
        return cls.from_table({"distances": distances, "durations": durations}, size)


def _validated(rows: object, label: str, expected_size: int) -> tuple[tuple[float, ...], ...]:
    if rows is None:
        raise MatrixIncompleteError(f"Cost matrix response missing {label}.")
    try:
        array = np.array(rows, dtype=float)
    except (TypeError, ValueError) as exc:
        raise MatrixIncompleteError(f"Cost matrix {label} is ragged or non-numeric: {exc}") from exc

    if array.shape != (expected_size, expected_size):
        raise MatrixIncompleteError(
            f"Cost matrix {label} has shape {array.shape}, expected ({expected_size}, {expected_size})."
        )
    missing = ~np.isfinite(array)
    if missing.any():
        row, col = (int(value) for value in np.argwhere(missing)[0])
        raise MatrixIncompleteError(
            f"Cost matrix {label} has {int(missing.sum())} missing entries (first at [{row}][{col}])."
        )
    if (array < 0).any():
        raise MatrixIncompleteError(f"Cost matrix {label} contains negative entries.")
    if expected_size and np.any(np.diag(array) != 0):
        raise MatrixIncompleteError(f"Cost matrix {label} has a non-zero diagonal.")
    return tuple(tuple(row) for row in array.tolist())


@dataclass(slots=True, frozen=True)
class RouteOption:
    name: str
    route: Route
    total_distance: float
    total_duration: float
    description: str


@dataclass(slots=True)
class RouteStop:
    sequence: int
    outlet_id: str
    name: str
    latitude: float
    longitude: float
    distance_from_prev_km: float
    arrival_min: float


@dataclass(slots=True)
class RoutePlan:
    """Selected option expressed in outlets, as handed to export and display."""

    beat_name: str
    option_name: str
    description: str
    start_latitude: float
    start_longitude: float
    total_distance_km: float
    total_duration_min: float
    stops: List[RouteStop]

    @property
    def outlet_count(self) -> int:
        return len(self.stops)


@dataclass(slots=True, frozen=True)
class Cluster:
    """Destination indices grouped for sequencing only."""

    members: tuple[int, ...]
    kind: str = "regular"

    def __len__(self) -> int:
        return len(self.members)
