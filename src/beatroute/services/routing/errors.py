"""Error taxonomy for route optimization requests."""

from __future__ import annotations


class RoutingError(Exception):
    """Base class for all optimization failures."""


class InputError(RoutingError, ValueError):
    """The request itself is unusable (no start, no outlets, bad option index)."""


class MatrixIncompleteError(RoutingError, ValueError):
    """The cost matrix is partial or malformed for the requested points."""


class ProviderUnavailableError(RoutingError, ConnectionError):
    """The matrix or geometry provider could not be reached or refused the request."""


class InvariantViolation(RoutingError, AssertionError):
    """A constructed route is not a permutation of the request's indices."""


class OptimizationCancelled(RoutingError):
    """The caller abandoned the request before it completed."""
