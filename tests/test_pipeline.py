from dataclasses import replace

import pytest

from beatroute.models.domain import Outlet
from beatroute.services.routing.errors import InputError, InvariantViolation, OptimizationCancelled
from beatroute.services.routing.models import CostMatrix, Route, RouteOption
from beatroute.services.routing.pipeline import (
    DEFAULT_OPTIONS,
    CancellationToken,
    OptimizerConfig,
    RouteStrategy,
    generate_route_options,
)
from beatroute.services.routing.ranking import build_option, path_cost, rank_options, select_option

WORKED = [
    [0, 10, 50, 30],
    [10, 0, 40, 15],
    [50, 40, 0, 20],
    [30, 15, 20, 0],
]


def _outlets(count: int) -> list[Outlet]:
    # one degree apart so no two outlets share a flow cluster
    return [Outlet(outlet_id=f"O{i}", latitude=float(i), longitude=float(i), name=None) for i in range(1, count + 1)]


def _option(name: str, distance: float) -> RouteOption:
    return RouteOption(name=name, route=Route(), total_distance=distance, total_duration=0.0, description="")


def test_path_cost_is_open_path():
    assert path_cost(Route((0, 1, 3, 2)), WORKED) == 45
    assert path_cost(Route((0,)), WORKED) == 0


def test_rank_options_is_stable_for_equal_distances():
    options = [_option("a", 20), _option("b", 10), _option("c", 20), _option("d", 10)]

    assert [option.name for option in rank_options(options)] == ["b", "d", "a", "c"]


def test_select_option_validates_index():
    options = [_option("a", 1), _option("b", 2)]

    assert select_option(options).name == "a"
    assert select_option(options, 1).name == "b"
    with pytest.raises(InputError):
        select_option(options, 2)
    with pytest.raises(ValueError):
        select_option([], 0)


def test_build_option_rejects_non_permutation():
    matrix = CostMatrix.from_rows(WORKED)

    with pytest.raises(InvariantViolation):
        build_option("broken", Route((0, 1, 1, 2)), matrix, "")
    with pytest.raises(InvariantViolation):
        build_option("short", Route((0, 1, 2)), matrix, "")


def test_build_option_sums_both_matrices():
    durations = [[value * 6 for value in row] for row in WORKED]
    matrix = CostMatrix.from_rows(WORKED, durations)

    option = build_option("nn", Route((0, 1, 3, 2)), matrix, "desc")

    assert option.total_distance == 45
    assert option.total_duration == 270


def test_generate_route_options_ranks_every_catalogue_entry():
    matrix = CostMatrix.from_rows(WORKED)

    options = generate_route_options(matrix, _outlets(3), seed=1)

    assert {option.name for option in options} == {strategy.name for strategy in DEFAULT_OPTIONS}
    distances = [option.total_distance for option in options]
    assert distances == sorted(distances)
    assert options[0].total_distance == 45
    for option in options:
        option.route.check_permutation(3)


def test_generate_route_options_is_deterministic_for_a_seed():
    rows = [[0 if i == j else 100 + ((i * 37 + j * 11) % 900) for j in range(9)] for i in range(9)]
    matrix = CostMatrix.from_rows(rows)
    config = OptimizerConfig(randomized_trials=5)

    first = generate_route_options(matrix, _outlets(8), config=config, seed=99)
    second = generate_route_options(matrix, _outlets(8), config=config, seed=99)

    assert first == second


def test_generate_route_options_for_empty_beat():
    options = generate_route_options(CostMatrix.from_rows([[0]]), [], seed=3)

    assert len(options) == len(DEFAULT_OPTIONS)
    assert all(option.route == Route((0,)) for option in options)
    assert all(option.total_distance == 0 for option in options)


def test_generate_route_options_rejects_outlet_mismatch():
    with pytest.raises(InputError):
        generate_route_options(CostMatrix.from_rows(WORKED), _outlets(2))


def test_cancelled_request_stops_before_construction():
    cancel = CancellationToken()
    cancel.cancel()

    with pytest.raises(OptimizationCancelled):
        generate_route_options(CostMatrix.from_rows(WORKED), _outlets(3), cancel=cancel)
    assert cancel.cancelled


def test_config_exposes_gate_thresholds():
    gate = OptimizerConfig(gated_two_opt_min_improvement=5, gated_two_opt_proximity=7).two_opt_gate

    assert gate.min_improvement == 5
    assert gate.proximity_threshold == 7


# index -> position on a line; route (0, 1, 2, 3) doubles back once and 2-opt gains 1
LINE = [[abs(a - b) for b in (0, 1, 3, 2)] for a in (0, 1, 3, 2)]


def _crossing_catalogue() -> list[RouteStrategy]:
    return [
        replace(strategy, build=lambda matrix, config, seed: Route((0, 1, 2, 3)), flow_radius=None)
        for strategy in DEFAULT_OPTIONS
    ]


def test_only_cluster_aware_option_uses_the_gate():
    config = OptimizerConfig(gated_two_opt_min_improvement=10, gated_two_opt_proximity=0.5)

    options = generate_route_options(
        CostMatrix.from_rows(LINE), _outlets(3), config=config, seed=1, strategies=_crossing_catalogue()
    )

    by_name = {option.name: option for option in options}
    assert by_name["Cluster-Aware Greedy"].route == Route((0, 1, 2, 3))
    assert by_name["Cluster-Aware Greedy"].total_distance == 4
    for name, option in by_name.items():
        if name != "Cluster-Aware Greedy":
            assert option.route == Route((0, 1, 3, 2))
            assert option.total_distance == 3


def test_gate_thresholds_come_from_config():
    config = OptimizerConfig(gated_two_opt_min_improvement=10, gated_two_opt_proximity=1)

    options = generate_route_options(
        CostMatrix.from_rows(LINE), _outlets(3), config=config, seed=1, strategies=_crossing_catalogue()
    )

    assert all(option.total_distance == 3 for option in options)


def test_cancel_after_last_stage_stops_before_ranking():
    cancel = CancellationToken()

    def radius_then_cancel(config):
        cancel.cancel()
        return 0.0

    strategies = [
        RouteStrategy(
            name="last",
            description="",
            build=lambda matrix, config, seed: Route((0, 1, 3, 2)),
            flow_radius=radius_then_cancel,
        )
    ]

    with pytest.raises(OptimizationCancelled, match="ranking"):
        generate_route_options(CostMatrix.from_rows(WORKED), _outlets(3), cancel=cancel, strategies=strategies)
