"""Routing orchestration service."""

from __future__ import annotations

import logging
from dataclasses import asdict, fields
from typing import Sequence

from ...config import settings
from ...models.domain import Outlet, StartLocation
from ...persistence.filesystem import FileStorage
from ...schemas.routing import (
    GeometryRequest,
    GeometryResponse,
    MarkerGroupModel,
    OptimizeRequest,
    OptimizeResponse,
    OutletModel,
    RouteOptionModel,
    RoutePlanModel,
    RouteStopModel,
)
from ..export.workbook import route_plan_to_workbook
from ..geospatial import group_overlapping_stops, route_bounds
from ..outputs.routing_formatter import route_option_to_json, route_plan_to_csv, route_plan_to_json
from .errors import InputError
from .models import CostMatrix, RouteOption, RoutePlan, RouteStop
from .ors_client import ORSClient, build_coordinate_list
from .pipeline import DEFAULT_OPTIONS, CancellationToken, OptimizerConfig, generate_route_options
from .ranking import select_option

logger = logging.getLogger(__name__)


def _filter_outlets(outlets: Sequence[OutletModel], outlet_ids: Sequence[str] | None) -> list[Outlet]:
    id_set = {oid.strip() for oid in outlet_ids} if outlet_ids else None
    selected: list[Outlet] = []
    seen: set[str] = set()
    for outlet in outlets:
        outlet_id = outlet.outlet_id.strip()
        if id_set is not None and outlet_id not in id_set:
            continue
        if outlet_id in seen:
            continue
        seen.add(outlet_id)
        selected.append(
            Outlet(outlet_id=outlet_id, latitude=outlet.latitude, longitude=outlet.longitude, name=outlet.name)
        )
    return selected


def _build_config(payload: OptimizeRequest) -> OptimizerConfig:
    config = OptimizerConfig()
    overrides = payload.overrides
    if overrides is None:
        return config
    for config_field in fields(OptimizerConfig):
        value = getattr(overrides, config_field.name, None)
        if value is not None:
            setattr(config, config_field.name, value)
    return config


def _validate_request(payload: OptimizeRequest) -> tuple[StartLocation, list[Outlet]]:
    if payload.start is None:
        raise InputError("Start location is missing. Set a start coordinate before optimizing.")
    outlets = _filter_outlets(payload.outlets, payload.outlet_ids)
    if not outlets:
        raise InputError("No outlets to route. Select a beat with at least one outlet.")
    if payload.selected_option_index >= len(DEFAULT_OPTIONS):
        raise InputError(
            f"Route option index {payload.selected_option_index} is out of range (0..{len(DEFAULT_OPTIONS) - 1})."
        )
    return StartLocation(latitude=payload.start.latitude, longitude=payload.start.longitude), outlets


def build_route_plan(
    option: RouteOption,
    matrix: CostMatrix,
    start: StartLocation,
    outlets: Sequence[Outlet],
    beat_name: str,
) -> RoutePlan:
    """Translate matrix indices back into outlets with per-leg distance (km) and arrival (min)."""
    stops: list[RouteStop] = []
    elapsed_seconds = 0.0
    previous = 0
    for sequence, index in enumerate(option.route.destinations, start=1):
        outlet = outlets[index - 1]
        elapsed_seconds += matrix.durations[previous][index]
        stops.append(
            RouteStop(
                sequence=sequence,
                outlet_id=outlet.outlet_id,
                name=outlet.name or "N/A",
                latitude=outlet.latitude,
                longitude=outlet.longitude,
                distance_from_prev_km=matrix.distances[previous][index] / 1000.0,
                arrival_min=elapsed_seconds / 60.0,
            )
        )
        previous = index
    return RoutePlan(
        beat_name=beat_name,
        option_name=option.name,
        description=option.description,
        start_latitude=start.latitude,
        start_longitude=start.longitude,
        total_distance_km=option.total_distance / 1000.0,
        total_duration_min=option.total_duration / 60.0,
        stops=stops,
    )


def _option_model(option: RouteOption) -> RouteOptionModel:
    return RouteOptionModel(
        name=option.name,
        description=option.description,
        route=list(option.route),
        total_distance=option.total_distance,
        total_duration=option.total_duration,
        total_distance_km=option.total_distance / 1000.0,
        total_duration_min=option.total_duration / 60.0,
    )


def _persist_outputs(plan: RoutePlan, options: Sequence[RouteOption], metadata: dict) -> str:
    storage = FileStorage()
    run_dir = storage.make_run_directory(prefix=f"route_{plan.beat_name}")
    storage.write_json(
        run_dir / "summary.json",
        {
            "metadata": metadata,
            "plan": route_plan_to_json(plan),
            "options": [route_option_to_json(option) for option in options],
        },
    )
    storage.write_csv(run_dir / "route.csv", route_plan_to_csv(plan))
    storage.write_bytes(run_dir / "route.xlsx", route_plan_to_workbook(plan))
    return str(run_dir)


def optimize_route(payload: OptimizeRequest, *, cancel: CancellationToken | None = None) -> OptimizeResponse:
    """Fetch the cost matrix, rank every route option and return the selected plan.

    Nothing is written to disk unless the whole request completes without
    being cancelled.
    """
    cancel = cancel or CancellationToken()
    start, outlets = _validate_request(payload)
    config = _build_config(payload)

    client = ORSClient()
    coordinate_list = build_coordinate_list(start, outlets)
    logger.info(f"Optimizing beat '{payload.beat_name}' with {len(outlets)} outlets")

    table = client.matrix(coordinate_list)
    matrix = CostMatrix.from_table(table, expected_size=len(coordinate_list))

    options = generate_route_options(matrix, outlets, config=config, seed=payload.seed, cancel=cancel)
    selected = select_option(options, payload.selected_option_index)
    plan = build_route_plan(selected, matrix, start, outlets, payload.beat_name)

    ordered_coords = [start.coordinate, *((stop.latitude, stop.longitude) for stop in plan.stops)]
    geometry = None
    if payload.include_geometry:
        cancel.raise_if_cancelled("geometry fetch")
        geometry = client.directions(ordered_coords)
    bounds = route_bounds(geometry or ordered_coords)
    markers = group_overlapping_stops(ordered_coords, settings.marker_overlap_meters)

    metadata = {
        "status": "complete",
        "beat_name": payload.beat_name,
        "outlet_count": len(outlets),
        "selected_option": selected.name,
        "option_count": len(options),
        "distance_source": "openrouteservice",
        "profile": client.profile,
        "config": asdict(config),
    }

    cancel.raise_if_cancelled("persisting outputs")
    persist = payload.persist if payload.persist is not None else settings.persist_outputs
    if persist:
        metadata["output_dir"] = _persist_outputs(plan, options, metadata)
        logger.info(f"Persisted route outputs to {metadata['output_dir']}")

    return OptimizeResponse(
        beat_name=payload.beat_name,
        selected_option_index=payload.selected_option_index,
        options=[_option_model(option) for option in options],
        plan=RoutePlanModel(
            beat_name=plan.beat_name,
            option_name=plan.option_name,
            description=plan.description,
            start_latitude=plan.start_latitude,
            start_longitude=plan.start_longitude,
            total_distance_km=plan.total_distance_km,
            total_duration_min=plan.total_duration_min,
            stops=[RouteStopModel(**asdict(stop)) for stop in plan.stops],
        ),
        geometry=[list(point) for point in geometry] if geometry is not None else None,
        bounds=[list(corner) for corner in bounds] if bounds else None,
        markers=[
            MarkerGroupModel(
                latitude=group["coordinate"][0],
                longitude=group["coordinate"][1],
                positions=group["positions"],
            )
            for group in markers
        ],
        metadata=metadata,
    )


def fetch_geometry(payload: GeometryRequest) -> GeometryResponse:
    coordinates = [(point.latitude, point.longitude) for point in payload.coordinates]
    geometry = ORSClient().directions(coordinates)
    bounds = route_bounds(geometry)
    return GeometryResponse(
        geometry=[list(point) for point in geometry],
        bounds=[list(corner) for corner in bounds] if bounds else None,
    )


def plan_from_model(model: RoutePlanModel) -> RoutePlan:
    return RoutePlan(
        beat_name=model.beat_name,
        option_name=model.option_name,
        description=model.description,
        start_latitude=model.start_latitude,
        start_longitude=model.start_longitude,
        total_distance_km=model.total_distance_km,
        total_duration_min=model.total_duration_min,
        stops=[RouteStop(**stop.model_dump()) for stop in model.stops],
    )
