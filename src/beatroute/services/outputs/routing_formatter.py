"""Serializers for routing outputs."""

from __future__ import annotations

import csv
import io
from dataclasses import asdict

from ..routing.models import RoutePlan, RouteOption


def route_option_to_json(option: RouteOption) -> dict:
    return {
        "name": option.name,
        "description": option.description,
        "route": list(option.route),
        "total_distance": option.total_distance,
        "total_duration": option.total_duration,
    }


def route_plan_to_json(plan: RoutePlan) -> dict:
    return {
        "beat_name": plan.beat_name,
        "option_name": plan.option_name,
        "description": plan.description,
        "start": {"latitude": plan.start_latitude, "longitude": plan.start_longitude},
        "total_distance_km": plan.total_distance_km,
        "total_duration_min": plan.total_duration_min,
        "outlet_count": plan.outlet_count,
        "stops": [asdict(stop) for stop in plan.stops],
    }


def route_plan_to_csv(plan: RoutePlan) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "beat_name",
        "sequence",
        "outlet_id",
        "name",
        "latitude",
        "longitude",
        "distance_from_prev_km",
        "arrival_min",
        "option_name",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for stop in plan.stops:
        writer.writerow(
            {
                "beat_name": plan.beat_name,
                "sequence": stop.sequence,
                "outlet_id": stop.outlet_id,
                "name": stop.name,
                "latitude": stop.latitude,
                "longitude": stop.longitude,
                "distance_from_prev_km": stop.distance_from_prev_km,
                "arrival_min": stop.arrival_min,
                "option_name": plan.option_name,
            }
        )
    return buffer.getvalue()
