"""Excel export of a planned beat route."""

from __future__ import annotations

import io
from datetime import datetime, timezone

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from ..routing.models import RoutePlan

ROUTE_SHEET = "Route Details"
SUMMARY_SHEET = "Summary"
ROUTE_COLUMNS = (
    ("Sequence", 10),
    ("Outlet ID", 15),
    ("Outlet Name", 25),
    ("Beat Name", 15),
    ("Latitude", 12),
    ("Longitude", 12),
    ("Visit Order", 15),
    ("Notes", 30),
)


def _route_rows(plan: RoutePlan) -> list[list]:
    rows = [
        [
            0,
            "START",
            "Start Location",
            plan.beat_name,
            plan.start_latitude,
            plan.start_longitude,
            "Starting Point",
            "Begin route from this location",
        ]
    ]
    for stop in plan.stops:
        rows.append(
            [
                stop.sequence,
                stop.outlet_id,
                stop.name,
                plan.beat_name,
                stop.latitude,
                stop.longitude,
                f"Stop {stop.sequence}",
                f"Optimized using {plan.option_name}",
            ]
        )
    return rows


def _summary_rows(plan: RoutePlan, generated_at: datetime) -> list[list]:
    count = plan.outlet_count
    distance_km = round(plan.total_distance_km, 2)
    duration_min = round(plan.total_duration_min)
    rows = [
        ["ROUTE OPTIMIZATION SUMMARY", ""],
        ["", ""],
        ["Beat Name", plan.beat_name],
        ["Total Outlets", count],
        ["Total Distance (km)", distance_km],
        ["Estimated Duration (minutes)", duration_min],
        ["Estimated Duration (hours)", round(plan.total_duration_min / 60, 1)],
        ["", ""],
        ["OPTIMIZATION DETAILS", ""],
        ["", ""],
        ["Route Option", plan.option_name],
        ["Option Description", plan.description],
        ["Distance Calculation", "OpenRouteService Road Network"],
        ["Route Strategies", "Nearest Neighbor, Farthest Insertion, Randomized, Geographic, Cluster-Aware"],
        ["Generated On", generated_at.strftime("%Y-%m-%d %H:%M:%S %Z")],
        ["", ""],
        ["START LOCATION", ""],
        ["", ""],
        ["Latitude", plan.start_latitude],
        ["Longitude", plan.start_longitude],
        ["", ""],
        ["OUTLET SEQUENCE", ""],
        ["", ""],
    ]
    rows.extend([f"Stop {stop.sequence}", f"{stop.name} (ID: {stop.outlet_id})"] for stop in plan.stops)
    rows.extend(
        [
            ["", ""],
            ["PERFORMANCE METRICS", ""],
            ["", ""],
            ["Average Distance per Stop (km)", round(plan.total_distance_km / max(count, 1), 2)],
            ["Average Time per Stop (minutes)", round(plan.total_duration_min / max(count, 1), 1)],
            ["Outlets per Hour (estimated)", round(count / max(plan.total_duration_min / 60, 1), 1)],
        ]
    )
    return rows


def route_plan_to_workbook(plan: RoutePlan, generated_at: datetime | None = None) -> bytes:
    """Build the two-sheet download workbook and return it as .xlsx bytes."""
    generated_at = generated_at or datetime.now(timezone.utc)
    wb = Workbook()

    route_ws = wb.active
    route_ws.title = ROUTE_SHEET
    route_ws.append([name for name, _ in ROUTE_COLUMNS])
    for cell in route_ws[1]:
        cell.font = Font(bold=True)
    for row in _route_rows(plan):
        route_ws.append(row)
    for position, (_, width) in enumerate(ROUTE_COLUMNS, start=1):
        route_ws.column_dimensions[get_column_letter(position)].width = width

    summary_ws = wb.create_sheet(SUMMARY_SHEET)
    for row in _summary_rows(plan, generated_at):
        summary_ws.append(row)
    summary_ws["A1"].font = Font(bold=True)
    summary_ws.column_dimensions["A"].width = 35
    summary_ws.column_dimensions["B"].width = 25

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def export_filename(plan: RoutePlan, generated_at: datetime | None = None) -> str:
    stamp = (generated_at or datetime.now(timezone.utc)).strftime("%Y-%m-%d")
    beat = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in plan.beat_name) or "beat"
    return f"Route_{beat}_{stamp}.xlsx"
