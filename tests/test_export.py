import io
from datetime import datetime, timezone

from openpyxl import load_workbook

from beatroute.services.export import export_filename, route_plan_to_workbook
from beatroute.services.outputs.routing_formatter import route_plan_to_csv, route_plan_to_json
from beatroute.services.routing.models import RoutePlan, RouteStop

GENERATED_AT = datetime(2024, 3, 5, 8, 30, tzinfo=timezone.utc)


def _plan() -> RoutePlan:
    return RoutePlan(
        beat_name="North Beat",
        option_name="Optimized Distance (Tight Clusters)",
        description="Prioritizes shortest distance with tight geographic grouping",
        start_latitude=24.70,
        start_longitude=46.60,
        total_distance_km=12.5,
        total_duration_min=45.0,
        stops=[
            RouteStop(1, "1042", "Corner Shop", 24.71, 46.67, 4.0, 15.0),
            RouteStop(2, "1043", "Kiosk", 24.72, 46.68, 8.5, 45.0),
        ],
    )


def test_workbook_has_route_and_summary_sheets():
    payload = route_plan_to_workbook(_plan(), generated_at=GENERATED_AT)

    wb = load_workbook(io.BytesIO(payload))
    assert wb.sheetnames == ["Route Details", "Summary"]

    route_rows = list(wb["Route Details"].iter_rows(values_only=True))
    assert route_rows[0][:3] == ("Sequence", "Outlet ID", "Outlet Name")
    assert route_rows[1][:3] == (0, "START", "Start Location")
    assert route_rows[2][:3] == (1, "1042", "Corner Shop")
    assert route_rows[3][6] == "Stop 2"
    assert len(route_rows) == 4

    summary = {row[0]: row[1] for row in wb["Summary"].iter_rows(values_only=True) if row[0]}
    assert summary["Beat Name"] == "North Beat"
    assert summary["Total Outlets"] == 2
    assert summary["Total Distance (km)"] == 12.5
    assert summary["Route Option"] == "Optimized Distance (Tight Clusters)"
    assert summary["Stop 2"] == "Kiosk (ID: 1043)"
    assert summary["Average Distance per Stop (km)"] == 6.25


def test_export_filename_is_sanitized_and_dated():
    assert export_filename(_plan(), generated_at=GENERATED_AT) == "Route_North_Beat_2024-03-05.xlsx"


def test_plan_serializers():
    plan = _plan()

    payload = route_plan_to_json(plan)
    assert payload["outlet_count"] == 2
    assert payload["stops"][1]["outlet_id"] == "1043"

    lines = route_plan_to_csv(plan).strip().splitlines()
    assert lines[0].startswith("beat_name,sequence,outlet_id")
    assert lines[1].startswith("North Beat,1,1042,Corner Shop")
    assert len(lines) == 3
