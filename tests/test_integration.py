import asyncio
import io
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook

from beatroute.main import create_app
from beatroute.services.geospatial import haversine_m
from beatroute.services.routing.errors import OptimizationCancelled, ProviderUnavailableError
from beatroute.services.routing.pipeline import CancellationToken


class DummyORS:
    profile = "driving-car"

    def matrix(self, coordinates):
        distances = [[haversine_m(a[0], a[1], b[0], b[1]) for b in coordinates] for a in coordinates]
        durations = [[value / 12.0 for value in row] for row in distances]
        return {"distances": distances, "durations": durations}

    def directions(self, coordinates):
        return list(coordinates)


def _payload(**kwargs) -> dict:
    payload = {
        "start": {"latitude": 24.700, "longitude": 46.660},
        "beat_name": "North",
        "seed": 11,
        "outlets": [
            {"outlet_id": "O1", "latitude": 24.710, "longitude": 46.670, "name": "Alpha"},
            {"outlet_id": "O2", "latitude": 24.740, "longitude": 46.700, "name": "Bravo"},
            {"outlet_id": "O3", "latitude": 24.690, "longitude": 46.640, "name": "Charlie"},
        ],
    }
    payload.update(kwargs)
    return payload


@pytest.fixture
def api_client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    app = create_app()
    client = TestClient(app)

    # ensure filesystem writes go to tmpdir and no request reaches ORS
    from beatroute.persistence.filesystem import FileStorage
    from beatroute.services.routing import service as routing_service

    monkeypatch.setattr(routing_service, "FileStorage", lambda: FileStorage(root=tmp_path))
    monkeypatch.setattr(routing_service, "ORSClient", lambda *args, **kwargs: DummyORS())

    return client


def test_root_and_health(api_client: TestClient):
    assert api_client.get("/").json()["status"] == "running"
    assert api_client.get("/api/health").json() == {"status": "ok"}


def test_routing_endpoint_optimize(api_client: TestClient, tmp_path: Path):
    response = api_client.post("/api/routes/optimize", json=_payload())

    assert response.status_code == 200
    payload = response.json()
    assert payload["beat_name"] == "North"
    assert len(payload["options"]) == 5
    assert [stop["sequence"] for stop in payload["plan"]["stops"]] == [1, 2, 3]
    assert payload["geometry"]

    output_dirs = list((tmp_path / "outputs").glob("route_North_*"))
    assert output_dirs
    run_dir = output_dirs[0]
    assert (run_dir / "summary.json").exists()
    assert (run_dir / "route.csv").exists()


def test_routing_endpoint_rejects_missing_start(api_client: TestClient):
    response = api_client.post("/api/routes/optimize", json=_payload(start=None))

    assert response.status_code == 400
    assert "Start location" in response.json()["detail"]


def test_routing_endpoint_maps_provider_failure(api_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    from beatroute.services.routing import service as routing_service

    def unavailable():
        raise ProviderUnavailableError("OpenRouteService request timed out")

    monkeypatch.setattr(routing_service, "ORSClient", unavailable)

    response = api_client.post("/api/routes/optimize", json=_payload())

    assert response.status_code == 502


def test_geometry_endpoint(api_client: TestClient):
    response = api_client.post(
        "/api/routes/geometry",
        json={"coordinates": [{"latitude": 24.70, "longitude": 46.66}, {"latitude": 24.71, "longitude": 46.67}]},
    )

    assert response.status_code == 200
    assert len(response.json()["geometry"]) == 2


def test_export_endpoint_returns_workbook(api_client: TestClient):
    plan = api_client.post("/api/routes/optimize", json=_payload(persist=False)).json()["plan"]

    response = api_client.post("/api/routes/export", json=plan)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert 'filename="Route_North_' in response.headers["content-disposition"]
    wb = load_workbook(io.BytesIO(response.content))
    assert wb.sheetnames == ["Route Details", "Summary"]


def test_export_endpoint_requires_stops(api_client: TestClient):
    plan = {
        "beat_name": "North",
        "option_name": "Geographic Order",
        "start_latitude": 24.7,
        "start_longitude": 46.6,
        "total_distance_km": 0,
        "total_duration_min": 0,
        "stops": [],
    }

    assert api_client.post("/api/routes/export", json=plan).status_code == 400


def test_upload_endpoint_parses_csv(api_client: TestClient):
    content = (
        "Beat Name,Outlet ID,Outlet Name,Latitude,Longitude\n"
        "North,1,Alpha,24.71,46.67\n"
        "North,2,Bravo,24.74,46.70\n"
        "South,3,Charlie,24.69,46.64\n"
    )

    response = api_client.post("/api/beats/upload", files={"file": ("beats.csv", content.encode("utf-8"), "text/csv")})

    assert response.status_code == 200
    payload = response.json()
    assert payload["beat_count"] == 2
    assert payload["outlet_count"] == 3
    assert [outlet["outlet_id"] for outlet in payload["beats"]["North"]] == ["1", "2"]


def test_upload_endpoint_rejects_unknown_file_type(api_client: TestClient):
    response = api_client.post("/api/beats/upload", files={"file": ("beats.txt", b"hello", "text/plain")})

    assert response.status_code == 400


def test_routing_endpoint_maps_cancellation(api_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    from beatroute.api.routes import routes as routes_module

    def cancelled(payload, *, cancel=None):
        raise OptimizationCancelled("Optimization cancelled before ranking.")

    monkeypatch.setattr(routes_module, "optimize_route", cancelled)

    response = api_client.post("/api/routes/optimize", json=_payload())

    assert response.status_code == 409


def test_client_disconnect_cancels_optimization(monkeypatch: pytest.MonkeyPatch):
    from beatroute.api.routes import routes as routes_module

    monkeypatch.setattr(routes_module, "DISCONNECT_POLL_SECONDS", 0)

    class DisconnectingRequest:
        def __init__(self):
            self.checks = 0

        async def is_disconnected(self):
            self.checks += 1
            return self.checks >= 2

    request = DisconnectingRequest()
    cancel = CancellationToken()

    asyncio.run(routes_module._cancel_on_disconnect(request, cancel))

    assert cancel.cancelled
    assert request.checks == 2
