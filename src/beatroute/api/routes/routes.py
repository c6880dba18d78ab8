"""Routing endpoints."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Request, Response, status
from fastapi.concurrency import run_in_threadpool

from ...schemas.routing import GeometryRequest, GeometryResponse, OptimizeRequest, OptimizeResponse, RoutePlanModel
from ...services.export.workbook import export_filename, route_plan_to_workbook
from ...services.routing.errors import OptimizationCancelled, ProviderUnavailableError
from ...services.routing.pipeline import CancellationToken
from ...services.routing.service import fetch_geometry, optimize_route, plan_from_model

router = APIRouter(prefix="/routes", tags=["routes"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
DISCONNECT_POLL_SECONDS = 0.5


async def _cancel_on_disconnect(request: Request, cancel: CancellationToken) -> None:
    """Cancel the optimization once the client has gone away."""
    while not cancel.cancelled:
        if await request.is_disconnected():
            logging.info("Client disconnected; cancelling route optimization")
            cancel.cancel()
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


@router.post("/optimize", response_model=OptimizeResponse, status_code=status.HTTP_200_OK)
async def optimize(payload: OptimizeRequest, request: Request) -> OptimizeResponse:
    cancel = CancellationToken()
    watcher = asyncio.create_task(_cancel_on_disconnect(request, cancel))
    try:
        return await run_in_threadpool(optimize_route, payload, cancel=cancel)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ProviderUnavailableError as exc:
        logging.warning(f"Routing provider unavailable: {exc}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except OptimizationCancelled as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error optimizing route: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize route: {str(exc)}"
        ) from exc
    finally:
        watcher.cancel()


@router.post("/geometry", response_model=GeometryResponse, status_code=status.HTTP_200_OK)
def geometry(payload: GeometryRequest) -> GeometryResponse:
    """Road geometry for an already ordered coordinate list (e.g. after switching option)."""
    try:
        return fetch_geometry(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ProviderUnavailableError as exc:
        logging.warning(f"Geometry provider unavailable: {exc}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc


@router.post("/export", status_code=status.HTTP_200_OK)
def export(payload: RoutePlanModel) -> Response:
    """Download the selected plan as an Excel workbook."""
    if not payload.stops:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No optimized route available. Generate a route first.",
        )
    plan = plan_from_model(payload)
    return Response(
        content=route_plan_to_workbook(plan),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{export_filename(plan)}"'},
    )
