"""Beat spreadsheet upload endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, File, HTTPException, UploadFile, status

from ...schemas.beats import BeatSummaryModel, BeatUploadResponse
from ...schemas.routing import OutletModel
from ...services.beats import load_beats

router = APIRouter(prefix="/beats", tags=["beats"])


@router.post("/upload", response_model=BeatUploadResponse, status_code=status.HTTP_200_OK)
async def upload_beats(file: UploadFile = File(...)) -> BeatUploadResponse:
    """Parse an outlet spreadsheet into beats, deduplicating outlets by id within each beat."""
    payload = await file.read()
    if not payload:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty.")
    try:
        beats = load_beats(file.filename or "", payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error parsing beat file '{file.filename}': {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to parse beat file: {str(exc)}",
        ) from exc

    if not beats:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No outlets found. Expected columns: Beat Name, Outlet ID, Latitude, Longitude.",
        )

    return BeatUploadResponse(
        filename=file.filename or "",
        beat_count=len(beats),
        outlet_count=sum(len(outlets) for outlets in beats.values()),
        summaries=[BeatSummaryModel(beat_name=name, outlet_count=len(outlets)) for name, outlets in beats.items()],
        beats={
            name: [
                OutletModel(
                    outlet_id=outlet.outlet_id,
                    latitude=outlet.latitude,
                    longitude=outlet.longitude,
                    name=outlet.name,
                )
                for outlet in outlets
            ]
            for name, outlets in beats.items()
        },
    )
