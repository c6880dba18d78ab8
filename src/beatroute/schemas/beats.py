"""Beat upload schemas."""

from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel

from .routing import OutletModel


class BeatSummaryModel(BaseModel):
    beat_name: str
    outlet_count: int


class BeatUploadResponse(BaseModel):
    filename: str
    beat_count: int
    outlet_count: int
    summaries: List[BeatSummaryModel]
    beats: Dict[str, List[OutletModel]]
