"""Routing request/response schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class CoordinateModel(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class OutletModel(BaseModel):
    outlet_id: str = Field(..., min_length=1)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    name: Optional[str] = None


class OptimizerOverrides(BaseModel):
    randomized_trials: Optional[int] = Field(None, ge=1, le=1000)
    two_opt_max_passes: Optional[int] = Field(None, ge=1)
    micro_cluster_threshold: Optional[float] = Field(None, ge=0)
    regular_cluster_threshold: Optional[float] = Field(None, ge=0)
    exhaustive_search_limit: Optional[int] = Field(None, ge=1, le=9)
    gated_two_opt_min_improvement: Optional[float] = Field(None, ge=0)
    gated_two_opt_proximity: Optional[float] = Field(None, ge=0)
    tight_cluster_radius_m: Optional[float] = Field(None, ge=0)
    medium_cluster_radius_m: Optional[float] = Field(None, ge=0)
    loose_cluster_radius_m: Optional[float] = Field(None, ge=0)
    standard_cluster_radius_m: Optional[float] = Field(None, ge=0)


class OptimizeRequest(BaseModel):
    start: Optional[CoordinateModel] = Field(default=None, description="Route origin (typically the rep's location).")
    outlets: List[OutletModel] = Field(default_factory=list, description="Destinations of the beat, in upload order.")
    beat_name: str = Field(default="Beat", description="Label used for exports and output folders.")
    outlet_ids: Optional[List[str]] = Field(default=None, description="Optional subset of outlets to route.")
    selected_option_index: int = Field(default=0, ge=0, description="Index into the ranked options; 0 is shortest.")
    seed: Optional[int] = Field(default=None, description="Seed for randomized heuristics (reproducible runs).")
    overrides: Optional[OptimizerOverrides] = None
    include_geometry: bool = Field(default=True, description="Fetch road geometry for the selected option.")
    persist: Optional[bool] = Field(default=None, description="Write outputs to disk; defaults to settings.")


class RouteOptionModel(BaseModel):
    name: str
    description: str
    route: List[int]
    total_distance: float
    total_duration: float
    total_distance_km: float
    total_duration_min: float


class RouteStopModel(BaseModel):
    sequence: int
    outlet_id: str
    name: str
    latitude: float
    longitude: float
    distance_from_prev_km: float
    arrival_min: float


class RoutePlanModel(BaseModel):
    beat_name: str
    option_name: str
    description: str = ""
    start_latitude: float
    start_longitude: float
    total_distance_km: float
    total_duration_min: float
    stops: List[RouteStopModel]


class MarkerGroupModel(BaseModel):
    latitude: float
    longitude: float
    positions: List[int]


class OptimizeResponse(BaseModel):
    beat_name: str
    selected_option_index: int
    options: List[RouteOptionModel]
    plan: RoutePlanModel
    geometry: Optional[List[List[float]]] = None
    bounds: Optional[List[List[float]]] = None
    markers: List[MarkerGroupModel]
    metadata: dict


class GeometryRequest(BaseModel):
    coordinates: List[CoordinateModel] = Field(..., min_length=2)


class GeometryResponse(BaseModel):
    geometry: List[List[float]]
    bounds: Optional[List[List[float]]] = None
