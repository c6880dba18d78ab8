"""Domain models for outlet and start-location records."""

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True, frozen=True)
class Outlet:
    """A destination point of a beat, as read from the uploaded spreadsheet."""

    outlet_id: str
    latitude: float
    longitude: float
    name: Optional[str] = None

    @property
    def coordinate(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(slots=True, frozen=True)
class StartLocation:
    """Origin of the route (index 0 of every cost matrix)."""

    latitude: float
    longitude: float

    @property
    def coordinate(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)
