from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from geo_engine.models import Coordinate


class FacilityKind(str, Enum):
    HOSPITAL = "hospital"
    PHARMACY = "pharmacy"
    CLINIC = "clinic"
    HEALTHCARE = "healthcare"


@dataclass(frozen=True)
class StrategyConfig:
    name: str
    high_accuracy_requested: bool
    timeout_ms: int
    max_cached_age_ms: int


@dataclass(frozen=True)
class LocationReading:
    coordinates: Coordinate
    accuracy_meters: float | None
    strategy_name: str
    acquired_at: datetime
    formatted_address: str | None = None


@dataclass(frozen=True)
class FacilityCandidate:
    external_id: str
    name: str
    kind: FacilityKind
    coordinates: Coordinate
    phone: str | None = None


@dataclass(frozen=True)
class RankedFacility:
    candidate: FacilityCandidate
    distance_km: float


@dataclass(frozen=True)
class NavigationLinks:
    map_url: str
    waze_url: str
    openstreetmap_url: str


@dataclass(frozen=True)
class EnrichedFacility:
    ranked: RankedFacility
    address: str
    navigation_links: NavigationLinks | None = None
