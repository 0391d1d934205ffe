from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from geo_engine.models import Coordinate
from geo_engine.ranking import rank_by_distance

from facility_search.cache import CacheStore, search_cache_key
from facility_search.clients.overpass_client import OverpassClient
from facility_search.config import EngineSettings
from facility_search.errors import StageOutcome, UpstreamUnavailableError
from facility_search.models import FacilityCandidate, FacilityKind, RankedFacility
from facility_search.observability import SearchMetricCollector
from facility_search.rate_limit import IntervalRateLimiter

logger = logging.getLogger(__name__)

DEFAULT_NAMES = {
    "hospital": "Rumah Sakit",
    "pharmacy": "Apotek",
    "clinic": "Klinik",
    "doctors": "Praktik Dokter",
}
GENERIC_NAME = "Fasilitas Kesehatan"

AMENITY_KINDS = {
    "hospital": FacilityKind.HOSPITAL,
    "pharmacy": FacilityKind.PHARMACY,
    "clinic": FacilityKind.CLINIC,
    "doctors": FacilityKind.CLINIC,
}


@dataclass(frozen=True)
class FetchResult:
    outcome: StageOutcome[list[RankedFacility]]
    cache_hit: bool
    query_radius_meters: int

    @property
    def facilities(self) -> list[RankedFacility]:
        return self.outcome.value


def parse_element(element: dict[str, Any]) -> FacilityCandidate | None:
    tags = element.get("tags")
    if element.get("type", "node") != "node" or not isinstance(tags, dict):
        return None
    lat, lng = element.get("lat"), element.get("lon")
    if lat is None or lng is None:
        return None
    amenity = tags.get("amenity")
    try:
        return FacilityCandidate(
            external_id=str(element.get("id", "")),
            name=tags.get("name") or DEFAULT_NAMES.get(amenity, GENERIC_NAME),
            kind=AMENITY_KINDS.get(amenity, FacilityKind.HEALTHCARE),
            coordinates=Coordinate(lat=float(lat), lng=float(lng)),
            phone=tags.get("phone"),
        )
    except (TypeError, ValueError):
        return None


def rank_candidates(origin: Coordinate, candidates: list[FacilityCandidate]) -> list[RankedFacility]:
    ranked = rank_by_distance(origin, candidates, point_of=lambda candidate: candidate.coordinates)
    return [RankedFacility(candidate=entry.item, distance_km=entry.distance_km) for entry in ranked]


class FacilityFetcher:
    def __init__(
        self,
        overpass: OverpassClient,
        rate_limiter: IntervalRateLimiter,
        cache: CacheStore,
        settings: EngineSettings,
        metrics: SearchMetricCollector | None = None,
    ) -> None:
        self._overpass = overpass
        self._rate_limiter = rate_limiter
        self._cache = cache
        self._settings = settings
        self._metrics = metrics

    async def fetch(self, center: Coordinate, radius_meters: int, kind: str | None = None) -> FetchResult:
        query_radius = min(radius_meters, self._settings.MAX_QUERY_RADIUS_METERS)
        key = search_cache_key(center, radius_meters, kind)
        cached = await self._cache.search.get(key)
        if cached is not None:
            logger.info("facility_cache_hit", extra={"component": "facility_fetcher", "count": len(cached)})
            return FetchResult(outcome=StageOutcome.ok(cached), cache_hit=True, query_radius_meters=query_radius)

        await self._rate_limiter.acquire()
        try:
            elements = await self._overpass.query_points(
                center,
                query_radius,
                timeout_seconds=self._settings.OVERPASS_TIMEOUT_SECONDS,
            )
        except UpstreamUnavailableError as exc:
            if self._metrics:
                self._metrics.increment_upstream_error(exc.provider)
            logger.warning(
                "facility_fetch_failed",
                extra={"component": "facility_fetcher", "reason": exc.reason, "radius_meters": query_radius},
            )
            return FetchResult(outcome=StageOutcome.fallback([], exc), cache_hit=False, query_radius_meters=query_radius)

        try:
            candidates = [candidate for candidate in map(parse_element, elements) if candidate is not None]
            ranked = rank_candidates(center, candidates)
        except Exception as exc:
            error = UpstreamUnavailableError(self._overpass.provider_name, "parse", str(exc))
            if self._metrics:
                self._metrics.increment_upstream_error(error.provider)
            logger.warning(
                "facility_parse_failed",
                extra={"component": "facility_fetcher", "error": str(exc), "radius_meters": query_radius},
            )
            return FetchResult(outcome=StageOutcome.fallback([], error), cache_hit=False, query_radius_meters=query_radius)

        dropped = len(elements) - len(candidates)
        await self._cache.search.set(key, ranked)
        logger.info(
            "facility_fetch_completed",
            extra={
                "component": "facility_fetcher",
                "elements": len(elements),
                "dropped": dropped,
                "facilities": len(ranked),
                "radius_meters": query_radius,
            },
        )
        return FetchResult(outcome=StageOutcome.ok(ranked), cache_hit=False, query_radius_meters=query_radius)
