from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import Literal

from geo_engine.models import Coordinate

from facility_search.cache import CacheStore, reverse_cache_key
from facility_search.clients.nominatim_client import NominatimClient
from facility_search.config import EngineSettings
from facility_search.errors import StageOutcome, UpstreamUnavailableError
from facility_search.models import EnrichedFacility, RankedFacility
from facility_search.observability import SearchMetricCollector
from facility_search.rate_limit import IntervalRateLimiter

logger = logging.getLogger(__name__)

UNKNOWN_ADDRESS = "Alamat tidak diketahui"

Priority = Literal["speed", "accuracy"]


def simplify_address(display_name: str | None, boilerplate_tokens: Iterable[str]) -> str:
    """Keep at most three comma-separated parts, dropping country/region boilerplate."""
    if not display_name:
        return UNKNOWN_ADDRESS
    tokens = [token.lower() for token in boilerplate_tokens]
    parts = [part.strip() for part in display_name.split(",")]
    relevant = [
        part
        for part in parts
        if len(part) > 2 and not any(token in part.lower() for token in tokens)
    ]
    return ", ".join(relevant[:3]) or parts[0] or UNKNOWN_ADDRESS


def fallback_address(point: Coordinate) -> str:
    return point.format(4)


class AddressEnricher:
    def __init__(
        self,
        geocoder: NominatimClient,
        rate_limiter: IntervalRateLimiter,
        cache: CacheStore,
        settings: EngineSettings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        metrics: SearchMetricCollector | None = None,
    ) -> None:
        self._geocoder = geocoder
        self._rate_limiter = rate_limiter
        self._cache = cache
        self._settings = settings
        self._sleep = sleep
        self._metrics = metrics

    async def enrich(self, ranked: Sequence[RankedFacility]) -> list[EnrichedFacility]:
        limit = self._settings.ENRICH_LIMIT
        head = ranked[:limit]
        tail = [
            EnrichedFacility(ranked=facility, address=fallback_address(facility.candidate.coordinates))
            for facility in ranked[limit:]
        ]
        enriched_head = await asyncio.gather(
            *(self._enrich_staggered(index, facility) for index, facility in enumerate(head))
        )
        recovered = sum(1 for _, outcome in enriched_head if outcome.recovered)
        logger.info(
            "address_enrichment_completed",
            extra={
                "component": "address_enricher",
                "geocoded": len(head) - recovered,
                "recovered": recovered,
                "skipped": len(tail),
            },
        )
        return [facility for facility, _ in enriched_head] + tail

    async def lookup_address(self, point: Coordinate, priority: Priority = "speed") -> StageOutcome[str]:
        key = reverse_cache_key(point)
        cached = await self._cache.reverse.get(key)
        if cached is not None:
            return StageOutcome.ok(cached)

        await self._rate_limiter.acquire()
        speed = priority == "speed"
        try:
            payload = await self._geocoder.reverse(
                point,
                timeout_seconds=(
                    self._settings.REVERSE_GEOCODE_SPEED_TIMEOUT_SECONDS
                    if speed
                    else self._settings.REVERSE_GEOCODE_ACCURACY_TIMEOUT_SECONDS
                ),
                zoom=14 if speed else 18,
                address_details=not speed,
            )
            display_name = payload.get("display_name")
            if not display_name:
                raise UpstreamUnavailableError(self._geocoder.provider_name, "payload", "no display_name")
        except UpstreamUnavailableError as exc:
            if self._metrics:
                self._metrics.increment_upstream_error(exc.provider)
            logger.warning(
                "reverse_geocode_fallback",
                extra={"component": "address_enricher", "reason": exc.reason, "point": point.format(5)},
            )
            fallback = fallback_address(point)
            await self._cache.reverse.set(key, fallback)
            return StageOutcome.fallback(fallback, exc)

        address = simplify_address(display_name, self._settings.ADDRESS_BOILERPLATE_TOKENS)
        await self._cache.reverse.set(key, address)
        return StageOutcome.ok(address)

    async def _enrich_staggered(
        self,
        index: int,
        facility: RankedFacility,
    ) -> tuple[EnrichedFacility, StageOutcome[str]]:
        if index > 0:
            await self._sleep(index * self._settings.ENRICH_STAGGER_MS / 1000)
        outcome = await self.lookup_address(facility.candidate.coordinates)
        return EnrichedFacility(ranked=facility, address=outcome.value), outcome
