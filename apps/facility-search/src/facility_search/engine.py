from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from time import perf_counter

from opentelemetry import trace

from facility_search.cache import CacheStore
from facility_search.clients.device_locator import DeviceLocator, UnsupportedDeviceLocator
from facility_search.clients.ip_geolocation_client import IpGeolocationClient
from facility_search.clients.nominatim_client import NominatimClient
from facility_search.clients.overpass_client import OverpassClient
from facility_search.clients.upstream import ClientFactory
from facility_search.config import DEFAULT_LOCATION_STRATEGIES, EngineSettings, load_settings
from facility_search.errors import FacilitySearchError
from facility_search.models import FacilityKind, StrategyConfig
from facility_search.observability import (
    InMemorySearchMetricsCollector,
    SearchMetric,
    SearchMetricCollector,
    configure_otel,
)
from facility_search.rate_limit import IntervalRateLimiter
from facility_search.schemas import LocationSpec, SearchResult
from facility_search.services.address_enricher import AddressEnricher
from facility_search.services.facility_fetcher import FacilityFetcher
from facility_search.services.location_resolver import LocationResolver
from facility_search.services.result_composer import ResultComposer

logger = logging.getLogger(__name__)


class Engine:
    """Owns the caches and the rate limiter shared by every search it runs.

    One instance per process gives the shared-state behaviour; tests build a
    fresh instance for isolation.
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        device_locator: DeviceLocator | None = None,
        client_factory: ClientFactory | None = None,
        strategies: Sequence[StrategyConfig] = DEFAULT_LOCATION_STRATEGIES,
        metrics: SearchMetricCollector | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.settings = settings or load_settings()
        self.metrics = metrics or InMemorySearchMetricsCollector()
        self.cache = CacheStore(
            search_ttl_seconds=self.settings.SEARCH_CACHE_TTL_SECONDS,
            location_ttl_seconds=self.settings.LOCATION_CACHE_TTL_SECONDS,
            clock=clock,
        )
        self.rate_limiter = IntervalRateLimiter(self.settings.RATE_LIMIT_INTERVAL_MS, clock=clock, sleep=sleep)

        geocoder = NominatimClient(
            base_url=self.settings.NOMINATIM_BASE_URL,
            user_agent=self.settings.USER_AGENT,
            country_codes=self.settings.COUNTRY_CODES,
            client_factory=client_factory,
        )
        self.location_resolver = LocationResolver(
            geocoder=geocoder,
            ip_client=IpGeolocationClient(
                url=self.settings.IP_GEOLOCATION_URL,
                user_agent=self.settings.USER_AGENT,
                client_factory=client_factory,
            ),
            device_locator=device_locator or UnsupportedDeviceLocator(),
            rate_limiter=self.rate_limiter,
            cache=self.cache,
            settings=self.settings,
            strategies=strategies,
            metrics=self.metrics,
        )
        self.facility_fetcher = FacilityFetcher(
            overpass=OverpassClient(
                url=self.settings.OVERPASS_URL,
                user_agent=self.settings.USER_AGENT,
                client_factory=client_factory,
            ),
            rate_limiter=self.rate_limiter,
            cache=self.cache,
            settings=self.settings,
            metrics=self.metrics,
        )
        self.address_enricher = AddressEnricher(
            geocoder=geocoder,
            rate_limiter=self.rate_limiter,
            cache=self.cache,
            settings=self.settings,
            sleep=sleep,
            metrics=self.metrics,
        )
        self.result_composer = ResultComposer(result_limit=self.settings.RESULT_LIMIT)
        self._tracer = trace.get_tracer("facility-search")

    @classmethod
    def from_env(
        cls,
        service_name: str = "facility-search",
        device_locator: DeviceLocator | None = None,
        metrics: SearchMetricCollector | None = None,
    ) -> Engine:
        """Build an engine from environment settings with tracing configured for ``service_name``."""
        settings = load_settings(service_name)
        configure_otel(settings.SERVICE_NAME)
        return cls(settings=settings, device_locator=device_locator, metrics=metrics)

    async def search_facilities(
        self,
        location: LocationSpec,
        kind: FacilityKind | str | None = None,
        max_distance_km: float | None = None,
    ) -> SearchResult:
        """Resolve the location, fetch, rank, enrich and compose. Never raises."""
        kind_filter = (kind.value if isinstance(kind, FacilityKind) else kind) or None
        distance_km = max_distance_km if max_distance_km is not None else self.settings.DEFAULT_MAX_DISTANCE_KM
        started = perf_counter()

        with self._tracer.start_as_current_span("facility.search") as span:
            span.set_attribute("search.kind", kind_filter or "all")
            span.set_attribute("search.max_distance_km", distance_km)
            try:
                reading = await self.location_resolver.resolve(location)
                fetched = await self.facility_fetcher.fetch(
                    reading.coordinates,
                    int(distance_km * 1000),
                    kind_filter,
                )
                enriched = await self.address_enricher.enrich(fetched.facilities)
                result = self.result_composer.compose(
                    location=reading,
                    enriched=enriched,
                    kind=kind_filter,
                    max_distance_km=distance_km,
                    cache_hit=fetched.cache_hit,
                )
            except FacilitySearchError as exc:
                logger.warning(
                    "facility_search_rejected",
                    extra={"component": "engine", "error_code": exc.code, "error": str(exc)},
                )
                result = self.result_composer.failure(exc.code)
            except Exception:
                logger.exception("facility_search_failed", extra={"component": "engine"})
                result = self.result_composer.failure(FacilitySearchError.code)

            span.set_attribute("search.status", "error" if result.error else "ok")
            span.set_attribute("search.total_found", result.total_found)
            if result.performance:
                span.set_attribute("search.strategy", result.performance.strategy_name)
                span.set_attribute("search.cache_hit", result.performance.cache_hit)

        duration_ms = (perf_counter() - started) * 1000.0
        self.metrics.observe(
            SearchMetric(
                status="error" if result.error else "ok",
                strategy_name=result.performance.strategy_name if result.performance else "none",
                cache_hit=bool(result.performance and result.performance.cache_hit),
                result_count=len(result.facilities),
                duration_ms=duration_ms,
            )
        )
        logger.info(
            "facility_search_completed",
            extra={
                "component": "engine",
                "total_found": result.total_found,
                "returned": len(result.facilities),
                "error_code": result.error,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return result

    async def clear_caches(self) -> None:
        await self.cache.clear()
        logger.info("facility_caches_cleared", extra={"component": "engine"})
