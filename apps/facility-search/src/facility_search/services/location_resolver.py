from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any

from geo_engine.models import Coordinate

from facility_search.cache import CURRENT_LOCATION_KEY, CacheStore
from facility_search.clients.device_locator import DeviceLocator
from facility_search.clients.ip_geolocation_client import IpGeolocationClient
from facility_search.clients.nominatim_client import NominatimClient
from facility_search.config import DEFAULT_LOCATION_STRATEGIES, EngineSettings
from facility_search.errors import (
    AddressNotFoundError,
    LocationUnavailableError,
    NoLocationProvidedError,
    UpstreamUnavailableError,
)
from facility_search.models import LocationReading, StrategyConfig
from facility_search.observability import SearchMetricCollector
from facility_search.rate_limit import IntervalRateLimiter
from facility_search.schemas import LocationSpec
from facility_search.services.address_enricher import simplify_address

logger = logging.getLogger(__name__)

IP_ACCURACY_METERS = 10_000.0
MANUAL_STRATEGY = "manual_coordinates"
ADDRESS_STRATEGY = "address_lookup"
IP_STRATEGY = "ip_based"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LocationResolver:
    """Turns a ``LocationSpec`` into a single ``LocationReading``.

    Priority: explicit coordinates, then the device location race (with IP
    fallback), then forward geocoding of a free-text address.
    """

    def __init__(
        self,
        geocoder: NominatimClient,
        ip_client: IpGeolocationClient,
        device_locator: DeviceLocator,
        rate_limiter: IntervalRateLimiter,
        cache: CacheStore,
        settings: EngineSettings,
        strategies: Sequence[StrategyConfig] = DEFAULT_LOCATION_STRATEGIES,
        metrics: SearchMetricCollector | None = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._geocoder = geocoder
        self._ip_client = ip_client
        self._device_locator = device_locator
        self._rate_limiter = rate_limiter
        self._cache = cache
        self._settings = settings
        self._strategies = tuple(strategies)
        self._metrics = metrics
        self._now = now

    async def resolve(self, spec: LocationSpec) -> LocationReading:
        if spec.lat is not None and spec.lng is not None:
            return LocationReading(
                coordinates=Coordinate(lat=spec.lat, lng=spec.lng),
                accuracy_meters=None,
                strategy_name=MANUAL_STRATEGY,
                acquired_at=self._now(),
                formatted_address="Koordinat manual",
            )
        if spec.use_device_location:
            return await self.current_location(force_refresh=spec.force_refresh)
        if spec.address and spec.address.strip():
            return await self.geocode_address(spec.address)
        raise NoLocationProvidedError("no coordinates, address or device location requested")

    async def current_location(self, force_refresh: bool = False) -> LocationReading:
        if not force_refresh:
            cached = await self._cache.location.get(CURRENT_LOCATION_KEY)
            if cached is not None:
                logger.info(
                    "location_cache_hit",
                    extra={"component": "location_resolver", "strategy": cached.strategy_name},
                )
                return cached

        best = await self._race_strategies()
        if best is not None:
            await self._cache.location.set(CURRENT_LOCATION_KEY, best)
            return best

        logger.warning("location_strategies_exhausted", extra={"component": "location_resolver"})
        return await self._ip_fallback()

    async def geocode_address(self, address: str) -> LocationReading:
        query = address.strip()
        country = self._settings.DEFAULT_COUNTRY_NAME
        if country and country.lower() not in query.lower():
            query = f"{query}, {country}"

        match = await self._first_match(query)
        if match is None:
            city = address.split(",", 1)[0].strip()
            logger.info("geocode_city_fallback", extra={"component": "location_resolver", "query": city})
            if city:
                match = await self._first_match(city)
        if match is None:
            raise AddressNotFoundError(f"address not found: {address}")

        coordinates, display_name = match
        return LocationReading(
            coordinates=coordinates,
            accuracy_meters=None,
            strategy_name=ADDRESS_STRATEGY,
            acquired_at=self._now(),
            formatted_address=simplify_address(display_name, self._settings.ADDRESS_BOILERPLATE_TOKENS),
        )

    async def _race_strategies(self) -> LocationReading | None:
        # Every strategy runs until it answers or hits its own timeout; the most accurate wins.
        tasks = [asyncio.ensure_future(self._try_strategy(strategy)) for strategy in self._strategies]
        best: LocationReading | None = None
        for next_done in asyncio.as_completed(tasks):
            reading = await next_done
            if reading is None:
                continue
            if best is None or reading.accuracy_meters < best.accuracy_meters:
                best = reading
        if best is not None:
            logger.info(
                "location_strategy_selected",
                extra={
                    "component": "location_resolver",
                    "strategy": best.strategy_name,
                    "accuracy_meters": best.accuracy_meters,
                },
            )
        return best

    async def _try_strategy(self, strategy: StrategyConfig) -> LocationReading | None:
        try:
            position = await asyncio.wait_for(
                self._device_locator.current_position(strategy),
                timeout=strategy.timeout_ms / 1000,
            )
            return LocationReading(
                coordinates=Coordinate(lat=float(position.lat), lng=float(position.lng)),
                accuracy_meters=float(position.accuracy_meters),
                strategy_name=strategy.name,
                acquired_at=self._now(),
                formatted_address="Lokasi pengguna",
            )
        except asyncio.TimeoutError:
            logger.warning(
                "location_strategy_timeout",
                extra={"component": "location_resolver", "strategy": strategy.name, "timeout_ms": strategy.timeout_ms},
            )
            return None
        except Exception as exc:
            logger.warning(
                "location_strategy_failed",
                extra={"component": "location_resolver", "strategy": strategy.name, "error": str(exc)},
            )
            return None

    async def _ip_fallback(self) -> LocationReading:
        await self._rate_limiter.acquire()
        try:
            located = await self._ip_client.locate(self._settings.IP_GEOLOCATION_TIMEOUT_SECONDS)
        except UpstreamUnavailableError as exc:
            self._record_upstream_error(exc)
            logger.error(
                "ip_location_failed",
                extra={"component": "location_resolver", "reason": exc.reason},
            )
            raise LocationUnavailableError("device strategies and IP fallback failed") from exc

        place = ", ".join(part for part in (located.city, located.country) if part)
        return LocationReading(
            coordinates=located.coordinates,
            accuracy_meters=IP_ACCURACY_METERS,
            strategy_name=IP_STRATEGY,
            acquired_at=self._now(),
            formatted_address=place or None,
        )

    async def _first_match(self, query: str) -> tuple[Coordinate, str] | None:
        await self._rate_limiter.acquire()
        try:
            results = await self._geocoder.search(query, self._settings.FORWARD_GEOCODE_TIMEOUT_SECONDS, limit=1)
        except UpstreamUnavailableError as exc:
            self._record_upstream_error(exc)
            logger.warning(
                "forward_geocode_failed",
                extra={"component": "location_resolver", "query": query, "reason": exc.reason},
            )
            return None
        if not results:
            return None
        return _parse_place(results[0])

    def _record_upstream_error(self, exc: UpstreamUnavailableError) -> None:
        if self._metrics:
            self._metrics.increment_upstream_error(exc.provider)


def _parse_place(place: dict[str, Any]) -> tuple[Coordinate, str] | None:
    try:
        coordinates = Coordinate(lat=float(place["lat"]), lng=float(place["lon"]))
    except (KeyError, TypeError, ValueError):
        return None
    return coordinates, str(place.get("display_name") or "")
