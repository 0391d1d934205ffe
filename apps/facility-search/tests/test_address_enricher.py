from __future__ import annotations

import httpx
import pytest

from geo_engine.models import Coordinate

from facility_search.cache import CacheStore
from facility_search.clients.nominatim_client import NominatimClient
from facility_search.config import EngineSettings
from facility_search.models import FacilityCandidate, FacilityKind, RankedFacility
from facility_search.rate_limit import IntervalRateLimiter
from facility_search.services.address_enricher import AddressEnricher, fallback_address, simplify_address

TOKENS = ("indonesia", "java", "jawa")


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class ReverseStub:
    def __init__(self) -> None:
        self.points: list[tuple[str, str]] = []
        self.failing_lats: set[str] = set()
        self.params: list[dict[str, str]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        lat, lon = request.url.params["lat"], request.url.params["lon"]
        self.points.append((lat, lon))
        self.params.append(dict(request.url.params))
        if lat in self.failing_lats:
            return httpx.Response(500)
        return httpx.Response(200, json={"display_name": f"Jalan {lat}, Kelurahan, Jakarta, Jawa, Indonesia"})


def ranked(index: int) -> RankedFacility:
    lat = round(-6.2 - index * 0.001, 4)
    return RankedFacility(
        candidate=FacilityCandidate(
            external_id=str(index),
            name=f"Facility {index}",
            kind=FacilityKind.PHARMACY,
            coordinates=Coordinate(lat=lat, lng=106.8),
        ),
        distance_km=round(index * 0.11, 2),
    )


def build_enricher(stub: ReverseStub, sleeps: list[float] | None = None, clock=None) -> AddressEnricher:
    transport = httpx.MockTransport(stub.handler)

    async def record_sleep(seconds: float) -> None:
        if sleeps is not None:
            sleeps.append(round(seconds, 3))

    return AddressEnricher(
        geocoder=NominatimClient(
            "https://geo.example.com",
            "test-agent",
            client_factory=lambda: httpx.AsyncClient(transport=transport),
        ),
        rate_limiter=IntervalRateLimiter(min_interval_ms=0),
        cache=CacheStore(clock=clock) if clock else CacheStore(),
        settings=EngineSettings(),
        sleep=record_sleep,
    )


def test_simplify_address_drops_boilerplate_and_keeps_three_parts() -> None:
    display = "RS Cipto, Jalan Diponegoro, Kenari, Senen, Jakarta Pusat, Jawa, Indonesia"

    assert simplify_address(display, TOKENS) == "RS Cipto, Jalan Diponegoro, Kenari"


def test_simplify_address_falls_back_to_first_segment() -> None:
    assert simplify_address("Indonesia", TOKENS) == "Indonesia"
    assert simplify_address("", TOKENS) == "Alamat tidak diketahui"
    assert simplify_address(None, TOKENS) == "Alamat tidak diketahui"


def test_fallback_address_is_four_decimal_coordinates() -> None:
    assert fallback_address(Coordinate(lat=-6.123456, lng=106.987654)) == "-6.1235, 106.9877"


@pytest.mark.asyncio
async def test_only_first_five_entries_are_reverse_geocoded() -> None:
    stub = ReverseStub()
    sleeps: list[float] = []
    enricher = build_enricher(stub, sleeps=sleeps)
    facilities = [ranked(index) for index in range(12)]

    enriched = await enricher.enrich(facilities)

    assert len(stub.points) == 5
    assert {lat for lat, _ in stub.points} == {str(item.candidate.coordinates.lat) for item in facilities[:5]}
    assert [item.ranked for item in enriched] == facilities
    for item in enriched[:5]:
        assert item.address.startswith("Jalan ")
    for item in enriched[5:]:
        assert item.address == fallback_address(item.ranked.candidate.coordinates)
    assert sorted(sleeps) == [0.2, 0.4, 0.6, 0.8]


@pytest.mark.asyncio
async def test_failed_lookup_falls_back_without_aborting_others() -> None:
    stub = ReverseStub()
    facilities = [ranked(index) for index in range(3)]
    stub.failing_lats.add(str(facilities[1].candidate.coordinates.lat))
    enricher = build_enricher(stub)

    enriched = await enricher.enrich(facilities)

    assert enriched[0].address.startswith("Jalan ")
    assert enriched[1].address == fallback_address(facilities[1].candidate.coordinates)
    assert enriched[2].address.startswith("Jalan ")


@pytest.mark.asyncio
async def test_failed_lookup_caches_coordinate_fallback() -> None:
    stub = ReverseStub()
    point = Coordinate(lat=-6.3, lng=106.8)
    stub.failing_lats.add("-6.3")
    enricher = build_enricher(stub)

    first = await enricher.lookup_address(point)
    stub.failing_lats.clear()
    second = await enricher.lookup_address(point)

    assert first.recovered is True
    assert second.recovered is False
    assert second.value == first.value == fallback_address(point)
    assert len(stub.points) == 1


@pytest.mark.asyncio
async def test_reverse_cache_survives_past_search_ttl() -> None:
    stub = ReverseStub()
    clock = FakeClock()
    enricher = build_enricher(stub, clock=clock)
    point = Coordinate(lat=-6.2, lng=106.8)

    first = await enricher.lookup_address(point)
    clock.now += 31 * 60
    second = await enricher.lookup_address(Coordinate(lat=-6.200001, lng=106.800001))

    assert first.value == second.value
    assert second.recovered is False
    assert len(stub.points) == 1


@pytest.mark.asyncio
async def test_accuracy_priority_requests_detailed_lookup() -> None:
    stub = ReverseStub()
    enricher = build_enricher(stub)

    outcome = await enricher.lookup_address(Coordinate(lat=-6.21, lng=106.85), priority="accuracy")

    assert outcome.recovered is False
    assert stub.params[0]["zoom"] == "18"
    assert stub.params[0]["addressdetails"] == "1"


@pytest.mark.asyncio
async def test_speed_priority_requests_coarse_lookup() -> None:
    stub = ReverseStub()
    enricher = build_enricher(stub)

    await enricher.lookup_address(Coordinate(lat=-6.21, lng=106.85))

    assert stub.params[0]["zoom"] == "14"
    assert stub.params[0]["addressdetails"] == "0"
