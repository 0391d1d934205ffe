from datetime import datetime, timezone

from geo_engine.models import Coordinate

from facility_search.models import EnrichedFacility, FacilityCandidate, FacilityKind, LocationReading, RankedFacility
from facility_search.services.result_composer import ResultComposer, build_navigation_links

READING = LocationReading(
    coordinates=Coordinate(lat=-6.2, lng=106.8),
    accuracy_meters=25.0,
    strategy_name="high_accuracy_fast",
    acquired_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
)


def enriched(index: int, kind: FacilityKind, distance_km: float) -> EnrichedFacility:
    return EnrichedFacility(
        ranked=RankedFacility(
            candidate=FacilityCandidate(
                external_id=str(index),
                name=f"Facility {index}",
                kind=kind,
                coordinates=Coordinate(lat=-6.2 - index / 1000, lng=106.8),
            ),
            distance_km=distance_km,
        ),
        address=f"Address {index}",
    )


def test_build_navigation_links_encodes_name() -> None:
    links = build_navigation_links(Coordinate(lat=-6.19, lng=106.83), "RS Cipto & Co")

    assert links.map_url == "https://www.google.com/maps/search/RS%20Cipto%20%26%20Co/@-6.19,106.83,15z"
    assert links.waze_url == "https://waze.com/ul?ll=-6.19,106.83&navigate=yes"
    assert links.openstreetmap_url == "https://www.openstreetmap.org/?mlat=-6.19&mlon=106.83&zoom=15"


def test_compose_applies_distance_and_kind_filters() -> None:
    items = [
        enriched(1, FacilityKind.HOSPITAL, 0.5),
        enriched(2, FacilityKind.PHARMACY, 0.7),
        enriched(3, FacilityKind.HOSPITAL, 4.0),
        enriched(4, FacilityKind.HOSPITAL, 6.0),
    ]

    result = ResultComposer().compose(READING, items, kind="hospital", max_distance_km=5, cache_hit=False)

    assert [item.id for item in result.facilities] == ["1", "3"]
    assert result.total_found == 4
    assert result.user_location.formatted_address == "Lokasi pengguna"
    assert result.user_location.accuracy_meters == 25.0
    assert result.performance.strategy_name == "high_accuracy_fast"
    assert result.performance.radius_km == 5
    assert result.error is None


def test_compose_truncates_to_result_limit() -> None:
    items = [enriched(index, FacilityKind.CLINIC, index / 10) for index in range(15)]

    result = ResultComposer(result_limit=10).compose(READING, items, kind=None, max_distance_km=10, cache_hit=True)

    assert len(result.facilities) == 10
    assert result.facilities[-1].id == "9"
    assert result.performance.cache_hit is True
    assert all(item.navigation_links.map_url.startswith("https://www.google.com/maps/search/") for item in result.facilities)


def test_failure_envelope_is_empty_but_valid() -> None:
    result = ResultComposer.failure("AddressNotFound")

    assert result.user_location is None
    assert result.facilities == []
    assert result.total_found == 0
    assert result.performance is None
    assert result.error == "AddressNotFound"
