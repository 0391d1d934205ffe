from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from urllib.parse import quote

from geo_engine.models import Coordinate

from facility_search.models import EnrichedFacility, LocationReading, NavigationLinks
from facility_search.schemas import (
    FacilityItem,
    NavigationLinksItem,
    SearchPerformance,
    SearchResult,
    UserLocation,
)

DEFAULT_USER_ADDRESS = "Lokasi pengguna"


def build_navigation_links(point: Coordinate, name: str) -> NavigationLinks:
    encoded_name = quote(name, safe="-_.!~*'()")
    return NavigationLinks(
        map_url=f"https://www.google.com/maps/search/{encoded_name}/@{point.lat},{point.lng},15z",
        waze_url=f"https://waze.com/ul?ll={point.lat},{point.lng}&navigate=yes",
        openstreetmap_url=f"https://www.openstreetmap.org/?mlat={point.lat}&mlon={point.lng}&zoom=15",
    )


class ResultComposer:
    def __init__(self, result_limit: int = 10) -> None:
        self._result_limit = result_limit

    def compose(
        self,
        location: LocationReading,
        enriched: Sequence[EnrichedFacility],
        kind: str | None,
        max_distance_km: float,
        cache_hit: bool,
    ) -> SearchResult:
        matching = [
            facility
            for facility in enriched
            if facility.ranked.distance_km <= max_distance_km
            and (kind is None or facility.ranked.candidate.kind == kind)
        ]
        return SearchResult(
            user_location=UserLocation(
                lat=location.coordinates.lat,
                lng=location.coordinates.lng,
                formatted_address=location.formatted_address or DEFAULT_USER_ADDRESS,
                accuracy_meters=location.accuracy_meters,
            ),
            facilities=[self._to_item(self._with_links(facility)) for facility in matching[: self._result_limit]],
            total_found=len(enriched),
            performance=SearchPerformance(
                strategy_name=location.strategy_name,
                radius_km=max_distance_km,
                cache_hit=cache_hit,
            ),
        )

    @staticmethod
    def failure(error_code: str) -> SearchResult:
        return SearchResult(user_location=None, facilities=[], total_found=0, error=error_code)

    @staticmethod
    def _with_links(facility: EnrichedFacility) -> EnrichedFacility:
        candidate = facility.ranked.candidate
        return replace(facility, navigation_links=build_navigation_links(candidate.coordinates, candidate.name))

    def _to_item(self, facility: EnrichedFacility) -> FacilityItem:
        candidate = facility.ranked.candidate
        links = facility.navigation_links
        return FacilityItem(
            id=candidate.external_id,
            name=candidate.name,
            kind=candidate.kind.value,
            lat=candidate.coordinates.lat,
            lng=candidate.coordinates.lng,
            phone=candidate.phone,
            distance_km=facility.ranked.distance_km,
            address=facility.address,
            navigation_links=NavigationLinksItem(
                map_url=links.map_url,
                waze_url=links.waze_url,
                openstreetmap_url=links.openstreetmap_url,
            ),
        )
