from __future__ import annotations

from typing import Any

from geo_engine.models import Coordinate

from facility_search.clients.upstream import ClientFactory, default_client_factory, request_json
from facility_search.errors import UpstreamUnavailableError

AMENITY_PATTERN = "^(hospital|pharmacy|clinic|doctors)$"


def build_point_query(center: Coordinate, radius_meters: int, timeout_seconds: float) -> str:
    return (
        f"[out:json][timeout:{int(timeout_seconds)}];"
        f'(node["amenity"~"{AMENITY_PATTERN}"](around:{radius_meters},{center.lat},{center.lng}););'
        "out body;"
    )


class OverpassClient:
    provider_name = "overpass"

    def __init__(self, url: str, user_agent: str, client_factory: ClientFactory | None = None) -> None:
        self._url = url
        self._client_factory = client_factory or default_client_factory(user_agent)

    async def query_points(
        self,
        center: Coordinate,
        radius_meters: int,
        timeout_seconds: float,
    ) -> list[dict[str, Any]]:
        query = build_point_query(center, radius_meters, timeout_seconds)
        payload = await request_json(
            self._client_factory,
            self.provider_name,
            "POST",
            self._url,
            timeout_seconds,
            data={"data": query},
        )
        if not isinstance(payload, dict):
            raise UpstreamUnavailableError(self.provider_name, "payload", "query payload is not an object")
        elements = payload.get("elements") or []
        return [element for element in elements if isinstance(element, dict)]
