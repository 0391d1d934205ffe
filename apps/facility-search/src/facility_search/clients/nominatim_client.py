from __future__ import annotations

from typing import Any

from geo_engine.models import Coordinate

from facility_search.clients.upstream import ClientFactory, default_client_factory, request_json
from facility_search.errors import UpstreamUnavailableError


class NominatimClient:
    provider_name = "nominatim"

    def __init__(
        self,
        base_url: str,
        user_agent: str,
        country_codes: str = "id",
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._country_codes = country_codes
        self._client_factory = client_factory or default_client_factory(user_agent)

    async def search(self, query: str, timeout_seconds: float, limit: int = 1) -> list[dict[str, Any]]:
        params = {"q": query, "format": "json", "limit": limit, "countrycodes": self._country_codes}
        payload = await request_json(
            self._client_factory,
            self.provider_name,
            "GET",
            f"{self._base_url}/search",
            timeout_seconds,
            params=params,
        )
        if not isinstance(payload, list):
            raise UpstreamUnavailableError(self.provider_name, "payload", "search payload is not a list")
        return payload

    async def reverse(
        self,
        point: Coordinate,
        timeout_seconds: float,
        zoom: int = 14,
        address_details: bool = False,
    ) -> dict[str, Any]:
        params = {
            "lat": point.lat,
            "lon": point.lng,
            "format": "json",
            "zoom": zoom,
            "addressdetails": 1 if address_details else 0,
            "countrycodes": self._country_codes,
        }
        payload = await request_json(
            self._client_factory,
            self.provider_name,
            "GET",
            f"{self._base_url}/reverse",
            timeout_seconds,
            params=params,
        )
        if not isinstance(payload, dict):
            raise UpstreamUnavailableError(self.provider_name, "payload", "reverse payload is not an object")
        return payload
