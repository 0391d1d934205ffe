from __future__ import annotations

from dataclasses import dataclass

from geo_engine.models import Coordinate

from facility_search.clients.upstream import ClientFactory, default_client_factory, request_json
from facility_search.errors import UpstreamUnavailableError


@dataclass(frozen=True)
class IpLocation:
    coordinates: Coordinate
    city: str | None
    country: str | None


class IpGeolocationClient:
    provider_name = "ip_geolocation"

    def __init__(self, url: str, user_agent: str, client_factory: ClientFactory | None = None) -> None:
        self._url = url
        self._client_factory = client_factory or default_client_factory(user_agent)

    async def locate(self, timeout_seconds: float) -> IpLocation:
        payload = await request_json(self._client_factory, self.provider_name, "GET", self._url, timeout_seconds)
        if not isinstance(payload, dict) or payload.get("latitude") is None or payload.get("longitude") is None:
            raise UpstreamUnavailableError(self.provider_name, "payload", "response has no coordinates")
        return IpLocation(
            coordinates=Coordinate(lat=float(payload["latitude"]), lng=float(payload["longitude"])),
            city=payload.get("city"),
            country=payload.get("country_name"),
        )
