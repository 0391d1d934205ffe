from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx

from facility_search.errors import UpstreamUnavailableError

ClientFactory = Callable[[], httpx.AsyncClient]


def default_client_factory(user_agent: str) -> ClientFactory:
    return lambda: httpx.AsyncClient(headers={"User-Agent": user_agent})


async def request_json(
    client_factory: ClientFactory,
    provider: str,
    method: str,
    url: str,
    timeout_seconds: float,
    **kwargs: Any,
) -> Any:
    try:
        async with client_factory() as client:
            response = await client.request(method, url, timeout=timeout_seconds, **kwargs)
            response.raise_for_status()
    except httpx.TimeoutException as exc:
        raise UpstreamUnavailableError(provider, "timeout") from exc
    except httpx.HTTPStatusError as exc:
        raise UpstreamUnavailableError(provider, "http_status", f"{provider} returned {exc.response.status_code}") from exc
    except httpx.HTTPError as exc:
        raise UpstreamUnavailableError(provider, "transport") from exc

    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamUnavailableError(provider, "payload", f"{provider} returned invalid JSON") from exc
