from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class FacilitySearchError(Exception):
    """Base facility search exception."""

    code = "SearchFailed"


class LocationUnavailableError(FacilitySearchError):
    """Raised when every location strategy and the IP fallback failed."""

    code = "LocationUnavailable"


class AddressNotFoundError(FacilitySearchError):
    """Raised when neither the full address nor its city part could be geocoded."""

    code = "AddressNotFound"


class NoLocationProvidedError(FacilitySearchError):
    """Raised when the request carries no coordinates, address or device flag."""

    code = "NoLocationProvided"


class UpstreamUnavailableError(FacilitySearchError):
    """Raised by upstream clients; always recovered before reaching the caller."""

    code = "UpstreamUnavailable"

    def __init__(self, provider: str, reason: str, message: str = "") -> None:
        super().__init__(message or f"{provider} {reason}")
        self.provider = provider
        self.reason = reason


@dataclass(frozen=True)
class StageOutcome(Generic[T]):
    value: T
    error: UpstreamUnavailableError | None = None

    @property
    def recovered(self) -> bool:
        return self.error is not None

    @classmethod
    def ok(cls, value: T) -> StageOutcome[T]:
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, error: UpstreamUnavailableError) -> StageOutcome[T]:
        return cls(value=value, error=error)
