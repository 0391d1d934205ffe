from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

from geo_engine.distance import haversine_distance_km
from geo_engine.models import Coordinate

T = TypeVar("T")


@dataclass(frozen=True)
class Ranked(Generic[T]):
    item: T
    distance_km: float


def rank_by_distance(
    origin: Coordinate,
    items: Iterable[T],
    point_of: Callable[[T], Coordinate],
    digits: int = 2,
) -> list[Ranked[T]]:
    """Attach the rounded great-circle distance to each item and sort ascending.

    ``sorted`` is stable, so items at the same rounded distance keep their input order.
    """
    ranked = [
        Ranked(item=item, distance_km=round(haversine_distance_km(origin, point_of(item)), digits))
        for item in items
    ]
    return sorted(ranked, key=lambda entry: entry.distance_km)
