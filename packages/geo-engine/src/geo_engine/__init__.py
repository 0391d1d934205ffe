"""Geo engine core package."""

from geo_engine.distance import EARTH_RADIUS_KM, haversine_distance_km, haversine_distance_meters
from geo_engine.models import Coordinate
from geo_engine.ranking import Ranked, rank_by_distance

__all__ = [
    "EARTH_RADIUS_KM",
    "Coordinate",
    "Ranked",
    "haversine_distance_km",
    "haversine_distance_meters",
    "rank_by_distance",
]
