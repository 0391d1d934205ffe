import math

from geo_engine.models import Coordinate

EARTH_RADIUS_KM = 6371.0


def haversine_distance_km(start: Coordinate, end: Coordinate) -> float:
    start_lat = math.radians(start.lat)
    end_lat = math.radians(end.lat)
    delta_lat = math.radians(end.lat - start.lat)
    delta_lng = math.radians(end.lng - start.lng)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(start_lat) * math.cos(end_lat) * math.sin(delta_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def haversine_distance_meters(start: Coordinate, end: Coordinate) -> float:
    return haversine_distance_km(start, end) * 1000
