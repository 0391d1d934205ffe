from dataclasses import dataclass


@dataclass(frozen=True)
class Coordinate:
    """WGS84 point. Ranges are not validated."""

    lat: float
    lng: float

    def rounded(self, digits: int) -> tuple[float, float]:
        return round(self.lat, digits), round(self.lng, digits)

    def format(self, digits: int = 4) -> str:
        return f"{self.lat:.{digits}f}, {self.lng:.{digits}f}"
