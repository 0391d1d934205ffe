from pydantic import BaseModel, Field


class LocationSpec(BaseModel):
    use_device_location: bool = False
    force_refresh: bool = False
    lat: float | None = None
    lng: float | None = None
    address: str | None = None


class UserLocation(BaseModel):
    lat: float
    lng: float
    formatted_address: str
    accuracy_meters: float | None = None


class NavigationLinksItem(BaseModel):
    map_url: str
    waze_url: str
    openstreetmap_url: str


class FacilityItem(BaseModel):
    id: str
    name: str
    kind: str
    lat: float
    lng: float
    phone: str | None = None
    distance_km: float
    address: str
    navigation_links: NavigationLinksItem


class SearchPerformance(BaseModel):
    strategy_name: str
    radius_km: float
    cache_hit: bool


class SearchResult(BaseModel):
    user_location: UserLocation | None = None
    facilities: list[FacilityItem] = Field(default_factory=list)
    total_found: int = 0
    performance: SearchPerformance | None = None
    error: str | None = None
