from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

from facility_search.models import StrategyConfig

DEFAULT_LOCATION_STRATEGIES: tuple[StrategyConfig, ...] = (
    StrategyConfig(name="high_accuracy_fast", high_accuracy_requested=True, timeout_ms=5000, max_cached_age_ms=0),
    StrategyConfig(name="high_accuracy_normal", high_accuracy_requested=True, timeout_ms=10000, max_cached_age_ms=30000),
    StrategyConfig(name="network_based", high_accuracy_requested=False, timeout_ms=3000, max_cached_age_ms=60000),
)


class EngineSettings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    SERVICE_NAME: str = "facility-search"
    NOMINATIM_BASE_URL: str = "https://nominatim.openstreetmap.org"
    OVERPASS_URL: str = "https://overpass-api.de/api/interpreter"
    IP_GEOLOCATION_URL: str = "https://ipapi.co/json/"
    USER_AGENT: str = "HidupKu-HealthApp/1.0"
    COUNTRY_CODES: str = "id"
    DEFAULT_COUNTRY_NAME: str = "Indonesia"
    ADDRESS_BOILERPLATE_TOKENS: tuple[str, ...] = ("indonesia", "java", "jawa")

    RATE_LIMIT_INTERVAL_MS: int = 1000
    SEARCH_CACHE_TTL_SECONDS: float = 30 * 60
    LOCATION_CACHE_TTL_SECONDS: float = 2 * 60

    MAX_QUERY_RADIUS_METERS: int = 3000
    DEFAULT_MAX_DISTANCE_KM: float = 10.0
    OVERPASS_TIMEOUT_SECONDS: float = 8.0
    FORWARD_GEOCODE_TIMEOUT_SECONDS: float = 5.0
    REVERSE_GEOCODE_SPEED_TIMEOUT_SECONDS: float = 2.0
    REVERSE_GEOCODE_ACCURACY_TIMEOUT_SECONDS: float = 5.0
    IP_GEOLOCATION_TIMEOUT_SECONDS: float = 3.0

    ENRICH_LIMIT: int = 5
    ENRICH_STAGGER_MS: int = 200
    RESULT_LIMIT: int = 10


def load_settings(service_name: str = "facility-search") -> EngineSettings:
    return EngineSettings(SERVICE_NAME=service_name)
