"""Nearby healthcare facility search engine.

Hosts build one ``Engine`` per process. ``Engine.from_env()`` also configures
OpenTelemetry tracing; a host constructing ``Engine`` directly should call
``configure_otel(settings.SERVICE_NAME)`` itself.
"""

from facility_search.config import DEFAULT_LOCATION_STRATEGIES, EngineSettings, load_settings
from facility_search.engine import Engine
from facility_search.models import FacilityKind, StrategyConfig
from facility_search.observability import configure_otel
from facility_search.schemas import LocationSpec, SearchResult

__all__ = [
    "DEFAULT_LOCATION_STRATEGIES",
    "Engine",
    "EngineSettings",
    "FacilityKind",
    "LocationSpec",
    "SearchResult",
    "StrategyConfig",
    "configure_otel",
    "load_settings",
]
