from facility_search.config import DEFAULT_LOCATION_STRATEGIES, EngineSettings, load_settings


def test_load_settings_reads_env(monkeypatch) -> None:
    monkeypatch.setenv("NOMINATIM_BASE_URL", "https://nominatim.internal")
    monkeypatch.setenv("RATE_LIMIT_INTERVAL_MS", "1500")
    settings = load_settings("facility-search-test")

    assert settings.SERVICE_NAME == "facility-search-test"
    assert settings.NOMINATIM_BASE_URL == "https://nominatim.internal"
    assert settings.RATE_LIMIT_INTERVAL_MS == 1500


def test_default_limits() -> None:
    settings = EngineSettings()

    assert settings.MAX_QUERY_RADIUS_METERS == 3000
    assert settings.SEARCH_CACHE_TTL_SECONDS == 1800
    assert settings.LOCATION_CACHE_TTL_SECONDS == 120
    assert settings.ENRICH_LIMIT == 5
    assert settings.RESULT_LIMIT == 10


def test_default_strategies_are_ordered() -> None:
    assert [strategy.name for strategy in DEFAULT_LOCATION_STRATEGIES] == [
        "high_accuracy_fast",
        "high_accuracy_normal",
        "network_based",
    ]
    assert DEFAULT_LOCATION_STRATEGIES[2].high_accuracy_requested is False
