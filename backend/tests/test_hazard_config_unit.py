from hazard_config import DEFAULT_TTLS, Settings


def test_defaults() -> None:
    settings = Settings()
    assert settings.http_timeout == 10.0
    assert settings.remote_lookup_timeout == 15.0
    assert settings.cache_ttls == DEFAULT_TTLS
    assert settings.cache_policies()["assessment"].ttl_seconds == 3600


def test_from_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("CACHE_TTL_PUBCHEM", "60")
    monkeypatch.setenv("CACHE_MAX_ITEMS", "5")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
    monkeypatch.setenv("PUBCHEM_REST_URL", "http://mirror.test/rest/pug/")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings.from_env()
    policies = settings.cache_policies()

    assert policies["pubchem"].ttl_seconds == 60
    assert policies["rxnorm"].max_items == 5
    assert settings.cors_origins == ["http://a.test", "http://b.test"]
    assert settings.pubchem_rest_url == "http://mirror.test/rest/pug"
    assert settings.log_level == "DEBUG"


def test_bad_numbers_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("PUBCHEM_HTTP_TIMEOUT", "soon")
    monkeypatch.setenv("PORT", "")
    settings = Settings.from_env()
    assert settings.http_timeout == 10.0
    assert settings.port == 5000
