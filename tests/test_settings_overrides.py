from __future__ import annotations

from datastore.repositories import build_default_alert_store, build_default_reading_store
from services.monitor import build_default_monitor
from settings import DEFAULT_HOT_TEMPLATE, get_settings
from storage.mock_blob import build_default_container


def test_defaults(monkeypatch) -> None:
    for name in (
        "THERMOSTAT_DEVICE_IDS",
        "READING_CACHE_TTL_SECONDS",
        "COMFORT_TARGET_C",
        "COMFORT_RANGE_C",
        "TOKEN_PROACTIVE_EXPIRY",
        "HOT_MESSAGE_TEMPLATE",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.device_ids == ()
    assert settings.cache_ttl_seconds == 60.0
    assert (settings.comfort_min, settings.comfort_max) == (19.0, 23.0)
    assert settings.proactive_token_expiry is False
    assert settings.hot_message_template == DEFAULT_HOT_TEMPLATE


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("THERMOSTAT_DEVICE_IDS", "abc, def,,ghi ,abc")
    monkeypatch.setenv("COMFORT_TARGET_C", "20")
    monkeypatch.setenv("COMFORT_RANGE_C", "1.5")
    monkeypatch.setenv("CHECK_RANGE_MINUTES", "15")
    monkeypatch.setenv("REPORTING_WINDOW_MINUTES", "120")
    monkeypatch.setenv("READING_CACHE_TTL_SECONDS", "5")
    monkeypatch.setenv("TOKEN_PROACTIVE_EXPIRY", "yes")
    monkeypatch.setenv("CREDENTIAL_BLOB_CONTAINER", "custom")
    monkeypatch.setenv("WEBHOOK_URL", "https://hooks.test/x")
    get_settings.cache_clear()
    build_default_container.cache_clear()
    build_default_monitor.cache_clear()

    settings = get_settings()
    container = build_default_container()
    monitor = build_default_monitor()

    try:
        assert settings.device_ids == ("abc", "def", "ghi")
        assert (settings.comfort_min, settings.comfort_max) == (18.5, 21.5)
        assert settings.check_range_minutes == 15
        assert settings.reporting_window_minutes == 120
        assert settings.proactive_token_expiry is True
        assert container.name == "custom"
        assert container.root_path == tmp_path / "blob" / "custom"
        assert monitor.cache.ttl_seconds == 5.0
        assert monitor.cache.fetcher.tokens.proactive_expiry is True
        assert monitor.notifier.webhook_url == "https://hooks.test/x"
        assert monitor.readings is build_default_reading_store()
        assert monitor.alerts is build_default_alert_store()
    finally:
        monitor.shutdown()


def test_invalid_numbers_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("CHECK_RANGE_MINUTES", "-5")
    monkeypatch.setenv("READING_CACHE_TTL_SECONDS", "soon")
    monkeypatch.setenv("SCHEDULER_ENABLED", "maybe")
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.check_range_minutes == 30
    assert settings.cache_ttl_seconds == 60.0
    assert settings.scheduler_enabled is False
