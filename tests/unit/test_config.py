import pytest
from PyQt6.QtCore import QSettings
from core.config import AppConfig

@pytest.fixture
def config(monkeypatch):
    # Dedicated org/app name keeps the real user config untouched
    settings = QSettings("ChartDeck", "TestConfig")
    settings.clear()
    monkeypatch.delenv("CHARTDECK_API_TOKEN", raising=False)

    app_config = AppConfig()
    app_config.settings = settings
    yield app_config
    settings.clear()

def test_defaults(config):
    assert config.get_api_url() == "http://localhost:5000"
    assert config.get_api_token() == ""
    assert config.get_request_timeout() == 30
    assert config.get_auto_refresh_interval() == 300000
    assert config.get_log_level() == "WARNING"
    assert config.get_log_components() == {}

def test_set_get_values(config):
    config.set_api_url(" https://reports.example.com/ ")
    assert config.get_api_url() == "https://reports.example.com"

    config.set_request_timeout(10)
    assert config.get_request_timeout() == 10

    config.set_log_level("debug")
    assert config.get_log_level() == "DEBUG"

    config.set_log_components({"api": "DEBUG"})
    assert config.get_log_components() == {"api": "DEBUG"}

    config.set_export_dir("/tmp/exports")
    assert config.get_export_dir() == "/tmp/exports"

def test_token_falls_back_to_environment(config, monkeypatch):
    monkeypatch.setenv("CHARTDECK_API_TOKEN", "from-env")
    assert config.get_api_token() == "from-env"
    config.set_api_token("stored")
    assert config.get_api_token() == "stored"

def test_broken_component_levels(config):
    config.settings.setValue("Logging/log_components", "{not json")
    assert config.get_log_components() == {}

def test_profile_isolation():
    cfg = AppConfig(profile="unittest")
    try:
        assert cfg.active_id == "chartdeck-unittest"
    finally:
        AppConfig._active_profile = None
