import logging

import pytest

from geogrid import app_config
from geogrid.app_config import AppSettings, get_places_client, get_supabase, load_settings
from geogrid.places_client import PlacesClient

ENV_KEYS = (
    "SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_ANON_KEY", "GOOGLE_PLACES_API_KEY",
    "GOOGLE_MAPS_API_KEY", "GEOGRID_DEFAULT_SIZE", "GEOGRID_DEFAULT_DISTANCE_KM", "GEOGRID_PALETTE", "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.setattr(app_config, "load_dotenv", lambda *a, **k: False)
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    settings = load_settings()
    assert settings == AppSettings()
    assert settings.default_grid_size == 13
    assert settings.default_distance_km == 2.5


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://x.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
    monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "maps")
    monkeypatch.setenv("GEOGRID_DEFAULT_SIZE", "7")
    monkeypatch.setenv("GEOGRID_DEFAULT_DISTANCE_KM", "1.5")
    monkeypatch.setenv("GEOGRID_PALETTE", "map")
    settings = load_settings()
    assert settings.supabase_key == "anon"
    assert settings.google_api_key == "maps"
    assert (settings.default_grid_size, settings.default_distance_km, settings.palette) == (7, 1.5, "map")


def test_service_role_key_wins(monkeypatch):
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
    assert load_settings().supabase_key == "service"


def test_bad_numbers_fall_back(monkeypatch, caplog):
    monkeypatch.setenv("GEOGRID_DEFAULT_SIZE", "thirteen")
    with caplog.at_level(logging.WARNING):
        assert load_settings().default_grid_size == 13
    assert "GEOGRID_DEFAULT_SIZE" in caplog.text


def test_get_supabase_requires_credentials():
    with pytest.raises(RuntimeError, match="SUPABASE_URL"):
        get_supabase(AppSettings())


def test_places_client_is_optional():
    assert get_places_client(AppSettings()) is None
    assert isinstance(get_places_client(AppSettings(google_api_key="k")), PlacesClient)
