import pytest

from expirysignal.db import normalize_database_url
from expirysignal.errors import SettingsError
from expirysignal.settings import DEFAULT_PORT, load_settings


def test_database_url_is_required():
    with pytest.raises(SettingsError):
        load_settings({})
    with pytest.raises(SettingsError):
        load_settings({"DATABASE_URL": "   "})


def test_defaults():
    s = load_settings({"DATABASE_URL": "sqlite://"})
    assert s.database_url == "sqlite://"
    assert s.port == DEFAULT_PORT == 4004
    assert s.cors_origin is None
    assert s.time_source == "system"
    assert s.log_level == "INFO"


def test_explicit_values():
    s = load_settings(
        {
            "DATABASE_URL": "postgres://u:p@db:5432/expiry",
            "PORT": "8080",
            "CORS_ORIGIN": "https://ops.example",
            "TIME_SOURCE": "system",
            "LOG_LEVEL": "debug",
        }
    )
    assert s.database_url == "postgresql+psycopg2://u:p@db:5432/expiry"
    assert s.port == 8080
    assert s.cors_origin == "https://ops.example"
    assert s.log_level == "DEBUG"


@pytest.mark.parametrize(
    "extra",
    [
        {"PORT": "abc"},
        {"PORT": "0"},
        {"PORT": "-1"},
        {"TIME_SOURCE": "ntp"},
        {"LOG_LEVEL": "LOUD"},
    ],
)
def test_invalid_values(extra):
    with pytest.raises(SettingsError):
        load_settings({"DATABASE_URL": "sqlite://", **extra})


def test_load_settings_reads_process_environment(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@localhost/expiry")
    monkeypatch.setenv("PORT", "5005")
    s = load_settings()
    assert s.database_url == "postgresql+psycopg2://u:p@localhost/expiry"
    assert s.port == 5005


@pytest.mark.parametrize(
    "url, expected",
    [
        ("postgresql://h/db", "postgresql+psycopg2://h/db"),
        ("postgres://h/db", "postgresql+psycopg2://h/db"),
        ("postgresql+psycopg://h/db", "postgresql+psycopg2://h/db"),
        ("postgresql+psycopg2://h/db", "postgresql+psycopg2://h/db"),
        ("sqlite:///tmp/x.db", "sqlite:///tmp/x.db"),
    ],
)
def test_normalize_database_url(url, expected):
    assert normalize_database_url(url) == expected
