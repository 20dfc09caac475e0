from types import SimpleNamespace

import pytest

from routeready.core.config import validate_config
from routeready.core.validation import EnvValidationError, validate_env


def _settings(**overrides):
    base = {
        "ENV": "production",
        "DATABASE_URL": "postgresql://user:pass@db:5432/routeready",
        "TEST_DATABASE_URL": None,
        "CLERK_SECRET_KEY": "clerk-secret",
        "GOOGLE_MAPS_API_KEY": "maps-key",
        "STRIPE_SECRET_KEY": "sk_live_123",
        "FREE_USAGE_LIMIT": 5,
        "CONFIG_STRICT": False,
    }
    base.update(overrides)
    return SimpleNamespace(**base)


@pytest.fixture(autouse=True)
def _no_skip(monkeypatch):
    monkeypatch.delenv("SKIP_ENV_VALIDATION", raising=False)


def test_production_config_passes():
    assert validate_env(settings_obj=_settings()) is True


@pytest.mark.parametrize("missing", ["DATABASE_URL", "CLERK_SECRET_KEY", "GOOGLE_MAPS_API_KEY", "STRIPE_SECRET_KEY"])
def test_production_requires_secrets(missing):
    with pytest.raises(EnvValidationError, match=missing):
        validate_env(settings_obj=_settings(**{missing: None}))


def test_production_rejects_sqlite():
    with pytest.raises(EnvValidationError, match="SQLite"):
        validate_env(settings_obj=_settings(DATABASE_URL="sqlite:///./prod.db"))


def test_production_rejects_test_database():
    with pytest.raises(EnvValidationError):
        validate_env(settings_obj=_settings(TEST_DATABASE_URL="sqlite://"))


def test_production_rejects_publishable_stripe_key():
    with pytest.raises(EnvValidationError, match="sk_"):
        validate_env(settings_obj=_settings(STRIPE_SECRET_KEY="pk_live_123"))


def test_test_database_only_in_test_mode():
    with pytest.raises(EnvValidationError):
        validate_env(settings_obj=_settings(ENV="development", TEST_DATABASE_URL="sqlite://"))
    assert validate_env(settings_obj=_settings(ENV="test", TEST_DATABASE_URL="sqlite://")) is True


def test_invalid_database_url():
    with pytest.raises(EnvValidationError):
        validate_env(settings_obj=_settings(ENV="development", DATABASE_URL="not a url"))


def test_negative_free_limit():
    with pytest.raises(EnvValidationError):
        validate_env(settings_obj=_settings(ENV="development", FREE_USAGE_LIMIT=-1))


def test_skip_flag(monkeypatch):
    monkeypatch.setenv("SKIP_ENV_VALIDATION", "1")
    assert validate_env(settings_obj=_settings(DATABASE_URL=None)) is True


def test_validate_config_warns_or_raises(caplog):
    cfg = _settings(GOOGLE_MAPS_API_KEY=None)
    with caplog.at_level("WARNING", logger="routeready"):
        assert validate_config(strict=False, settings_obj=cfg) is True
    assert "GOOGLE_MAPS_API_KEY" in caplog.text

    with pytest.raises(RuntimeError):
        validate_config(strict=True, settings_obj=cfg)


def test_origin_lists_are_parsed():
    from routeready.core.config import Settings

    cfg = Settings(CHECKOUT_ALLOWED_ORIGINS="https://a.example/, http://localhost:3000", CORS_ORIGINS="https://a.example")
    assert cfg.checkout_origins() == ["https://a.example", "http://localhost:3000"]
    assert cfg.cors_origins() == ["https://a.example"]
