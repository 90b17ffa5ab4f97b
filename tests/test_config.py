import os

import pytest

from app import create_app
from config import DevelopmentConfig, ProductionConfig, TestingConfig, get_config


def test_missing_app_env_means_production(monkeypatch):
    monkeypatch.delenv("APP_ENV", raising=False)
    cfg = get_config()
    assert cfg is ProductionConfig
    assert cfg.TWO_FACTOR_BYPASS_CODE is None
    assert cfg.DEBUG is False


@pytest.mark.parametrize("name", ["prod", "staging", "dev"])
def test_unknown_app_env_is_rejected(monkeypatch, name):
    monkeypatch.setenv("APP_ENV", name)
    with pytest.raises(ValueError):
        get_config()


def test_known_names_are_case_insensitive():
    assert get_config(" Testing ") is TestingConfig
    assert get_config("DEVELOPMENT") is DevelopmentConfig


def test_development_bypass_is_opt_in():
    assert DevelopmentConfig.TWO_FACTOR_BYPASS_CODE == (os.getenv("TWO_FACTOR_BYPASS_CODE") or None)
    assert TestingConfig.TWO_FACTOR_BYPASS_CODE is None


def test_production_requires_a_signing_secret():
    class NoSecretConfig(ProductionConfig):
        SECRET_KEY = None
        JWT_SECRET = None

    with pytest.raises(RuntimeError):
        create_app(NoSecretConfig)
