from __future__ import annotations

import importlib
import sys

import pytest

from smart_attendance.config import get_settings_module

PRODUCTION = "smart_attendance.config.production"


@pytest.fixture
def production_env(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.delitem(sys.modules, PRODUCTION, raising=False)
    return monkeypatch


def test_production_refuses_to_start_without_secret_key(production_env):
    production_env.delenv("SECRET_KEY", raising=False)

    assert get_settings_module() == PRODUCTION
    with pytest.raises(RuntimeError, match="SECRET_KEY"):
        importlib.import_module(PRODUCTION)


def test_production_rejects_empty_secret_key(production_env):
    production_env.setenv("SECRET_KEY", "")
    with pytest.raises(RuntimeError):
        importlib.import_module(PRODUCTION)


def test_production_reads_secret_key_from_environment(production_env):
    production_env.setenv("SECRET_KEY", "s3cr3t-from-env")

    settings = importlib.import_module(PRODUCTION)
    assert settings.SECRET_KEY == "s3cr3t-from-env"
    assert settings.DEBUG is False


@pytest.mark.parametrize("env, module", [("testing", "testing"), ("dev", "development"), ("PROD", "production")])
def test_app_env_selects_settings_module(monkeypatch, env, module):
    monkeypatch.setenv("APP_ENV", env)
    assert get_settings_module() == f"smart_attendance.config.{module}"
