from __future__ import annotations

import logging

import pytest

import trainhub.core.startup as startup_module
from trainhub.core.config import _build_config
from trainhub.core.exceptions import ConfigurationError


class _Cfg:
    def __init__(
        self,
        required: bool,
        broker: str = "redis://localhost:6379/0",
        env: str = "development",
        eager: bool = False,
    ) -> None:
        self.DB_CONNECTIVITY_REQUIRED = required
        self.ENV = env
        self.CELERY_BROKER_URL = broker
        self.CELERY_TASK_ALWAYS_EAGER = eager
        self.SETTLEMENT_RETRY_INTERVAL_SECONDS = 900

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"


def _patch(monkeypatch, cfg: _Cfg, database_ok: bool, url: str = "sqlite:///./trainhub.db") -> None:
    monkeypatch.setattr(startup_module, "get_config", lambda: cfg)
    monkeypatch.setattr(startup_module, "verify_database_connection", lambda: database_ok)
    monkeypatch.setattr(startup_module, "get_active_database_url", lambda: url)


def test_startup_skips_raise_when_db_optional_and_unreachable(monkeypatch):
    _patch(monkeypatch, _Cfg(required=False), database_ok=False)

    startup_module.validate_startup_config()


def test_startup_raises_when_db_required_and_unreachable(monkeypatch):
    _patch(monkeypatch, _Cfg(required=True), database_ok=False)

    with pytest.raises(RuntimeError, match="Database connectivity check failed"):
        startup_module.validate_startup_config()


def test_startup_rejects_unsupported_broker(monkeypatch):
    _patch(monkeypatch, _Cfg(required=False, broker="amqp://guest@localhost//"), database_ok=True)

    with pytest.raises(ConfigurationError, match="amqp"):
        startup_module.validate_startup_config()


def test_startup_warns_about_inline_tasks_in_production(monkeypatch, caplog):
    cfg = _Cfg(required=True, broker="memory://", env="production")
    _patch(monkeypatch, cfg, database_ok=True, url="postgresql+psycopg2://app@db/trainhub")

    with caplog.at_level(logging.WARNING, logger=startup_module.__name__):
        startup_module.validate_startup_config()

    assert [record.getMessage() for record in caplog.records] == ["startup.production.inline_task_queue"]


def test_config_rejects_bad_values(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "mysql://root@localhost/trainhub")
    with pytest.raises(ConfigurationError):
        _build_config("development")

    monkeypatch.setenv("DATABASE_URL", "sqlite:///./trainhub.db")
    monkeypatch.setenv("SETTLEMENT_RETRY_INTERVAL_SECONDS", "0")
    with pytest.raises(ConfigurationError):
        _build_config("development")

    monkeypatch.setenv("SETTLEMENT_RETRY_INTERVAL_SECONDS", "60")
    monkeypatch.setenv("JWT_SECRET", "change_me_jwt_secret")
    with pytest.raises(ConfigurationError):
        _build_config("production")


def test_config_reads_eager_task_flag(monkeypatch):
    monkeypatch.setenv("CELERY_TASK_ALWAYS_EAGER", "yes")

    assert _build_config("development").CELERY_TASK_ALWAYS_EAGER is True
