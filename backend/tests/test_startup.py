"""Tests for configuration loading and startup behaviour."""

import pytest
from fastapi.testclient import TestClient

from student_service.config import Settings
from student_service.database import connect_store
from student_service.errors import StartupError
from student_service.main import create_app

UNREACHABLE_URL = "sqlite:////nonexistent-directory/for/students.db"


def test_settings_defaults(monkeypatch):
    for name in ("DATABASE_URL", "HOST", "PORT", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings.from_env()
    assert settings.port == 5000
    assert settings.database_url == "sqlite:///./students.db"
    assert settings.log_level == "INFO"


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://app@db/students")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    settings = Settings.from_env()
    assert settings.database_url == "postgresql://app@db/students"
    assert settings.port == 8080
    assert settings.log_level == "DEBUG"


def test_connect_store_unreachable():
    with pytest.raises(StartupError):
        connect_store(UNREACHABLE_URL)


def test_connect_store_invalid_url():
    with pytest.raises(StartupError):
        connect_store("not a database url")


def test_app_startup_fails_without_store():
    app = create_app(Settings(database_url=UNREACHABLE_URL, log_level="WARNING"))
    with pytest.raises(StartupError):
        with TestClient(app):
            pass


def test_app_connects_store_on_startup(tmp_path):
    url = "sqlite:///{}".format(tmp_path / "students.db")
    app = create_app(Settings(database_url=url, log_level="WARNING"))
    with TestClient(app) as c:
        resp = c.get("/api/students")
    assert resp.status_code == 200
    assert resp.json() == []


def test_main_exits_when_store_unreachable(monkeypatch):
    from student_service import __main__ as entry

    monkeypatch.setenv("DATABASE_URL", UNREACHABLE_URL)
    with pytest.raises(SystemExit) as exc_info:
        entry.main()
    assert exc_info.value.code == 1
