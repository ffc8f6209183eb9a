"""Shared test fixtures and configuration."""

import os
from pathlib import Path

import pytest

from json_surf.config import Settings, get_settings


# Test environment that overrides every config value read from JSON_SURF_*
TEST_ENV = {
    "JSON_SURF_HOME": "indexes",
    "JSON_SURF_WRITER_HEAP_SIZE": "20000000",
    "JSON_SURF_WRITER_THREADS": "1",
    "JSON_SURF_DEFAULT_LIMIT": "10",
    "JSON_SURF_DEFAULT_MIN_SCORE": "0.0",
    "JSON_SURF_SELECT_LIMIT": "100",
    "JSON_SURF_LOG_LEVEL": "info",
    "JSON_SURF_JSON_LOGS": "false",
}

for key, value in TEST_ENV.items():
    os.environ[key] = value


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Reset environment variables and the cached settings before each test."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def home(tmp_path) -> Path:
    """Index home directory private to one test."""
    return tmp_path / "indexes"


@pytest.fixture
def test_settings(home) -> Settings:
    """Settings with an explicit home so no test writes to the working directory."""
    return Settings(home=str(home), writer_heap_size=20_000_000)


@pytest.fixture
def user_sample() -> dict:
    return {"first": "John", "last": "Doe", "age": 20}
