"""Tests for application settings."""

import pytest
from pydantic import ValidationError

from contentgen.core.config import Settings


def test_default_cors_origins_expanded() -> None:
    settings = Settings()
    assert settings.cors_origins == [
        "http://localhost",
        "http://localhost:8000",
        "http://localhost:3000",
    ]


def test_explicit_cors_origins_kept() -> None:
    settings = Settings(cors_origins=["https://app.example"])
    assert settings.cors_origins == ["https://app.example"]


def test_invalid_storage_backend_rejected() -> None:
    with pytest.raises(ValidationError, match="Unsupported storage backend: mongo"):
        Settings(STORAGE_BACKEND="mongo")


def test_invalid_rate_limit_backend_rejected() -> None:
    with pytest.raises(ValidationError, match="Unsupported rate limit backend"):
        Settings(RATE_LIMIT_BACKEND="memcached")


def test_testing_forces_in_process_backends() -> None:
    """Test TESTING swaps external backends for in-process ones."""
    settings = Settings(STORAGE_BACKEND="database", RATE_LIMIT_BACKEND="redis")
    assert settings.STORAGE_BACKEND == "memory"
    assert settings.RATE_LIMIT_BACKEND == "memory"


def test_testing_keeps_disabled_rate_limit() -> None:
    settings = Settings(RATE_LIMIT_BACKEND="disabled")
    assert settings.RATE_LIMIT_BACKEND == "disabled"


def test_production_backends_kept_outside_tests(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.delenv("TESTING")
    settings = Settings(STORAGE_BACKEND="database", RATE_LIMIT_BACKEND="redis")
    assert settings.STORAGE_BACKEND == "database"
    assert settings.RATE_LIMIT_BACKEND == "redis"


@pytest.mark.parametrize(
    "field,value",
    [
        ("BATCH_CONCURRENCY", 0),
        ("LLM_TEMPERATURE", 1.5),
        ("LLM_TIMEOUT", 0),
        ("RATE_LIMIT_WRITE_PER_MINUTE", 0),
    ],
)
def test_numeric_bounds_enforced(field: str, value: float) -> None:
    with pytest.raises(ValidationError):
        Settings(**{field: value})
