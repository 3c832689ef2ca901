"""Property-based tests for configuration validation.

Missing required settings must fail loudly at startup; complete settings
must load with typed access and a correctly assembled database URL.
"""

import os
from collections.abc import Iterator
from contextlib import contextmanager

import pytest
from hypothesis import given, settings, strategies as st
from pydantic import ValidationError

from royalty_engine.core.config import Settings

# Required database parameters that must be present
REQUIRED_DB_PARAMS = ["POSTGRES_HOST", "POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_DB"]

# All parameters needed for a valid configuration
ALL_REQUIRED_PARAMS = REQUIRED_DB_PARAMS + ["SECRET_KEY"]

MANAGED_KEYS = ALL_REQUIRED_PARAMS + [
    "POSTGRES_PORT",
    "DATABASE_URL",
    "CONFLICT_MAX_RETRIES",
    "CONFLICT_RETRY_BACKOFF",
    "DEFAULT_CURRENCY",
]


def make_valid_env() -> dict[str, str]:
    """Create a complete valid environment configuration."""
    return {
        "POSTGRES_HOST": "localhost",
        "POSTGRES_PORT": "5432",
        "POSTGRES_USER": "testuser",
        "POSTGRES_PASSWORD": "testpass",
        "POSTGRES_DB": "testdb",
        "SECRET_KEY": "test-secret-key",
    }


@contextmanager
def environment(env: dict[str, str]) -> Iterator[None]:
    """Replace the managed keys with ``env`` for the duration of the block."""
    original = {key: os.environ.pop(key) for key in MANAGED_KEYS if key in os.environ}
    try:
        os.environ.update(env)
        yield
    finally:
        for key in MANAGED_KEYS:
            os.environ.pop(key, None)
        os.environ.update(original)


@settings(max_examples=50)
@given(missing_param=st.sampled_from(ALL_REQUIRED_PARAMS))
def test_missing_required_param_raises_validation_error(missing_param: str) -> None:
    env = make_valid_env()
    del env[missing_param]

    with environment(env):
        # _env_file=None keeps a developer's .env out of the test
        with pytest.raises(ValidationError):
            Settings(_env_file=None)


# Strategy for valid environment variable values (no null characters, non-empty after strip)
env_value_strategy = st.text(
    alphabet=st.characters(blacklist_characters="\x00", blacklist_categories=("Cs",)),
    min_size=1,
    max_size=50,
).filter(lambda x: x.strip())


@settings(max_examples=50)
@given(
    host=env_value_strategy,
    user=env_value_strategy,
    password=env_value_strategy,
    db=env_value_strategy,
    secret=env_value_strategy,
)
def test_valid_config_loads_successfully(
    host: str, user: str, password: str, db: str, secret: str
) -> None:
    env = {
        "POSTGRES_HOST": host,
        "POSTGRES_PORT": "5432",
        "POSTGRES_USER": user,
        "POSTGRES_PASSWORD": password,
        "POSTGRES_DB": db,
        "SECRET_KEY": secret,
    }

    with environment(env):
        loaded = Settings(_env_file=None)

    assert loaded.POSTGRES_HOST == host
    assert loaded.SECRET_KEY == secret
    assert loaded.POSTGRES_PORT == 5432
    assert loaded.database_url == f"postgresql+asyncpg://{user}:{password}@{host}:5432/{db}"
    assert loaded.CONFLICT_MAX_RETRIES == 3
    assert loaded.CONFLICT_RETRY_BACKOFF == 0.05
    assert loaded.DEFAULT_CURRENCY == "USD"


def test_database_url_override() -> None:
    env = make_valid_env()
    env["DATABASE_URL"] = "sqlite+aiosqlite:///./ledger.db"

    with environment(env):
        loaded = Settings(_env_file=None)

    assert loaded.database_url == "sqlite+aiosqlite:///./ledger.db"


@pytest.mark.parametrize(
    "key, value",
    [("CONFLICT_MAX_RETRIES", "0"), ("CONFLICT_MAX_RETRIES", "-1"), ("CONFLICT_RETRY_BACKOFF", "-0.5")],
)
def test_retry_settings_are_bounded(key: str, value: str) -> None:
    env = make_valid_env()
    env[key] = value

    with environment(env):
        with pytest.raises(ValidationError):
            Settings(_env_file=None)
