import pytest

from gpt_adventure.config import _ENV_FIELDS


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Strip adventure settings from the environment before every test."""
    for var in _ENV_FIELDS:
        monkeypatch.delenv(var, raising=False)
    yield
