"""Search configuration tests."""

# purpose: confirm environment overrides reach the cached search configuration
# status: active

import pytest

from ..config import get_search_config


@pytest.fixture
def fresh_config():
    get_search_config.cache_clear()
    yield
    get_search_config.cache_clear()


def test_defaults(fresh_config, monkeypatch):
    for name in ("ASSEMBLY_MAX_PERMUTATIONS", "ASSEMBLY_TIME_BUDGET_SECONDS", "ASSEMBLY_ALLOW_BLUNT_LIGATION"):
        monkeypatch.delenv(name, raising=False)
    config = get_search_config()
    assert config.max_permutations is None
    assert config.time_budget_seconds is None
    assert config.allow_blunt_ligation is False


def test_environment_overrides(fresh_config, monkeypatch):
    monkeypatch.setenv("ASSEMBLY_MAX_PERMUTATIONS", "10")
    monkeypatch.setenv("ASSEMBLY_TIME_BUDGET_SECONDS", "2.5")
    monkeypatch.setenv("ASSEMBLY_ALLOW_BLUNT_LIGATION", "yes")
    config = get_search_config()
    assert config.max_permutations == 10
    assert config.time_budget_seconds == 2.5
    assert config.allow_blunt_ligation is True
    assert get_search_config() is config
