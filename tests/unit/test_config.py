"""Tests for configuration loading."""

from migraflow.cache import SQLiteCacheStore, get_cache_store
from migraflow.config import load_config


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
cache:
  url: memory://
  plan_ttl: 120
  progress_ttl: 3600
service:
  base_url: http://backend:9000
  phase_timeout: 45
"""
    )
    monkeypatch.setenv("MIGRAFLOW_CONFIG", str(config_path))

    config = load_config()
    assert config.cache.plan_ttl == 120
    assert config.cache.progress_ttl == 3600
    assert config.service.base_url == "http://backend:9000"
    assert config.service.phase_timeout == 45


def test_env_overrides_file(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("service:\n  base_url: http://file\n")
    monkeypatch.setenv("MIGRAFLOW_CONFIG", str(config_path))
    monkeypatch.setenv("MIGRAFLOW_SERVICE_URL", "http://env")
    monkeypatch.setenv("MIGRAFLOW_PHASE_TIMEOUT", "12.5")

    config = load_config()
    assert config.service.base_url == "http://env"
    assert config.service.phase_timeout == 12.5


def test_defaults_without_file(tmp_path):
    config = load_config(str(tmp_path / "absent.yaml"))
    assert config.cache.url is None
    assert config.cache.progress_ttl is None
    assert config.cache.plan_ttl == 7 * 24 * 60 * 60


def test_get_cache_store_uses_config(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        f"""
cache:
  url: sqlite://{tmp_path / 'cache.db'}
  namespace: workflows
"""
    )
    monkeypatch.setenv("MIGRAFLOW_CONFIG", str(config_path))

    store = get_cache_store()
    assert isinstance(store, SQLiteCacheStore)
    assert store.namespace == "workflows"
