from __future__ import annotations

import os
from typing import Optional

import yaml
from pydantic import BaseModel

from .constants import DEFAULT_PHASE_TIMEOUT, ONE_WEEK


class CacheConfig(BaseModel):
    """Cache store configuration settings."""

    url: Optional[str] = None
    namespace: str = "cache"
    analysis_ttl: Optional[float] = ONE_WEEK
    plan_ttl: Optional[float] = ONE_WEEK
    progress_ttl: Optional[float] = None


class ServiceConfig(BaseModel):
    """Remote phase execution service settings."""

    base_url: str = "http://127.0.0.1:8000"
    phase_timeout: float = DEFAULT_PHASE_TIMEOUT


class MigraflowConfig(BaseModel):
    """Top-level configuration model."""

    cache: CacheConfig = CacheConfig()
    service: ServiceConfig = ServiceConfig()


def load_config(path: Optional[str] = None) -> MigraflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to MIGRAFLOW_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("MIGRAFLOW_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = MigraflowConfig(**data)
    else:
        config = MigraflowConfig()

    env_cache_url = os.getenv("MIGRAFLOW_CACHE_URL")
    if env_cache_url:
        config.cache.url = env_cache_url
    env_service_url = os.getenv("MIGRAFLOW_SERVICE_URL")
    if env_service_url:
        config.service.base_url = env_service_url
    env_timeout = os.getenv("MIGRAFLOW_PHASE_TIMEOUT")
    if env_timeout:
        config.service.phase_timeout = float(env_timeout)
    return config
