"""
Shared initialization for StudyForge.
Contains config loading and lazily built, process-wide services.
"""

import os
from typing import Dict, Any, Optional

import yaml
from dotenv import load_dotenv

from src.verbose_logger import get_logger

# Load environment variables
load_dotenv()

DEFAULT_CONFIG_PATH = "config.yaml"

_SERVICES: Dict[str, Any] = {}


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file

    Args:
        path: Config file path; STUDYFORGE_CONFIG or config.yaml when omitted

    Returns:
        A fresh copy of the configuration ({} when the file is missing or invalid)
    """
    path = path or os.getenv("STUDYFORGE_CONFIG") or DEFAULT_CONFIG_PATH
    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        get_logger().log_warning(f"Failed to load config from {path}: {e}")
        return {}
    if not isinstance(cfg, dict):
        get_logger().log_warning(f"Ignoring config {path}: top level must be a mapping")
        return {}
    return cfg


def get_provider_service():
    """Get cached AI Provider Service"""
    if "provider_service" not in _SERVICES:
        from services.provider_service import AIProviderService
        _SERVICES["provider_service"] = AIProviderService(load_config())
    return _SERVICES["provider_service"]


def _build_study_service(client, model: str, config: Dict[str, Any], settings: Dict[str, Any]):
    from services.retry_service import RetryConfig, RetryHandler
    from services.study_service import StudyService
    from src.study_agent import StudyContentAgent

    generation = config.get("generation", {}) or {}
    if "temperature" in settings and "temperature" not in generation:
        config = {**config, "generation": {**generation, "temperature": settings["temperature"]}}

    agent = StudyContentAgent(
        client,
        model=model,
        config=config,
        retry_handler=RetryHandler(config=RetryConfig.from_config(config)),
    )
    return StudyService(agent)


def get_study_service(provider: Optional[str] = None):
    """Get cached Study Service, or None when no provider has an API key"""
    cache_key = f"study_service:{provider or 'default'}"
    if cache_key in _SERVICES:
        return _SERVICES[cache_key]

    provider_service = get_provider_service()
    try:
        provider = provider or provider_service.get_default_provider()
        client = provider_service.get_client(provider)
    except (RuntimeError, ValueError) as e:
        # Forget the provider scan so a key set later is picked up
        provider_service.invalidate_cache()
        get_logger().log_warning(f"Study service unavailable: {e}")
        return None

    service = _build_study_service(
        client,
        provider_service.get_model(provider),
        provider_service.config,
        provider_service.get_provider_settings(provider),
    )
    _SERVICES[cache_key] = service
    return service


def reset_services() -> None:
    """Drop cached clients and services (config or environment changed)"""
    _SERVICES.clear()
