"""
AI Provider Service
Multi-provider abstraction for OpenAI-compatible chat APIs (OpenAI, AI gateway)
"""

import copy
import os
from typing import Dict, Any, List, Optional
from openai import OpenAI

from src.constants import DEFAULT_GATEWAY_MODEL, DEFAULT_OPENAI_MODEL
from src.verbose_logger import get_logger


class AIProviderService:
    """Manages AI provider configurations and provides unified client access"""

    # Class-level defaults. Each instance works on its own deep copy.
    PROVIDERS = {
        "openai": {
            "base_url": "https://api.openai.com/v1",
            "api_key_env": "OPENAI_API_KEY",
            "default_settings": {
                "temperature": 0.7,
            },
            "model": DEFAULT_OPENAI_MODEL,
        },
        "gateway": {
            # Any OpenAI-compatible gateway that fronts several model vendors
            "base_url": "https://ai.gateway.lovable.dev/v1",
            "api_key_env": "AI_GATEWAY_API_KEY",
            "base_url_env": "AI_GATEWAY_BASE_URL",
            "default_settings": {},
            "model": DEFAULT_GATEWAY_MODEL,
        },
    }

    def __init__(self, config: Dict[str, Any]):
        """Initialize provider service with configuration

        Args:
            config: Configuration dictionary from config.yaml
        """
        self.config = config
        self.defaults = dict(config.get("defaults", {}) or {})
        self.providers: Dict[str, Dict[str, Any]] = copy.deepcopy(self.PROVIDERS)
        self.logger = get_logger()

        provider_config = config.get("providers", {}) or {}
        for provider_name, provider_data in provider_config.items():
            if provider_name not in self.providers or not provider_data:
                continue
            # Only merge known keys to avoid breaking the provider table
            provider = self.providers[provider_name]
            if provider_data.get("api_base"):
                provider["base_url"] = provider_data["api_base"]
            if provider_data.get("model"):
                provider["model"] = provider_data["model"]
            if "settings" in provider_data:
                provider["default_settings"].update(provider_data["settings"] or {})

        # Cache of available providers (lazy loaded)
        self._available_providers: Optional[List[str]] = None

        # Cache of provider clients
        self._client_cache: Dict[str, OpenAI] = {}

    def _validate(self, provider: str) -> Dict[str, Any]:
        if provider not in self.providers:
            raise ValueError(
                f"Invalid provider '{provider}'. "
                f"Valid options: {', '.join(self.providers.keys())}"
            )
        return self.providers[provider]

    def get_available_providers(self) -> List[str]:
        """Get list of providers with an API key in the environment

        Returns:
            List of available provider names
        """
        if self._available_providers is not None:
            return self._available_providers

        available = [
            name for name, provider_config in self.providers.items()
            if os.getenv(provider_config["api_key_env"])
        ]

        self._available_providers = available
        self.logger.log_debug(f"Available AI providers: {', '.join(available) if available else 'None'}")
        return available

    def get_default_provider(self) -> str:
        """Get default provider from config or first available

        Returns:
            Provider name

        Raises:
            RuntimeError: If no providers are available
        """
        available = self.get_available_providers()
        default_from_config = self.defaults.get("provider")
        if default_from_config and default_from_config in available:
            return default_from_config

        if not available:
            keys = " or ".join(p["api_key_env"] for p in self.providers.values())
            raise RuntimeError(f"No AI providers available. Please set {keys}.")

        return available[0]

    def get_base_url(self, provider: str) -> str:
        provider_config = self._validate(provider)
        env_name = provider_config.get("base_url_env")
        if env_name and os.getenv(env_name):
            return os.getenv(env_name)
        return provider_config["base_url"]

    def get_client(self, provider: Optional[str] = None) -> OpenAI:
        """Get configured OpenAI client for the specified provider

        Args:
            provider: Provider name, uses default if None

        Returns:
            Configured OpenAI client instance

        Raises:
            ValueError: If provider is invalid or has no API key
        """
        if provider is None:
            provider = self.get_default_provider()

        provider_config = self._validate(provider)

        if provider in self._client_cache:
            return self._client_cache[provider]

        api_key = os.getenv(provider_config["api_key_env"])
        if not api_key:
            raise ValueError(
                f"Provider '{provider}' is not available. "
                f"Please set {provider_config['api_key_env']} environment variable."
            )

        client = OpenAI(api_key=api_key, base_url=self.get_base_url(provider))
        self._client_cache[provider] = client
        self.logger.log_debug(f"Created client for provider: {provider}")
        return client

    def get_model(self, provider: Optional[str] = None) -> str:
        """Get the text model for a provider, honouring `defaults.model` in config

        Args:
            provider: Provider name, uses default if None

        Returns:
            Model name string
        """
        if provider is None:
            provider = self.get_default_provider()

        provider_config = self._validate(provider)

        config_model = self.defaults.get("model")
        if config_model and isinstance(config_model, str):
            return config_model
        return provider_config["model"]

    def get_provider_settings(self, provider: Optional[str] = None) -> Dict[str, Any]:
        """Get provider-specific settings (temperature, etc.)

        Args:
            provider: Provider name, uses default if None

        Returns:
            Dictionary of provider settings
        """
        if provider is None:
            provider = self.get_default_provider()
        return dict(self._validate(provider).get("default_settings", {}))

    def invalidate_cache(self, provider: Optional[str] = None) -> None:
        """Invalidate cached client for a provider

        Args:
            provider: Provider name, or None to invalidate all
        """
        if provider is None:
            self._client_cache.clear()
            self._available_providers = None
        else:
            self._client_cache.pop(provider, None)
