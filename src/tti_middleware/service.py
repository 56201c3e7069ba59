"""Image generation service: provider registry and request routing."""

import logging

from .core.config import ProviderSettings, configure_logging
from .core.protocols import OnRetryFunc
from .errors import InvalidConfigError
from .models import ModelInfo, TTIProvider, TTIRequest, TTIResponse
from .providers.base import BaseImageProvider

logger = logging.getLogger(__name__)

# Accepted spellings for provider names, including legacy aliases
PROVIDER_ALIASES: dict[str, TTIProvider] = {
    "google-cloud": TTIProvider.GOOGLE_CLOUD,
    "google_cloud": TTIProvider.GOOGLE_CLOUD,
    "googlecloud": TTIProvider.GOOGLE_CLOUD,
    "vertex_ai": TTIProvider.GOOGLE_CLOUD,
    "vertexai": TTIProvider.GOOGLE_CLOUD,
    "vertex": TTIProvider.GOOGLE_CLOUD,
    "gemini": TTIProvider.GOOGLE_CLOUD,
    "edenai": TTIProvider.EDENAI,
    "eden_ai": TTIProvider.EDENAI,
    "ionos": TTIProvider.IONOS,
}


def parse_provider(value: str) -> TTIProvider | None:
    """Parse a provider name or alias, returning None if unknown."""
    return PROVIDER_ALIASES.get(value.strip().lower())


class TTIService:
    """Main entry point for image generation across registered providers."""

    def __init__(self, settings: ProviderSettings | None = None, apply_log_level: bool = False):
        """
        Initialize the service.

        Args:
            settings: Process-level settings (default: ProviderSettings.from_env())
            apply_log_level: Set the package logger to settings.log_level. Off by
                default so the application keeps control of logging.
        """
        self.settings = settings or ProviderSettings.from_env()
        if apply_log_level:
            configure_logging(self.settings.log_level)
        self._providers: dict[TTIProvider, BaseImageProvider] = {}
        self.default_provider = TTIProvider.GOOGLE_CLOUD

        if self.settings.default_provider:
            parsed = parse_provider(self.settings.default_provider)
            if parsed is not None:
                self.default_provider = parsed
            else:
                logger.warning(
                    f"⚠️  Unknown default provider {self.settings.default_provider!r}, "
                    f"using {self.default_provider.value}"
                )

    def register_provider(self, provider: BaseImageProvider) -> None:
        """Register a provider, replacing any provider with the same name."""
        self._providers[provider.name] = provider
        logger.info(f"ℹ️  Registered provider: {provider.display_name}")

    def get_provider(self, name: TTIProvider) -> BaseImageProvider | None:
        return self._providers.get(name)

    def available_providers(self) -> list[TTIProvider]:
        return list(self._providers)

    def is_provider_available(self, provider: TTIProvider) -> bool:
        return provider in self._providers

    def set_default_provider(self, provider: TTIProvider) -> None:
        """Set the default provider. Unregistered providers are accepted with a warning."""
        if provider not in self._providers:
            logger.warning(
                f"⚠️  Provider {provider.value} is not registered. Setting as default anyway."
            )
        self.default_provider = provider

    def list_all_models(self) -> list[tuple[TTIProvider, list[ModelInfo]]]:
        """List models across all registered providers."""
        return [(name, provider.list_models()) for name, provider in self._providers.items()]

    def find_providers_with_capability(
        self, capability: str
    ) -> list[tuple[TTIProvider, list[ModelInfo]]]:
        """Find providers with at least one model supporting ``capability``."""
        result = []
        for name, provider in self._providers.items():
            models = [m for m in provider.list_models() if getattr(m.capabilities, capability, False)]
            if models:
                result.append((name, models))
        return result

    async def generate(
        self,
        request: TTIRequest,
        provider: TTIProvider | str | None = None,
        on_retry: OnRetryFunc | None = None,
    ) -> TTIResponse:
        """
        Generate images with the given (or default) provider.

        If the requested provider is not registered, the first registered
        provider is used instead.

        Raises:
            InvalidConfigError: If no provider is registered at all
        """
        if isinstance(provider, str):
            provider_key = parse_provider(provider) or self.default_provider
        else:
            provider_key = provider or self.default_provider

        instance = self._providers.get(provider_key)
        if instance is None:
            if not self._providers:
                raise InvalidConfigError(
                    "TTIService",
                    f"Provider '{provider_key.value}' not found and no other providers registered.",
                )
            fallback_key, instance = next(iter(self._providers.items()))
            logger.warning(
                f"⚠️  Provider {provider_key.value} not found. Using fallback: {fallback_key.value}"
            )

        return await instance.generate(request, on_retry=on_retry)
