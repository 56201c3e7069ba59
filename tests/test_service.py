"""Tests for the provider registry and request routing."""

import logging

import httpx
import pytest

from tti_middleware import (
    InvalidConfigError,
    ModelInfo,
    ProviderSettings,
    RetryExecutor,
    TTICapabilities,
    TTIProvider,
    TTIRequest,
    TTIResponse,
    TTIResponseMetadata,
    TTIService,
    TTIUsage,
)
from tti_middleware.providers import BaseImageProvider, EdenAIConfig, EdenAIImageProvider
from tti_middleware.service import parse_provider
from tti_middleware.testing import RecordingSleep


class FakeProvider(BaseImageProvider):
    """Provider that records requests and answers immediately."""

    def __init__(self, provider_name, character_consistency=False):
        super().__init__(provider_name, executor=RetryExecutor(sleep=RecordingSleep()))
        self.character_consistency = character_consistency
        self.requests = []

    @property
    def display_name(self):
        return f"Fake {self.provider_name.value}"

    @property
    def default_model(self):
        return "fake-model"

    def list_models(self):
        return [
            ModelInfo(
                id="fake-model",
                display_name="Fake Model",
                capabilities=TTICapabilities(character_consistency=self.character_consistency),
            )
        ]

    async def _do_generate(self, request, on_retry=None):
        self.requests.append(request)
        return TTIResponse(
            images=[],
            metadata=TTIResponseMetadata(
                provider=self.provider_name.value, model="fake-model", duration=1
            ),
            usage=TTIUsage(images_generated=0, model_id="fake-model"),
        )


def make_service(**settings):
    return TTIService(ProviderSettings(**settings))


def test_parse_provider_aliases():
    """Test canonical names and legacy aliases."""
    assert parse_provider("google-cloud") is TTIProvider.GOOGLE_CLOUD
    assert parse_provider("Vertex_AI") is TTIProvider.GOOGLE_CLOUD
    assert parse_provider(" gemini ") is TTIProvider.GOOGLE_CLOUD
    assert parse_provider("eden_ai") is TTIProvider.EDENAI
    assert parse_provider("ionos") is TTIProvider.IONOS
    assert parse_provider("openai") is None


def test_default_provider_from_settings(caplog):
    """Test default provider selection from settings."""
    assert make_service().default_provider is TTIProvider.GOOGLE_CLOUD
    assert make_service(default_provider="edenai").default_provider is TTIProvider.EDENAI

    service = make_service(default_provider="unknown")
    assert service.default_provider is TTIProvider.GOOGLE_CLOUD
    assert "Unknown default provider" in caplog.text


def test_registry():
    """Test registration and lookup."""
    service = make_service()
    google = FakeProvider(TTIProvider.GOOGLE_CLOUD, character_consistency=True)
    ionos = FakeProvider(TTIProvider.IONOS)

    service.register_provider(google)
    service.register_provider(ionos)

    assert service.get_provider(TTIProvider.GOOGLE_CLOUD) is google
    assert service.get_provider(TTIProvider.EDENAI) is None
    assert service.available_providers() == [TTIProvider.GOOGLE_CLOUD, TTIProvider.IONOS]
    assert service.is_provider_available(TTIProvider.IONOS)
    assert not service.is_provider_available(TTIProvider.EDENAI)
    assert [name for name, _ in service.list_all_models()] == [
        TTIProvider.GOOGLE_CLOUD,
        TTIProvider.IONOS,
    ]

    with_consistency = service.find_providers_with_capability("character_consistency")
    assert [name for name, _ in with_consistency] == [TTIProvider.GOOGLE_CLOUD]


@pytest.mark.asyncio
async def test_generate_routes_to_named_provider():
    """Test routing by enum and by alias string."""
    service = make_service()
    google = FakeProvider(TTIProvider.GOOGLE_CLOUD)
    ionos = FakeProvider(TTIProvider.IONOS)
    service.register_provider(google)
    service.register_provider(ionos)

    response = await service.generate(TTIRequest(prompt="a cat"), TTIProvider.IONOS)
    assert response.metadata.provider == "ionos"

    response = await service.generate(TTIRequest(prompt="a dog"), "vertex")
    assert response.metadata.provider == "google-cloud"
    assert len(google.requests) == 1
    assert len(ionos.requests) == 1


@pytest.mark.asyncio
async def test_generate_uses_default_provider():
    """Test that the default provider serves requests without a provider."""
    service = make_service()
    service.register_provider(FakeProvider(TTIProvider.IONOS))
    edenai = FakeProvider(TTIProvider.EDENAI)
    service.register_provider(edenai)
    service.set_default_provider(TTIProvider.EDENAI)

    response = await service.generate(TTIRequest(prompt="a cat"))
    assert response.metadata.provider == "edenai"


@pytest.mark.asyncio
async def test_generate_falls_back_to_first_registered(caplog):
    """Test fallback when the requested provider is not registered."""
    service = make_service()
    ionos = FakeProvider(TTIProvider.IONOS)
    service.register_provider(ionos)

    response = await service.generate(TTIRequest(prompt="a cat"), TTIProvider.GOOGLE_CLOUD)

    assert response.metadata.provider == "ionos"
    assert "Using fallback: ionos" in caplog.text


@pytest.mark.asyncio
async def test_generate_without_providers():
    """Test the error when nothing is registered."""
    service = make_service()

    with pytest.raises(InvalidConfigError, match="no other providers registered"):
        await service.generate(TTIRequest(prompt="a cat"))


def test_set_unregistered_default_warns(caplog):
    """Test that an unregistered default is accepted with a warning."""
    service = make_service()
    service.set_default_provider(TTIProvider.IONOS)

    assert service.default_provider is TTIProvider.IONOS
    assert "not registered" in caplog.text


@pytest.fixture
def package_logger():
    logger = logging.getLogger("tti_middleware")
    original = logger.level
    yield logger
    logger.setLevel(original)


def test_log_level_left_alone_by_default(package_logger):
    """Test that constructing a service does not touch the package log level."""
    package_logger.setLevel(logging.WARNING)

    TTIService(ProviderSettings(log_level="debug"))

    assert package_logger.level == logging.WARNING


def test_log_level_applied_on_request(package_logger):
    """Test that apply_log_level=True sets the package logger from settings."""
    package_logger.setLevel(logging.WARNING)

    TTIService(ProviderSettings(log_level="debug"), apply_log_level=True)

    assert package_logger.level == logging.DEBUG


@pytest.mark.asyncio
async def test_generate_routes_to_edenai_by_alias():
    """Test that the eden_ai alias reaches a registered Eden AI provider."""
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(
            200,
            json={"openai": {"status": "success", "items": [{"image_resource_url": "https://img/1.png"}]}},
        )

    service = make_service()
    service.register_provider(FakeProvider(TTIProvider.GOOGLE_CLOUD))
    service.register_provider(
        EdenAIImageProvider(EdenAIConfig(api_key="key"), transport=httpx.MockTransport(handler))
    )

    response = await service.generate(TTIRequest(prompt="a lighthouse"), provider="eden_ai")

    assert len(calls) == 1
    assert response.metadata.provider == "edenai"
    assert response.images[0].url == "https://img/1.png"
