"""Eden AI image generation provider.

Eden AI aggregates several image backends (OpenAI DALL-E, Stability AI,
Replicate) behind one endpoint. The model id selects the backend, and the
answer is keyed by backend name. It is the only provider that reports the
actual cost of a request.
"""

import logging
import os
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from ..core.protocols import OnRetryFunc
from ..errors import GenerationFailedError, InvalidConfigError, TTIError
from ..executor import RetryExecutor
from ..models import (
    ModelInfo,
    TTIBilling,
    TTICapabilities,
    TTIImage,
    TTIProvider,
    TTIRequest,
    TTIResponse,
    TTIResponseMetadata,
    TTIUsage,
)
from .http import HttpImageProvider, aspect_ratio_to_size

EDENAI_API_URL = "https://api.edenai.run/v2/image/generation"

EDENAI_MODELS: list[ModelInfo] = [
    ModelInfo(
        id=model_id,
        display_name=display_name,
        capabilities=TTICapabilities(
            text_to_image=True,
            character_consistency=False,
            image_editing=False,
            max_images_per_request=4,
        ),
        pricing_url="https://www.edenai.co/pricing",
    )
    for model_id, display_name in (
        ("openai", "OpenAI DALL-E"),
        ("stabilityai", "Stability AI"),
        ("replicate", "Replicate"),
    )
]


@dataclass
class EdenAIConfig:
    """Credentials and endpoint for Eden AI."""

    api_key: str
    api_url: str = EDENAI_API_URL

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> "EdenAIConfig":
        """Build a config from explicit overrides, falling back to EDENAI_API_KEY."""
        env = os.environ if environ is None else environ
        return cls(
            api_key=overrides.get("api_key") or env.get("EDENAI_API_KEY") or "",
            api_url=overrides.get("api_url") or EDENAI_API_URL,
        )

    def validate(self) -> None:
        """Validate Eden AI configuration."""
        if not self.api_key:
            raise InvalidConfigError(
                TTIProvider.EDENAI.value,
                "EdenAI API key is required. Set EDENAI_API_KEY or pass api_key in config.",
            )


class EdenAIImageProvider(HttpImageProvider):
    """Provider for the Eden AI image generation endpoint."""

    def __init__(
        self,
        config: EdenAIConfig | None = None,
        executor: RetryExecutor | None = None,
        logger: logging.Logger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        config = config or EdenAIConfig.from_env()
        config.validate()
        super().__init__(
            TTIProvider.EDENAI,
            api_key=config.api_key,
            api_url=config.api_url,
            executor=executor,
            logger=logger,
            transport=transport,
        )
        self.config = config
        self.logger.info("ℹ️  Eden AI provider initialized")

    @property
    def display_name(self) -> str:
        return "Eden AI"

    @property
    def default_model(self) -> str:
        return "openai"

    def list_models(self) -> list[ModelInfo]:
        return EDENAI_MODELS

    async def _do_generate(
        self, request: TTIRequest, on_retry: OnRetryFunc | None = None
    ) -> TTIResponse:
        return await self.execute_with_retry(
            request, lambda: self._generate(request), "EdenAI API call", on_retry=on_retry
        )

    async def _generate(self, request: TTIRequest) -> TTIResponse:
        start_time = time.time()
        model_id = request.model or self.default_model
        body = {
            "providers": model_id,
            "text": request.prompt,
            "resolution": aspect_ratio_to_size(request.aspect_ratio),
            "num_images": request.n or 1,
        }
        self.logger.debug(f"Generating image with EdenAI (provider: {model_id}, size: {body['resolution']})")

        try:
            data = await self.post_json(body, "EdenAI API call")
        except TTIError:
            raise
        except Exception as e:
            raise self.handle_error(e, "during EdenAI API call") from e

        duration = (time.time() - start_time) * 1000
        return self._process_response(data, model_id, duration)

    def _process_response(self, data: dict[str, Any], model_id: str, duration: float) -> TTIResponse:
        # Answers are keyed by backend, sometimes with a suffix ("openai/dall-e-3")
        matched_key = next((key for key in data if key.startswith(model_id)), None)
        backend = data.get(matched_key) if matched_key else None
        if not backend:
            self.logger.error(
                f"✗ No data for provider {model_id}. Available keys: {', '.join(data)}"
            )
            raise GenerationFailedError(
                self.provider_name.value, f"No data returned for provider: {model_id}"
            )

        if backend.get("status") == "fail" or backend.get("error"):
            raise GenerationFailedError(
                self.provider_name.value, str(backend.get("error") or "Unknown error from provider")
            )

        images: list[TTIImage] = []
        for item in backend.get("items") or []:
            if item.get("image"):
                images.append(TTIImage(base64=item["image"], content_type="image/png"))
            elif item.get("image_resource_url"):
                images.append(TTIImage(url=item["image_resource_url"]))

        if not images:
            raise GenerationFailedError(self.provider_name.value, "No images returned in response")

        cost = backend.get("cost")
        return TTIResponse(
            images=images,
            metadata=TTIResponseMetadata(
                provider=self.provider_name.value, model=model_id, duration=duration
            ),
            usage=TTIUsage(images_generated=len(images), model_id=model_id),
            billing=TTIBilling(cost=cost, currency="USD", source="provider") if cost is not None else None,
        )
