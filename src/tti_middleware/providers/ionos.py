"""IONOS Cloud image generation provider (OpenAI-compatible API)."""

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
    TTICapabilities,
    TTIImage,
    TTIProvider,
    TTIRequest,
    TTIResponse,
    TTIResponseMetadata,
    TTIUsage,
)
from .http import HttpImageProvider, aspect_ratio_to_size

IONOS_API_URL = "https://api.ionos.cloud/ai/v1"

IONOS_MODELS: list[ModelInfo] = [
    ModelInfo(
        id="default",
        display_name="IONOS Image Generation",
        capabilities=TTICapabilities(
            text_to_image=True,
            character_consistency=False,
            image_editing=False,
            max_images_per_request=4,
        ),
        pricing_url="https://cloud.ionos.de/preise",
    ),
]


@dataclass
class IonosConfig:
    """Credentials and base URL for IONOS Cloud AI."""

    api_key: str
    api_url: str = IONOS_API_URL

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> "IonosConfig":
        """Build a config from explicit overrides, falling back to IONOS_API_KEY / IONOS_API_URL."""
        env = os.environ if environ is None else environ
        return cls(
            api_key=overrides.get("api_key") or env.get("IONOS_API_KEY") or "",
            api_url=overrides.get("api_url") or env.get("IONOS_API_URL") or IONOS_API_URL,
        )

    @property
    def generations_url(self) -> str:
        return f"{self.api_url.rstrip('/')}/images/generations"

    def validate(self) -> None:
        """Validate IONOS configuration."""
        if not self.api_key:
            raise InvalidConfigError(
                TTIProvider.IONOS.value,
                "IONOS API key is required. Set IONOS_API_KEY or pass api_key in config.",
            )


class IonosImageProvider(HttpImageProvider):
    """Provider for the IONOS Cloud images/generations endpoint."""

    def __init__(
        self,
        config: IonosConfig | None = None,
        executor: RetryExecutor | None = None,
        logger: logging.Logger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        config = config or IonosConfig.from_env()
        config.validate()
        super().__init__(
            TTIProvider.IONOS,
            api_key=config.api_key,
            api_url=config.generations_url,
            executor=executor,
            logger=logger,
            transport=transport,
        )
        self.config = config
        self.logger.info("ℹ️  IONOS provider initialized")

    @property
    def display_name(self) -> str:
        return "IONOS Cloud"

    @property
    def default_model(self) -> str:
        return "default"

    def list_models(self) -> list[ModelInfo]:
        return IONOS_MODELS

    async def _do_generate(
        self, request: TTIRequest, on_retry: OnRetryFunc | None = None
    ) -> TTIResponse:
        return await self.execute_with_retry(
            request, lambda: self._generate(request), "IONOS API call", on_retry=on_retry
        )

    async def _generate(self, request: TTIRequest) -> TTIResponse:
        start_time = time.time()
        body: dict[str, Any] = {
            "prompt": request.prompt,
            "n": request.n or 1,
            "size": aspect_ratio_to_size(request.aspect_ratio),
            "response_format": "url",
        }
        # "default" means the account's default model, so it is not sent
        if request.model and request.model != "default":
            body["model"] = request.model
        self.logger.debug(f"Generating image with IONOS (size: {body['size']}, model: {body.get('model')})")

        try:
            data = await self.post_json(body, "IONOS API call")
        except TTIError:
            raise
        except Exception as e:
            raise self.handle_error(e, "during IONOS API call") from e

        duration = (time.time() - start_time) * 1000
        return self._process_response(data, duration)

    def _process_response(self, data: dict[str, Any], duration: float) -> TTIResponse:
        items = data.get("data") or []
        if not items:
            raise GenerationFailedError(self.provider_name.value, "No images returned in response")

        images = [
            TTIImage(base64=item["b64_json"], content_type="image/png")
            if item.get("b64_json")
            else TTIImage(url=item.get("url"))
            for item in items
        ]
        return TTIResponse(
            images=images,
            metadata=TTIResponseMetadata(
                provider=self.provider_name.value, model="default", duration=duration
            ),
            usage=TTIUsage(images_generated=len(images), model_id="default"),
        )
