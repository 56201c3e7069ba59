"""Google Cloud (Vertex AI) image generation provider.

Serves two model families through the google-genai SDK with the Vertex AI
backend:

- Imagen 3 (``imagen-3``): high quality text-to-image
- Gemini 2.5 Flash Image (``gemini-flash-image``): text-to-image with
  character consistency from reference images

Requests stay in the EU when an EU region is configured. Optional region
rotation moves to another region when one reports quota exhaustion.
"""

import base64
import logging
import os
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..classifiers import GenAIErrorClassifier
from ..core.config import RegionRotationConfig
from ..core.protocols import ClientFactory, OnRetryFunc
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
from ..regions import RegionRotator
from .base import BaseImageProvider, has_reference_images, is_eu_region
from .client_cache import RegionalClientCache

# Conditional imports for optional dependencies
if TYPE_CHECKING:
    from google import genai
else:
    try:
        from google import genai
    except ImportError:
        genai = None  # type: ignore[assignment]

DEFAULT_REGION = "europe-west4"  # Netherlands, hosts every model below

GOOGLE_CLOUD_MODELS: list[ModelInfo] = [
    ModelInfo(
        id="imagen-3",
        display_name="Imagen 3",
        capabilities=TTICapabilities(
            text_to_image=True,
            character_consistency=False,
            image_editing=False,
            max_images_per_request=4,
        ),
        available_regions=[
            "europe-west1",
            "europe-west2",
            "europe-west3",
            "europe-west4",
            "europe-west9",
            "us-central1",
            "us-east4",
        ],
        pricing_url="https://cloud.google.com/vertex-ai/generative-ai/pricing",
    ),
    ModelInfo(
        id="gemini-flash-image",
        display_name="Gemini 2.5 Flash Image",
        capabilities=TTICapabilities(
            text_to_image=True,
            character_consistency=True,
            image_editing=False,
            max_images_per_request=1,
        ),
        # Not available in europe-west3 (Frankfurt)
        available_regions=[
            "europe-west1",
            "europe-west4",
            "europe-north1",
            "us-central1",
            "us-east4",
        ],
        pricing_url="https://cloud.google.com/vertex-ai/generative-ai/pricing",
    ),
]

# Backend model IDs used in API calls
MODEL_ID_MAP = {
    "imagen-3": "imagen-3.0-generate-002",
    "gemini-flash-image": "gemini-2.5-flash-image",
}


@dataclass
class GoogleCloudConfig:
    """Connection settings for Vertex AI."""

    project_id: str
    region: str = DEFAULT_REGION
    key_filename: str | None = None
    region_rotation: RegionRotationConfig | None = None

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, **overrides: Any
    ) -> "GoogleCloudConfig":
        """Build a config from explicit overrides, falling back to environment variables."""
        env = os.environ if environ is None else environ
        return cls(
            project_id=overrides.get("project_id")
            or env.get("GOOGLE_CLOUD_PROJECT")
            or env.get("GCLOUD_PROJECT")
            or "",
            region=overrides.get("region")
            or env.get("GOOGLE_CLOUD_REGION")
            or env.get("VERTEX_AI_REGION")
            or DEFAULT_REGION,
            key_filename=overrides.get("key_filename") or env.get("GOOGLE_APPLICATION_CREDENTIALS"),
            region_rotation=overrides.get("region_rotation"),
        )

    def validate(self) -> None:
        """Validate Google Cloud configuration."""
        if not self.project_id:
            raise InvalidConfigError(
                TTIProvider.GOOGLE_CLOUD.value,
                "Google Cloud Project ID is required. "
                "Set GOOGLE_CLOUD_PROJECT or pass project_id in config.",
            )
        if self.region_rotation is not None:
            try:
                self.region_rotation.validate()
            except ValueError as e:
                raise InvalidConfigError(TTIProvider.GOOGLE_CLOUD.value, str(e), e) from e


class GoogleCloudImageProvider(BaseImageProvider):
    """Provider for Imagen and Gemini image models on Vertex AI."""

    def __init__(
        self,
        config: GoogleCloudConfig | None = None,
        client_factory: ClientFactory | None = None,
        executor: RetryExecutor | None = None,
        logger: logging.Logger | None = None,
    ):
        """
        Initialize the Google Cloud provider.

        Args:
            config: Connection settings (default: GoogleCloudConfig.from_env())
            client_factory: Builds a genai client for a region (default: Vertex AI genai.Client)
            executor: Retry executor shared by all requests of this provider
                (default: one classifying google-genai status codes)
            logger: Logger for provider messages
        """
        super().__init__(
            TTIProvider.GOOGLE_CLOUD,
            executor=executor,
            logger=logger,
            error_classifier=GenAIErrorClassifier(),
        )
        self.config = config or GoogleCloudConfig.from_env()
        self.config.validate()
        self._clients = RegionalClientCache(client_factory or self._create_genai_client)

        self.logger.info(
            f"ℹ️  Google Cloud provider initialized (project: {self.config.project_id}, "
            f"region: {self.config.region}, EU: {is_eu_region(self.config.region)}, "
            f"rotation: {self.config.region_rotation is not None})"
        )

    @property
    def display_name(self) -> str:
        return "Google Cloud"

    @property
    def default_model(self) -> str:
        # Gemini Flash Image supports character consistency
        return "gemini-flash-image"

    @property
    def region(self) -> str:
        """Configured default region."""
        return self.config.region

    def list_models(self) -> list[ModelInfo]:
        return GOOGLE_CLOUD_MODELS

    def is_eu_region(self) -> bool:
        """Check if the configured region is hosted in the EU."""
        return is_eu_region(self.config.region)

    def _create_genai_client(self, region: str) -> "genai.Client":
        """Create a Vertex AI genai client bound to ``region``."""
        if genai is None:
            raise InvalidConfigError(
                self.provider_name.value,
                "google-genai is required for the Google Cloud provider. "
                "Install with: pip install 'tti-middleware[google]'",
            )

        credentials = None
        if self.config.key_filename:
            from google.oauth2 import service_account

            credentials = service_account.Credentials.from_service_account_file(
                self.config.key_filename,
                scopes=["https://www.googleapis.com/auth/cloud-platform"],
            )

        self.logger.debug(
            f"Initializing genai client with Vertex AI backend "
            f"(project: {self.config.project_id}, location: {region})"
        )
        return genai.Client(
            vertexai=True,
            project=self.config.project_id,
            location=region,
            credentials=credentials,
        )

    def get_client(self, region: str) -> Any:
        """Return the cached client for ``region``."""
        return self._clients.get(region)

    def get_effective_region(self, model_id: str) -> str:
        """Pick the configured region if it hosts the model, else prefer an EU alternative."""
        model_info = self.get_model_info(model_id)
        if model_info is None or not model_info.available_regions:
            return self.config.region

        if self.config.region in model_info.available_regions:
            return self.config.region

        eu_alternatives = [r for r in model_info.available_regions if is_eu_region(r)]
        fallback = eu_alternatives[0] if eu_alternatives else model_info.available_regions[0]
        self.logger.warning(
            f"⚠️  Model {model_id} not available in {self.config.region}, using {fallback}"
        )
        return fallback

    async def _do_generate(
        self, request: TTIRequest, on_retry: OnRetryFunc | None = None
    ) -> TTIResponse:
        model_id = request.model or self.default_model
        if self.get_model_info(model_id) is None:
            available = ", ".join(m.id for m in self.list_models())
            raise InvalidConfigError(
                self.provider_name.value,
                f"Unknown model: {model_id}. Available models: {available}",
            )

        if model_id == "imagen-3":
            call, operation_name = self._generate_with_imagen, "Imagen API call"
        else:
            call, operation_name = self._generate_with_gemini, "Gemini API call"

        if self.config.region_rotation is not None:
            rotator = RegionRotator(
                self.config.region_rotation, executor=self.executor, logger=self.logger
            )
            return await rotator.run(
                lambda region: call(request, region),
                request.retry,
                operation_name=operation_name,
                on_retry=on_retry,
            )

        region = self.get_effective_region(model_id)
        self.logger.debug(
            f"Generating image (model: {model_id}, region: {region}, "
            f"reference images: {has_reference_images(request)})"
        )
        return await self.execute_with_retry(
            request, lambda: call(request, region), operation_name, on_retry=on_retry
        )

    async def _generate_with_imagen(self, request: TTIRequest, region: str) -> TTIResponse:
        start_time = time.time()
        try:
            client = self.get_client(region)

            config: dict[str, Any] = {"number_of_images": request.n or 1}
            if request.aspect_ratio:
                config["aspect_ratio"] = request.aspect_ratio
            options = request.provider_options or {}
            if options.get("seed") is not None:
                config["seed"] = options["seed"]
            if options.get("safety_filter_level"):
                config["safety_filter_level"] = options["safety_filter_level"]
            if options.get("person_generation"):
                config["person_generation"] = options["person_generation"]

            self.logger.debug(f"Sending Imagen request (region: {region}, config: {config})")
            response = await client.aio.models.generate_images(
                model=MODEL_ID_MAP["imagen-3"],
                prompt=request.prompt,
                config=config,
            )
        except TTIError:
            raise
        except Exception as e:
            raise self.handle_error(e, "during Imagen API call") from e

        duration = (time.time() - start_time) * 1000
        return self._process_imagen_response(response, region, duration)

    def _process_imagen_response(self, response: Any, region: str, duration: float) -> TTIResponse:
        images: list[TTIImage] = []
        for generated in getattr(response, "generated_images", None) or []:
            image = getattr(generated, "image", None)
            data = getattr(image, "image_bytes", None)
            if data:
                images.append(
                    TTIImage(
                        base64=_to_base64(data),
                        content_type=getattr(image, "mime_type", None) or "image/png",
                    )
                )

        if not images:
            raise GenerationFailedError(self.provider_name.value, "No valid images in Imagen response")

        return TTIResponse(
            images=images,
            metadata=TTIResponseMetadata(
                provider=self.provider_name.value, model="imagen-3", region=region, duration=duration
            ),
            usage=TTIUsage(images_generated=len(images), model_id="imagen-3"),
        )

    async def _generate_with_gemini(self, request: TTIRequest, region: str) -> TTIResponse:
        start_time = time.time()
        try:
            client = self.get_client(region)

            parts: list[dict[str, Any]] = []
            if has_reference_images(request):
                for reference in request.reference_images:
                    parts.append(
                        {
                            "inline_data": {
                                "mime_type": reference.mime_type or "image/png",
                                "data": base64.b64decode(reference.base64),
                            }
                        }
                    )
                if request.subject_description:
                    prompt = build_character_consistency_prompt(
                        request.prompt,
                        request.subject_description,
                        len(request.reference_images),
                    )
                else:
                    # Raw multimodal prompt ("image 1 is ...")
                    prompt = request.prompt
                parts.append({"text": prompt})
            else:
                parts.append({"text": request.prompt})

            config: dict[str, Any] = {"response_modalities": ["TEXT", "IMAGE"]}
            temperature = (request.provider_options or {}).get("temperature")
            if temperature is not None:
                config["temperature"] = temperature

            self.logger.debug(
                f"Sending Gemini request (model: {MODEL_ID_MAP['gemini-flash-image']}, "
                f"region: {region}, reference images: {has_reference_images(request)})"
            )
            response = await client.aio.models.generate_content(
                model=MODEL_ID_MAP["gemini-flash-image"],
                contents=[{"role": "user", "parts": parts}],
                config=config,
            )
        except TTIError:
            raise
        except Exception as e:
            raise self.handle_error(e, "during Gemini API call") from e

        duration = (time.time() - start_time) * 1000
        return self._process_gemini_response(response, region, duration)

    def _process_gemini_response(self, response: Any, region: str, duration: float) -> TTIResponse:
        candidates = getattr(response, "candidates", None)
        if not candidates:
            raise GenerationFailedError(
                self.provider_name.value, "No candidates returned from Gemini API"
            )

        images: list[TTIImage] = []
        for candidate in candidates:
            for part in _candidate_parts(candidate):
                inline_data = getattr(part, "inline_data", None)
                if inline_data is not None and getattr(inline_data, "data", None):
                    images.append(
                        TTIImage(
                            base64=_to_base64(inline_data.data),
                            content_type=getattr(inline_data, "mime_type", None) or "image/png",
                        )
                    )

        if not images:
            part_types = []
            for part in _candidate_parts(candidates[0]):
                if getattr(part, "text", None):
                    part_types.append(f"text({part.text[:50]}...)")
                elif getattr(part, "inline_data", None) is not None:
                    part_types.append(f"inline_data({part.inline_data.mime_type})")
                else:
                    part_types.append("unknown")
            self.logger.error(
                f"✗ No images in Gemini response ({len(candidates)} candidate(s), parts: {part_types})"
            )
            raise GenerationFailedError(
                self.provider_name.value,
                f"No images in response. Model returned: {', '.join(part_types)}. "
                "Make sure response_modalities includes IMAGE.",
            )

        return TTIResponse(
            images=images,
            metadata=TTIResponseMetadata(
                provider=self.provider_name.value,
                model="gemini-flash-image",
                region=region,
                duration=duration,
            ),
            usage=TTIUsage(images_generated=len(images), model_id="gemini-flash-image"),
        )


def build_character_consistency_prompt(
    user_prompt: str, subject_description: str, reference_count: int
) -> str:
    """Wrap the user prompt with instructions to keep the referenced character consistent."""
    reference_text = (
        "the reference image" if reference_count == 1 else f"the {reference_count} reference images"
    )
    return (
        f'Using {reference_text} as a reference for the character "{subject_description}", '
        f"generate a new image where: {user_prompt}\n\n"
        "IMPORTANT: Maintain exact visual consistency with the character in the reference - "
        "same style, colors, proportions, and distinctive features. The character should be "
        "immediately recognizable as the same one from the reference."
    )


def _candidate_parts(candidate: Any) -> list[Any]:
    content = getattr(candidate, "content", None)
    return list(getattr(content, "parts", None) or [])


def _to_base64(data: bytes | str) -> str:
    if isinstance(data, str):
        return data
    return base64.b64encode(data).decode("ascii")
