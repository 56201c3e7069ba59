"""Base class shared by all image-generation providers."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import TypeVar

from ..core.protocols import OnRetryFunc
from ..errors import CapabilityNotSupportedError, InvalidConfigError, TTIError, to_tti_error
from ..executor import RetryExecutor
from ..strategies import ErrorClassifier
from ..models import (
    ModelInfo,
    TTIImage,
    TTIProvider,
    TTIRequest,
    TTIResponse,
    TTIResponseMetadata,
    TTIUsage,
)
from .placeholder import DRY_MODE_PLACEHOLDER_IMAGE, DRY_MODE_PLACEHOLDER_MIME_TYPE

T = TypeVar("T")

EU_REGIONS = (
    "europe-west1",
    "europe-west2",
    "europe-west3",
    "europe-west4",
    "europe-west9",
    "europe-north1",
    "europe-central2",
)


def has_reference_images(request: TTIRequest) -> bool:
    """Check if a request includes reference images."""
    return bool(request.reference_images)


def is_eu_region(region: str) -> bool:
    """Check if a region is hosted in the EU."""
    return region in EU_REGIONS


class BaseImageProvider(ABC):
    """
    Abstract base class for image-generation providers.

    Subclasses implement the backend call in ``_do_generate``. This class
    handles request validation, dry mode, retries and error conversion.
    """

    def __init__(
        self,
        provider_name: TTIProvider,
        executor: RetryExecutor | None = None,
        logger: logging.Logger | None = None,
        error_classifier: ErrorClassifier | None = None,
    ):
        """
        Initialize the provider.

        Args:
            provider_name: Provider identifier
            executor: Retry executor (default: RetryExecutor using this provider's logger)
            logger: Logger for provider messages
            error_classifier: Classifier for the default executor; ignored when
                an executor is given
        """
        self.provider_name = provider_name
        self.logger = logger or logging.getLogger(f"tti_middleware.providers.{provider_name.value}")
        self.executor = executor or RetryExecutor(
            error_classifier=error_classifier, logger=self.logger
        )

    @property
    def name(self) -> TTIProvider:
        return self.provider_name

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable provider name."""
        ...

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Model used when the request does not name one."""
        ...

    @abstractmethod
    def list_models(self) -> list[ModelInfo]:
        """List all models offered by this provider."""
        ...

    @abstractmethod
    async def _do_generate(
        self, request: TTIRequest, on_retry: OnRetryFunc | None = None
    ) -> TTIResponse:
        """
        Provider-specific generation.

        Called by generate() after validation and the dry-mode check.
        """
        ...

    async def generate(
        self, request: TTIRequest, on_retry: OnRetryFunc | None = None
    ) -> TTIResponse:
        """
        Generate images for ``request``.

        Args:
            request: The generation request
            on_retry: Optional hook called as on_retry(error, attempt) before each retry

        Returns:
            TTIResponse with the generated images
        """
        self.validate_request(request)

        if request.dry:
            return self.handle_dry_mode(request)

        return await self._do_generate(request, on_retry)

    def handle_dry_mode(self, request: TTIRequest) -> TTIResponse:
        """Return placeholder images without calling the backend."""
        model_id = request.model or self.default_model
        self.logger.info(
            f"[DRY-RUN] Skipping API call for {self.provider_name.value} (model: {model_id})"
        )
        image_count = request.n or 1
        return TTIResponse(
            images=[
                TTIImage(
                    base64=DRY_MODE_PLACEHOLDER_IMAGE,
                    content_type=DRY_MODE_PLACEHOLDER_MIME_TYPE,
                )
                for _ in range(image_count)
            ],
            metadata=TTIResponseMetadata(
                provider=self.provider_name.value, model=model_id, duration=0
            ),
            usage=TTIUsage(images_generated=image_count, model_id=model_id),
        )

    def get_model_info(self, model_id: str) -> ModelInfo | None:
        """Get model info by ID."""
        return next((m for m in self.list_models() if m.id == model_id), None)

    def model_supports_capability(self, model_id: str, capability: str) -> bool:
        """Check if a model supports a specific capability."""
        model = self.get_model_info(model_id)
        if model is None:
            return False
        return bool(getattr(model.capabilities, capability, False))

    def validate_request(self, request: TTIRequest) -> None:
        """Validate that the request can be sent to this provider."""
        if not request.prompt or not request.prompt.strip():
            raise InvalidConfigError(self.provider_name.value, "Prompt cannot be empty")

        if has_reference_images(request):
            model_id = request.model or self.default_model
            if not self.model_supports_capability(model_id, "character_consistency"):
                raise CapabilityNotSupportedError(
                    self.provider_name.value, "character_consistency", model_id
                )
            for index, reference in enumerate(request.reference_images):
                if not reference.base64 or not reference.base64.strip():
                    raise InvalidConfigError(
                        self.provider_name.value,
                        f"Reference image at index {index} has empty base64 data",
                    )

    async def execute_with_retry(
        self,
        request: TTIRequest,
        operation: Callable[[], Awaitable[T]],
        operation_name: str,
        on_retry: OnRetryFunc | None = None,
    ) -> T:
        """Run ``operation`` under the request's retry policy."""
        return await self.executor.run(
            operation, request.retry, operation_name=operation_name, on_retry=on_retry
        )

    def handle_error(self, error: BaseException, context: str | None = None) -> TTIError:
        """Convert an error to a TTIError with proper classification."""
        return to_tti_error(self.provider_name.value, error, context)
