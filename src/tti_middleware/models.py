"""Request and response models for image generation."""

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class TTIProvider(str, Enum):
    """Available image-generation backends."""

    GOOGLE_CLOUD = "google-cloud"
    EDENAI = "edenai"
    IONOS = "ionos"


class RetryOptions(BaseModel):
    """Request-level retry override. Unset fields fall back to the defaults."""

    model_config = ConfigDict(extra="forbid")

    max_retries: Annotated[int | None, Field(ge=0, description="General retries after the first attempt")] = None
    delay_ms: Annotated[int | None, Field(ge=0, description="Base delay in milliseconds")] = None
    backoff_multiplier: Annotated[float | None, Field(ge=1.0, description="Exponential backoff factor")] = None
    max_delay_ms: Annotated[int | None, Field(ge=0, description="Cap on any single delay")] = None
    jitter: bool | None = None
    timeout_ms: Annotated[int | None, Field(description="Per-attempt deadline; <= 0 disables it")] = None
    timeout_retries: Annotated[int | None, Field(ge=0, description="Retries after guard timeouts")] = None
    incremental_backoff: Annotated[
        bool | None, Field(description="Deprecated; maps to backoff_multiplier=1.0")
    ] = None


class TTIReferenceImage(BaseModel):
    """Reference image for character consistency."""

    base64: str
    mime_type: str | None = None


class TTIRequest(BaseModel):
    """Unified generation request for text-to-image and character consistency."""

    prompt: str
    model: str | None = None
    n: Annotated[int | None, Field(ge=1)] = None
    aspect_ratio: str | None = None
    reference_images: list[TTIReferenceImage] | None = None
    subject_description: str | None = None
    provider_options: dict[str, Any] | None = None
    retry: bool | RetryOptions | None = None
    dry: bool = False


class TTIImage(BaseModel):
    """Generated image."""

    url: str | None = None
    base64: str | None = None
    content_type: str | None = None


class TTIUsage(BaseModel):
    """Usage metrics for a generation request."""

    images_generated: int
    model_id: str
    image_size: str | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None


class TTIResponseMetadata(BaseModel):
    """Which backend served the request, and how long it took."""

    provider: str
    model: str
    region: str | None = None
    duration: Annotated[float, Field(description="Request duration in milliseconds")]


class TTIBilling(BaseModel):
    """Cost of a request, present only when the backend reports one."""

    cost: float
    currency: str = "USD"
    source: Literal["provider", "estimated"] = "provider"


class TTIResponse(BaseModel):
    """Response from a generation request."""

    images: list[TTIImage]
    metadata: TTIResponseMetadata
    usage: TTIUsage
    billing: TTIBilling | None = None


class TTICapabilities(BaseModel):
    """Capabilities of a specific model."""

    text_to_image: bool = True
    character_consistency: bool = False
    image_editing: bool = False
    max_images_per_request: int = 1


class ModelInfo(BaseModel):
    """Information about a model offered by a provider."""

    id: str
    display_name: str
    capabilities: TTICapabilities
    available_regions: list[str] | None = None
    pricing_url: str | None = None
