"""Image-generation providers."""

from .base import EU_REGIONS, BaseImageProvider, has_reference_images, is_eu_region
from .client_cache import RegionalClientCache
from .edenai import EDENAI_MODELS, EdenAIConfig, EdenAIImageProvider
from .google_cloud import (
    GOOGLE_CLOUD_MODELS,
    GoogleCloudConfig,
    GoogleCloudImageProvider,
    build_character_consistency_prompt,
)
from .http import HttpImageProvider, aspect_ratio_to_size
from .ionos import IONOS_MODELS, IonosConfig, IonosImageProvider

__all__ = [
    "BaseImageProvider",
    "EDENAI_MODELS",
    "EU_REGIONS",
    "EdenAIConfig",
    "EdenAIImageProvider",
    "GOOGLE_CLOUD_MODELS",
    "GoogleCloudConfig",
    "GoogleCloudImageProvider",
    "HttpImageProvider",
    "IONOS_MODELS",
    "IonosConfig",
    "IonosImageProvider",
    "RegionalClientCache",
    "aspect_ratio_to_size",
    "build_character_consistency_prompt",
    "has_reference_images",
    "is_eu_region",
]
