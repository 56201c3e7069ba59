"""Shared plumbing for providers reached through a JSON HTTP API."""

import logging
from typing import Any

import httpx

from ..classifiers import HttpErrorClassifier
from ..errors import NetworkError
from ..executor import RetryExecutor
from ..models import TTIProvider
from .base import BaseImageProvider

# Read timeout for a single HTTP call; the retry engine's guard usually fires first
DEFAULT_HTTP_TIMEOUT = 120.0

# Aspect ratios mapped onto the sizes DALL-E style endpoints accept
ASPECT_RATIO_SIZES = {
    "1:1": "1024x1024",
    "16:9": "1792x1024",
    "9:16": "1024x1792",
    "4:3": "1024x768",
    "3:4": "768x1024",
}
DEFAULT_IMAGE_SIZE = "1024x1024"


def aspect_ratio_to_size(aspect_ratio: str | None) -> str:
    """Map an aspect ratio to a pixel size, defaulting to a square image."""
    return ASPECT_RATIO_SIZES.get(aspect_ratio or "", DEFAULT_IMAGE_SIZE)


class HttpImageProvider(BaseImageProvider):
    """Base class for providers that POST JSON with a bearer token."""

    def __init__(
        self,
        provider_name: TTIProvider,
        api_key: str,
        api_url: str,
        executor: RetryExecutor | None = None,
        logger: logging.Logger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        http_timeout: float = DEFAULT_HTTP_TIMEOUT,
    ):
        """
        Initialize the HTTP provider.

        Args:
            provider_name: Provider identifier
            api_key: Bearer token sent with every request
            api_url: Endpoint receiving the generation request
            executor: Retry executor (default: one classifying HTTP status codes)
            logger: Logger for provider messages
            transport: Optional httpx transport (tests pass httpx.MockTransport)
            http_timeout: Per-call httpx timeout in seconds
        """
        super().__init__(
            provider_name,
            executor=executor,
            logger=logger,
            error_classifier=HttpErrorClassifier(),
        )
        self.api_key = api_key
        self.api_url = api_url
        self._transport = transport
        self._http_timeout = http_timeout

    async def post_json(self, body: dict[str, Any], api_name: str) -> Any:
        """
        POST ``body`` and return the decoded JSON answer.

        Raises:
            httpx.HTTPStatusError: For 4xx/5xx answers (the message carries the status)
            NetworkError: If the connection fails or times out
        """
        try:
            async with httpx.AsyncClient(
                timeout=self._http_timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self.api_url,
                    json=body,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
        except httpx.TimeoutException as e:
            raise NetworkError(
                self.provider_name.value, f"Request timeout during {api_name}", e
            ) from e
        except httpx.TransportError as e:
            raise NetworkError(
                self.provider_name.value, f"Connection failed during {api_name}", e
            ) from e

        if response.is_error:
            self.logger.debug(
                f"{api_name} returned {response.status_code}: {response.text[:500]}"
            )
        response.raise_for_status()
        return response.json()
