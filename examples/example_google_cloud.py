"""Generate images on Vertex AI with region rotation.

## Installation

```bash
pip install 'tti-middleware[google]'
export GOOGLE_CLOUD_PROJECT=your-project
export GOOGLE_APPLICATION_CREDENTIALS=/path/to/service-account.json
```
"""

import asyncio
import base64
import logging
from pathlib import Path

from tti_middleware import (
    GoogleCloudConfig,
    GoogleCloudImageProvider,
    ProviderSettings,
    RegionRotationConfig,
    RetryExecutor,
    TTIError,
    TTIProvider,
    TTIReferenceImage,
    TTIRequest,
    TTIService,
)
from tti_middleware.classifiers import GenAIErrorClassifier

logging.basicConfig(level=logging.INFO)


async def main():
    config = GoogleCloudConfig.from_env(
        region_rotation=RegionRotationConfig(
            regions=["europe-west4", "europe-west1", "europe-north1"],
            fallback="global",
        ),
    )
    provider = GoogleCloudImageProvider(
        config=config,
        executor=RetryExecutor(error_classifier=GenAIErrorClassifier()),
    )

    service = TTIService(ProviderSettings.from_env())
    service.register_provider(provider)

    output_dir = Path("generated")
    output_dir.mkdir(exist_ok=True)

    try:
        response = await service.generate(
            TTIRequest(
                prompt="A watercolor fox reading a book under a lamp",
                model="gemini-flash-image",
                retry={"max_retries": 4, "timeout_ms": 60000},
            ),
            TTIProvider.GOOGLE_CLOUD,
        )
    except TTIError as e:
        logging.error(f"Generation failed ({e.code.value}): {e}")
        return

    logging.info(
        f"Served by {response.metadata.region} in {response.metadata.duration:.0f}ms"
    )
    fox = base64.b64decode(response.images[0].base64)
    (output_dir / "fox.png").write_bytes(fox)

    # Character consistency: reuse the first image as a reference
    follow_up = await service.generate(
        TTIRequest(
            prompt="The fox is now riding a bicycle through a park",
            reference_images=[TTIReferenceImage(base64=response.images[0].base64, mime_type="image/png")],
            subject_description="a small watercolor fox",
        ),
    )
    (output_dir / "fox_bicycle.png").write_bytes(base64.b64decode(follow_up.images[0].base64))
    logging.info(f"Saved images to {output_dir.resolve()}")


if __name__ == "__main__":
    asyncio.run(main())
