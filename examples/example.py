"""Retry engine walkthrough with simulated backends.

Runs without credentials: every backend call is a scripted operation that
fails the way a real regional endpoint does (quota errors, 503s, hangs).

```bash
pip install tti-middleware
python examples/example.py
```
"""

import asyncio
import logging

from tti_middleware import (
    MetricsObserver,
    OperationTimeoutError,
    RegionRotationConfig,
    RegionRotator,
    RetryExecutor,
    RetryOptions,
)
from tti_middleware.classifiers import GenAIErrorClassifier
from tti_middleware.testing import HANG, ScriptedOperation

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")


async def example_backoff():
    """
    Example 1: Quota errors retried with exponential backoff.
    """
    logging.info("\n" + "=" * 80)
    logging.info("EXAMPLE 1: Backoff on quota errors")
    logging.info("=" * 80)

    metrics = MetricsObserver()
    executor = RetryExecutor(error_classifier=GenAIErrorClassifier(), observers=[metrics])

    backend = ScriptedOperation(
        [Exception("429 Resource Exhausted"), Exception("503 Service Unavailable"), "image-bytes"]
    )
    result = await executor.run(
        backend,
        RetryOptions(max_retries=3, delay_ms=200, jitter=False),
        operation_name="Imagen API call",
        on_retry=lambda error, attempt: logging.info(f"  on_retry: attempt {attempt} failed"),
    )

    logging.info(f"Result: {result} after {backend.call_count} calls")
    logging.info(await metrics.export_prometheus())


async def example_timeouts():
    """
    Example 2: Hanging calls are abandoned and retried on their own budget.
    """
    logging.info("\n" + "=" * 80)
    logging.info("EXAMPLE 2: Timeout guard")
    logging.info("=" * 80)

    executor = RetryExecutor()
    backend = ScriptedOperation([HANG])

    try:
        await executor.run(backend, {"timeout_ms": 100, "timeout_retries": 1})
    except OperationTimeoutError as e:
        logging.info(f"Gave up after {backend.call_count} calls: {e}")


async def example_region_rotation():
    """
    Example 3: Rotate regions on quota errors, then try the fallback once.
    """
    logging.info("\n" + "=" * 80)
    logging.info("EXAMPLE 3: Region rotation")
    logging.info("=" * 80)

    rotator = RegionRotator(
        RegionRotationConfig(
            regions=["us-east4", "europe-west1", "europe-north1"],
            fallback="global",
        ),
        executor=RetryExecutor(),
    )

    quota = Exception("429 Quota exceeded")
    backend = ScriptedOperation([quota, quota, "image-bytes"])
    result = await rotator.run(backend, {"max_retries": 1, "delay_ms": 100, "jitter": False})

    logging.info(f"Result: {result}")
    logging.info(f"Regions tried: {' -> '.join(backend.regions)}")


async def main():
    await example_backoff()
    await example_timeouts()
    await example_region_rotation()


if __name__ == "__main__":
    asyncio.run(main())
