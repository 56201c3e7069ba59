"""Region rotation on quota errors.

When a regional endpoint reports quota exhaustion, the next attempt is sent
to the next candidate region instead of the same one. Once the candidate
list is used up every remaining attempt goes to the fallback region.

If the general retry budget runs out before the fallback was ever tried,
one bonus attempt is made there (unless ``always_try_fallback`` is off).
"""

import logging
from collections.abc import Mapping
from typing import Any, TypeVar

from .core.config import RegionRotationConfig, RetryConfig
from .core.protocols import OnRetryFunc, RegionOperation
from .executor import RetryExecutor, RetryOutcome, RetryState
from .observers import RetryEvent
from .strategies import ErrorClassification

T = TypeVar("T")


class RegionCursor:
    """Position in the candidate region list for a single invocation."""

    def __init__(self, config: RegionRotationConfig):
        self.config = config
        self._index = 0

    @property
    def current(self) -> str:
        """Region the next attempt should use."""
        if self._index < len(self.config.regions):
            return self.config.regions[self._index]
        return self.config.fallback

    @property
    def on_fallback(self) -> bool:
        """True once the candidate list is exhausted."""
        return self._index >= len(self.config.regions)

    def advance(self) -> str:
        """Move to the next candidate, clamping to the fallback. Returns the new region."""
        if self._index < len(self.config.regions):
            self._index += 1
        return self.current


class RegionRotator:
    """
    Runs a region-bound operation through a RetryExecutor with rotation.

    The operation receives the region to use and is re-bound before every
    attempt. Only QUOTA failures move the cursor; quota failures still count
    against the general retry budget.
    """

    def __init__(
        self,
        config: RegionRotationConfig,
        executor: RetryExecutor | None = None,
        logger: logging.Logger | None = None,
    ):
        """
        Initialize the region rotator.

        Args:
            config: Candidate regions, fallback region and bonus-attempt flag
            executor: Executor that owns the attempt loop (default: RetryExecutor())
            logger: Logger for rotation messages
        """
        config.validate()
        self.config = config
        self.executor = executor or RetryExecutor()
        self.logger = logger or logging.getLogger(__name__)

    def _should_try_fallback(self, state: RetryState, cursor: RegionCursor) -> bool:
        """Bonus attempt only after general budget exhaustion away from the fallback."""
        return (
            state.outcome is RetryOutcome.BUDGET_EXHAUSTED
            and not cursor.on_fallback
            and self.config.always_try_fallback
        )

    async def run(
        self,
        operation: RegionOperation[T],
        retry: "bool | Mapping[str, Any] | RetryConfig | Any | None" = None,
        *,
        operation_name: str = "operation",
        on_retry: OnRetryFunc | None = None,
    ) -> T:
        """
        Run ``operation(region)`` with retries and region rotation.

        Args:
            operation: Coroutine function taking the region for this attempt
            retry: Retry option, resolved the same way as RetryExecutor.run
            operation_name: Name used in logs and timeout messages
            on_retry: Optional hook called as on_retry(error, attempt)

        Returns:
            The first successful result

        Raises:
            The last observed error. If the bonus fallback attempt fails, its
            error is raised unchanged; the budget-exhausting error is only logged.
        """
        config = self.executor.resolve(retry)
        cursor = RegionCursor(self.config)
        tried_regions: list[str] = []

        async def bound_operation() -> T:
            region = cursor.current
            tried_regions.append(region)
            return await operation(region)

        if config is None:
            # Retries disabled: one attempt on the first candidate, no rotation
            return await bound_operation()

        async def rotate_on_quota(error: BaseException, classification: ErrorClassification) -> None:
            if classification is not ErrorClassification.QUOTA:
                return
            previous = cursor.current
            region = cursor.advance()
            if region == previous:
                self.logger.info(
                    f"ℹ️  Quota error in fallback region {region} for {operation_name}; staying on it"
                )
                return
            self.logger.warning(
                f"⚠️  Quota exhausted in {previous} for {operation_name}, rotating to {region}"
            )
            await self.executor.emit_event(
                RetryEvent.REGION_ROTATED,
                {"operation": operation_name, "from_region": previous, "to_region": region},
            )

        state = RetryState()
        try:
            return await self.executor.execute(
                bound_operation,
                config,
                state,
                operation_name=operation_name,
                on_retry=on_retry,
                before_retry=rotate_on_quota,
                event_context=lambda: {"region": cursor.current},
            )
        except Exception:
            if not self._should_try_fallback(state, cursor):
                raise

        fallback = self.config.fallback
        self.logger.warning(
            f"⚠️  Retry budget exhausted for {operation_name} (last region: {tried_regions[-1]}). "
            f"Trying fallback region {fallback} once."
        )
        await self.executor.emit_event(
            RetryEvent.FALLBACK_ATTEMPT, {"operation": operation_name, "region": fallback}
        )

        async def fallback_operation() -> T:
            tried_regions.append(fallback)
            return await operation(fallback)

        try:
            result = await self.executor.attempt_once(
                fallback_operation,
                config,
                operation_name=operation_name,
                context={"region": fallback},
            )
        except Exception as fallback_error:
            self.logger.error(
                f"✗ Fallback region {fallback} also failed for {operation_name}: "
                f"{type(fallback_error).__name__} - {str(fallback_error)[:150]}"
            )
            raise
        self.logger.info(f"✓ SUCCESS on fallback region {fallback} for {operation_name}")
        return result
