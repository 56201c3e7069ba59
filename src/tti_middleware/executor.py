"""Retry executor: runs one logical request across transient failures.

The executor owns the attempt loop for a single invocation. Each failed
attempt is classified and charged to one of two independent budgets:

1. **General budget** (``max_retries``): server, network and quota errors,
   with capped exponential backoff and optional jitter
2. **Timeout budget** (``timeout_retries``): attempts abandoned by the
   timeout guard, with a fixed delay

Non-retryable errors are re-raised immediately. When a budget runs out the
last real error is re-raised; no summary error is ever synthesized.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from .core.config import DEFAULT_RETRY_CONFIG, RetryConfig, resolve_retry_config
from .core.protocols import OnRetryFunc, Operation, SleepFunc
from .observers import ExecutorObserver, RetryEvent
from .strategies import (
    DefaultErrorClassifier,
    DelayStrategy,
    ErrorClassification,
    ErrorClassifier,
    ExponentialBackoffStrategy,
)
from .timeout import with_timeout

T = TypeVar("T")

# Awaited once per scheduled retry, before on_retry and the sleep
BeforeRetryFunc = Callable[[BaseException, ErrorClassification], Awaitable[None]]


class RetryOutcome(Enum):
    """Terminal states of the attempt loop."""

    SUCCEEDED = "succeeded"
    NON_RETRYABLE = "non_retryable"
    BUDGET_EXHAUSTED = "budget_exhausted"
    TIMEOUT_BUDGET_EXHAUSTED = "timeout_budget_exhausted"
    CEILING_REACHED = "ceiling_reached"


@dataclass
class RetryState:
    """
    Counters for one invocation of the attempt loop.

    Attributes:
        general_retry_count: Retries charged to the general budget
        timeout_retry_count: Retries charged to the timeout budget
        attempt_index: 1-based index of the current attempt
        last_error: Most recent failure, if any
        last_classification: Classification of the most recent failure
        outcome: Terminal state, set when the loop returns or raises
    """

    general_retry_count: int = 0
    timeout_retry_count: int = 0
    attempt_index: int = 0
    last_error: BaseException | None = None
    last_classification: ErrorClassification | None = None
    outcome: RetryOutcome | None = None


class RetryExecutor:
    """
    Executes async operations with classification-driven retries.

    One executor can serve many concurrent requests: all per-request state
    lives in a RetryState created for each call to run().
    """

    def __init__(
        self,
        error_classifier: ErrorClassifier | None = None,
        delay_strategy: DelayStrategy | None = None,
        observers: list[ExecutorObserver] | None = None,
        sleep: SleepFunc | None = None,
        logger: logging.Logger | None = None,
        defaults: RetryConfig = DEFAULT_RETRY_CONFIG,
    ):
        """
        Initialize the retry executor.

        Args:
            error_classifier: Strategy for classifying errors (default: DefaultErrorClassifier)
            delay_strategy: Strategy for delays between attempts (default: ExponentialBackoffStrategy)
            observers: List of observers for events
            sleep: Coroutine function taking seconds (default: asyncio.sleep)
            logger: Logger for retry messages (default: this module's logger)
            defaults: Baseline policy merged with request-level overrides
        """
        self.logger = logger or logging.getLogger(__name__)
        self.error_classifier = error_classifier or DefaultErrorClassifier(logger=self.logger)
        self.delay_strategy = delay_strategy or ExponentialBackoffStrategy()
        self.observers = observers or []
        self._sleep = sleep or asyncio.sleep
        self.defaults = defaults

    def resolve(self, retry: "bool | Mapping[str, Any] | RetryConfig | Any | None") -> RetryConfig | None:
        """Resolve a request-level retry option against this executor's defaults."""
        if isinstance(retry, RetryConfig):
            retry.validate()
            return retry
        return resolve_retry_config(retry, self.defaults)

    async def emit_event(self, event: RetryEvent, data: dict | None = None) -> None:
        """Emit event to all observers."""
        if not self.observers:
            return

        event_data = data or {}
        for observer in self.observers:
            try:
                await asyncio.wait_for(
                    observer.on_event(event, event_data),
                    timeout=5.0,  # 5 second timeout for observer callbacks
                )
            except TimeoutError:
                self.logger.warning(
                    f"⚠️  Observer callback timed out after 5s for event {event.name}"
                )
            except Exception as e:
                self.logger.warning(f"⚠️  Observer error: {e}")

    def _notify_on_retry(
        self, on_retry: OnRetryFunc | None, error: BaseException, attempt: int
    ) -> None:
        """Call the on_retry hook; a failing hook never aborts the retry."""
        if on_retry is None:
            return
        try:
            on_retry(error, attempt)
        except Exception as hook_error:
            self.logger.warning(
                f"⚠️  on_retry hook raised {type(hook_error).__name__}: {hook_error}. "
                f"Continuing with retry."
            )

    async def run(
        self,
        operation: Operation[T],
        retry: "bool | Mapping[str, Any] | RetryConfig | Any | None" = None,
        *,
        operation_name: str = "operation",
        on_retry: OnRetryFunc | None = None,
    ) -> T:
        """
        Run ``operation`` under the retry policy selected by ``retry``.

        Args:
            operation: Zero-argument coroutine function, awaited once per attempt
            retry: False to disable retries, True/None for defaults, or partial options
            operation_name: Name used in logs and timeout messages
            on_retry: Optional hook called as on_retry(error, attempt) before each sleep

        Returns:
            The first successful result

        Raises:
            The last classified error, or OperationTimeoutError when the
            timeout budget is exhausted
        """
        config = self.resolve(retry)
        if config is None:
            # Retries disabled: single attempt, errors propagate untouched
            return await operation()
        return await self.execute(
            operation, config, RetryState(), operation_name=operation_name, on_retry=on_retry
        )

    async def execute(
        self,
        operation: Operation[T],
        config: RetryConfig,
        state: RetryState,
        *,
        operation_name: str = "operation",
        on_retry: OnRetryFunc | None = None,
        before_retry: BeforeRetryFunc | None = None,
        event_context: Callable[[], dict[str, Any]] | None = None,
    ) -> T:
        """
        Run the attempt loop with a resolved policy and a fresh state.

        ``before_retry`` is awaited once for every retry that will actually
        happen, after its delay is known and before on_retry and the sleep.
        The region rotator uses it to move to the next region.
        """
        max_attempts = config.absolute_max_attempts

        for attempt in range(1, max_attempts + 1):
            state.attempt_index = attempt
            context = event_context() if event_context else {}
            await self.emit_event(
                RetryEvent.ATTEMPT_STARTED,
                {"operation": operation_name, "attempt": attempt, **context},
            )
            if attempt > 1:
                self.logger.info(f"ℹ️  Retry attempt {attempt} for {operation_name}")
            start_time = time.time()

            try:
                result = await with_timeout(operation, config.timeout_ms, operation_name)
            except Exception as e:
                state.last_error = e
                classification = self.error_classifier.classify(e)
                state.last_classification = classification
                await self.emit_event(
                    RetryEvent.ATTEMPT_FAILED,
                    {
                        "operation": operation_name,
                        "attempt": attempt,
                        "classification": classification.value,
                        "error_type": type(e).__name__,
                        **context,
                    },
                )
                error_snippet = str(e)[:150]

                if classification is ErrorClassification.NON_RETRYABLE:
                    state.outcome = RetryOutcome.NON_RETRYABLE
                    self.logger.debug(f"Error not retryable: {type(e).__name__} - {error_snippet}")
                    raise

                if classification is ErrorClassification.TIMEOUT:
                    state.timeout_retry_count += 1
                    await self.emit_event(
                        RetryEvent.TIMEOUT,
                        {"operation": operation_name, "attempt": attempt, **context},
                    )
                    if state.timeout_retry_count > config.timeout_retries:
                        state.outcome = RetryOutcome.TIMEOUT_BUDGET_EXHAUSTED
                        self.logger.error(
                            f"✗ TIMEOUT BUDGET EXHAUSTED for {operation_name} after "
                            f"{state.timeout_retry_count} timeout(s) of {config.timeout_ms}ms"
                        )
                        await self.emit_event(
                            RetryEvent.BUDGET_EXHAUSTED,
                            {"operation": operation_name, "budget": "timeout", **context},
                        )
                        raise
                    delay_ms = self.delay_strategy.timeout_delay(state.timeout_retry_count, config)
                    budget_text = f"timeout retry {state.timeout_retry_count}/{config.timeout_retries}"
                else:
                    # RETRYABLE and QUOTA share the general budget
                    state.general_retry_count += 1
                    if state.general_retry_count > config.max_retries:
                        state.outcome = RetryOutcome.BUDGET_EXHAUSTED
                        self.logger.error(
                            f"✗ ALL {config.max_retries} RETRIES EXHAUSTED for {operation_name}:\n"
                            f"  Final error type: {type(e).__name__}\n"
                            f"  Final error message: {str(e)[:500]}"
                        )
                        await self.emit_event(
                            RetryEvent.BUDGET_EXHAUSTED,
                            {"operation": operation_name, "budget": "general", **context},
                        )
                        raise
                    delay_ms = self.delay_strategy.retry_delay(state.general_retry_count, config)
                    budget_text = f"retry {state.general_retry_count}/{config.max_retries}"

                if before_retry is not None:
                    await before_retry(e, classification)
                self._notify_on_retry(on_retry, e, attempt)

                self.logger.warning(
                    f"⚠️  Attempt {attempt} failed for {operation_name} "
                    f"({classification.value}): {type(e).__name__} - {error_snippet}. "
                    f"{budget_text.capitalize()} in {delay_ms}ms..."
                )
                await self.emit_event(
                    RetryEvent.RETRY_SCHEDULED,
                    {
                        "operation": operation_name,
                        "attempt": attempt,
                        "delay_ms": delay_ms,
                        "classification": classification.value,
                    },
                )
                if delay_ms > 0:
                    await self._sleep(delay_ms / 1000)
                continue

            state.outcome = RetryOutcome.SUCCEEDED
            duration = time.time() - start_time
            if attempt > 1:
                self.logger.info(
                    f"✓ SUCCESS on attempt {attempt} for {operation_name} "
                    f"(after {attempt - 1} failure(s), took {duration:.1f}s)"
                )
            await self.emit_event(
                RetryEvent.ATTEMPT_SUCCEEDED,
                {"operation": operation_name, "attempt": attempt, "duration": duration, **context},
            )
            return result

        # Unreachable given the budget accounting above
        state.outcome = RetryOutcome.CEILING_REACHED
        self.logger.error(
            f"✗ Attempt ceiling of {max_attempts} reached for {operation_name} without a decision"
        )
        if state.last_error is None:
            raise RuntimeError(f"Unexpected: no attempts were made for {operation_name}")
        raise state.last_error

    async def attempt_once(
        self,
        operation: Operation[T],
        config: RetryConfig,
        *,
        operation_name: str = "operation",
        context: dict[str, Any] | None = None,
    ) -> T:
        """Run a single guarded attempt outside any retry budget."""
        context = context or {}
        await self.emit_event(
            RetryEvent.ATTEMPT_STARTED, {"operation": operation_name, "attempt": 0, **context}
        )
        start_time = time.time()
        try:
            result = await with_timeout(operation, config.timeout_ms, operation_name)
        except Exception as e:
            await self.emit_event(
                RetryEvent.ATTEMPT_FAILED,
                {
                    "operation": operation_name,
                    "attempt": 0,
                    "classification": self.error_classifier.classify(e).value,
                    "error_type": type(e).__name__,
                    **context,
                },
            )
            raise
        await self.emit_event(
            RetryEvent.ATTEMPT_SUCCEEDED,
            {
                "operation": operation_name,
                "attempt": 0,
                "duration": time.time() - start_time,
                **context,
            },
        )
        return result
