"""Metrics collection observer."""

import asyncio
import json
from typing import Any

from .base import BaseObserver, RetryEvent


class MetricsObserver(BaseObserver):
    """Collect retry metrics for monitoring (thread-safe)."""

    def __init__(self):
        """Initialize metrics collector."""
        self.metrics = {
            "attempts": 0,
            "successes": 0,
            "failed_attempts": 0,
            "retries_scheduled": 0,
            "timeouts": 0,
            "budgets_exhausted": 0,
            "region_rotations": 0,
            "fallback_attempts": 0,
            "total_retry_delay_ms": 0,
            "attempt_durations": [],
            "error_counts": {},
            "region_counts": {},
        }
        self._lock = asyncio.Lock()

    async def on_event(
        self,
        event: RetryEvent,
        data: dict[str, Any],
    ) -> None:
        """Collect metrics from events (thread-safe)."""
        async with self._lock:
            if event == RetryEvent.ATTEMPT_STARTED:
                self.metrics["attempts"] += 1

            elif event == RetryEvent.ATTEMPT_SUCCEEDED:
                self.metrics["successes"] += 1
                if "duration" in data:
                    self.metrics["attempt_durations"].append(data["duration"])
                if data.get("region"):
                    region = data["region"]
                    self.metrics["region_counts"][region] = (
                        self.metrics["region_counts"].get(region, 0) + 1
                    )

            elif event == RetryEvent.ATTEMPT_FAILED:
                self.metrics["failed_attempts"] += 1
                if "classification" in data:
                    classification = data["classification"]
                    self.metrics["error_counts"][classification] = (
                        self.metrics["error_counts"].get(classification, 0) + 1
                    )

            elif event == RetryEvent.RETRY_SCHEDULED:
                self.metrics["retries_scheduled"] += 1
                self.metrics["total_retry_delay_ms"] += data.get("delay_ms", 0)

            elif event == RetryEvent.TIMEOUT:
                self.metrics["timeouts"] += 1

            elif event == RetryEvent.BUDGET_EXHAUSTED:
                self.metrics["budgets_exhausted"] += 1

            elif event == RetryEvent.REGION_ROTATED:
                self.metrics["region_rotations"] += 1

            elif event == RetryEvent.FALLBACK_ATTEMPT:
                self.metrics["fallback_attempts"] += 1

    async def get_metrics(self) -> dict[str, Any]:
        """Get collected metrics with computed statistics (thread-safe)."""
        async with self._lock:
            durations = self.metrics["attempt_durations"]
            return {
                **self.metrics,
                "avg_attempt_duration": (sum(durations) / len(durations) if durations else 0),
                "attempt_success_rate": (
                    self.metrics["successes"] / self.metrics["attempts"]
                    if self.metrics["attempts"] > 0
                    else 0
                ),
            }

    def reset(self) -> None:
        """Reset all metrics."""
        self.__init__()

    async def export_json(self) -> str:
        """Export metrics as JSON string.

        Returns:
            JSON string containing all metrics and computed statistics
        """
        metrics = await self.get_metrics()
        export_data = {
            **metrics,
            "attempt_durations_count": len(metrics.get("attempt_durations", [])),
        }
        export_data.pop("attempt_durations", None)
        return json.dumps(export_data, indent=2)

    async def export_prometheus(self) -> str:
        """Export metrics in Prometheus text format.

        Returns:
            Prometheus-formatted metrics string

        Example:
            >>> observer = MetricsObserver()
            >>> # ... run requests ...
            >>> prom_text = await observer.export_prometheus()
            >>> print(prom_text)
            # HELP tti_attempts Total attempts started
            # TYPE tti_attempts counter
            tti_attempts 12
            ...
        """
        metrics = await self.get_metrics()

        lines = []

        counters = [
            ("attempts", "Total attempts started"),
            ("successes", "Total successful attempts"),
            ("failed_attempts", "Total failed attempts"),
            ("retries_scheduled", "Total retries scheduled"),
            ("timeouts", "Total attempts abandoned by the timeout guard"),
            ("budgets_exhausted", "Total requests that exhausted a retry budget"),
            ("region_rotations", "Total region rotations on quota errors"),
            ("fallback_attempts", "Total bonus attempts on the fallback region"),
        ]

        for metric_name, help_text in counters:
            lines.append(f"# HELP tti_{metric_name} {help_text}")
            lines.append(f"# TYPE tti_{metric_name} counter")
            lines.append(f"tti_{metric_name} {metrics.get(metric_name, 0)}")
            lines.append("")

        gauges = [
            ("avg_attempt_duration", "Average successful attempt duration in seconds"),
            ("attempt_success_rate", "Share of attempts that succeeded (0.0 to 1.0)"),
            ("total_retry_delay_ms", "Total time scheduled for retry sleeps (milliseconds)"),
        ]

        for metric_name, help_text in gauges:
            lines.append(f"# HELP tti_{metric_name} {help_text}")
            lines.append(f"# TYPE tti_{metric_name} gauge")
            lines.append(f"tti_{metric_name} {metrics.get(metric_name, 0)}")
            lines.append("")

        error_counts = metrics.get("error_counts", {})
        if error_counts:
            lines.append("# HELP tti_errors_total Failed attempts by classification")
            lines.append("# TYPE tti_errors_total counter")
            for classification, count in error_counts.items():
                safe_label = classification.replace('"', '\\"')
                lines.append(f'tti_errors_total{{classification="{safe_label}"}} {count}')
            lines.append("")

        region_counts = metrics.get("region_counts", {})
        if region_counts:
            lines.append("# HELP tti_region_successes_total Successful attempts by region")
            lines.append("# TYPE tti_region_successes_total counter")
            for region, count in region_counts.items():
                safe_label = region.replace('"', '\\"')
                lines.append(f'tti_region_successes_total{{region="{safe_label}"}} {count}')
            lines.append("")

        return "\n".join(lines)

    async def export_dict(self) -> dict[str, Any]:
        """Export metrics as a dictionary."""
        return await self.get_metrics()
