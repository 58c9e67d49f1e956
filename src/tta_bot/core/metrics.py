"""
Prometheus Metrics for tta-bot.

Metrics Exposed:
    tta_requests_total                  - Conversion requests by channel and outcome
    tta_synthesis_duration_seconds      - Provider call latency by channel
    tta_audio_bytes_total               - Total audio bytes generated
    tta_files_deleted_total             - Temp files deleted by reason (delayed/sweep)
    tta_pending_deletes                 - Delayed deletes currently scheduled

Usage:
    from tta_bot.core.metrics import metrics

    metrics.record_request(channel="http", status="success", duration=0.8, audio_bytes=48213)
    metrics.record_deleted("sweep", count=3)
    content, content_type = metrics.get_metrics_response()
"""
from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)


class TTAMetrics:
    """
    Metric collection on a private CollectorRegistry.

    Nothing is registered in the prometheus_client default registry, so
    several instances can coexist in one process.
    """

    def __init__(self) -> None:
        self._registry = CollectorRegistry()

        self._requests_total = Counter(
            "tta_requests_total",
            "Text-to-audio requests",
            ["channel", "status"],
            registry=self._registry,
        )
        self._synthesis_duration = Histogram(
            "tta_synthesis_duration_seconds",
            "Speech provider call duration in seconds",
            ["channel"],
            buckets=(0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
            registry=self._registry,
        )
        self._audio_bytes_total = Counter(
            "tta_audio_bytes_total",
            "Total audio bytes generated",
            registry=self._registry,
        )
        self._files_deleted = Counter(
            "tta_files_deleted_total",
            "Temp files deleted",
            ["reason"],
            registry=self._registry,
        )
        self._pending_deletes = Gauge(
            "tta_pending_deletes",
            "Delayed deletes currently scheduled",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record_request(
        self,
        channel: str,
        status: str,
        duration: float | None = None,
        audio_bytes: int = 0,
    ) -> None:
        """
        Record a finished conversion request.

        Args:
            channel: "http" or "chat".
            status: "success", "rejected" or an error code.
            duration: Provider call duration, when the provider was called.
            audio_bytes: Size of generated audio.
        """
        self._requests_total.labels(channel=channel, status=status).inc()
        if duration is not None:
            self._synthesis_duration.labels(channel=channel).observe(duration)
        if audio_bytes > 0:
            self._audio_bytes_total.inc(audio_bytes)

    def record_deleted(self, reason: str, count: int = 1) -> None:
        if count > 0:
            self._files_deleted.labels(reason=reason).inc(count)

    def set_pending_deletes(self, count: int) -> None:
        self._pending_deletes.set(count)

    def get_metrics_response(self) -> tuple[bytes, str]:
        """Get metrics in Prometheus text format as (content, content_type)."""
        return generate_latest(self._registry), CONTENT_TYPE_LATEST


# Global metrics instance
metrics = TTAMetrics()
