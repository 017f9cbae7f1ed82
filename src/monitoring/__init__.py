"""
모니터링 시스템

Prometheus 메트릭과 시스템 모니터링을 제공합니다.
"""

from .metrics import (
    MIRROR_SYNC_COUNT,
    REGISTRY,
    REQUEST_COUNT,
    REQUEST_DURATION,
    SYSTEM_CPU,
    SYSTEM_MEMORY,
    get_metrics_summary,
    record_error,
    record_mirror_clear,
    record_mirror_sync,
    track_request_metrics,
    update_system_metrics,
)

__all__ = [
    "REGISTRY",
    "REQUEST_COUNT",
    "REQUEST_DURATION",
    "MIRROR_SYNC_COUNT",
    "SYSTEM_MEMORY",
    "SYSTEM_CPU",
    "get_metrics_summary",
    "record_error",
    "record_mirror_clear",
    "record_mirror_sync",
    "track_request_metrics",
    "update_system_metrics"
]
