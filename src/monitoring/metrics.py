"""
Prometheus 메트릭 모듈

API 요청, git 미러 동기화, 캐시 디스크 사용량 메트릭을 수집하고 노출합니다.
"""

import platform
import sys
import time
from functools import wraps
from typing import Any, Optional

import psutil
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Info

from ..utils.logging import get_logger

# 메트릭 레지스트리
REGISTRY = CollectorRegistry()

# 로거
logger = get_logger(__name__)

# 요청 관련 메트릭
REQUEST_COUNT = Counter(
    'forge_requests_total',
    '총 API 요청 수',
    ['endpoint', 'status'],
    registry=REGISTRY
)

REQUEST_DURATION = Histogram(
    'forge_request_duration_seconds',
    'API 요청 처리 시간 (초)',
    ['endpoint'],
    registry=REGISTRY
)

# 미러 캐시 관련 메트릭
MIRROR_SYNC_COUNT = Counter(
    'forge_mirror_sync_total',
    'git 미러 동기화 횟수',
    ['operation', 'status'],
    registry=REGISTRY
)

MIRROR_SYNC_DURATION = Histogram(
    'forge_mirror_sync_duration_seconds',
    'git 미러 동기화 시간 (초)',
    ['operation'],
    registry=REGISTRY
)

MIRROR_CLEARS = Counter(
    'forge_mirror_clears_total',
    'git 미러 강제 삭제 횟수',
    registry=REGISTRY
)

# 시스템 리소스 메트릭
SYSTEM_MEMORY = Gauge(
    'system_memory_usage_percent',
    '시스템 메모리 사용률 (%)',
    registry=REGISTRY
)

SYSTEM_CPU = Gauge(
    'system_cpu_usage_percent',
    '시스템 CPU 사용률 (%)',
    registry=REGISTRY
)

CACHE_DISK_USAGE = Gauge(
    'forge_cache_disk_usage_percent',
    '미러 캐시 디렉토리가 있는 디스크 사용률 (%)',
    ['cache_dir'],
    registry=REGISTRY
)

# 오류 관련 메트릭
ERROR_COUNT = Counter(
    'forge_errors_total',
    '모듈 포지 오류 총 수',
    ['error_type', 'component'],
    registry=REGISTRY
)

# 시스템 정보
SYSTEM_INFO = Info(
    'forge_system_info',
    '모듈 포지 시스템 정보',
    registry=REGISTRY
)

SYSTEM_INFO.info({
    'version': '1.0.0',
    'python_version': f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
    'platform': platform.system()
})


def track_request_metrics(endpoint: str):
    """
    요청 메트릭 추적 데코레이터

    4xx/5xx 응답 객체를 반환하거나 예외가 발생하면 error 로 기록합니다.

    Args:
        endpoint: 엔드포인트 이름
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                REQUEST_COUNT.labels(endpoint=endpoint, status='error').inc()
                record_error(type(e).__name__, 'api')
                raise
            else:
                status_code = getattr(result, 'status_code', 200)
                status = 'error' if status_code >= 400 else 'success'
                REQUEST_COUNT.labels(endpoint=endpoint, status=status).inc()
                return result
            finally:
                REQUEST_DURATION.labels(endpoint=endpoint).observe(time.time() - start_time)

        return wrapper
    return decorator


def record_mirror_sync(operation: str, success: bool, duration: float) -> None:
    """
    미러 동기화 기록

    Args:
        operation: clone 또는 fetch
        success: 성공 여부
        duration: 소요 시간 (초)
    """
    status = 'success' if success else 'error'
    MIRROR_SYNC_COUNT.labels(operation=operation, status=status).inc()
    MIRROR_SYNC_DURATION.labels(operation=operation).observe(duration)
    logger.debug(f"미러 동기화 기록: {operation} - {status} ({duration:.2f}초)")


def record_mirror_clear() -> None:
    MIRROR_CLEARS.inc()


def record_error(error_type: str, component: str):
    """
    오류 발생 기록

    Args:
        error_type: 오류 타입
        component: 오류가 발생한 컴포넌트
    """
    ERROR_COUNT.labels(error_type=error_type, component=component).inc()
    logger.warning(f"오류 기록: {component} - {error_type}")


async def update_system_metrics(cache_dir: Optional[str] = None):
    """
    시스템 메트릭 업데이트

    Args:
        cache_dir: 디스크 사용률을 측정할 미러 캐시 디렉토리
    """
    try:
        memory_info = psutil.virtual_memory()
        SYSTEM_MEMORY.set(memory_info.percent)

        # 직전 호출 이후의 평균 (대기하지 않음)
        cpu_percent = psutil.cpu_percent(interval=None)
        SYSTEM_CPU.set(cpu_percent)

        if cache_dir:
            try:
                disk_usage = psutil.disk_usage(cache_dir)
                CACHE_DISK_USAGE.labels(cache_dir=cache_dir).set(disk_usage.percent)
            except OSError as e:
                logger.warning(f"디스크 사용률 측정 실패: {cache_dir} - {e}")

        logger.debug(f"시스템 메트릭 업데이트: CPU {cpu_percent:.1f}%, 메모리 {memory_info.percent:.1f}%")

    except Exception as e:
        logger.error(f"시스템 메트릭 업데이트 오류: {e}")
        record_error(type(e).__name__, 'monitoring')


def get_metrics_summary(cache_dir: Optional[str] = None) -> dict[str, Any]:
    """
    메트릭 요약 정보 반환

    Args:
        cache_dir: 미러 캐시 디렉토리

    Returns:
        메트릭 요약 딕셔너리
    """
    summary: dict[str, Any] = {
        "mirror_sync": {
            operation: {
                status: REGISTRY.get_sample_value(
                    'forge_mirror_sync_total', {'operation': operation, 'status': status}
                ) or 0.0
                for status in ('success', 'error')
            }
            for operation in ('clone', 'fetch')
        },
        "mirror_clears": REGISTRY.get_sample_value('forge_mirror_clears_total') or 0.0,
        "timestamp": time.time(),
    }

    try:
        memory_info = psutil.virtual_memory()
        summary["system"] = {
            "cpu_percent": psutil.cpu_percent(interval=None),
            "memory_percent": memory_info.percent,
            "memory_available_gb": memory_info.available / (1024**3)
        }
        if cache_dir:
            summary["system"]["cache_disk_percent"] = psutil.disk_usage(cache_dir).percent
    except OSError as e:
        logger.error(f"메트릭 요약 생성 오류: {e}")
        summary["error"] = str(e)

    return summary
