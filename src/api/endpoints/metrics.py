"""
메트릭 엔드포인트 모듈

Prometheus 메트릭을 HTTP 엔드포인트로 노출합니다.
"""

from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ...monitoring.metrics import REGISTRY, get_metrics_summary, update_system_metrics
from ...utils.logging import get_logger

logger = get_logger(__name__)

# 메트릭 라우터
metrics_router = APIRouter()


@metrics_router.get("/metrics", tags=["Monitoring"])
async def get_prometheus_metrics(request: Request, background_tasks: BackgroundTasks):
    """
    Prometheus 메트릭 노출

    Args:
        request: 요청 (앱 설정 조회용)
        background_tasks: 백그라운드 작업

    Returns:
        Prometheus 형식의 메트릭
    """
    # 응답 후 시스템 메트릭 갱신 (다음 수집에 반영)
    background_tasks.add_task(update_system_metrics, request.app.state.settings.cache_dir)

    metrics_data = generate_latest(REGISTRY)
    logger.debug("Prometheus 메트릭 생성 완료")

    return Response(
        content=metrics_data,
        media_type=CONTENT_TYPE_LATEST
    )


@metrics_router.get("/metrics/summary", tags=["Monitoring"])
async def get_metrics_summary_endpoint(request: Request) -> Dict[str, Any]:
    """
    메트릭 요약 정보

    Returns:
        미러 동기화 횟수와 시스템 상태 요약
    """
    return get_metrics_summary(request.app.state.settings.cache_dir)
