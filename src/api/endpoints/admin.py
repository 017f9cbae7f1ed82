"""
관리 엔드포인트 모듈

git 미러 캐시 강제 무효화 같은 유지보수 기능을 제공합니다.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...forge.orchestrator import ModuleForge
from ...models.base import ModuleIdentity
from ...monitoring.metrics import track_request_metrics
from ...utils.logging import get_logger
from ..models import CacheClearResponse
from .modules import get_forge

logger = get_logger(__name__)

# 관리 라우터
admin_router = APIRouter(prefix="/admin")


@admin_router.post("/cache/clear", response_model=CacheClearResponse, tags=["Admin"])
@track_request_metrics("cache_clear")
async def clear_cache(
    module: Optional[str] = Query(None, description="author/name (없으면 전체)"),
    forge: ModuleForge = Depends(get_forge)
):
    """
    git 미러 캐시 삭제

    Args:
        module: 대상 모듈 (선택사항)
        forge: 모듈 포지

    Returns:
        삭제한 미러 개수
    """
    identity = None
    if module:
        try:
            identity = ModuleIdentity.parse(module)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"잘못된 모듈 이름: {module}"
            )

    cleared = await forge.clear_cache(identity)
    logger.info(f"관리자 캐시 무효화 요청 처리: {module or '전체'}")
    return CacheClearResponse(cleared=cleared, module=identity.full_name if identity else None)
