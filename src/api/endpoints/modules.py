"""
모듈 엔드포인트 모듈

모듈 메타데이터, 의존성 릴리스 목록, 검색, 아카이브 다운로드를 제공합니다.
"""

import re
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse

from ...exceptions import ModuleNotFoundException
from ...forge.orchestrator import ModuleForge
from ...models.base import ModuleIdentity
from ...monitoring.metrics import track_request_metrics
from ...utils.helpers import calculate_bytes_hash
from ...utils.logging import get_logger
from ..models import ErrorResponse, ModuleResponse, ReleaseEntry

logger = get_logger(__name__)

# 모듈 라우터
modules_router = APIRouter()

_ARCHIVE_FILENAME = re.compile(r'^(?P<author>[^-/]+)-(?P<name>[^-/]+)-(?P<version>.+)\.tar\.gz$')


def get_forge(request: Request) -> ModuleForge:
    """앱에 등록된 모듈 포지 반환"""
    return request.app.state.forge


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(exclude_none=True)
    )


@modules_router.get("/api/v1/releases.json", tags=["Modules"])
@track_request_metrics("releases")
async def get_releases(
    module: str = Query(..., description="author/name"),
    forge: ModuleForge = Depends(get_forge)
):
    """
    모듈과 모든 의존성의 릴리스 목록

    Args:
        module: 루트 모듈 이름
        forge: 모듈 포지

    Returns:
        모듈 이름 -> 릴리스 항목 목록 (루트 먼저, 이후 발견 순서)
    """
    try:
        identity = ModuleIdentity.parse(module)
    except ValueError:
        return _error(status.HTTP_400_BAD_REQUEST, f"Invalid module name \"{module}\"")

    try:
        closure = await forge.resolve_closure(identity)
    except ModuleNotFoundException as e:
        return _error(status.HTTP_410_GONE, e.message)

    return JSONResponse(content={
        dependency.full_name: [ReleaseEntry.from_release(release).model_dump() for release in releases]
        for dependency, releases in closure.items()
    })


@modules_router.get("/modules.json", tags=["Modules"])
@track_request_metrics("search")
async def search_modules(
    q: Optional[str] = Query(None, description="검색어"),
    forge: ModuleForge = Depends(get_forge)
):
    """모든 백엔드에서 모듈 검색"""
    modules = await forge.search(q)
    return [
        ModuleResponse.from_releases(identity, releases).model_dump()
        for identity, releases in modules.items()
    ]


@modules_router.get("/modules/{filename}", tags=["Modules"])
@track_request_metrics("download")
async def download_module(filename: str, forge: ModuleForge = Depends(get_forge)):
    """
    모듈 아카이브 다운로드

    Args:
        filename: author-name-version.tar.gz
        forge: 모듈 포지

    Returns:
        tar.gz 아카이브
    """
    match = _ARCHIVE_FILENAME.match(filename)
    if not match:
        return _error(status.HTTP_404_NOT_FOUND, f"Module file {filename} not found")

    identity = ModuleIdentity(author=match.group("author"), name=match.group("name"))
    handle = await forge.get_module(identity, match.group("version"))
    if handle is None:
        return _error(status.HTTP_404_NOT_FOUND, f"Module file {filename} not found")

    return Response(
        content=handle.content,
        media_type="application/octet-stream",
        headers={
            "Content-Disposition": f'attachment; filename="{handle.filename}"',
            "ETag": f'"{calculate_bytes_hash(handle.content)}"',
        },
    )


@modules_router.get("/{author}/{module}.json", tags=["Modules"])
@track_request_metrics("module")
async def get_module_metadata(author: str, module: str, forge: ModuleForge = Depends(get_forge)):
    """
    모듈의 전체 버전 메타데이터

    Args:
        author: 모듈 작성자
        module: 모듈 이름
        forge: 모듈 포지

    Returns:
        모듈 정보와 릴리스 버전 목록
    """
    try:
        identity = ModuleIdentity(author=author, name=module)
    except ValueError:
        return _error(status.HTTP_410_GONE, f"Could not find module \"{module}\"")

    releases = await forge.get_metadata(identity)
    if not releases:
        return _error(status.HTTP_410_GONE, f"Could not find module \"{module}\"")

    return ModuleResponse.from_releases(identity, releases).model_dump()
