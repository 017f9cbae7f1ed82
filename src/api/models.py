"""
API 요청/응답 모델 모듈

FastAPI용 Pydantic 모델들을 정의합니다.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.base import ModuleIdentity, Release


class ReleaseVersion(BaseModel):
    """모듈 응답의 릴리스 항목"""

    version: str


class ModuleResponse(BaseModel):
    """모듈 메타데이터 응답 모델"""

    author: str = Field(..., description="모듈 작성자")
    full_name: str = Field(..., description="author/name")
    name: str = Field(..., description="모듈 이름")
    desc: str = Field(default="", description="모듈 설명")
    releases: List[ReleaseVersion] = Field(default_factory=list, description="릴리스 목록")

    @classmethod
    def from_releases(cls, identity: ModuleIdentity, releases: List[Release]) -> "ModuleResponse":
        """
        릴리스 목록으로 응답 생성 (설명은 마지막 릴리스 기준)

        Args:
            identity: 모듈 식별자
            releases: 릴리스 목록

        Returns:
            모듈 응답
        """
        return cls(
            author=identity.author,
            full_name=identity.full_name,
            name=identity.name,
            desc=releases[-1].description if releases else "",
            releases=[ReleaseVersion(version=release.version) for release in releases],
        )


class ReleaseEntry(BaseModel):
    """releases.json 응답의 릴리스 항목"""

    file: str = Field(..., description="아카이브 다운로드 경로")
    version: str
    dependencies: List[List[str]] = Field(
        default_factory=list,
        description="[모듈 이름, 버전 요구사항] 목록"
    )

    @classmethod
    def from_release(cls, release: Release) -> "ReleaseEntry":
        return cls(
            file=f"/modules/{release.archive_name}.tar.gz",
            version=release.version,
            dependencies=[
                [dep.identity.full_name, dep.version_requirement]
                for dep in release.dependencies
            ],
        )


class CacheClearResponse(BaseModel):
    """캐시 무효화 응답 모델"""

    cleared: int = Field(..., description="삭제한 미러 개수", ge=0)
    module: Optional[str] = Field(default=None, description="대상 모듈")


class ErrorResponse(BaseModel):
    """오류 응답 모델"""

    error: str = Field(..., description="오류 메시지")
    code: Optional[str] = Field(default=None, description="오류 코드")
