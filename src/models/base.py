"""
기본 데이터 모델 모듈

모듈 포지 시스템의 핵심 데이터 구조들을 정의합니다.
"""

import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# author 와 name 사이 구분자로 '/' 와 '-' 를 모두 허용
_FULL_NAME_PATTERN = re.compile(r'^(?P<author>[^/\-]+)[/\-](?P<name>[^/]+)$')


class ModuleIdentity(BaseModel):
    """모듈 식별자 (author, name)"""

    model_config = ConfigDict(frozen=True)

    author: str = Field(
        ...,
        description="모듈 작성자",
        min_length=1
    )
    name: str = Field(
        ...,
        description="모듈 이름",
        min_length=1
    )

    @field_validator('author', 'name')
    @classmethod
    def validate_part(cls, v: str) -> str:
        """식별자 구성 요소 유효성 검사"""
        if '/' in v:
            raise ValueError("모듈 식별자에 '/' 를 포함할 수 없습니다")
        return v

    @classmethod
    def parse(cls, full_name: str) -> "ModuleIdentity":
        """
        'author/name' 또는 'author-name' 형식 문자열 파싱

        Args:
            full_name: 모듈 전체 이름

        Returns:
            모듈 식별자

        Raises:
            ValueError: 형식이 잘못되었을 때
        """
        match = _FULL_NAME_PATTERN.match(full_name.strip())
        if not match:
            raise ValueError(f"잘못된 모듈 이름 형식: {full_name}")
        return cls(author=match.group('author'), name=match.group('name'))

    @property
    def full_name(self) -> str:
        return f"{self.author}/{self.name}"

    @property
    def dashed_name(self) -> str:
        return f"{self.author}-{self.name}"

    def __str__(self) -> str:
        return self.full_name


class DependencyRef(BaseModel):
    """의존성 참조 (버전 요구사항은 해석하지 않고 그대로 전달)"""

    model_config = ConfigDict(frozen=True)

    identity: ModuleIdentity
    version_requirement: str = Field(
        default="",
        description="버전 요구사항 문자열"
    )


class Release(BaseModel):
    """태그 하나의 매니페스트에서 파싱된 릴리스 정보"""

    model_config = ConfigDict(frozen=True)

    identity: ModuleIdentity
    version: str = Field(
        ...,
        description="버전 문자열 (정렬하지 않음)",
        min_length=1
    )
    description: str = Field(
        default="",
        description="모듈 설명"
    )
    dependencies: List[DependencyRef] = Field(
        default_factory=list,
        description="선언 순서대로의 의존성 목록"
    )

    # Modulefile / metadata.json 부가 정보
    summary: Optional[str] = None
    license: Optional[str] = None
    source: Optional[str] = None
    project_page: Optional[str] = None

    @property
    def archive_name(self) -> str:
        """아카이브 최상위 디렉토리 이름"""
        return f"{self.identity.dashed_name}-{self.version}"

    def to_metadata(self) -> dict:
        """
        metadata.json 형식 딕셔너리로 변환

        Returns:
            metadata.json 딕셔너리 (None 값 제외)
        """
        metadata = {
            "name": self.identity.dashed_name,
            "version": self.version,
            "author": self.identity.author,
            "summary": self.summary,
            "description": self.description,
            "license": self.license,
            "source": self.source,
            "project_page": self.project_page,
            "dependencies": [
                {
                    "name": dep.identity.full_name,
                    "version_requirement": dep.version_requirement,
                }
                for dep in self.dependencies
            ],
        }
        return {key: value for key, value in metadata.items() if value is not None}


class ArchiveHandle(BaseModel):
    """백엔드가 생성한 모듈 아카이브 (코어에서는 캐시하지 않음)"""

    model_config = ConfigDict(frozen=True)

    filename: str = Field(
        ...,
        description="권장 파일 이름",
        min_length=1
    )
    content: bytes = Field(
        ...,
        description="아카이브 바이트"
    )

    @property
    def size(self) -> int:
        return len(self.content)
