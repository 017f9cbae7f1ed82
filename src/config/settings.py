"""
설정 관리 모듈

환경 변수를 통한 시스템 설정을 관리합니다.
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..exceptions import ConfigurationException
from ..models.enums import BackendType

DEFAULT_VERSION_TAG_REGEX = r"^\d+\.\d+\.\d+$"


class BackendConfig(BaseModel):
    """백엔드 하나의 설정 (목록 순서가 우선순위)"""

    type: BackendType = Field(
        ...,
        description="백엔드 타입"
    )

    # directory 백엔드
    path: Optional[str] = Field(
        default=None,
        description="모듈 아카이브 디렉토리 경로"
    )

    # proxy 백엔드
    url: Optional[str] = Field(
        default=None,
        description="상위 포지 URL"
    )

    # git 백엔드
    author: Optional[str] = Field(
        default=None,
        description="모듈 작성자"
    )
    name: Optional[str] = Field(
        default=None,
        description="모듈 이름"
    )
    source: Optional[str] = Field(
        default=None,
        description="git 원격 저장소 주소"
    )
    version_tag_regex: str = Field(
        default=DEFAULT_VERSION_TAG_REGEX,
        description="릴리스 태그 정규식"
    )
    manifest_path: str = Field(
        default="Modulefile",
        description="태그 내 매니페스트 파일 경로"
    )


class Settings(BaseSettings):
    """시스템 설정 관리 클래스"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        # 환경 변수 이름을 대문자로 변환
        case_sensitive=False,
        extra="ignore",
    )

    # 캐시 설정
    cache_dir: str = Field(
        default="./cache/forge",
        description="git 미러 캐시 디렉토리"
    )
    git_cache_ttl: int = Field(
        default=60,
        description="git 미러 갱신 주기 (초, 0 이하이면 매번 갱신)"
    )
    git_timeout: int = Field(
        default=120,
        description="git 명령 타임아웃 (초)"
    )

    # 프록시 설정
    proxy_timeout: int = Field(
        default=30,
        description="상위 포지 요청 타임아웃 (초)"
    )

    # 백엔드 설정 (JSON 목록)
    forge_backends: list[BackendConfig] = Field(
        default_factory=list,
        description="우선순위 순서의 백엔드 목록"
    )

    # 로깅 설정
    log_level: str = Field(
        default="INFO",
        description="로그 레벨"
    )
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="로그 포맷"
    )
    log_file: Optional[str] = Field(
        default=None,
        description="로그 파일 경로"
    )

    # API 설정
    api_host: str = Field(
        default="0.0.0.0",
        description="API 서버 호스트"
    )
    api_port: int = Field(
        default=8080,
        description="API 서버 포트"
    )
    api_reload: bool = Field(
        default=False,
        description="API 서버 자동 재로드 (개발용)"
    )

    def validate_configuration(self) -> None:
        """설정 유효성 검증"""
        for index, backend in enumerate(self.forge_backends):
            key = f"FORGE_BACKENDS[{index}]"

            if backend.type == BackendType.GIT:
                missing = [
                    field for field in ("author", "name", "source")
                    if not getattr(backend, field)
                ]
                if missing:
                    raise ConfigurationException(
                        key, f"git 백엔드 사용 시 필요합니다: {', '.join(missing)}"
                    )

            elif backend.type == BackendType.DIRECTORY:
                if not backend.path:
                    raise ConfigurationException(key, "directory 백엔드 사용 시 path 가 필요합니다")

            elif backend.type == BackendType.PROXY:
                if not backend.url:
                    raise ConfigurationException(key, "proxy 백엔드 사용 시 url 이 필요합니다")

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigurationException("LOG_LEVEL", f"지원하지 않는 로그 레벨: {self.log_level}")

        # 캐시 디렉토리 생성
        os.makedirs(self.cache_dir, exist_ok=True)


@lru_cache()
def get_settings() -> Settings:
    """
    설정 인스턴스를 반환합니다 (싱글톤 패턴)

    Returns:
        Settings: 설정 인스턴스
    """
    settings = Settings()
    settings.validate_configuration()
    return settings
