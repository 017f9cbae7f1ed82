"""
버전 관리 소스 패키지

원격 git 저장소의 로컬 미러 캐시와 git 명령 실행 계층을 제공합니다.
"""

from .mirror import DEFAULT_CACHE_TTL_SECONDS, VersionSource
from .transport import CommandRunner, GitCommandRunner

__all__ = [
    "VersionSource",
    "DEFAULT_CACHE_TTL_SECONDS",
    "CommandRunner",
    "GitCommandRunner",
]
