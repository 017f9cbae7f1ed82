"""
모듈 포지 오케스트레이터 모듈

설정에 따라 백엔드들을 구성하고, 모듈 조회의 모든 기능을 통합하는
메인 인터페이스를 제공합니다.
"""

from pathlib import Path
from typing import Optional

from ..config.settings import BackendConfig, Settings
from ..models.base import ArchiveHandle, ModuleIdentity, Release
from ..models.enums import BackendType
from ..utils.helpers import ensure_directory, sanitize_filename
from ..utils.logging import get_logger
from ..vcs.mirror import VersionSource
from ..vcs.transport import CommandRunner, GitCommandRunner
from .aggregator import ReleaseAggregator
from .archive import ArchiveProducer
from .metadata import ManifestParser
from .multiplexer import BackendMultiplexer
from .repository import DirectoryBackend, ForgeBackendBase, GitBackend, ProxyBackend

logger = get_logger(__name__)


class ModuleForge:
    """모듈 포지 오케스트레이터"""

    def __init__(self, settings: Optional[Settings] = None, runner: Optional[CommandRunner] = None):
        """
        모듈 포지 초기화

        Args:
            settings: 시스템 설정 (None이면 기본 설정 사용)
            runner: git 명령 실행기 (None이면 GitPython 실행기)
        """
        if settings is None:
            from ..config.settings import get_settings
            settings = get_settings()

        self.settings = settings
        self.logger = logger
        self.cache_dir = ensure_directory(settings.cache_dir)
        self.runner = runner or GitCommandRunner(timeout=settings.git_timeout)
        self.parser = ManifestParser()
        self.archiver = ArchiveProducer()

        self.multiplexer = BackendMultiplexer(
            self._create_backend(config) for config in settings.forge_backends
        )
        self.aggregator = ReleaseAggregator(self.multiplexer)

        self.logger.info(f"모듈 포지 초기화 완료: 백엔드 {len(self.multiplexer)}개")

    def _create_backend(self, config: BackendConfig) -> ForgeBackendBase:
        """설정에 따른 백엔드 인스턴스 생성"""
        if config.type == BackendType.GIT:
            if not (config.author and config.name and config.source):
                raise ValueError("git 백엔드 사용 시 author, name, source 가 필요합니다")
            identity = ModuleIdentity(author=config.author, name=config.name)
            version_source = VersionSource(
                config.source,
                self._mirror_path(identity),
                cache_ttl=self.settings.git_cache_ttl,
                runner=self.runner,
            )
            return GitBackend(
                identity,
                version_source,
                version_tag_regex=config.version_tag_regex,
                manifest_path=config.manifest_path,
                parser=self.parser,
                archiver=self.archiver,
            )

        elif config.type == BackendType.DIRECTORY:
            if not config.path:
                raise ValueError("directory 백엔드 사용 시 path 가 필요합니다")
            return DirectoryBackend(config.path, parser=self.parser)

        elif config.type == BackendType.PROXY:
            if not config.url:
                raise ValueError("proxy 백엔드 사용 시 url 이 필요합니다")
            return ProxyBackend(config.url, timeout=self.settings.proxy_timeout)

        else:
            raise ValueError(f"지원하지 않는 백엔드 타입: {config.type}")

    def _mirror_path(self, identity: ModuleIdentity) -> Path:
        return self.cache_dir / sanitize_filename(f"{identity.dashed_name}.git")

    @property
    def backends(self) -> list[ForgeBackendBase]:
        return self.multiplexer.backends

    async def get_module(self, identity: ModuleIdentity, version: str) -> Optional[ArchiveHandle]:
        """
        모듈 아카이브 조회

        Args:
            identity: 모듈 식별자
            version: 버전

        Returns:
            처음으로 찾은 백엔드의 아카이브 (없으면 None)
        """
        self.logger.info(f"모듈 요청: {identity} v{version}")
        return await self.multiplexer.get_module(identity, version)

    async def get_metadata(self, identity: ModuleIdentity) -> list[Release]:
        return await self.multiplexer.get_metadata(identity)

    async def resolve_closure(self, identity: ModuleIdentity) -> dict[ModuleIdentity, list[Release]]:
        return await self.aggregator.resolve_closure(identity)

    async def search(self, query: Optional[str] = None) -> dict[ModuleIdentity, list[Release]]:
        """
        모든 백엔드의 모듈 검색

        Args:
            query: 이름/설명 부분 문자열 (None이면 전체)

        Returns:
            모듈 식별자 -> 릴리스 목록
        """
        keyword = (query or "").strip().lower()
        modules: dict[ModuleIdentity, list[Release]] = {}

        for release in await self.multiplexer.get_all_metadata():
            haystack = f"{release.identity.full_name} {release.description}".lower()
            if keyword and keyword not in haystack:
                continue
            modules.setdefault(release.identity, []).append(release)

        self.logger.debug(f"모듈 검색: '{keyword}' -> {len(modules)}개")
        return modules

    async def clear_cache(self, identity: Optional[ModuleIdentity] = None) -> int:
        """
        git 미러 캐시 강제 무효화

        Args:
            identity: 특정 모듈 (None이면 모든 git 백엔드)

        Returns:
            삭제한 미러 개수
        """
        cleared = 0
        for backend in self.backends:
            if not isinstance(backend, GitBackend):
                continue
            if identity is not None and not backend.owns(identity):
                continue
            await backend.clear_cache()
            cleared += 1

        target = identity or "전체"
        self.logger.info(f"미러 캐시 무효화 완료: {target} ({cleared}개)")
        return cleared

    async def close(self) -> None:
        """백엔드 리소스 정리"""
        await self.multiplexer.close()
