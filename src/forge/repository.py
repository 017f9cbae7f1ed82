"""
모듈 백엔드 통합 모듈

Git 저장소, 로컬 디렉토리, 상위 포지에서 모듈 메타데이터와 아카이브를
조회하는 백엔드들을 제공합니다. 모든 백엔드는 같은 세 가지 질의에 답합니다.
"""

import asyncio
import re
import tarfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional, Union

import aiohttp
from pydantic import ValidationError

from ..config.settings import DEFAULT_VERSION_TAG_REGEX
from ..exceptions import ManifestParseException, ReleaseNotFoundException, SourceUnavailableException
from ..models.base import ArchiveHandle, DependencyRef, ModuleIdentity, Release
from ..utils.logging import get_logger
from ..vcs.mirror import VersionSource
from .archive import METADATA_FILENAME, ArchiveProducer
from .metadata import ManifestParser

logger = get_logger(__name__)


class ForgeBackendBase(ABC):
    """모듈 백엔드 기본 추상 클래스"""

    def __init__(self):
        self.logger = logger

    @abstractmethod
    async def get_module(self, identity: ModuleIdentity, version: str) -> Optional[ArchiveHandle]:
        """
        모듈 아카이브 조회 (추상 메서드)

        Args:
            identity: 모듈 식별자
            version: 버전

        Returns:
            아카이브 핸들 (이 백엔드 소유가 아니거나 버전이 없으면 None)
        """
        pass

    @abstractmethod
    async def get_metadata(self, identity: ModuleIdentity) -> list[Release]:
        """
        모듈의 릴리스 목록 조회 (추상 메서드)

        Args:
            identity: 모듈 식별자

        Returns:
            릴리스 목록 (이 백엔드 소유가 아니면 빈 목록)
        """
        pass

    @abstractmethod
    async def get_all_metadata(self) -> list[Release]:
        """
        이 백엔드가 가진 모든 릴리스 조회 (추상 메서드)

        Returns:
            릴리스 목록
        """
        pass

    async def clear_cache(self) -> None:
        """로컬 캐시 삭제 (캐시가 없는 백엔드는 아무것도 하지 않음)"""

    async def close(self) -> None:
        """리소스 정리"""


class GitBackend(ForgeBackendBase):
    """git 저장소 태그를 릴리스로 제공하는 단일 모듈 백엔드"""

    def __init__(
        self,
        identity: ModuleIdentity,
        version_source: VersionSource,
        version_tag_regex: Union[str, re.Pattern] = DEFAULT_VERSION_TAG_REGEX,
        manifest_path: str = "Modulefile",
        parser: Optional[ManifestParser] = None,
        archiver: Optional[ArchiveProducer] = None,
    ):
        """
        Git 백엔드 초기화

        Args:
            identity: 이 백엔드가 담당하는 모듈 식별자
            version_source: git 미러 캐시
            version_tag_regex: 릴리스 태그 정규식 (named group 'version' 이 있으면 버전으로 사용)
            manifest_path: 태그 내 매니페스트 파일 경로
            parser: 매니페스트 파서
            archiver: 아카이브 생성기
        """
        super().__init__()
        self.identity = identity
        self.version_source = version_source
        self.version_tag_regex = re.compile(version_tag_regex)
        self.manifest_path = manifest_path
        self.parser = parser or ManifestParser()
        self.archiver = archiver or ArchiveProducer()

    def owns(self, identity: ModuleIdentity) -> bool:
        return identity == self.identity

    def version_for_tag(self, tag: str) -> Optional[str]:
        """태그가 릴리스 태그이면 버전 문자열, 아니면 None"""
        match = self.version_tag_regex.search(tag)
        if not match:
            return None
        if "version" in self.version_tag_regex.groupindex:
            return match.group("version")
        return tag

    async def get_module(self, identity: ModuleIdentity, version: str) -> Optional[ArchiveHandle]:
        """태그를 작업 디렉토리로 풀어 아카이브 생성"""
        if not self.owns(identity):
            return None

        tag = (await self._release_tags()).get(version)
        if tag is None:
            return None

        try:
            return await asyncio.to_thread(self._build_archive, tag, version)
        except (ManifestParseException, ReleaseNotFoundException) as e:
            # 태그가 사라졌거나 매니페스트가 깨진 경우
            self.logger.warning(f"릴리스 제외: {self.identity} 태그 {tag} - {e.message}")
            return None

    async def get_metadata(self, identity: ModuleIdentity) -> list[Release]:
        """릴리스 태그마다 매니페스트를 읽어 릴리스 목록 생성"""
        if not self.owns(identity):
            return []

        releases = []
        for version, tag in (await self._release_tags()).items():
            try:
                releases.append(await asyncio.to_thread(self._read_release, tag, version))
            except (ManifestParseException, ReleaseNotFoundException) as e:
                # 잘못된 릴리스 하나 때문에 전체 조회를 실패시키지 않음
                self.logger.warning(f"릴리스 제외: {self.identity} 태그 {tag} - {e.message}")

        return releases

    async def get_all_metadata(self) -> list[Release]:
        return await self.get_metadata(self.identity)

    async def clear_cache(self) -> None:
        await asyncio.to_thread(self.version_source.clear)

    async def _release_tags(self) -> dict[str, str]:
        """버전 -> 태그 매핑 (태그 이름 순서)"""
        tags = await asyncio.to_thread(self.version_source.list_tags)

        release_tags: dict[str, str] = {}
        for tag in sorted(tags):
            version = self.version_for_tag(tag)
            if version:
                release_tags.setdefault(version, tag)
        return release_tags

    def _read_release(self, tag: str, version: str) -> Release:
        content = self.version_source.read_file(tag, self.manifest_path)
        release = self.parser.parse(content, self.manifest_path, tag=tag)

        if release.identity != self.identity or release.version != version:
            self.logger.debug(
                f"매니페스트 식별자/버전 보정: {release.identity} v{release.version} -> {self.identity} v{version}"
            )
        return release.model_copy(update={"identity": self.identity, "version": version})

    def _build_archive(self, tag: str, version: str) -> ArchiveHandle:
        release = self._read_release(tag, version)
        return self.version_source.materialize(
            tag,
            lambda work_dir: self.archiver.archive(work_dir, release.archive_name, release),
        )

    def __repr__(self) -> str:
        return f"GitBackend({self.identity}, {self.version_source.source!r})"


class DirectoryBackend(ForgeBackendBase):
    """로컬 디렉토리의 tar.gz 아카이브를 제공하는 백엔드"""

    def __init__(self, module_dir: Union[str, Path], parser: Optional[ManifestParser] = None):
        """
        디렉토리 백엔드 초기화

        Args:
            module_dir: `author-name-version.tar.gz` 파일들이 있는 디렉토리
            parser: 매니페스트 파서
        """
        super().__init__()
        self.module_dir = Path(module_dir).expanduser()
        self.parser = parser or ManifestParser()

    async def get_module(self, identity: ModuleIdentity, version: str) -> Optional[ArchiveHandle]:
        archive_path = self.module_dir / f"{identity.dashed_name}-{version}.tar.gz"
        if not archive_path.is_file():
            return None

        content = await asyncio.to_thread(archive_path.read_bytes)
        return ArchiveHandle(filename=archive_path.name, content=content)

    async def get_metadata(self, identity: ModuleIdentity) -> list[Release]:
        releases = await asyncio.to_thread(self._read_all, f"{identity.dashed_name}-*.tar.gz")
        return [release for release in releases if release.identity == identity]

    async def get_all_metadata(self) -> list[Release]:
        return await asyncio.to_thread(self._read_all, "*.tar.gz")

    def _read_all(self, pattern: str) -> list[Release]:
        if not self.module_dir.is_dir():
            self.logger.warning(f"모듈 디렉토리가 없습니다: {self.module_dir}")
            return []

        releases = []
        for archive_path in sorted(self.module_dir.glob(pattern)):
            try:
                releases.append(self._read_archive_metadata(archive_path))
            except (tarfile.TarError, OSError, ManifestParseException) as e:
                self.logger.warning(f"아카이브 메타데이터 읽기 실패: {archive_path.name} - {e}")
        return releases

    def _read_archive_metadata(self, archive_path: Path) -> Release:
        with tarfile.open(archive_path, "r:gz") as tar:
            for member in tar.getmembers():
                parts = member.name.strip("/").split("/")
                if member.isfile() and len(parts) == 2 and parts[1] == METADATA_FILENAME:
                    content = tar.extractfile(member).read()
                    return self.parser.parse(content, METADATA_FILENAME, tag=archive_path.name)

        raise ManifestParseException(f"{METADATA_FILENAME} 이 없습니다", archive_path.name)

    def __repr__(self) -> str:
        return f"DirectoryBackend({str(self.module_dir)!r})"


class ProxyBackend(ForgeBackendBase):
    """상위 포지의 releases API 를 중계하는 백엔드"""

    def __init__(self, base_url: str, timeout: int = 30):
        """
        프록시 백엔드 초기화

        Args:
            base_url: 상위 포지 기본 URL
            timeout: 요청 타임아웃 (초)
        """
        super().__init__()
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """HTTP 세션 생성"""
        if not self.session:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={
                    'User-Agent': 'Module-Forge/1.0'
                }
            )
        return self.session

    async def get_module(self, identity: ModuleIdentity, version: str) -> Optional[ArchiveHandle]:
        entries = await self._fetch_releases(identity)
        entry = next((e for e in entries if str(e.get("version")) == version), None)
        if not entry or not entry.get("file"):
            return None

        file_path = entry["file"]
        download_url = file_path if "://" in file_path else f"{self.base_url}/{file_path.lstrip('/')}"
        session = await self._get_session()

        try:
            async with session.get(download_url) as response:
                if response.status in (404, 410):
                    return None
                if response.status != 200:
                    raise SourceUnavailableException(self.base_url, f"HTTP {response.status}: {download_url}")
                content = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"상위 포지 다운로드 오류: {download_url} - {e}")
            raise SourceUnavailableException(self.base_url, str(e)) from e

        self.logger.info(f"상위 포지 모듈 다운로드 완료: {identity} v{version}")
        return ArchiveHandle(filename=file_path.rsplit("/", 1)[-1], content=content)

    async def get_metadata(self, identity: ModuleIdentity) -> list[Release]:
        entries = await self._fetch_releases(identity)
        releases = []
        for entry in entries:
            try:
                releases.append(self._to_release(identity, entry))
            except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as e:
                version = entry.get("version") if isinstance(entry, dict) else None
                self.logger.warning(f"상위 포지 릴리스 제외: {identity} v{version} - {e}")
        return releases

    async def get_all_metadata(self) -> list[Release]:
        # 상위 포지 전체 목록은 열거할 수 없음
        return []

    async def _fetch_releases(self, identity: ModuleIdentity) -> list[dict[str, Any]]:
        session = await self._get_session()
        releases_url = f"{self.base_url}/api/v1/releases.json"

        try:
            async with session.get(releases_url, params={"module": identity.full_name}) as response:
                if response.status in (404, 410):
                    return []
                if response.status != 200:
                    raise SourceUnavailableException(self.base_url, f"HTTP {response.status}: {releases_url}")
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"상위 포지 조회 오류: {identity} - {e}")
            raise SourceUnavailableException(self.base_url, str(e)) from e

        if not isinstance(data, dict):
            return []
        return data.get(identity.full_name, [])

    @staticmethod
    def _to_release(identity: ModuleIdentity, entry: dict[str, Any]) -> Release:
        dependencies = []
        for dependency in entry.get("dependencies") or []:
            name, *requirement = dependency
            dependencies.append(
                DependencyRef(
                    identity=ModuleIdentity.parse(name),
                    version_requirement=requirement[0] if requirement else "",
                )
            )
        return Release(
            identity=identity,
            version=str(entry["version"]),
            description=entry.get("description") or "",
            dependencies=dependencies,
        )

    async def close(self) -> None:
        """세션 정리"""
        if self.session:
            await self.session.close()
            self.session = None

    def __repr__(self) -> str:
        return f"ProxyBackend({self.base_url!r})"
