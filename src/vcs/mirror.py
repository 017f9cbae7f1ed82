"""
git 미러 캐시 모듈

원격 git 저장소의 로컬 bare 미러를 관리합니다.
미러는 TTL 안에서는 네트워크 동기화 없이 재사용되고, TTL이 지나면
태그만 증분 fetch 합니다. 미러를 건드리는 모든 작업은 소스별 락으로 직렬화됩니다.
"""

import io
import shutil
import tarfile
import threading
import time
import uuid
from pathlib import Path
from typing import Callable, Optional, TypeVar, Union

from ..exceptions import GitCommandException, ReleaseNotFoundException, SourceUnavailableException
from ..monitoring.metrics import record_mirror_clear, record_mirror_sync
from ..utils.helpers import ensure_directory, temp_directory
from ..utils.logging import get_logger
from .transport import CommandRunner, GitCommandRunner

logger = get_logger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 60

# bare 미러 안에서 마지막 fetch 시각을 나타내는 파일 (mtime 기준)
FETCH_MARKER = "FETCH_HEAD"

T = TypeVar("T")


class VersionSource:
    """원격 git 저장소 하나에 대한 TTL 기반 미러 캐시"""

    def __init__(
        self,
        source: str,
        cache_path: Union[str, Path],
        cache_ttl: int = DEFAULT_CACHE_TTL_SECONDS,
        runner: Optional[CommandRunner] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        미러 캐시 초기화 (미러는 첫 접근 시 생성)

        Args:
            source: 원격 저장소 URL 또는 경로
            cache_path: bare 미러 디렉토리 경로
            cache_ttl: 갱신 주기 (초, 0 이하이면 매 접근마다 갱신)
            runner: git 명령 실행기 (None이면 GitPython 실행기)
            clock: 현재 시각 함수
        """
        self.source = source
        self.cache_path = Path(cache_path).expanduser().absolute()
        self.cache_ttl = cache_ttl
        self.runner = runner or GitCommandRunner()
        self._clock = clock
        self._lock = threading.RLock()

    @property
    def marker_path(self) -> Path:
        return self.cache_path / FETCH_MARKER

    @property
    def last_fetch_time(self) -> float:
        """마지막 fetch 시각 (기록이 없으면 epoch)"""
        try:
            return self.marker_path.stat().st_mtime
        except FileNotFoundError:
            return 0.0

    def cache_exists(self) -> bool:
        return self.cache_path.is_dir()

    def cache_stale(self) -> bool:
        if self.cache_ttl <= 0:
            return True
        return self._clock() - self.last_fetch_time > self.cache_ttl

    def list_tags(self) -> set[str]:
        """
        미러의 모든 태그 조회

        Returns:
            태그 이름 집합

        Raises:
            SourceUnavailableException: 미러 생성/갱신 실패 시
        """
        with self._lock:
            self._ensure_fresh()
            return self._tags()

    def read_file(self, tag: str, path: str) -> bytes:
        """
        태그 시점의 파일 내용 조회

        Args:
            tag: 태그 이름
            path: 저장소 내 파일 경로

        Returns:
            파일 내용

        Raises:
            ReleaseNotFoundException: 태그 또는 파일이 없을 때
            SourceUnavailableException: 미러 생성/갱신 실패 시
        """
        with self._lock:
            self._ensure_fresh()
            self._require_tag(tag)
            try:
                return self._git("show", f"refs/tags/{tag}:{path}")
            except GitCommandException as e:
                raise ReleaseNotFoundException(tag, path) from e

    def materialize(self, tag: str, body: Callable[[Path], T]) -> T:
        """
        태그를 임시 작업 디렉토리에 풀고 body 실행

        작업 디렉토리는 호출마다 따로 만들어지며 반환 전에 항상 삭제됩니다.
        미러 접근(내보내기)만 락 안에서 수행하고 body는 락 밖에서 실행합니다.

        Args:
            tag: 태그 이름
            body: 작업 디렉토리 경로를 받는 함수

        Returns:
            body의 반환값

        Raises:
            ReleaseNotFoundException: 태그가 없을 때
            SourceUnavailableException: 미러 생성/갱신 실패 시
        """
        with temp_directory("forge-checkout") as work_dir:
            with self._lock:
                self._ensure_fresh()
                self._require_tag(tag)
                try:
                    tar_bytes = self._git("archive", "--format=tar", f"refs/tags/{tag}")
                except GitCommandException as e:
                    raise ReleaseNotFoundException(tag) from e

            with tarfile.open(fileobj=io.BytesIO(tar_bytes), mode="r:") as tar:
                tar.extractall(work_dir, filter="data")

            return body(work_dir)

    def clear(self) -> None:
        """로컬 미러 삭제 (다음 접근 시 다시 생성)"""
        with self._lock:
            if self.cache_path.exists():
                shutil.rmtree(self.cache_path)
                record_mirror_clear()
                logger.info(f"미러 캐시 삭제: {self.source} -> {self.cache_path}")

    def _ensure_fresh(self) -> None:
        if not self.cache_exists():
            self._create_cache()
        elif self.cache_stale():
            self._fetch()

    def _create_cache(self) -> None:
        # 복제는 임시 디렉토리에서 수행하고 성공 시에만 제자리로 옮김
        parent = ensure_directory(self.cache_path.parent)
        staging = parent / f".{self.cache_path.name}.{uuid.uuid4().hex[:8]}.clone"

        logger.info(f"미러 복제 시작: {self.source}")
        started = time.time()
        try:
            self.runner.run(["clone", "--bare", "--quiet", self.source, str(staging)], cwd=parent)
            staging.rename(self.cache_path)
        except GitCommandException as e:
            record_mirror_sync("clone", False, time.time() - started)
            logger.error(f"미러 복제 실패: {self.source} - {e.error_detail}")
            raise SourceUnavailableException(self.source, e.error_detail) from e
        finally:
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)

        self.marker_path.touch()
        record_mirror_sync("clone", True, time.time() - started)
        logger.info(f"미러 복제 완료: {self.source} -> {self.cache_path}")

    def _fetch(self) -> None:
        logger.info(f"미러 갱신 시작: {self.source}")
        started = time.time()
        try:
            self._git("fetch", "--quiet", "--force", "--tags", "--prune", "--prune-tags", "origin")
        except GitCommandException as e:
            # 실패 시 마커를 갱신하지 않으므로 다음 접근에서 다시 시도
            record_mirror_sync("fetch", False, time.time() - started)
            logger.error(f"미러 갱신 실패: {self.source} - {e.error_detail}")
            raise SourceUnavailableException(self.source, e.error_detail) from e

        self.marker_path.touch()
        record_mirror_sync("fetch", True, time.time() - started)
        logger.debug(f"미러 갱신 완료: {self.source}")

    def _tags(self) -> set[str]:
        try:
            output = self._git("tag", "--list")
        except GitCommandException as e:
            raise SourceUnavailableException(self.source, e.error_detail) from e
        return set(output.decode("utf-8").split())

    def _require_tag(self, tag: str) -> None:
        if tag not in self._tags():
            raise ReleaseNotFoundException(tag)

    def _git(self, *args: str) -> bytes:
        return self.runner.run(list(args), cwd=self.cache_path)

    def __repr__(self) -> str:
        return f"VersionSource(source={self.source!r}, cache_path={str(self.cache_path)!r})"
