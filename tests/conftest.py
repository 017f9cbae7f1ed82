"""
공통 테스트 픽스처

git 바이너리 없이 미러 캐시를 검증하기 위한 가짜 git 실행기를 제공합니다.
가짜 미러의 태그 상태는 미러 디렉토리 안의 JSON 파일에 저장되므로
디렉토리 이동/삭제가 실제 미러와 같은 방식으로 동작합니다.
"""

import io
import json
import tarfile
import threading
import time
from pathlib import Path
from typing import Optional, Sequence

import pytest

from src.exceptions import GitCommandException
from src.forge.repository import ForgeBackendBase
from src.models.base import ArchiveHandle, DependencyRef, ModuleIdentity, Release
from src.vcs.mirror import VersionSource

STATE_FILE = "fake-tags.json"


class FakeGitRunner:
    """원격 저장소를 메모리에 흉내 내는 git 실행기"""

    def __init__(self, remote_tags: Optional[dict[str, dict[str, str]]] = None, delay: float = 0.0):
        # 태그 -> {파일 경로: 내용}
        self.remote_tags = remote_tags or {}
        self.delay = delay
        self.fail_network = False
        self.calls: list[str] = []
        self.max_active = 0
        self._active = 0
        self._counter_lock = threading.Lock()

    @property
    def network_calls(self) -> int:
        return sum(1 for call in self.calls if call in ("clone", "fetch"))

    def run(self, args: Sequence[str], cwd: Optional[Path] = None) -> bytes:
        with self._counter_lock:
            self._active += 1
            self.max_active = max(self.max_active, self._active)
            self.calls.append(args[0])
        try:
            if self.delay:
                time.sleep(self.delay)
            return self._dispatch(list(args), cwd)
        finally:
            with self._counter_lock:
                self._active -= 1

    def _dispatch(self, args: list[str], cwd: Optional[Path]) -> bytes:
        command = args[0]

        if command == "clone":
            self._check_network("clone")
            destination = Path(args[-1])
            destination.mkdir(parents=True)
            self._write_state(destination)
            return b""

        if command == "fetch":
            self._check_network("fetch")
            self._write_state(cwd)
            return b""

        state = json.loads((cwd / STATE_FILE).read_text(encoding="utf-8"))

        if command == "tag":
            return "".join(f"{tag}\n" for tag in sorted(state)).encode("utf-8")

        if command == "show":
            ref, _, path = args[1].partition(":")
            files = state.get(ref.removeprefix("refs/tags/"))
            if files is None or path not in files:
                raise GitCommandException(" ".join(args), f"fatal: path '{path}' does not exist", 128)
            return files[path].encode("utf-8")

        if command == "archive":
            files = state.get(args[-1].removeprefix("refs/tags/"))
            if files is None:
                raise GitCommandException(" ".join(args), "fatal: not a valid object name", 128)
            return build_tar(files)

        raise GitCommandException(" ".join(args), f"unsupported fake command: {command}", 1)

    def _check_network(self, command: str) -> None:
        if self.fail_network:
            raise GitCommandException(command, "fatal: unable to access remote", 128)

    def _write_state(self, mirror: Path) -> None:
        (mirror / STATE_FILE).write_text(json.dumps(self.remote_tags), encoding="utf-8")


def build_tar(files: dict[str, str]) -> bytes:
    """파일 딕셔너리로 비압축 tar 바이트 생성"""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        for path, content in sorted(files.items()):
            data = content.encode("utf-8")
            info = tarfile.TarInfo(path)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def modulefile(name: str, version: str, *dependencies: tuple[str, str], description: str = "") -> str:
    """테스트용 Modulefile 내용 생성"""
    lines = [f"name '{name}'", f"version '{version}'"]
    if description:
        lines.append(f"description '{description}'")
    lines.extend(f"dependency '{dep}', '{requirement}'" for dep, requirement in dependencies)
    return "\n".join(lines) + "\n"


@pytest.fixture
def apache_tags():
    """puppetlabs/apache 원격 저장소 태그"""
    return {
        "1.0.0": {
            "Modulefile": modulefile(
                "puppetlabs-apache", "1.0.0", ("puppetlabs/stdlib", ">= 2.4.0"), description="Apache module"
            ),
            "manifests/init.pp": "class apache {}\n",
        },
        "1.1.0": {
            "Modulefile": modulefile(
                "puppetlabs-apache", "1.1.0", ("puppetlabs/stdlib", ">= 2.4.0"), description="Apache module"
            ),
            "manifests/init.pp": "class apache { }\n",
        },
        "scratch": {
            "Modulefile": modulefile("puppetlabs-apache", "0.0.1"),
        },
    }


@pytest.fixture
def fake_runner(apache_tags):
    """apache 태그를 가진 가짜 git 실행기"""
    return FakeGitRunner(apache_tags)


@pytest.fixture
def version_source(tmp_path, fake_runner):
    """가짜 실행기를 사용하는 미러 캐시"""
    return VersionSource(
        "https://git.example.com/puppetlabs/apache.git",
        tmp_path / "cache" / "puppetlabs-apache.git",
        cache_ttl=60,
        runner=fake_runner,
    )


class InMemoryBackend(ForgeBackendBase):
    """릴리스 목록을 메모리에 가진 백엔드 (질의 기록 포함)"""

    def __init__(self, releases: Sequence[Release] = (), archives: Optional[dict[tuple[str, str], bytes]] = None):
        super().__init__()
        self.releases = list(releases)
        # (full_name, version) -> 아카이브 바이트
        self.archives = archives or {}
        self.metadata_queries: list[ModuleIdentity] = []
        self.module_queries: list[tuple[ModuleIdentity, str]] = []
        self.cleared = 0
        self.closed = False

    async def get_module(self, identity: ModuleIdentity, version: str) -> Optional[ArchiveHandle]:
        self.module_queries.append((identity, version))
        content = self.archives.get((identity.full_name, version))
        if content is None:
            return None
        return ArchiveHandle(filename=f"{identity.dashed_name}-{version}.tar.gz", content=content)

    async def get_metadata(self, identity: ModuleIdentity) -> list[Release]:
        self.metadata_queries.append(identity)
        return [release for release in self.releases if release.identity == identity]

    async def get_all_metadata(self) -> list[Release]:
        return list(self.releases)

    async def clear_cache(self) -> None:
        self.cleared += 1

    async def close(self) -> None:
        self.closed = True


def release(full_name: str, version: str, *dependencies: str, description: str = "") -> Release:
    """테스트용 릴리스 생성 (의존성은 'author/name' 문자열)"""
    return Release(
        identity=ModuleIdentity.parse(full_name),
        version=version,
        description=description,
        dependencies=[DependencyRef(identity=ModuleIdentity.parse(dep)) for dep in dependencies],
    )
