"""
모듈 백엔드 테스트

Git, 디렉토리, 프록시 백엔드의 세 가지 질의를 테스트합니다.
"""

import io
import json
import tarfile
from unittest.mock import MagicMock

import aiohttp
import pytest

from src.exceptions import SourceUnavailableException
from src.forge.archive import ArchiveProducer
from src.forge.repository import DirectoryBackend, GitBackend, ProxyBackend
from src.models.base import DependencyRef, ModuleIdentity, Release
from src.vcs.mirror import VersionSource

from .conftest import FakeGitRunner, modulefile

APACHE = ModuleIdentity(author="puppetlabs", name="apache")
STDLIB = ModuleIdentity(author="puppetlabs", name="stdlib")


def read_archive(content: bytes) -> dict[str, bytes]:
    """tar.gz 바이트에서 파일 이름 -> 내용"""
    files = {}
    with tarfile.open(fileobj=io.BytesIO(content), mode="r:gz") as tar:
        for member in tar.getmembers():
            if member.isfile():
                files[member.name] = tar.extractfile(member).read()
    return files


class TestGitBackend:
    """Git 백엔드 테스트"""

    @pytest.fixture
    def backend(self, version_source):
        """apache 모듈 Git 백엔드"""
        return GitBackend(APACHE, version_source)

    @pytest.mark.asyncio
    async def test_릴리스_태그만_메타데이터로_변환(self, backend):
        """버전 형식 태그만 릴리스로 인식 테스트"""
        releases = await backend.get_metadata(APACHE)

        assert [release.version for release in releases] == ["1.0.0", "1.1.0"]
        assert all(release.identity == APACHE for release in releases)
        assert releases[0].description == "Apache module"
        assert releases[0].dependencies == [
            DependencyRef(identity=STDLIB, version_requirement=">= 2.4.0")
        ]

    @pytest.mark.asyncio
    async def test_get_all_metadata_같은_결과(self, backend):
        """전체 메타데이터는 담당 모듈 메타데이터와 동일 테스트"""
        assert await backend.get_all_metadata() == await backend.get_metadata(APACHE)

    @pytest.mark.asyncio
    async def test_다른_모듈_질의는_미러를_건드리지_않음(self):
        """담당하지 않는 모듈 질의 테스트"""
        source = MagicMock(spec=VersionSource)
        backend = GitBackend(APACHE, source)

        assert await backend.get_metadata(STDLIB) == []
        assert await backend.get_module(STDLIB, "1.0.0") is None

        source.list_tags.assert_not_called()
        source.read_file.assert_not_called()
        source.materialize.assert_not_called()

    @pytest.mark.asyncio
    async def test_모듈_아카이브_생성(self, backend):
        """태그로부터 아카이브 생성 테스트"""
        handle = await backend.get_module(APACHE, "1.0.0")

        assert handle.filename == "puppetlabs-apache-1.0.0.tar.gz"

        files = read_archive(handle.content)
        assert files["puppetlabs-apache-1.0.0/manifests/init.pp"] == b"class apache {}\n"
        assert "puppetlabs-apache-1.0.0/Modulefile" in files

        metadata = json.loads(files["puppetlabs-apache-1.0.0/metadata.json"])
        assert metadata["name"] == "puppetlabs-apache"
        assert metadata["version"] == "1.0.0"
        assert metadata["dependencies"] == [
            {"name": "puppetlabs/stdlib", "version_requirement": ">= 2.4.0"}
        ]

    @pytest.mark.asyncio
    async def test_아카이브_결정성(self, backend):
        """같은 태그는 같은 바이트 테스트"""
        first = await backend.get_module(APACHE, "1.1.0")
        second = await backend.get_module(APACHE, "1.1.0")

        assert first.content == second.content

    @pytest.mark.asyncio
    async def test_없는_버전(self, backend):
        """없는 버전 조회 테스트"""
        assert await backend.get_module(APACHE, "9.9.9") is None
        # 릴리스 형식이 아닌 태그는 버전으로 조회할 수 없음
        assert await backend.get_module(APACHE, "scratch") is None

    @pytest.mark.asyncio
    async def test_잘못된_매니페스트는_건너뜀(self, version_source, fake_runner):
        """파싱할 수 없는 태그 제외 테스트"""
        fake_runner.remote_tags["1.2.0"] = {"Modulefile": "this is not a modulefile\n"}
        fake_runner.remote_tags["1.3.0"] = {"README": "매니페스트 없음\n"}
        backend = GitBackend(APACHE, version_source)

        releases = await backend.get_metadata(APACHE)

        assert [release.version for release in releases] == ["1.0.0", "1.1.0"]

    @pytest.mark.asyncio
    async def test_잘못된_매니페스트_아카이브는_None(self, version_source, fake_runner):
        """파싱할 수 없는 태그 다운로드 테스트"""
        fake_runner.remote_tags["1.2.0"] = {"Modulefile": "this is not a modulefile\n"}
        backend = GitBackend(APACHE, version_source)

        assert await backend.get_module(APACHE, "1.2.0") is None
        assert (await backend.get_module(APACHE, "1.1.0")).filename == "puppetlabs-apache-1.1.0.tar.gz"

    @pytest.mark.asyncio
    async def test_태그_버전이_매니페스트보다_우선(self, tmp_path):
        """named group 정규식과 식별자/버전 보정 테스트"""
        runner = FakeGitRunner({
            "v2.0.0": {"Modulefile": modulefile("someone-apache", "0.0.0-dev")},
            "2.0.0-rc1": {"Modulefile": modulefile("puppetlabs-apache", "2.0.0-rc1")},
        })
        source = VersionSource("remote", tmp_path / "mirror.git", runner=runner)
        backend = GitBackend(APACHE, source, version_tag_regex=r"^v(?P<version>\d+\.\d+\.\d+)$")

        releases = await backend.get_metadata(APACHE)

        assert len(releases) == 1
        assert releases[0].identity == APACHE
        assert releases[0].version == "2.0.0"

        handle = await backend.get_module(APACHE, "2.0.0")
        assert handle.filename == "puppetlabs-apache-2.0.0.tar.gz"

    def test_version_for_tag(self, version_source):
        """태그 -> 버전 변환 테스트"""
        backend = GitBackend(APACHE, version_source)

        assert backend.version_for_tag("1.2.3") == "1.2.3"
        assert backend.version_for_tag("v1.2.3") is None
        assert backend.version_for_tag("scratch") is None

    @pytest.mark.asyncio
    async def test_원격_접근_실패_전파(self, backend, fake_runner):
        """미러 생성 실패 시 예외 전파 테스트"""
        fake_runner.fail_network = True

        with pytest.raises(SourceUnavailableException):
            await backend.get_metadata(APACHE)

    @pytest.mark.asyncio
    async def test_캐시_삭제(self, backend, version_source, fake_runner):
        """미러 캐시 삭제 후 재복제 테스트"""
        await backend.get_metadata(APACHE)
        await backend.clear_cache()

        assert version_source.cache_exists() is False

        await backend.get_metadata(APACHE)
        assert fake_runner.calls.count("clone") == 2


class TestDirectoryBackend:
    """디렉토리 백엔드 테스트"""

    @staticmethod
    def write_module(module_dir, tmp_path, identity, version, dependencies=()):
        """모듈 아카이브를 디렉토리에 생성"""
        tree = tmp_path / f"tree-{identity.dashed_name}-{version}"
        (tree / "manifests").mkdir(parents=True)
        (tree / "manifests" / "init.pp").write_text("class x {}\n")

        release = Release(
            identity=identity,
            version=version,
            description=f"{identity.name} 모듈",
            dependencies=[DependencyRef(identity=dep) for dep in dependencies],
        )
        handle = ArchiveProducer().archive(tree, release.archive_name, release)
        (module_dir / handle.filename).write_bytes(handle.content)
        return handle

    @pytest.fixture
    def module_dir(self, tmp_path):
        """아카이브가 있는 모듈 디렉토리"""
        module_dir = tmp_path / "modules"
        module_dir.mkdir()
        self.write_module(module_dir, tmp_path, APACHE, "1.0.0", [STDLIB])
        self.write_module(module_dir, tmp_path, APACHE, "1.1.0", [STDLIB])
        self.write_module(module_dir, tmp_path, STDLIB, "4.0.0")
        # 이름 접두사가 겹치는 다른 모듈
        self.write_module(module_dir, tmp_path, ModuleIdentity(author="puppetlabs", name="apache-extra"), "0.1.0")
        return module_dir

    @pytest.mark.asyncio
    async def test_메타데이터_조회(self, module_dir):
        """아카이브 내 metadata.json 읽기 테스트"""
        backend = DirectoryBackend(module_dir)

        releases = await backend.get_metadata(APACHE)

        assert [release.version for release in releases] == ["1.0.0", "1.1.0"]
        assert releases[0].dependencies[0].identity == STDLIB
        assert releases[0].description == "apache 모듈"

    @pytest.mark.asyncio
    async def test_전체_메타데이터(self, module_dir):
        """디렉토리 전체 릴리스 조회 테스트"""
        backend = DirectoryBackend(module_dir)

        releases = await backend.get_all_metadata()

        assert {release.identity.full_name for release in releases} == {
            "puppetlabs/apache", "puppetlabs/stdlib", "puppetlabs/apache-extra"
        }
        assert len(releases) == 4

    @pytest.mark.asyncio
    async def test_아카이브_조회(self, module_dir):
        """아카이브 바이트 그대로 반환 테스트"""
        backend = DirectoryBackend(module_dir)

        handle = await backend.get_module(APACHE, "1.1.0")

        assert handle.filename == "puppetlabs-apache-1.1.0.tar.gz"
        assert handle.content == (module_dir / "puppetlabs-apache-1.1.0.tar.gz").read_bytes()
        assert await backend.get_module(APACHE, "2.0.0") is None

    @pytest.mark.asyncio
    async def test_손상된_아카이브는_건너뜀(self, module_dir):
        """읽을 수 없는 아카이브 제외 테스트"""
        (module_dir / "puppetlabs-apache-9.0.0.tar.gz").write_bytes(b"not a tarball")
        backend = DirectoryBackend(module_dir)

        releases = await backend.get_metadata(APACHE)

        assert [release.version for release in releases] == ["1.0.0", "1.1.0"]

    @pytest.mark.asyncio
    async def test_없는_디렉토리(self, tmp_path):
        """존재하지 않는 디렉토리 테스트"""
        backend = DirectoryBackend(tmp_path / "missing")

        assert await backend.get_all_metadata() == []
        assert await backend.get_module(APACHE, "1.0.0") is None


class FakeResponse:
    """aiohttp 응답 대역"""

    def __init__(self, status=200, payload=None, body=b""):
        self.status = status
        self.payload = payload
        self.body = body

    async def json(self, content_type=None):
        return self.payload

    async def read(self):
        return self.body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """aiohttp 세션 대역"""

    def __init__(self, routes=None, error=None):
        self.routes = routes or {}
        self.error = error
        self.requests = []
        self.closed = False

    def get(self, url, params=None):
        self.requests.append((url, params))
        if self.error:
            raise self.error
        return self.routes.get(url, FakeResponse(status=404))

    async def close(self):
        self.closed = True


class TestProxyBackend:
    """프록시 백엔드 테스트"""

    RELEASES_URL = "https://forge.example.com/api/v1/releases.json"

    @pytest.fixture
    def payload(self):
        """상위 포지 releases.json 응답"""
        return {
            "puppetlabs/apache": [
                {
                    "file": "/modules/puppetlabs-apache-1.0.0.tar.gz",
                    "version": "1.0.0",
                    "dependencies": [["puppetlabs/stdlib", ">= 2.4.0"]],
                },
                {
                    "file": "/modules/puppetlabs-apache-1.1.0.tar.gz",
                    "version": "1.1.0",
                    "dependencies": [],
                },
            ],
            "puppetlabs/stdlib": [
                {"file": "/modules/puppetlabs-stdlib-4.0.0.tar.gz", "version": "4.0.0", "dependencies": []},
            ],
        }

    @pytest.fixture
    def backend(self, payload):
        """가짜 세션을 사용하는 프록시 백엔드"""
        backend = ProxyBackend("https://forge.example.com/")
        backend.session = FakeSession({
            self.RELEASES_URL: FakeResponse(payload=payload),
            "https://forge.example.com/modules/puppetlabs-apache-1.0.0.tar.gz": FakeResponse(body=b"archive"),
        })
        return backend

    @pytest.mark.asyncio
    async def test_메타데이터_중계(self, backend):
        """상위 포지 릴리스 변환 테스트"""
        releases = await backend.get_metadata(APACHE)

        assert [release.version for release in releases] == ["1.0.0", "1.1.0"]
        assert releases[0].dependencies == [
            DependencyRef(identity=STDLIB, version_requirement=">= 2.4.0")
        ]
        assert backend.session.requests[0] == (self.RELEASES_URL, {"module": "puppetlabs/apache"})

    @pytest.mark.asyncio
    async def test_모듈_다운로드(self, backend):
        """상대 경로 파일 다운로드 테스트"""
        handle = await backend.get_module(APACHE, "1.0.0")

        assert handle.filename == "puppetlabs-apache-1.0.0.tar.gz"
        assert handle.content == b"archive"

    @pytest.mark.asyncio
    async def test_없는_버전과_없는_모듈(self, backend):
        """상위 포지에 없는 항목 테스트"""
        assert await backend.get_module(APACHE, "9.9.9") is None
        assert await backend.get_metadata(ModuleIdentity(author="nobody", name="nothing")) == []

    @pytest.mark.asyncio
    async def test_잘못된_상위_항목은_건너뜀(self):
        """변환할 수 없는 상위 포지 항목 제외 테스트"""
        backend = ProxyBackend("https://forge.example.com")
        backend.session = FakeSession({self.RELEASES_URL: FakeResponse(payload={
            "puppetlabs/apache": [
                {"file": "/modules/puppetlabs-apache-1.0.0.tar.gz", "version": "1.0.0", "dependencies": []},
                {"file": "/modules/puppetlabs-apache-1.1.0.tar.gz", "version": "1.1.0",
                 "dependencies": [["bogus", ">= 1"]]},
                {"file": "/modules/puppetlabs-apache-1.2.0.tar.gz", "dependencies": []},
                "not an entry",
            ],
        })})

        releases = await backend.get_metadata(APACHE)

        assert [release.version for release in releases] == ["1.0.0"]

    @pytest.mark.asyncio
    async def test_410_응답은_빈_목록(self):
        """상위 포지의 410 응답 테스트"""
        backend = ProxyBackend("https://forge.example.com")
        backend.session = FakeSession({self.RELEASES_URL: FakeResponse(status=410, payload={"error": "gone"})})

        assert await backend.get_metadata(APACHE) == []

    @pytest.mark.asyncio
    async def test_서버_오류(self):
        """상위 포지 5xx 응답 테스트"""
        backend = ProxyBackend("https://forge.example.com")
        backend.session = FakeSession({self.RELEASES_URL: FakeResponse(status=503)})

        with pytest.raises(SourceUnavailableException):
            await backend.get_metadata(APACHE)

    @pytest.mark.asyncio
    async def test_연결_오류(self):
        """네트워크 오류 변환 테스트"""
        backend = ProxyBackend("https://forge.example.com")
        backend.session = FakeSession(error=aiohttp.ClientConnectionError("connection refused"))

        with pytest.raises(SourceUnavailableException) as exc_info:
            await backend.get_metadata(APACHE)

        assert exc_info.value.source == "https://forge.example.com"

    @pytest.mark.asyncio
    async def test_전체_목록은_비어있음(self, backend):
        """상위 포지 전체 열거 불가 테스트"""
        assert await backend.get_all_metadata() == []
        assert backend.session.requests == []

    @pytest.mark.asyncio
    async def test_세션_정리(self, backend):
        """close 시 세션 종료 테스트"""
        session = backend.session

        await backend.close()

        assert session.closed is True
        assert backend.session is None
