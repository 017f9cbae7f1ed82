"""
릴리스 집계 테스트

의존성 클로저의 순서, 순환, 누락 모듈 처리를 테스트합니다.
"""

import pytest

from src.exceptions import ModuleNotFoundException
from src.forge.aggregator import ReleaseAggregator
from src.models.base import ModuleIdentity

from .conftest import InMemoryBackend, release


def names(closure) -> list[str]:
    return [identity.full_name for identity in closure]


class TestReleaseAggregator:
    """의존성 클로저 테스트"""

    @pytest.mark.asyncio
    async def test_연쇄_의존성(self):
        """A -> B -> C 클로저 테스트"""
        backend = InMemoryBackend([
            release("test/a", "1.0.0", "test/b"),
            release("test/b", "1.0.0", "test/c"),
            release("test/c", "1.0.0"),
            release("test/unrelated", "1.0.0"),
        ])

        closure = await ReleaseAggregator(backend).resolve_closure(ModuleIdentity.parse("test/a"))

        assert names(closure) == ["test/a", "test/b", "test/c"]
        assert [r.version for r in closure[ModuleIdentity.parse("test/c")]] == ["1.0.0"]

    @pytest.mark.asyncio
    async def test_모든_릴리스의_의존성_포함(self):
        """버전 제약 없이 모든 릴리스의 의존성 합집합 테스트"""
        backend = InMemoryBackend([
            release("test/a", "1.0.0", "test/old"),
            release("test/a", "2.0.0", "test/new"),
            release("test/old", "0.1.0"),
            release("test/new", "0.2.0"),
        ])

        closure = await ReleaseAggregator(backend).resolve_closure(ModuleIdentity.parse("test/a"))

        assert names(closure) == ["test/a", "test/old", "test/new"]
        assert len(closure[ModuleIdentity.parse("test/a")]) == 2

    @pytest.mark.asyncio
    async def test_순환_의존성(self):
        """A <-> B 순환 종료 테스트"""
        backend = InMemoryBackend([
            release("test/a", "1.0.0", "test/b"),
            release("test/b", "1.0.0", "test/a"),
        ])

        closure = await ReleaseAggregator(backend).resolve_closure(ModuleIdentity.parse("test/a"))

        assert names(closure) == ["test/a", "test/b"]
        assert len(backend.metadata_queries) == 2

    @pytest.mark.asyncio
    async def test_다이아몬드_의존성은_한번만_조회(self):
        """A -> B, C -> D 에서 D 한 번 조회 테스트"""
        backend = InMemoryBackend([
            release("test/a", "1.0.0", "test/b", "test/c"),
            release("test/b", "1.0.0", "test/d"),
            release("test/c", "1.0.0", "test/d"),
            release("test/d", "1.0.0"),
        ])

        closure = await ReleaseAggregator(backend).resolve_closure(ModuleIdentity.parse("test/a"))

        assert names(closure) == ["test/a", "test/b", "test/c", "test/d"]
        assert [identity.full_name for identity in backend.metadata_queries] == [
            "test/a", "test/b", "test/c", "test/d"
        ]

    @pytest.mark.asyncio
    async def test_없는_루트_모듈(self):
        """루트 모듈 누락 테스트"""
        backend = InMemoryBackend([release("test/b", "1.0.0")])

        with pytest.raises(ModuleNotFoundException) as exc_info:
            await ReleaseAggregator(backend).resolve_closure(ModuleIdentity.parse("test/a"))

        assert exc_info.value.message == "Module test/a not found"

    @pytest.mark.asyncio
    async def test_없는_의존성은_전체_실패(self):
        """의존성 누락 시 부분 결과 없이 실패 테스트"""
        backend = InMemoryBackend([
            release("test/a", "1.0.0", "test/b"),
            release("test/b", "1.0.0", "test/missing"),
        ])

        with pytest.raises(ModuleNotFoundException) as exc_info:
            await ReleaseAggregator(backend).resolve_closure(ModuleIdentity.parse("test/a"))

        assert exc_info.value.identity == ModuleIdentity.parse("test/missing")
        assert exc_info.value.error_code == "MODULE_NOT_FOUND"
