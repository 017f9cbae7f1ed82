"""
백엔드 다중화 모듈

순서가 있는 백엔드 목록을 하나의 백엔드처럼 제공합니다.
"""

from typing import Iterable, Optional

from ..models.base import ArchiveHandle, ModuleIdentity, Release
from ..utils.logging import get_logger
from .repository import ForgeBackendBase

logger = get_logger(__name__)


class BackendMultiplexer(ForgeBackendBase):
    """
    백엔드 다중화기

    목록 순서가 우선순위입니다. 아카이브는 처음 찾은 백엔드의 것을 반환하고,
    메타데이터는 모든 백엔드의 결과를 순서대로 이어 붙입니다 (중복 제거 없음).
    """

    def __init__(self, backends: Optional[Iterable[ForgeBackendBase]] = None):
        super().__init__()
        self.backends: list[ForgeBackendBase] = list(backends or [])

    def add_backend(self, backend: ForgeBackendBase) -> None:
        """가장 낮은 우선순위로 백엔드 추가"""
        self.backends.append(backend)

    async def get_module(self, identity: ModuleIdentity, version: str) -> Optional[ArchiveHandle]:
        for backend in self.backends:
            handle = await backend.get_module(identity, version)
            if handle is not None:
                self.logger.debug(f"모듈 제공 백엔드: {identity} v{version} -> {backend!r}")
                return handle
        return None

    async def get_metadata(self, identity: ModuleIdentity) -> list[Release]:
        releases: list[Release] = []
        for backend in self.backends:
            releases.extend(await backend.get_metadata(identity))
        return releases

    async def get_all_metadata(self) -> list[Release]:
        releases: list[Release] = []
        for backend in self.backends:
            releases.extend(await backend.get_all_metadata())
        return releases

    async def clear_cache(self) -> None:
        for backend in self.backends:
            await backend.clear_cache()

    async def close(self) -> None:
        for backend in self.backends:
            await backend.close()

    def __len__(self) -> int:
        return len(self.backends)
