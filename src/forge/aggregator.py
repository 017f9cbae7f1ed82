"""
릴리스 집계 모듈

루트 모듈에서 의존성 간선을 따라 도달 가능한 모든 모듈의 릴리스 목록을 모읍니다.
버전 제약은 해석하지 않으며, 발견된 모듈의 모든 릴리스가 결과에 포함됩니다.
"""

from collections import deque

from ..exceptions import ModuleNotFoundException
from ..models.base import ModuleIdentity, Release
from ..utils.logging import get_logger
from .repository import ForgeBackendBase

logger = get_logger(__name__)


class ReleaseAggregator:
    """의존성 클로저 집계기"""

    def __init__(self, forge: ForgeBackendBase):
        """
        집계기 초기화

        Args:
            forge: 모듈 조회에 사용할 백엔드 (보통 BackendMultiplexer)
        """
        self.forge = forge
        self.logger = logger

    async def resolve_closure(self, identity: ModuleIdentity) -> dict[ModuleIdentity, list[Release]]:
        """
        너비 우선 탐색으로 의존성 클로저 계산

        Args:
            identity: 루트 모듈 식별자

        Returns:
            모듈 식별자 -> 릴리스 목록 (루트 먼저, 이후 발견 순서)

        Raises:
            ModuleNotFoundException: 루트나 의존성 중 하나라도 찾을 수 없을 때
        """
        closure: dict[ModuleIdentity, list[Release]] = {}
        queued = {identity}
        pending = deque([identity])

        while pending:
            current = pending.popleft()
            releases = await self.forge.get_metadata(current)
            if not releases:
                self.logger.info(f"의존성 클로저 실패: {current} 를 찾을 수 없습니다 (루트: {identity})")
                raise ModuleNotFoundException(current)

            closure[current] = releases

            for release in releases:
                for dependency in release.dependencies:
                    if dependency.identity not in queued:
                        queued.add(dependency.identity)
                        pending.append(dependency.identity)

        self.logger.debug(f"의존성 클로저 완료: {identity} -> {len(closure)}개 모듈")
        return closure
