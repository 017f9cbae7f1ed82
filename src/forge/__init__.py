"""
모듈 포지 패키지

여러 백엔드에서 모듈 메타데이터와 아카이브를 조회하고,
의존성 클로저를 계산하는 시스템을 제공합니다.
"""

from .aggregator import ReleaseAggregator
from .archive import ArchiveProducer
from .metadata import ManifestParser
from .multiplexer import BackendMultiplexer
from .orchestrator import ModuleForge
from .repository import DirectoryBackend, ForgeBackendBase, GitBackend, ProxyBackend

__all__ = [
    "ModuleForge",
    "ForgeBackendBase",
    "GitBackend",
    "DirectoryBackend",
    "ProxyBackend",
    "BackendMultiplexer",
    "ReleaseAggregator",
    "ArchiveProducer",
    "ManifestParser",
]
