"""
데이터 모델 패키지

모듈 포지 시스템의 핵심 데이터 모델들을 정의합니다.
"""

from .base import ArchiveHandle, DependencyRef, ModuleIdentity, Release
from .enums import BackendType

__all__ = [
    "ModuleIdentity",
    "DependencyRef",
    "Release",
    "ArchiveHandle",
    "BackendType",
]
