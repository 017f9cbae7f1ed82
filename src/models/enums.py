"""
열거형 정의 모듈

모듈 포지 시스템에서 사용되는 상수 값들을 열거형으로 정의합니다.
"""

from enum import Enum


class BackendType(Enum):
    """모듈 백엔드 타입 열거형"""
    GIT = "git"
    DIRECTORY = "directory"
    PROXY = "proxy"
