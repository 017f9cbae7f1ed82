"""
공통 유틸리티 함수 모듈

모듈 포지 시스템에서 공통으로 사용되는 헬퍼 함수들을 제공합니다.
"""

import hashlib
import re
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from ..utils.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def temp_directory(prefix: str, parent: Optional[Union[str, Path]] = None) -> Iterator[Path]:
    """
    범위가 한정된 임시 디렉토리

    블록을 벗어나면 정상 종료, 예외, 취소 여부와 상관없이 삭제됩니다.

    Args:
        prefix: 디렉토리 이름 접두사
        parent: 상위 디렉토리 (None이면 시스템 임시 디렉토리)

    Yields:
        Path: 임시 디렉토리 경로
    """
    if parent is not None:
        Path(parent).mkdir(parents=True, exist_ok=True)

    path = Path(tempfile.mkdtemp(prefix=f"{prefix}-", dir=parent))
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        logger.debug(f"임시 디렉토리 삭제: {path}")


def calculate_bytes_hash(content: bytes) -> str:
    """
    바이트 데이터의 SHA-256 해시 계산

    Args:
        content: 해시를 계산할 데이터

    Returns:
        str: SHA-256 해시값
    """
    return hashlib.sha256(content).hexdigest()


def sanitize_filename(filename: str, max_length: int = 255) -> str:
    """
    파일/디렉토리 이름을 안전하게 정리

    Args:
        filename: 원본 이름
        max_length: 최대 길이

    Returns:
        str: 정리된 이름
    """
    filename = re.sub(r'[<>:"/\\|?*\s]+', '_', filename.strip())
    return filename[:max_length]


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    디렉토리 존재 확인 및 생성

    Args:
        path: 디렉토리 경로

    Returns:
        Path: 디렉토리 경로 객체
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path
