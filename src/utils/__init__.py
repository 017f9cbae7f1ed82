"""
유틸리티 패키지

공통으로 사용되는 유틸리티 함수들을 포함합니다.
"""

from .logging import get_logger, setup_logging
from .helpers import calculate_bytes_hash, ensure_directory, sanitize_filename, temp_directory

__all__ = [
    "setup_logging",
    "get_logger",
    "temp_directory",
    "calculate_bytes_hash",
    "sanitize_filename",
    "ensure_directory",
]
