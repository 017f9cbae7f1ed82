"""
로깅 시스템 모듈

한국어 로깅을 지원하는 통합 로깅 시스템을 제공합니다.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "module_forge"

LEVEL_NAMES = {
    'DEBUG': '디버그',
    'INFO': '정보',
    'WARNING': '경고',
    'ERROR': '오류',
    'CRITICAL': '치명적'
}


class KoreanFormatter(logging.Formatter):
    """한국어 로그 레벨명을 출력하는 포맷터"""

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None):
        super().__init__(fmt, datefmt)

    def format(self, record: logging.LogRecord) -> str:
        """
        로그 레코드를 한국어 레벨명으로 포맷팅

        Args:
            record: 로그 레코드

        Returns:
            str: 포맷된 로그 메시지
        """
        original_levelname = record.levelname
        record.levelname = LEVEL_NAMES.get(original_levelname, original_levelname)

        try:
            return super().format(record)
        finally:
            # 다른 핸들러를 위해 원래 레벨명 복원
            record.levelname = original_levelname


def setup_logging(settings) -> logging.Logger:
    """
    모듈 포지 로깅 시스템 설정

    Args:
        settings: 시스템 설정 객체

    Returns:
        logging.Logger: 설정된 루트 로거
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, settings.log_level.upper()))

    # 기존 핸들러 제거 (중복 방지)
    logger.handlers.clear()

    formatter = KoreanFormatter(
        fmt=settings.log_format,
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if settings.log_file:
        log_file_path = Path(settings.log_file)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        # 로테이팅 파일 핸들러 (10MB, 5개 백업)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file_path,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False

    logger.info("로깅 시스템이 초기화되었습니다")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    모듈 포지 하위 로거 반환

    Args:
        name: 로거 이름 (보통 __name__)

    Returns:
        logging.Logger: 로거 객체
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
