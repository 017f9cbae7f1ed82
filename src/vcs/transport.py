"""
git 명령 실행 모듈

미러 캐시가 사용하는 git 프로세스 실행 계층을 제공합니다.
테스트에서는 같은 run() 인터페이스를 가진 가짜 실행기로 교체할 수 있습니다.
"""

from pathlib import Path
from typing import Optional, Protocol, Sequence

import git

from ..exceptions import GitCommandException
from ..utils.logging import get_logger

logger = get_logger(__name__)


class CommandRunner(Protocol):
    """git 명령 실행기 인터페이스"""

    def run(self, args: Sequence[str], cwd: Optional[Path] = None) -> bytes:
        """
        git 명령 실행

        Args:
            args: git 하위 명령과 인자 (예: ["tag", "--list"])
            cwd: 작업 디렉토리

        Returns:
            표준 출력 바이트

        Raises:
            GitCommandException: 종료 코드가 0이 아니거나 git 실행 불가 시
        """
        ...


class GitCommandRunner:
    """GitPython 기반 git 명령 실행기"""

    def __init__(self, timeout: Optional[int] = 120):
        """
        git 명령 실행기 초기화

        Args:
            timeout: 명령 타임아웃 (초, None이면 무제한)
        """
        self.timeout = timeout

    def run(self, args: Sequence[str], cwd: Optional[Path] = None) -> bytes:
        command = ["git", *args]
        command_text = " ".join(command)
        logger.debug(f"git 명령 실행: {command_text} (cwd={cwd})")

        try:
            return git.Git(str(cwd) if cwd else None).execute(
                command,
                stdout_as_string=False,
                strip_newline_in_stdout=False,
                kill_after_timeout=self.timeout,
                # 자격 증명 프롬프트로 인한 무한 대기 방지
                env={"GIT_TERMINAL_PROMPT": "0"},
            )
        except git.exc.CommandError as e:
            stderr = e.stderr.strip() if isinstance(e.stderr, str) else str(e.stderr)
            status = e.status if isinstance(e.status, int) else None
            raise GitCommandException(command_text, stderr or str(e), status) from e
