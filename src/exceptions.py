"""
예외 클래스 정의 모듈

모듈 포지 시스템에서 사용되는 커스텀 예외들을 정의합니다.
"""

from typing import Optional


class ForgeSystemException(Exception):
    """모듈 포지 시스템 기본 예외 클래스"""

    def __init__(self, message: str, error_code: Optional[str] = None):
        """
        예외 초기화

        Args:
            message: 오류 메시지
            error_code: 오류 코드 (선택사항)
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class ReleaseNotFoundException(ForgeSystemException):
    """태그 또는 태그 내 파일을 찾을 수 없을 때 발생하는 예외"""

    def __init__(self, tag: str, path: Optional[str] = None):
        """
        릴리스 찾기 실패 예외 초기화

        Args:
            tag: 태그 이름
            path: 태그 내 파일 경로 (선택사항)
        """
        path_info = f" (파일: {path})" if path else ""
        message = f"릴리스를 찾을 수 없습니다: {tag}{path_info}"
        super().__init__(message, "RELEASE_NOT_FOUND")
        self.tag = tag
        self.path = path


class SourceUnavailableException(ForgeSystemException):
    """원격 저장소에 접근할 수 없을 때 발생하는 예외"""

    def __init__(self, source: str, error_detail: str):
        """
        원격 저장소 접근 실패 예외 초기화

        Args:
            source: 원격 저장소 주소
            error_detail: 오류 상세 정보
        """
        message = f"원격 저장소에 접근할 수 없습니다: {source} - {error_detail}"
        super().__init__(message, "SOURCE_UNAVAILABLE")
        self.source = source
        self.error_detail = error_detail


class ModuleNotFoundException(ForgeSystemException):
    """의존성 클로저 계산 중 모듈을 찾지 못했을 때 발생하는 예외"""

    def __init__(self, identity):
        """
        모듈 찾기 실패 예외 초기화

        Args:
            identity: 찾지 못한 모듈 식별자 (ModuleIdentity)
        """
        message = f"Module {identity.full_name} not found"
        super().__init__(message, "MODULE_NOT_FOUND")
        self.identity = identity


class ManifestParseException(ForgeSystemException):
    """모듈 매니페스트 파싱 실패 시 발생하는 예외"""

    def __init__(self, error_detail: str, tag: Optional[str] = None):
        """
        매니페스트 파싱 예외 초기화

        Args:
            error_detail: 오류 상세 정보
            tag: 매니페스트를 읽은 태그 (선택사항)
        """
        tag_info = f" (태그: {tag})" if tag else ""
        message = f"매니페스트 파싱 실패{tag_info}: {error_detail}"
        super().__init__(message, "MANIFEST_PARSE_ERROR")
        self.error_detail = error_detail
        self.tag = tag


class GitCommandException(ForgeSystemException):
    """git 명령 실행 실패 시 발생하는 예외"""

    def __init__(self, command: str, error_detail: str, return_code: Optional[int] = None):
        """
        git 명령 예외 초기화

        Args:
            command: 실행한 명령
            error_detail: 오류 상세 정보 (stderr 등)
            return_code: 프로세스 종료 코드
        """
        message = f"git 명령 실패: {command} - {error_detail}"
        super().__init__(message, "GIT_COMMAND_ERROR")
        self.command = command
        self.error_detail = error_detail
        self.return_code = return_code


class ConfigurationException(ForgeSystemException):
    """설정 오류 시 발생하는 예외"""

    def __init__(self, config_key: str, error_detail: str):
        """
        설정 예외 초기화

        Args:
            config_key: 설정 키
            error_detail: 오류 상세 정보
        """
        message = f"설정 오류: {config_key} - {error_detail}"
        super().__init__(message, "CONFIGURATION_ERROR")
        self.config_key = config_key
        self.error_detail = error_detail
