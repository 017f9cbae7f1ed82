"""
모듈 매니페스트 파싱 모듈

Modulefile 과 metadata.json 형식의 매니페스트를 Release 모델로 변환합니다.
"""

import json
import re
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from ..exceptions import ManifestParseException
from ..models.base import DependencyRef, ModuleIdentity, Release
from ..utils.logging import get_logger

logger = get_logger(__name__)

_STATEMENT = re.compile(r'^\s*(?P<key>[a-z_]+)\s+(?P<args>.+?)\s*$')
_QUOTED = re.compile(r"'([^']*)'|\"([^\"]*)\"")

_TEXT_FIELDS = ("author", "summary", "description", "license", "source", "project_page")


class ManifestParser:
    """모듈 매니페스트 파서"""

    def __init__(self):
        self.logger = logger

    def parse(self, content: bytes, filename: str = "Modulefile", tag: Optional[str] = None) -> Release:
        """
        매니페스트 내용 파싱 (파일 이름으로 형식 결정)

        Args:
            content: 매니페스트 바이트
            filename: 매니페스트 파일 이름
            tag: 매니페스트를 읽은 태그 (오류 메시지용)

        Returns:
            파싱된 릴리스

        Raises:
            ManifestParseException: 형식이 잘못되었을 때
        """
        try:
            text = content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ManifestParseException(f"UTF-8 디코딩 실패: {e}", tag) from e

        if Path(filename).suffix == ".json":
            fields = self._parse_metadata_json(text, tag)
        else:
            fields = self._parse_modulefile(text, tag)

        return self._build_release(fields, tag)

    def parse_file(self, manifest_path: Path) -> Release:
        """
        매니페스트 파일 파싱

        Args:
            manifest_path: 매니페스트 파일 경로

        Returns:
            파싱된 릴리스

        Raises:
            FileNotFoundError: 파일이 없을 때
            ManifestParseException: 형식이 잘못되었을 때
        """
        if not manifest_path.exists():
            raise FileNotFoundError(f"매니페스트 파일을 찾을 수 없습니다: {manifest_path}")
        return self.parse(manifest_path.read_bytes(), manifest_path.name)

    def _parse_modulefile(self, text: str, tag: Optional[str]) -> dict[str, Any]:
        fields: dict[str, Any] = {"dependencies": []}

        for line_number, line in enumerate(text.splitlines(), start=1):
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue

            match = _STATEMENT.match(stripped)
            if not match:
                raise ManifestParseException(f"{line_number}번째 줄을 해석할 수 없습니다: {stripped}", tag)

            key = match.group("key")
            args = [single or double for single, double in _QUOTED.findall(match.group("args"))]
            if not args:
                raise ManifestParseException(f"{line_number}번째 줄에 값이 없습니다: {stripped}", tag)

            if key == "dependency":
                requirement = args[1] if len(args) > 1 else ""
                fields["dependencies"].append({"name": args[0], "version_requirement": requirement})
            elif key in ("name", "version") + _TEXT_FIELDS:
                fields[key] = args[0]
            else:
                self.logger.debug(f"알 수 없는 Modulefile 항목 무시: {key}")

        return fields

    def _parse_metadata_json(self, text: str, tag: Optional[str]) -> dict[str, Any]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ManifestParseException(f"metadata.json 파싱 오류: {e}", tag) from e

        if not isinstance(data, dict):
            raise ManifestParseException("metadata.json 최상위 값은 객체여야 합니다", tag)
        return data

    def _build_release(self, fields: dict[str, Any], tag: Optional[str]) -> Release:
        for required in ("name", "version"):
            if not fields.get(required):
                raise ManifestParseException(f"필수 필드 누락: {required}", tag)

        try:
            identity = ModuleIdentity.parse(fields["name"])
            # author 항목이 따로 있어도 이름의 author 가 기준
            dependencies = [
                DependencyRef(
                    identity=ModuleIdentity.parse(dep["name"]),
                    version_requirement=dep.get("version_requirement") or "",
                )
                for dep in fields.get("dependencies") or []
            ]
            return Release(
                identity=identity,
                version=str(fields["version"]),
                description=fields.get("description") or "",
                dependencies=dependencies,
                summary=fields.get("summary"),
                license=fields.get("license"),
                source=fields.get("source"),
                project_page=fields.get("project_page"),
            )
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            raise ManifestParseException(f"매니페스트 필드 오류: {e}", tag) from e
