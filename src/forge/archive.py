"""
모듈 아카이브 생성 모듈

작업 디렉토리와 릴리스 메타데이터로부터 tar.gz 아카이브를 만듭니다.
같은 트리와 이름이면 항상 같은 바이트가 생성됩니다.
"""

import gzip
import io
import json
import tarfile
from pathlib import Path

from ..models.base import ArchiveHandle, Release
from ..utils.logging import get_logger

logger = get_logger(__name__)

METADATA_FILENAME = "metadata.json"
EXCLUDED_NAMES = {".git"}


class ArchiveProducer:
    """tar.gz 모듈 아카이브 생성기"""

    def archive(self, working_directory: Path, name: str, release: Release) -> ArchiveHandle:
        """
        작업 디렉토리를 아카이브로 묶기

        모든 항목은 `name/` 아래에 놓이고 `name/metadata.json` 에
        릴리스 메타데이터가 기록됩니다.

        Args:
            working_directory: 모듈 작업 트리
            name: 아카이브 최상위 디렉토리 이름 (예: puppetlabs-apache-1.0.0)
            release: 파싱된 릴리스 메타데이터

        Returns:
            아카이브 핸들
        """
        root = Path(working_directory)
        buffer = io.BytesIO()

        with gzip.GzipFile(filename="", mode="wb", fileobj=buffer, mtime=0) as gz:
            with tarfile.open(fileobj=gz, mode="w", format=tarfile.GNU_FORMAT) as tar:
                tar.addfile(self._directory_info(name))

                for path in self._walk(root):
                    relative = path.relative_to(root).as_posix()
                    if relative == METADATA_FILENAME:
                        continue
                    self._add_path(tar, path, f"{name}/{relative}")

                metadata = json.dumps(release.to_metadata(), indent=2, ensure_ascii=False).encode("utf-8")
                info = self._normalize(tarfile.TarInfo(f"{name}/{METADATA_FILENAME}"))
                info.size = len(metadata)
                info.mode = 0o644
                tar.addfile(info, io.BytesIO(metadata))

        handle = ArchiveHandle(filename=f"{name}.tar.gz", content=buffer.getvalue())
        logger.debug(f"아카이브 생성 완료: {handle.filename} ({handle.size} bytes)")
        return handle

    def _walk(self, root: Path) -> list[Path]:
        paths = [
            path for path in root.rglob("*")
            if not EXCLUDED_NAMES.intersection(path.relative_to(root).parts)
        ]
        return sorted(paths, key=lambda p: p.relative_to(root).as_posix())

    def _add_path(self, tar: tarfile.TarFile, path: Path, arcname: str) -> None:
        info = self._normalize(tar.gettarinfo(str(path), arcname=arcname))

        if info.isdir():
            info.mode = 0o755
            tar.addfile(info)
        elif info.isfile():
            info.mode = 0o755 if info.mode & 0o111 else 0o644
            with open(path, "rb") as f:
                tar.addfile(info, f)
        elif info.issym():
            tar.addfile(info)
        else:
            logger.debug(f"아카이브에서 제외된 특수 파일: {path}")

    def _directory_info(self, name: str) -> tarfile.TarInfo:
        info = self._normalize(tarfile.TarInfo(name))
        info.type = tarfile.DIRTYPE
        info.mode = 0o755
        return info

    @staticmethod
    def _normalize(info: tarfile.TarInfo) -> tarfile.TarInfo:
        info.mtime = 0
        info.uid = info.gid = 0
        info.uname = info.gname = ""
        return info
