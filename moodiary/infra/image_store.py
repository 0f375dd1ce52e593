# moodiary/infra/image_store.py
from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from moodiary.core.config import UPLOAD_DIR
from moodiary.exceptions import DiaryDataError

DEFAULT_MIME_TYPE = "image/png"


@dataclass(frozen=True)
class StoredImage:
    data: bytes
    mime_type: str = DEFAULT_MIME_TYPE


def resolve_image_path(image_ref: str, upload_dir: Optional[Path] = None) -> Path:
    """
    일기에 저장된 이미지 참조("/uploads/abc.jpg", "abc.jpg" 등)를
    업로드 디렉토리 아래의 실제 파일 경로로 바꾼다. 파일명만 사용한다.
    """
    if not image_ref or not image_ref.strip():
        raise DiaryDataError("이미지 참조가 비어 있습니다.")

    name = image_ref.strip().replace("\\", "/").rsplit("/", 1)[-1]
    if not name or name in (".", ".."):
        raise DiaryDataError(f"이미지 참조에서 파일명을 찾을 수 없습니다: {image_ref}")

    return (upload_dir or UPLOAD_DIR) / name


def load_image(image_ref: str, upload_dir: Optional[Path] = None) -> StoredImage:
    """
    이미지 바이트와 MIME 타입을 읽는다.
    파일이 없으면 FileNotFoundError, 0바이트 파일이면 DiaryDataError.
    """
    path = resolve_image_path(image_ref, upload_dir)
    if not path.is_file():
        raise FileNotFoundError(f"이미지 파일을 찾을 수 없습니다: {path}")

    data = path.read_bytes()
    if not data:
        raise DiaryDataError(f"이미지 파일이 비어 있습니다: {path.name}")

    mime_type, _ = mimetypes.guess_type(path.name)
    if not mime_type or not mime_type.startswith("image/"):
        mime_type = DEFAULT_MIME_TYPE

    return StoredImage(data=data, mime_type=mime_type)
