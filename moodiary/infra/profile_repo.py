# moodiary/infra/profile_repo.py
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Iterable, List, Optional

import yaml

from moodiary.core.config import PROFILE_DIR
from moodiary.domain.emotions import EmotionCategory
from moodiary.domain.models import DiaryEmotionProfile
from moodiary.exceptions import DiaryDataError
from moodiary.infra.paths import ensure_profile_dir

logger = logging.getLogger(__name__)


def _slugify_id(diary_id: str) -> str:
    """파일명에 안전하게 쓸 수 있도록 일기 ID 정리."""
    s = re.sub(r"\s+", "_", str(diary_id).strip())
    s = re.sub(r"[^\w\-]", "", s)
    if not s:
        raise DiaryDataError(f"사용할 수 없는 일기 ID: {diary_id!r}")
    return s


def load_yaml(path: Path) -> Any:
    """YAML 파일을 로드하여 파이썬 객체로 반환한다."""
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def save_yaml(path: Path, data: Any) -> None:
    """파이썬 객체를 YAML 파일로 저장한다. 임시 파일에 쓴 뒤 교체한다."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, allow_unicode=True, sort_keys=False)
    tmp.replace(path)


class ProfileRepository:
    """
    일기 1건당 감정 프로필 YAML 1개를 두는 파일 저장소.

    예: output/profiles/diary_42.yaml
    """

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = Path(base_dir) if base_dir is not None else PROFILE_DIR

    def path_for(self, diary_id: str) -> Path:
        return self.base_dir / f"diary_{_slugify_id(diary_id)}.yaml"

    def save(self, profile: DiaryEmotionProfile) -> Path:
        ensure_profile_dir(self.base_dir)
        path = self.path_for(profile.diary_id)
        save_yaml(path, profile.to_dict())
        logger.info("감정 프로필 저장: diary_id=%s -> %s", profile.diary_id, path.name)
        return path

    def load(self, diary_id: str) -> Optional[DiaryEmotionProfile]:
        path = self.path_for(diary_id)
        if not path.exists():
            return None
        data = load_yaml(path)
        if not isinstance(data, dict):
            logger.warning("감정 프로필 파일 형식이 올바르지 않습니다: %s", path.name)
            return None
        return DiaryEmotionProfile.from_dict(data)

    def delete(self, diary_id: str) -> bool:
        path = self.path_for(diary_id)
        if not path.exists():
            return False
        path.unlink()
        logger.info("감정 프로필 삭제: diary_id=%s", diary_id)
        return True

    def list_all(self, diary_ids: Optional[Iterable[str]] = None) -> List[DiaryEmotionProfile]:
        """저장된 프로필 전체(또는 지정 ID들)를 분석 시각 순으로 반환."""
        if diary_ids is not None:
            profiles = [p for p in (self.load(d) for d in diary_ids) if p is not None]
        else:
            profiles = []
            if self.base_dir.exists():
                for path in sorted(self.base_dir.glob("diary_*.yaml")):
                    data = load_yaml(path)
                    if isinstance(data, dict):
                        profiles.append(DiaryEmotionProfile.from_dict(data))

        profiles.sort(key=lambda p: p.analyzed_at)
        return profiles

    def find_by_emotion(self, category: EmotionCategory) -> List[DiaryEmotionProfile]:
        return [
            p for p in self.list_all()
            if p.integrated is not None and p.integrated.category is category
        ]
