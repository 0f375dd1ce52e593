# moodiary/usecases/diary_analysis.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from moodiary.core.config import SUMMARY_WEIGHTING
from moodiary.domain.emotions import resolve_category
from moodiary.domain.models import AnalysisSummary, DiaryEmotionProfile
from moodiary.domain.summary import summarize
from moodiary.domain.trends import HistoryTrend, summarize_history
from moodiary.exceptions import (
    ConfigError,
    DiaryDataError,
    LLMError,
    ProfileNotFoundError,
    ProviderUnauthorizedError,
)
from moodiary.infra.profile_repo import ProfileRepository
from moodiary.services import analysis_service

logger = logging.getLogger(__name__)

UNAUTHORIZED_ERROR = "provider_unauthorized"
ANALYSIS_ERROR = "analysis_error"


@dataclass
class AnalysisOutcome:
    """일기 저장/수정 시 감정 분석 결과. analysis_error가 있어도 일기 쓰기는 성공이다."""

    diary_id: str
    profile: Optional[DiaryEmotionProfile] = None
    analysis_error: Optional[str] = None
    reanalyzed: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "diary_id": self.diary_id,
            "profile": self.profile.to_dict() if self.profile else None,
            "analysis_error": self.analysis_error,
            "reanalyzed": self.reanalyzed,
        }


def _validate_diary_id(diary_id: str) -> str:
    if diary_id is None or not str(diary_id).strip():
        raise DiaryDataError("일기 ID가 비어 있습니다.")
    return str(diary_id).strip()


def _blank(value: Optional[str]) -> bool:
    return not value or not value.strip()


async def analyze_adhoc(content: Optional[str], image_ref: Optional[str] = None) -> Optional[DiaryEmotionProfile]:
    """저장 없이 바로 분석만 한다. 인증 실패는 호출자에게 그대로 전파."""
    if _blank(content) and _blank(image_ref):
        raise DiaryDataError("분석할 텍스트나 이미지를 입력해 주세요.")
    return await analysis_service.analyze_diary("adhoc", content, image_ref)


async def _run_analysis(
    diary_id: str,
    content: Optional[str],
    image_ref: Optional[str],
) -> AnalysisOutcome:
    try:
        profile = await analysis_service.analyze_diary(diary_id, content, image_ref)
    except ProviderUnauthorizedError as e:
        logger.error("diary_id=%s: LLM 인증 실패, 감정 데이터 없이 일기를 저장합니다: %s", diary_id, e)
        return AnalysisOutcome(diary_id=diary_id, analysis_error=UNAUTHORIZED_ERROR)
    except (LLMError, ConfigError) as e:
        logger.exception("diary_id=%s: 감정 분석 중 오류 발생", diary_id)
        return AnalysisOutcome(diary_id=diary_id, analysis_error=f"{ANALYSIS_ERROR}: {e}")

    return AnalysisOutcome(diary_id=diary_id, profile=profile)


def _persist(outcome: AnalysisOutcome, repo: ProfileRepository) -> AnalysisOutcome:
    if outcome.analysis_error is not None:
        # 분석 오류 시 저장된 프로필은 그대로 둔다
        logger.warning("diary_id=%s: 분석 오류로 기존 감정 프로필을 유지합니다.", outcome.diary_id)
        return outcome
    if outcome.profile is None:
        # 세 칸이 모두 비면 프로필을 남기지 않는다
        repo.delete(outcome.diary_id)
    else:
        repo.save(outcome.profile)
    return outcome


async def analyze_diary_entry(
    diary_id: str,
    content: Optional[str],
    image_ref: Optional[str] = None,
    repo: Optional[ProfileRepository] = None,
) -> AnalysisOutcome:
    """일기 생성 시: 감정 분석 후 프로필 저장."""
    diary_id = _validate_diary_id(diary_id)
    repo = repo or ProfileRepository()
    repo.path_for(diary_id)  # 파일명으로 못 쓰는 ID면 분석 전에 DiaryDataError

    outcome = await _run_analysis(diary_id, content, image_ref)
    return _persist(outcome, repo)


def has_changed(
    previous_content: Optional[str],
    previous_image_ref: Optional[str],
    content: Optional[str],
    image_ref: Optional[str],
) -> bool:
    content_changed = (content or "") != (previous_content or "")
    image_changed = (
        (image_ref is not None and image_ref != previous_image_ref)
        or (image_ref is None and previous_image_ref is not None)
    )
    return content_changed or image_changed


async def update_diary_entry(
    diary_id: str,
    previous_content: Optional[str],
    previous_image_ref: Optional[str],
    content: Optional[str],
    image_ref: Optional[str] = None,
    repo: Optional[ProfileRepository] = None,
) -> AnalysisOutcome:
    """
    일기 수정 시: 내용이나 이미지가 바뀐 경우에만 다시 분석한다.
    분석 오류(analysis_error)가 나면 이전 프로필은 지우지 않는다.
    """
    diary_id = _validate_diary_id(diary_id)
    repo = repo or ProfileRepository()
    repo.path_for(diary_id)  # 파일명으로 못 쓰는 ID면 분석 전에 DiaryDataError

    if not has_changed(previous_content, previous_image_ref, content, image_ref):
        logger.info("diary_id=%s: 내용/이미지 변경 없음, 기존 감정 프로필 유지", diary_id)
        return AnalysisOutcome(diary_id=diary_id, profile=repo.load(diary_id), reanalyzed=False)

    outcome = await _run_analysis(diary_id, content, image_ref)
    return _persist(outcome, repo)


def delete_diary_entry(diary_id: str, repo: Optional[ProfileRepository] = None) -> bool:
    diary_id = _validate_diary_id(diary_id)
    return (repo or ProfileRepository()).delete(diary_id)


def get_emotion_profile(diary_id: str, repo: Optional[ProfileRepository] = None) -> DiaryEmotionProfile:
    diary_id = _validate_diary_id(diary_id)
    profile = (repo or ProfileRepository()).load(diary_id)
    if profile is None:
        raise ProfileNotFoundError(f"감정 분석 결과가 없습니다: diary_id={diary_id}")
    return profile


def get_analysis_summary(
    diary_id: str,
    repo: Optional[ProfileRepository] = None,
    weighting: Optional[str] = None,
) -> AnalysisSummary:
    """요약은 저장하지 않고 요청마다 새로 계산한다."""
    profile = get_emotion_profile(diary_id, repo)
    return summarize(profile, weighting or SUMMARY_WEIGHTING)


def get_history_trends(
    diary_ids: Optional[Iterable[str]] = None,
    repo: Optional[ProfileRepository] = None,
) -> HistoryTrend:
    profiles = (repo or ProfileRepository()).list_all(diary_ids)
    return summarize_history(profiles)


def find_diaries_by_emotion(label: str, repo: Optional[ProfileRepository] = None) -> List[DiaryEmotionProfile]:
    category = resolve_category(label)
    if category is None:
        raise DiaryDataError(f"알 수 없는 감정 라벨입니다: {label}")
    return (repo or ProfileRepository()).find_by_emotion(category)


def profile_view(profile: DiaryEmotionProfile) -> Dict[str, Any]:
    """저장된 프로필을 화면용 dict로 변환 (키워드는 괄호/따옴표 제거 후 리스트)."""
    cleaned = (profile.keywords or "").replace("[", "").replace("]", "").replace('"', "")

    def _score(result):
        if result is None:
            return None
        return {
            "emotion": result.category.value,
            "temperature": result.temperature,
            "confidence": result.confidence,
        }

    return {
        "diary_id": profile.diary_id,
        "text_emotion": _score(profile.text),
        "image_emotion": _score(profile.image),
        "integrated_emotion": _score(profile.integrated),
        "keywords": [k.strip() for k in cleaned.split(",") if k.strip()],
        "timestamp": profile.analyzed_at.isoformat(),
    }
