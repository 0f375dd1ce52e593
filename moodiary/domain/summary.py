# moodiary/domain/summary.py
from __future__ import annotations

from typing import List, Optional

from moodiary.domain.models import (
    AnalysisSlot,
    AnalysisSummary,
    DiaryEmotionProfile,
    split_keywords,
)

TEXT_WEIGHT = 0.7
IMAGE_WEIGHT = 0.3

WEIGHTING_FIXED = "fixed"
WEIGHTING_RENORMALIZED = "renormalized"

ANALYZING_LABEL = "analyzing"
MAX_TOP_KEYWORDS = 5

# (하한, 라벨) - 위에서부터 처음 만족하는 구간
SENTIMENT_BANDS = (
    (80.0, "very positive"),
    (60.0, "positive"),
    (40.0, "neutral"),
    (20.0, "negative"),
)
LOWEST_SENTIMENT = "very negative"


def overall_score(profile: DiaryEmotionProfile, weighting: str = WEIGHTING_FIXED) -> float:
    """
    text 0.7 : image 0.3 가중 점수.

    - fixed        : 없는 칸은 0으로 본다 (이미지 없는 일기는 0.7배로 깎임)
    - renormalized : 있는 칸의 가중치만으로 다시 나눈다
    """
    text_temp = profile.text.temperature if profile.text else None
    image_temp = profile.image.temperature if profile.image else None

    if weighting == WEIGHTING_RENORMALIZED:
        weighted, weights = 0.0, 0.0
        if text_temp is not None:
            weighted += TEXT_WEIGHT * text_temp
            weights += TEXT_WEIGHT
        if image_temp is not None:
            weighted += IMAGE_WEIGHT * image_temp
            weights += IMAGE_WEIGHT
        return round(weighted / weights, 2) if weights else 0.0

    return round(TEXT_WEIGHT * (text_temp or 0.0) + IMAGE_WEIGHT * (image_temp or 0.0), 2)


def sentiment_label(score: Optional[float]) -> str:
    if not score:
        return ANALYZING_LABEL
    for lower_bound, label in SENTIMENT_BANDS:
        if score >= lower_bound:
            return label
    return LOWEST_SENTIMENT


def dominant_emotion(profile: DiaryEmotionProfile) -> str:
    # 우선순위: text -> image -> integrated
    for slot in (AnalysisSlot.TEXT, AnalysisSlot.IMAGE, AnalysisSlot.INTEGRATED):
        result = profile.slot(slot)
        if result is not None:
            return result.category.value
    return ANALYZING_LABEL


def top_keywords(profile: DiaryEmotionProfile, limit: int = MAX_TOP_KEYWORDS) -> List[str]:
    return split_keywords(profile.keywords)[:limit]


def insight_text(profile: DiaryEmotionProfile) -> str:
    lines: List[str] = []
    for slot in (AnalysisSlot.TEXT, AnalysisSlot.IMAGE, AnalysisSlot.INTEGRATED):
        result = profile.slot(slot)
        if result is None:
            continue
        lines.append(f"{slot.value}: {result.category.value} (confidence: {result.confidence:.1f}%)")
    return "\n".join(lines).strip()


def summarize(profile: DiaryEmotionProfile, weighting: str = WEIGHTING_FIXED) -> AnalysisSummary:
    """저장된 프로필로부터 요약 뷰를 매번 새로 계산한다."""
    score = overall_score(profile, weighting)
    return AnalysisSummary(
        overall_temperature_score=score,
        overall_sentiment_label=sentiment_label(score),
        dominant_emotion=dominant_emotion(profile),
        top_keywords=top_keywords(profile),
        insight_text=insight_text(profile),
    )
