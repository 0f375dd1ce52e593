# moodiary/domain/trends.py
"""
여러 일기의 통합 감정 결과로 기간 통계를 만든다.

- 평균 온도 (소수 첫째 자리, 데이터 없으면 36.5)
- 화면에 쓰는 6개 감정 버킷별 건수 (기쁨, 흥분, 평온, 불안, 화남, 우울)
- 가장 많이 나온 버킷 (동률이면 버킷 순서상 앞쪽)
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List

from moodiary.domain.emotions import EmotionCategory
from moodiary.domain.models import DiaryEmotionProfile
from moodiary.domain.normalizer import BASELINE_TEMPERATURE

DISTRIBUTION_ORDER = ("기쁨", "흥분", "평온", "불안", "화남", "우울")
FALLBACK_BUCKET = "평온"
NO_RECORD_LABEL = "기록 없음"

BUCKET_OF: Dict[EmotionCategory, str] = {
    EmotionCategory.HAPPY: "기쁨",
    EmotionCategory.SATISFIED: "기쁨",
    EmotionCategory.JOYFUL: "흥분",
    EmotionCategory.CALM: "평온",
    EmotionCategory.NEUTRAL: "평온",
    EmotionCategory.ANXIOUS: "불안",
    EmotionCategory.ANGRY: "화남",
    EmotionCategory.FRUSTRATED: "화남",
    EmotionCategory.SAD: "우울",
    EmotionCategory.DEPRESSED: "우울",
    EmotionCategory.DISAPPOINTED: "우울",
}


@dataclass(frozen=True)
class HistoryTrend:
    total_diaries: int
    average_temperature: float
    most_frequent: str
    distribution: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def bucket_for(category: EmotionCategory) -> str:
    return BUCKET_OF.get(category, FALLBACK_BUCKET)


def summarize_history(profiles: Iterable[DiaryEmotionProfile]) -> HistoryTrend:
    temperatures: List[float] = []
    counts: Dict[str, int] = {bucket: 0 for bucket in DISTRIBUTION_ORDER}

    for profile in profiles:
        result = profile.integrated
        if result is None:
            continue
        temperatures.append(result.temperature)
        counts[bucket_for(result.category)] += 1

    if not temperatures:
        return HistoryTrend(
            total_diaries=0,
            average_temperature=BASELINE_TEMPERATURE,
            most_frequent=NO_RECORD_LABEL,
            distribution=counts,
        )

    most_frequent = DISTRIBUTION_ORDER[0]
    for bucket in DISTRIBUTION_ORDER:
        if counts[bucket] > counts[most_frequent]:
            most_frequent = bucket

    return HistoryTrend(
        total_diaries=len(temperatures),
        average_temperature=round(sum(temperatures) / len(temperatures), 1),
        most_frequent=most_frequent,
        distribution=counts,
    )
