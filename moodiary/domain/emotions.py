# moodiary/domain/emotions.py
"""
감정 카테고리(닫힌 열거형)와 카테고리별 기본값 테이블.

- EmotionCategory : LLM이 돌려줄 수 있는 11개 감정 라벨
- EmotionBand     : 온도 변환 곡선을 결정하는 3개 그룹
- CATEGORY_TABLE  : 카테고리 -> {band, 기본 온도, 기본 신뢰도, 한글 이름}

"점수가 없을 때의 기본값"과 "카테고리별 곡선 선택"이 모두
이 테이블 하나를 보도록 모아 두었다.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional


class EmotionCategory(str, Enum):
    # 선언 순서 = 중첩 맵 응답을 훑는 고정 순서 (동점이면 앞쪽 우선)
    HAPPY = "happy"
    SAD = "sad"
    ANGRY = "angry"
    CALM = "calm"
    DEPRESSED = "depressed"
    JOYFUL = "joyful"
    ANXIOUS = "anxious"
    FRUSTRATED = "frustrated"
    SATISFIED = "satisfied"
    DISAPPOINTED = "disappointed"
    NEUTRAL = "neutral"


class EmotionBand(str, Enum):
    NEGATIVE_LOW = "negative_low"            # 슬픔/우울: 온도가 내려감
    ELEVATED_NEGATIVE = "elevated_negative"  # 분노/좌절: 온도가 올라감
    BASELINE = "baseline"                    # 나머지: 36.5 고정


@dataclass(frozen=True)
class CategoryProfile:
    band: EmotionBand
    default_temperature: float
    default_confidence: float
    display_name: str


DEFAULT_CONFIDENCE = 80.0

CATEGORY_TABLE: Dict[EmotionCategory, CategoryProfile] = {
    EmotionCategory.HAPPY: CategoryProfile(EmotionBand.BASELINE, 36.5, DEFAULT_CONFIDENCE, "행복"),
    EmotionCategory.SAD: CategoryProfile(EmotionBand.NEGATIVE_LOW, 34.0, DEFAULT_CONFIDENCE, "슬픔"),
    EmotionCategory.ANGRY: CategoryProfile(EmotionBand.ELEVATED_NEGATIVE, 39.0, DEFAULT_CONFIDENCE, "분노"),
    EmotionCategory.CALM: CategoryProfile(EmotionBand.BASELINE, 36.5, DEFAULT_CONFIDENCE, "평온"),
    EmotionCategory.DEPRESSED: CategoryProfile(EmotionBand.NEGATIVE_LOW, 34.0, DEFAULT_CONFIDENCE, "우울"),
    EmotionCategory.JOYFUL: CategoryProfile(EmotionBand.BASELINE, 36.5, DEFAULT_CONFIDENCE, "기쁨"),
    EmotionCategory.ANXIOUS: CategoryProfile(EmotionBand.BASELINE, 36.5, DEFAULT_CONFIDENCE, "불안"),
    EmotionCategory.FRUSTRATED: CategoryProfile(EmotionBand.ELEVATED_NEGATIVE, 39.0, DEFAULT_CONFIDENCE, "화남"),
    EmotionCategory.SATISFIED: CategoryProfile(EmotionBand.BASELINE, 36.5, DEFAULT_CONFIDENCE, "만족"),
    EmotionCategory.DISAPPOINTED: CategoryProfile(EmotionBand.BASELINE, 36.5, DEFAULT_CONFIDENCE, "실망"),
    EmotionCategory.NEUTRAL: CategoryProfile(EmotionBand.BASELINE, 36.5, DEFAULT_CONFIDENCE, "중립"),
}

# 영문 라벨 외에 LLM이 자주 섞어 쓰는 한글/동의어 라벨
_EXTRA_ALIASES: Dict[str, EmotionCategory] = {
    "joy": EmotionCategory.HAPPY,
    "좌절": EmotionCategory.FRUSTRATED,
}


def _build_alias_map() -> Dict[str, EmotionCategory]:
    aliases: Dict[str, EmotionCategory] = {}
    for category, profile in CATEGORY_TABLE.items():
        aliases[category.value] = category
        aliases[profile.display_name] = category
    aliases.update(_EXTRA_ALIASES)
    return aliases


LABEL_ALIASES: Dict[str, EmotionCategory] = _build_alias_map()


def resolve_category(label: object) -> Optional[EmotionCategory]:
    """
    LLM이 준 감정 라벨 문자열을 EmotionCategory로 바꾼다.
    대소문자/앞뒤 공백은 무시하고, 모르는 라벨이면 None.
    """
    if isinstance(label, EmotionCategory):
        return label
    if not isinstance(label, str):
        return None
    key = label.strip().lower()
    if not key:
        return None
    return LABEL_ALIASES.get(key)


def aliases_for(category: EmotionCategory) -> List[str]:
    """해당 카테고리로 매핑되는 모든 라벨 (중첩 맵 키 탐색용)."""
    return [alias for alias, c in LABEL_ALIASES.items() if c is category]


def band_of(category: EmotionCategory) -> EmotionBand:
    return CATEGORY_TABLE[category].band


def display_name(category: EmotionCategory) -> str:
    return CATEGORY_TABLE[category].display_name
