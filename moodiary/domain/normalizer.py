# moodiary/domain/normalizer.py
"""
LLM 원점수(0~100)를 '감정 온도'(34.0~40.0)로 바꾸는 정규화 모듈.

밴드별 곡선
- 슬픔/우울   : 0~30점  -> 36.5 ~ 34.0 도 (30점 초과는 34.0)
- 분노/좌절   : 80~100점 -> 36.5 ~ 40.0 도, 최종값은 최소 38.0
- 그 외(기준) : 점수와 무관하게 36.5 도

점수가 아예 없으면 CATEGORY_TABLE의 카테고리별 기본 온도를 쓴다.

0~100 원점수와 30~42 온도 구간은 겹치므로 범위만 보고 온도인지 판단하지 않는다.
응답이 온도를 직접 준 경우(temperature/온도 필드)만 from_temperature()로 그대로 쓴다.
"""
from __future__ import annotations

import math
from typing import Optional

from moodiary.domain.emotions import (
    CATEGORY_TABLE,
    DEFAULT_CONFIDENCE,
    EmotionBand,
    EmotionCategory,
)

MIN_TEMPERATURE = 34.0
MAX_TEMPERATURE = 40.0
BASELINE_TEMPERATURE = 36.5

SADNESS_RAW_CEILING = 30.0
SADNESS_SPAN = BASELINE_TEMPERATURE - MIN_TEMPERATURE  # 2.5

ANGER_RAW_FLOOR = 80.0
ANGER_RAW_SPAN = 20.0
ANGER_SPAN = MAX_TEMPERATURE - BASELINE_TEMPERATURE  # 3.5
ANGER_MIN_TEMPERATURE = 38.0

RAW_MIN = 0.0
RAW_MAX = 100.0

# 온도 필드로 받은 값 중 받아들이는 구간. 밖이면 카테고리 기본 온도.
TEMPERATURE_ACCEPT_MIN = 30.0
TEMPERATURE_ACCEPT_MAX = 42.0


def coerce_number(value: object) -> Optional[float]:
    """
    LLM 응답의 숫자 필드를 float으로 바꾼다.
    "85", "85%", 85 모두 허용하고, bool/NaN/무한대/해석 불가/float 범위 초과 값은 None.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            text = value.strip().rstrip("%").strip()
            if not text:
                return None
            number = float(text)
        else:
            return None
    except (ValueError, OverflowError):
        return None

    if math.isnan(number) or math.isinf(number):
        return None
    return number


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def default_temperature(category: EmotionCategory) -> float:
    return CATEGORY_TABLE[category].default_temperature


def from_temperature(category: EmotionCategory, value: Optional[float] = None) -> float:
    """이미 온도로 받은 값은 곡선을 다시 태우지 않고 34.0~40.0으로만 자른다."""
    temperature = coerce_number(value)
    if temperature is None or not (TEMPERATURE_ACCEPT_MIN <= temperature <= TEMPERATURE_ACCEPT_MAX):
        return default_temperature(category)
    return clamp(temperature, MIN_TEMPERATURE, MAX_TEMPERATURE)


def normalize(category: EmotionCategory, raw_score: Optional[float] = None) -> float:
    """카테고리별 곡선으로 원점수를 온도로 변환한다."""
    score = coerce_number(raw_score)
    if score is None:
        return default_temperature(category)

    score = clamp(score, RAW_MIN, RAW_MAX)
    band = CATEGORY_TABLE[category].band

    if band is EmotionBand.NEGATIVE_LOW:
        temperature = BASELINE_TEMPERATURE - (min(score, SADNESS_RAW_CEILING) / SADNESS_RAW_CEILING) * SADNESS_SPAN
    elif band is EmotionBand.ELEVATED_NEGATIVE:
        temperature = BASELINE_TEMPERATURE + (max(score, ANGER_RAW_FLOOR) - ANGER_RAW_FLOOR) / ANGER_RAW_SPAN * ANGER_SPAN
        temperature = max(temperature, ANGER_MIN_TEMPERATURE)
    else:
        temperature = BASELINE_TEMPERATURE

    return clamp(temperature, MIN_TEMPERATURE, MAX_TEMPERATURE)


def normalize_confidence(confidence: Optional[float] = None) -> float:
    """신뢰도는 0~100으로 자르고, 없으면 기본값 80."""
    value = coerce_number(confidence)
    if value is None:
        return DEFAULT_CONFIDENCE
    return clamp(value, 0.0, 100.0)
