# moodiary/domain/parser.py
"""
LLM content 문자열 -> EmotionAnalysisResult 파서.

LLM 응답 형태가 고정돼 있지 않아서, 알려진 세 가지 형태를 순서대로 시도한다.

1. 평면형   : {"emotion": "sad", "score": 15, "confidence": 90, "keywords": "..."}
2. 중첩 맵형: {"감정": {"행복": {"점수": 85, "신뢰도": 90}, "슬픔": {...}}}
3. 분리형   : {"text_emotion": "...", "image_emotion": "...", "overall_emotion": "..."}

어느 형태에도 맞지 않거나 라벨이 닫힌 열거형에 없으면 ResponseParseError.
파이프라인에서는 parse_emotion_content()로 감싸서 중립 기본값으로 떨어뜨린다.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from moodiary.domain.emotions import (
    EmotionCategory,
    aliases_for,
    resolve_category,
)
from moodiary.domain.models import EmotionAnalysisResult
from moodiary.domain.normalizer import coerce_number, from_temperature, normalize, normalize_confidence
from moodiary.exceptions import ResponseParseError

logger = logging.getLogger(__name__)

_FENCE_OPEN_RE = re.compile(r"^```[a-zA-Z]*\s*")
_FENCE_CLOSE_RE = re.compile(r"\s*```$")

SCORE_KEYS = ("score", "점수")
CONFIDENCE_KEYS = ("confidence", "신뢰도")
TEMPERATURE_KEYS = ("temperature", "온도")

# 중첩 맵형에서 바깥 키로 자주 오는 이름. 나머지 키는 그 뒤에 등장 순서대로 본다.
NESTED_OUTER_KEYS = ("감정", "emotions", "emotion", "emotion_scores", "scores")

SPLIT_FIELDS = ("overall_emotion", "image_emotion", "text_emotion")


def strip_code_fence(content: str) -> str:
    """```json ... ``` 로 감싸진 응답에서 코드블럭 표시를 걷어낸다."""
    text = content.strip()
    text = _FENCE_OPEN_RE.sub("", text, count=1)
    text = _FENCE_CLOSE_RE.sub("", text, count=1)
    return text.strip()


def _decode_json(content: str) -> Dict[str, Any]:
    text = strip_code_fence(content)
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # 앞뒤에 설명 문장이 붙은 경우: 가장 바깥 {...} 만 다시 시도
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise ResponseParseError("응답에서 JSON 객체를 찾을 수 없습니다.")
        try:
            data = json.loads(text[start:end + 1])
        except ValueError as e:
            raise ResponseParseError(f"JSON 파싱 실패: {e}") from e
    except ValueError as e:
        # 자릿수 제한을 넘는 정수 등 JSONDecodeError가 아닌 ValueError
        raise ResponseParseError(f"JSON 파싱 실패: {e}") from e

    if not isinstance(data, dict):
        raise ResponseParseError("최상위 JSON이 객체가 아닙니다.")
    return data


def _first_present(data: Dict[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _join_keywords(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v).strip() for v in value if str(v).strip())
    return str(value).strip()


def _build_result(
    category: EmotionCategory,
    raw_score: Optional[float],
    raw_confidence: Optional[float],
    keywords: str,
    raw_temperature: Optional[float] = None,
) -> EmotionAnalysisResult:
    if raw_temperature is not None:
        temperature = from_temperature(category, raw_temperature)
    else:
        temperature = normalize(category, raw_score)
    return EmotionAnalysisResult(
        category=category,
        temperature=temperature,
        confidence=normalize_confidence(raw_confidence),
        keywords=keywords,
    )


def _require_category(label: Any) -> EmotionCategory:
    category = resolve_category(label)
    if category is None:
        raise ResponseParseError(f"알 수 없는 감정 라벨: {label!r}")
    return category


# ---------------------------
# 형태별 파서 (맞지 않으면 None)
# ---------------------------

def _parse_flat(data: Dict[str, Any]) -> Optional[EmotionAnalysisResult]:
    label = data.get("emotion")
    if not isinstance(label, str):
        return None

    category = _require_category(label)

    keywords = data.get("keywords")
    if keywords is None:
        keywords = data.get("description")

    return _build_result(
        category,
        coerce_number(_first_present(data, SCORE_KEYS)),
        coerce_number(_first_present(data, CONFIDENCE_KEYS)),
        _join_keywords(keywords),
        coerce_number(_first_present(data, TEMPERATURE_KEYS)),
    )


def _nested_candidates(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    ordered: List[str] = [k for k in NESTED_OUTER_KEYS if k in data]
    ordered += [k for k in data.keys() if k not in ordered]
    return [data[k] for k in ordered if isinstance(data[k], dict)]


def _lookup_entry(inner: Dict[str, Any], category: EmotionCategory) -> Optional[Dict[str, Any]]:
    lowered = {str(k).strip().lower(): v for k, v in inner.items()}
    for alias in aliases_for(category):
        entry = lowered.get(alias)
        if isinstance(entry, dict):
            return entry
    return None


def _parse_nested(data: Dict[str, Any]) -> Optional[EmotionAnalysisResult]:
    for inner in _nested_candidates(data):
        best: Optional[Tuple[EmotionCategory, float, Optional[float]]] = None

        # 맵 순회 순서가 아니라 열거형 선언 순서로 훑는다 (동점이면 먼저 본 것 유지)
        for category in EmotionCategory:
            entry = _lookup_entry(inner, category)
            if entry is None:
                continue
            score = coerce_number(_first_present(entry, SCORE_KEYS))
            confidence = coerce_number(_first_present(entry, CONFIDENCE_KEYS))
            effective = score if score is not None else 0.0
            if best is None or effective > best[1]:
                best = (category, effective, confidence)

        if best is not None:
            category, score, confidence = best
            return _build_result(category, score, confidence, category.value)

    return None


def _parse_split(data: Dict[str, Any]) -> Optional[EmotionAnalysisResult]:
    if not any(field in data for field in SPLIT_FIELDS):
        return None

    label = ""
    for field in SPLIT_FIELDS:
        value = data.get(field)
        if isinstance(value, str) and value.strip():
            label = value.strip()
            break

    category = _require_category(label)
    return _build_result(category, None, None, label)


SHAPE_PARSERS: Tuple[Tuple[str, Callable[[Dict[str, Any]], Optional[EmotionAnalysisResult]]], ...] = (
    ("flat", _parse_flat),
    ("nested", _parse_nested),
    ("split", _parse_split),
)


def parse(content: str) -> EmotionAnalysisResult:
    """content 문자열을 해석한다. 실패하면 ResponseParseError."""
    if not content or not content.strip():
        raise ResponseParseError("빈 응답입니다.")

    data = _decode_json(content)

    errors: List[str] = []
    for name, shape_parser in SHAPE_PARSERS:
        try:
            result = shape_parser(data)
        except ResponseParseError as e:
            errors.append(f"{name}: {e}")
            continue
        if result is not None:
            logger.debug("응답 형태 '%s'로 파싱: %s", name, result)
            return result

    detail = "; ".join(errors) if errors else "일치하는 형태 없음"
    raise ResponseParseError(f"알려진 응답 형태로 해석할 수 없습니다 ({detail})")


def default_result() -> EmotionAnalysisResult:
    """파싱 실패 시 쓰는 중립 기본 결과."""
    return _build_result(EmotionCategory.NEUTRAL, None, None, "")


def parse_emotion_content(content: str) -> EmotionAnalysisResult:
    """parse()와 같지만 실패하면 예외 대신 중립 기본값을 돌려준다."""
    try:
        return parse(content)
    except ResponseParseError as e:
        logger.warning("감정 응답 파싱 실패, 중립 기본값 사용: %s", e)
        return default_result()
