# moodiary/domain/models.py
"""
감정 분석 파이프라인에서 주고받는 값 객체들.

- RawAnalysisResponse  : LLM 호출 1회의 결과 분류 (저장하지 않음)
- EmotionAnalysisResult: 분석 1회의 정규화된 결과 (불변)
- DiaryEmotionProfile  : 일기 1건당 text/image/integrated 3칸 + 분석 시각
- AnalysisSummary      : 요약 API 응답용 파생 뷰 (캐시/저장 없음)
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from moodiary.domain.emotions import EmotionCategory, resolve_category
from moodiary.domain.normalizer import MAX_TEMPERATURE, MIN_TEMPERATURE


class ResponseStatus(str, Enum):
    SUCCESS = "success"
    REFUSED = "refused"
    MALFORMED = "malformed"
    UNAUTHORIZED = "unauthorized"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class RawAnalysisResponse:
    """LLM 호출/분류 결과.

    - status : ResponseStatus
    - payload: SUCCESS일 때만 의미 있음 (SDK 응답 객체 또는 content 문자열)
    - message: 거절 문구, 오류 메시지 등 진단용 텍스트
    """

    status: ResponseStatus
    payload: Any = None
    message: str = ""

    @classmethod
    def success(cls, payload: Any) -> "RawAnalysisResponse":
        return cls(ResponseStatus.SUCCESS, payload=payload)

    @classmethod
    def refused(cls, message: str) -> "RawAnalysisResponse":
        return cls(ResponseStatus.REFUSED, message=message)

    @classmethod
    def malformed(cls, message: str) -> "RawAnalysisResponse":
        return cls(ResponseStatus.MALFORMED, message=message)

    @classmethod
    def unauthorized(cls, message: str) -> "RawAnalysisResponse":
        return cls(ResponseStatus.UNAUTHORIZED, message=message)

    @classmethod
    def transport_error(cls, message: str) -> "RawAnalysisResponse":
        return cls(ResponseStatus.TRANSPORT_ERROR, message=message)

    @property
    def ok(self) -> bool:
        return self.status is ResponseStatus.SUCCESS


@dataclass(frozen=True)
class EmotionAnalysisResult:
    category: EmotionCategory
    temperature: float
    confidence: float
    keywords: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.category, EmotionCategory):
            raise ValueError(f"알 수 없는 감정 카테고리: {self.category!r}")
        if not (MIN_TEMPERATURE <= self.temperature <= MAX_TEMPERATURE):
            raise ValueError(f"온도 범위를 벗어났습니다: {self.temperature}")
        if not (0.0 <= self.confidence <= 100.0):
            raise ValueError(f"신뢰도 범위를 벗어났습니다: {self.confidence}")

    def keyword_list(self) -> List[str]:
        return split_keywords(self.keywords)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "emotion": self.category.value,
            "temperature": self.temperature,
            "confidence": self.confidence,
            "keywords": self.keywords,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EmotionAnalysisResult":
        category = resolve_category(data.get("emotion"))
        if category is None:
            raise ValueError(f"저장된 감정 라벨을 해석할 수 없습니다: {data.get('emotion')!r}")
        return cls(
            category=category,
            temperature=float(data["temperature"]),
            confidence=float(data["confidence"]),
            keywords=data.get("keywords") or "",
        )


class AnalysisSlot(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    INTEGRATED = "integrated"


@dataclass
class DiaryEmotionProfile:
    """일기 1건의 감정 프로필. 세 칸은 각각 독립적으로 None일 수 있다."""

    diary_id: str
    text: Optional[EmotionAnalysisResult] = None
    image: Optional[EmotionAnalysisResult] = None
    integrated: Optional[EmotionAnalysisResult] = None
    analyzed_at: datetime = field(default_factory=datetime.now)

    def slot(self, slot: AnalysisSlot) -> Optional[EmotionAnalysisResult]:
        return getattr(self, slot.value)

    def is_empty(self) -> bool:
        return self.text is None and self.image is None and self.integrated is None

    @property
    def keywords(self) -> str:
        """저장 키워드는 통합 결과 기준, 없으면 text -> image 순."""
        for result in (self.integrated, self.text, self.image):
            if result is not None:
                return result.keywords
        return ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "diary_id": self.diary_id,
            "text": self.text.to_dict() if self.text else None,
            "image": self.image.to_dict() if self.image else None,
            "integrated": self.integrated.to_dict() if self.integrated else None,
            "analyzed_at": self.analyzed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DiaryEmotionProfile":
        def _slot(key: str) -> Optional[EmotionAnalysisResult]:
            raw = data.get(key)
            return EmotionAnalysisResult.from_dict(raw) if raw else None

        analyzed_at = data.get("analyzed_at")
        if isinstance(analyzed_at, str):
            analyzed_at = datetime.fromisoformat(analyzed_at)
        elif not isinstance(analyzed_at, datetime):
            analyzed_at = datetime.now()

        return cls(
            diary_id=str(data["diary_id"]),
            text=_slot("text"),
            image=_slot("image"),
            integrated=_slot("integrated"),
            analyzed_at=analyzed_at,
        )


@dataclass(frozen=True)
class AnalysisSummary:
    overall_temperature_score: float
    overall_sentiment_label: str
    dominant_emotion: str
    top_keywords: List[str]
    insight_text: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def split_keywords(keywords: Optional[str]) -> List[str]:
    """쉼표 구분 키워드 문자열 -> 공백 제거, 빈 항목 제외한 리스트."""
    if not keywords:
        return []
    return [k.strip() for k in keywords.split(",") if k.strip()]
