# moodiary/domain/classifier.py
"""
LLM 응답 1차 분류기.

JSON 파싱 전에 먼저
1) 첫 번째 생성 메시지의 content가 있는지 (없으면 MALFORMED)
2) 거절 문구가 섞여 있는지 (있으면 REFUSED, 원문을 message로)
를 본다. 거절 문구는 JSON이 아니므로 파서까지 내려가면
전송 오류와 구분할 수 없게 된다.
"""
from __future__ import annotations

from typing import Any, List, Optional

from moodiary.domain.models import RawAnalysisResponse


# 사과 표현 + 불가 표현이 함께 나오면 거절로 본다.
APOLOGY_MARKERS = (
    "i'm sorry",
    "i am sorry",
    "sorry,",
    "i apologize",
    "apologies",
    "죄송",
    "미안",
)

INABILITY_MARKERS = (
    "can't",
    "cannot",
    "can not",
    "unable to",
    "not able to",
    "won't be able",
    "할 수 없",
    "드릴 수 없",
    "어렵습니다",
)

# 사과 없이도 그 자체로 거절인 표현
DIRECT_REFUSAL_MARKERS = (
    "i can't assist",
    "i cannot assist",
    "i can't help with",
    "i cannot help with",
    "i'm unable to",
    "i am unable to",
    "i can't analyze",
    "i cannot analyze",
    "i can't provide",
    "i cannot provide",
)


def _message_of(choice: Any) -> Any:
    if isinstance(choice, dict):
        return choice.get("message")
    return getattr(choice, "message", None)


def _content_of(message: Any) -> Any:
    if isinstance(message, dict):
        return message.get("content")
    return getattr(message, "content", None)


def _merge_content_parts(content: Any) -> str:
    # 일부 SDK 버전에서 content가 [{"type": "text", "text": "..."}] 리스트로 옴
    if isinstance(content, list):
        merged: List[str] = []
        for part in content:
            if isinstance(part, dict):
                text = part.get("text")
                if text:
                    merged.append(text)
            elif isinstance(part, str):
                merged.append(part)
        return "".join(merged)
    return str(content)


def extract_content(payload: Any) -> Optional[str]:
    """
    choices[0].message.content 를 꺼낸다.
    SDK 응답 객체와 dict(JSON 엔벨로프) 둘 다 받는다. 없거나 비었으면 None.
    """
    if payload is None:
        return None

    choices = payload.get("choices") if isinstance(payload, dict) else getattr(payload, "choices", None)
    if not choices:
        return None

    try:
        first = choices[0]
    except (IndexError, KeyError, TypeError):
        return None

    content = _content_of(_message_of(first))
    if content is None:
        return None

    text = _merge_content_parts(content).strip()
    return text or None


def _normalize_for_scan(text: str) -> str:
    return text.lower().replace("’", "'").replace("‘", "'")


def is_refusal(content: str) -> bool:
    lowered = _normalize_for_scan(content)
    if any(marker in lowered for marker in DIRECT_REFUSAL_MARKERS):
        return True
    has_apology = any(marker in lowered for marker in APOLOGY_MARKERS)
    has_inability = any(marker in lowered for marker in INABILITY_MARKERS)
    return has_apology and has_inability


def classify(payload: Any) -> RawAnalysisResponse:
    """
    응답 payload를 REFUSED / MALFORMED / SUCCESS(content 문자열) 중 하나로 분류.
    """
    content = extract_content(payload)
    if content is None:
        return RawAnalysisResponse.malformed("LLM 응답 content가 비어 있습니다.")

    if is_refusal(content):
        return RawAnalysisResponse.refused(content)

    return RawAnalysisResponse.success(content)
