# moodiary/services/analysis_service.py
"""
일기 1건에 대한 멀티모달 감정 분석 서비스.

- text / image / integrated 세 분석을 독립 태스크로 동시에 돌리고
  공용 제한 시간 하나로 묶는다.
- 각 신호는 독립적으로 실패할 수 있다 (거절/전송 오류 -> 해당 칸만 None).
- 인증 실패만은 같은 키로 나머지를 계속 부를 이유가 없어 즉시 전파한다.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple

from moodiary.core.config import ANALYSIS_TIMEOUT_SECONDS
from moodiary.domain.classifier import classify
from moodiary.domain.models import (
    AnalysisSlot,
    DiaryEmotionProfile,
    EmotionAnalysisResult,
    ResponseStatus,
)
from moodiary.domain.parser import default_result, parse_emotion_content
from moodiary.exceptions import (
    ProviderRefusalError,
    ProviderTransportError,
    ProviderUnauthorizedError,
)
from moodiary.infra import llm_client
from moodiary.infra.image_store import StoredImage, load_image
from moodiary.infra.prompts import (
    build_image_prompt,
    build_integrated_prompt,
    build_text_prompt,
)

logger = logging.getLogger(__name__)

ImageLoader = Callable[[str], StoredImage]


async def analyze_signal(
    slot: AnalysisSlot,
    prompt: str,
    image: Optional[StoredImage] = None,
) -> EmotionAnalysisResult:
    """
    LLM 호출 1회 -> 분류 -> 파싱/정규화.

    - UNAUTHORIZED    : ProviderUnauthorizedError
    - TRANSPORT_ERROR : ProviderTransportError
    - 거절            : ProviderRefusalError (거절 문구는 로그로 남김)
    - 빈/깨진 응답    : 중립 기본 결과
    """
    if image is None:
        response = await llm_client.invoke(prompt)
    else:
        response = await llm_client.invoke(prompt, image.data, image.mime_type)

    if response.status is ResponseStatus.UNAUTHORIZED:
        raise ProviderUnauthorizedError(response.message)
    if response.status is ResponseStatus.TRANSPORT_ERROR:
        raise ProviderTransportError(response.message)

    classified = classify(response.payload)

    if classified.status is ResponseStatus.REFUSED:
        logger.warning("[%s] LLM이 분석을 거절했습니다: %s", slot.value, classified.message)
        raise ProviderRefusalError(classified.message)

    if classified.status is ResponseStatus.MALFORMED:
        logger.warning("[%s] LLM 응답이 비어 있어 중립 기본값 사용: %s", slot.value, classified.message)
        return default_result()

    result = parse_emotion_content(classified.payload)
    logger.info(
        "[%s] 감정 분석 완료: emotion=%s, temperature=%.2f, confidence=%.1f",
        slot.value,
        result.category.value,
        result.temperature,
        result.confidence,
    )
    return result


def aggregate(
    text_result: Optional[EmotionAnalysisResult],
    image_result: Optional[EmotionAnalysisResult],
    integrated_result: Optional[EmotionAnalysisResult] = None,
) -> Optional[EmotionAnalysisResult]:
    """
    통합 결과를 정한다.

    1. text/image 둘 다 있음 -> 별도 통합 호출 결과 (실패했으면 text -> image 순으로 대체)
    2. text만 있음          -> text 결과 복사본
    3. image만 있음         -> image 결과 복사본
    4. 둘 다 없음           -> None
    """
    if text_result is not None and image_result is not None:
        if integrated_result is not None:
            return integrated_result
        logger.info("통합 분석 결과가 없어 텍스트 분석 결과로 대체합니다.")
        return dataclasses.replace(text_result)
    if text_result is not None:
        return dataclasses.replace(text_result)
    if image_result is not None:
        return dataclasses.replace(image_result)
    return None


def _has_text(content: Optional[str]) -> bool:
    return bool(content and content.strip())


def _load_image_safely(image_ref: Optional[str], image_loader: ImageLoader) -> Optional[StoredImage]:
    if not image_ref or not image_ref.strip():
        return None
    try:
        image = image_loader(image_ref)
    except (OSError, ValueError) as e:
        logger.warning("이미지를 읽지 못해 이미지 분석을 건너뜁니다: %s (%s)", image_ref, e)
        return None
    if image is None or not image.data:
        logger.warning("이미지 데이터가 비어 있어 이미지 분석을 건너뜁니다: %s", image_ref)
        return None
    return image


async def _collect(
    tasks: Dict[AnalysisSlot, "asyncio.Task[EmotionAnalysisResult]"],
    timeout: float,
) -> Dict[AnalysisSlot, Optional[EmotionAnalysisResult]]:
    results: Dict[AnalysisSlot, Optional[EmotionAnalysisResult]] = {slot: None for slot in AnalysisSlot}
    if not tasks:
        return results

    _, pending = await asyncio.wait(tasks.values(), timeout=timeout)
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

    unauthorized: Optional[ProviderUnauthorizedError] = None
    for slot, task in tasks.items():
        if task in pending:
            logger.warning("[%s] 분석 제한 시간(%.1fs) 초과로 결과를 비웁니다.", slot.value, timeout)
            continue
        error = task.exception()
        if error is None:
            results[slot] = task.result()
        elif isinstance(error, ProviderUnauthorizedError):
            unauthorized = error
        elif isinstance(error, (ProviderRefusalError, ProviderTransportError)):
            logger.warning("[%s] 분석 실패로 결과를 비웁니다: %s", slot.value, error)
        else:
            # 예상 못한 오류도 해당 칸만 비운다
            logger.error("[%s] 분석 중 예외 발생, 결과를 비웁니다: %r", slot.value, error, exc_info=error)

    if unauthorized is not None:
        logger.error("LLM 인증 실패로 감정 분석을 중단합니다: %s", unauthorized)
        raise unauthorized

    return results


async def analyze_diary(
    diary_id: str,
    content: Optional[str],
    image_ref: Optional[str] = None,
    *,
    timeout: Optional[float] = None,
    image_loader: ImageLoader = load_image,
) -> Optional[DiaryEmotionProfile]:
    """
    일기 내용/이미지로 감정 프로필을 만든다. 분석할 것이 하나도 없으면 None.

    ProviderUnauthorizedError 외의 분석 실패는 모두 해당 칸을 비우는 것으로 끝난다.
    """
    has_text = _has_text(content)
    image = _load_image_safely(image_ref, image_loader)

    # 프롬프트를 먼저 전부 만든다. 템플릿 오류가 나면 아무 태스크도 띄우지 않는다.
    requests: Dict[AnalysisSlot, Tuple[str, Optional[StoredImage]]] = {}
    if has_text:
        requests[AnalysisSlot.TEXT] = (build_text_prompt(content), None)
    if image is not None:
        requests[AnalysisSlot.IMAGE] = (build_image_prompt(), image)
    if has_text and image is not None:
        requests[AnalysisSlot.INTEGRATED] = (build_integrated_prompt(content), image)

    tasks: Dict[AnalysisSlot, "asyncio.Task[EmotionAnalysisResult]"] = {
        slot: asyncio.ensure_future(analyze_signal(slot, prompt, signal_image))
        for slot, (prompt, signal_image) in requests.items()
    }

    if not tasks:
        logger.info("diary_id=%s: 분석할 텍스트/이미지가 없습니다.", diary_id)
        return None

    results = await _collect(tasks, ANALYSIS_TIMEOUT_SECONDS if timeout is None else timeout)

    text_result = results[AnalysisSlot.TEXT]
    image_result = results[AnalysisSlot.IMAGE]
    integrated_result = aggregate(text_result, image_result, results[AnalysisSlot.INTEGRATED])

    if integrated_result is None:
        logger.info("diary_id=%s: 모든 감정 분석이 실패했습니다.", diary_id)
        return None

    return DiaryEmotionProfile(
        diary_id=str(diary_id),
        text=text_result,
        image=image_result,
        integrated=integrated_result,
        analyzed_at=datetime.now(),
    )
