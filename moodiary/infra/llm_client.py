# moodiary/infra/llm_client.py

from __future__ import annotations

import asyncio
import base64
import logging
import os
from typing import Any, Dict, List, Optional

from together import AsyncTogether
from together.error import AuthenticationError

from moodiary.core.config import (
    ANALYSIS_TIMEOUT_SECONDS,
    TOGETHER_BASE_URL,
    TOGETHER_MAX_TOKENS,
    TOGETHER_TEMPERATURE,
    TOGETHER_TEXT_MODEL,
    TOGETHER_VISION_MODEL,
)
from moodiary.domain.models import RawAnalysisResponse
from moodiary.exceptions import ConfigError, DiaryDataError
from moodiary.infra.paths import KEY_PATH
from moodiary.infra.prompts import load_system_prompt

logger = logging.getLogger(__name__)

# 전역 클라이언트 캐시 (API 키는 프로세스 전체에서 읽기 전용)
_TOGETHER_CLIENT: Optional[AsyncTogether] = None


def _load_together_api_key() -> str:
    """
    Together API 키를 로딩한다.
    1순위: 환경변수 TOGETHER_API_KEY
    2순위: moodiary/conf/key-togetherai.txt
    둘 다 없으면 ConfigError 발생.
    """
    key = os.getenv("TOGETHER_API_KEY")
    if key:
        return key.strip()

    if KEY_PATH.exists():
        content = KEY_PATH.read_text(encoding="utf-8").strip()
        if content:
            return content

    raise ConfigError(
        "Together API 키를 찾을 수 없습니다. "
        "환경변수 TOGETHER_API_KEY 또는 moodiary/conf/key-togetherai.txt를 설정해 주세요."
    )


def _get_together_client() -> AsyncTogether:
    """
    AsyncTogether 클라이언트를 전역으로 한 번만 생성해서 재사용.
    생성형 응답은 재시도마다 라벨이 달라질 수 있어 SDK 자동 재시도는 끈다.
    """
    global _TOGETHER_CLIENT
    if _TOGETHER_CLIENT is None:
        api_key = _load_together_api_key()
        _TOGETHER_CLIENT = AsyncTogether(
            api_key=api_key,
            base_url=TOGETHER_BASE_URL,
            timeout=ANALYSIS_TIMEOUT_SECONDS,
            max_retries=0,
        )
        logger.info("Together 클라이언트가 초기화되었습니다.")
    return _TOGETHER_CLIENT


def reset_client() -> None:
    """캐시된 클라이언트를 버린다 (키 교체 후 재생성용)."""
    global _TOGETHER_CLIENT
    _TOGETHER_CLIENT = None


def encode_image_data_url(image_data: bytes, mime_type: str = "image/png") -> str:
    """이미지 바이트 -> data:<mime>;base64,... URL."""
    encoded = base64.b64encode(image_data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def build_messages(
    prompt: str,
    image_data: Optional[bytes] = None,
    mime_type: str = "image/png",
) -> List[Dict[str, Any]]:
    """
    system + user 메시지를 만든다.
    이미지가 있으면 user content를 [text, image_url] 파트 리스트로 보낸다.
    """
    if image_data is None:
        user_content: Any = prompt
    else:
        user_content = [
            {"type": "text", "text": prompt},
            {"type": "image_url", "image_url": {"url": encode_image_data_url(image_data, mime_type)}},
        ]

    return [
        {"role": "system", "content": load_system_prompt()},
        {"role": "user", "content": user_content},
    ]


async def invoke(
    prompt: str,
    image_data: Optional[bytes] = None,
    mime_type: str = "image/png",
) -> RawAnalysisResponse:
    """
    LLM에 프롬프트(및 이미지)를 한 번 보내고 결과를 RawAnalysisResponse로 돌려준다.

    - 인증 실패/키 없음 : UNAUTHORIZED (같은 키로 재시도하지 말 것)
    - 네트워크/타임아웃 : TRANSPORT_ERROR
    - 정상 응답         : SUCCESS(payload=SDK 응답 객체), 본문이 비어 있어도 분류기로 넘긴다
    """
    if not prompt or not prompt.strip():
        raise DiaryDataError("LLM 프롬프트가 비어 있습니다.")
    if image_data is not None and not image_data:
        raise DiaryDataError("이미지 데이터가 비어 있습니다.")

    try:
        client = _get_together_client()
    except ConfigError as e:
        return RawAnalysisResponse.unauthorized(str(e))

    model = TOGETHER_VISION_MODEL if image_data is not None else TOGETHER_TEXT_MODEL
    messages = build_messages(prompt, image_data, mime_type)

    # ====== LLM 호출 ======
    try:
        logger.info(
            "Together LLM 호출 시작: model=%s, prompt_len=%d, image=%s",
            model,
            len(prompt),
            image_data is not None,
        )

        response = await client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=TOGETHER_TEMPERATURE,
            max_tokens=TOGETHER_MAX_TOKENS,
        )

    except AuthenticationError as e:
        logger.error("LLM 인증 실패: %s", e)
        return RawAnalysisResponse.unauthorized(str(e))

    except asyncio.TimeoutError:
        logger.warning("LLM 호출 타임아웃: model=%s", model)
        return RawAnalysisResponse.transport_error("LLM 호출 시간이 초과되었습니다.")

    except Exception as e:
        # 네트워크, 레이트리밋, 서버 오류 등은 전부 해당 신호만 비우는 전송 오류로 본다
        logger.warning("LLM 호출 중 예외 발생: %s: %s", type(e).__name__, e)
        return RawAnalysisResponse.transport_error(f"LLM 호출 중 오류가 발생했습니다: {e}")

    logger.info("Together LLM 호출 완료: model=%s", model)
    return RawAnalysisResponse.success(response)
