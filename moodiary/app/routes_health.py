# moodiary/app/routes_health.py

from __future__ import annotations
from fastapi import APIRouter

from moodiary.core.config import SUMMARY_WEIGHTING, TOGETHER_TEXT_MODEL, TOGETHER_VISION_MODEL

router = APIRouter()

@router.get("/health")
async def health():
    """
    단순 헬스 체크 엔드포인트.

    - 서버가 살아있는지와 현재 사용하는 모델/요약 가중 방식만 알려준다
    - LLM을 실제로 호출하지는 않는다
    """
    return {
        "status": "ok",
        "service": "moodiary-emotion-analysis",
        "text_model": TOGETHER_TEXT_MODEL,
        "vision_model": TOGETHER_VISION_MODEL,
        "summary_weighting": SUMMARY_WEIGHTING,
    }
