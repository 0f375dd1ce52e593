# moodiary/app/routes_analysis.py
from __future__ import annotations
import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from moodiary.exceptions import (
    DiaryDataError,
    ProfileNotFoundError,
    ProviderUnauthorizedError,
)
from moodiary.infra.profile_repo import ProfileRepository
from moodiary.usecases import diary_analysis

logger = logging.getLogger(__name__)
router = APIRouter()


def get_profile_repo() -> ProfileRepository:
    return ProfileRepository()


# ---------------------------
# 요청(Request) 스키마
# ---------------------------

class AnalyzeRequest(BaseModel):
    content: Optional[str] = Field(None, description="분석할 일기 원문")
    image_ref: Optional[str] = Field(None, description="업로드된 이미지 참조 (파일명 또는 /uploads/... 경로)")


class DiaryAnalysisRequest(AnalyzeRequest):
    previous_content: Optional[str] = Field(None, description="수정 전 일기 원문 (수정 시)")
    previous_image_ref: Optional[str] = Field(None, description="수정 전 이미지 참조 (수정 시)")
    is_update: bool = Field(False, description="True면 변경된 경우에만 다시 분석")


# ---------------------------
# 응답(Response) 스키마
# ---------------------------

class EmotionScore(BaseModel):
    emotion: str
    temperature: float
    confidence: float
    keywords: str = ""


class ProfileBody(BaseModel):
    diary_id: str
    text: Optional[EmotionScore] = None
    image: Optional[EmotionScore] = None
    integrated: Optional[EmotionScore] = None
    analyzed_at: str


class AnalyzeSuccessResponse(BaseModel):
    status: Literal["ok"] = "ok"
    result: Optional[ProfileBody] = None


class DiaryAnalysisResponse(BaseModel):
    status: Literal["ok"] = "ok"
    diary_id: str
    reanalyzed: bool
    analysis_error: Optional[str] = None
    result: Optional[ProfileBody] = None


class SummaryBody(BaseModel):
    overall_temperature_score: float
    overall_sentiment_label: str
    dominant_emotion: str
    top_keywords: List[str]
    insight_text: str


class SummaryResponse(BaseModel):
    status: Literal["ok"] = "ok"
    diary_id: str
    result: SummaryBody


class ErrorResponse(BaseModel):
    status: Literal["error"] = "error"
    error_type: str
    message: str


def _error(status_code: int, error_type: str, message: str) -> JSONResponse:
    body = ErrorResponse(error_type=error_type, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _bad_request(e: DiaryDataError) -> JSONResponse:
    logger.warning("입력 데이터 오류: %s", e)
    return _error(400, "diary_data_error", str(e))


def _not_found(e: ProfileNotFoundError) -> JSONResponse:
    logger.info("감정 프로필 없음: %s", e)
    return _error(404, "profile_not_found", str(e))


# ---------------------------
# 라우트
# ---------------------------

@router.post("/analyze", response_model=AnalyzeSuccessResponse)
async def analyze_route(req: AnalyzeRequest):
    """
    저장 없이 텍스트/이미지 감정만 바로 분석하는 API.
    """
    try:
        profile = await diary_analysis.analyze_adhoc(req.content, req.image_ref)
    except DiaryDataError as e:
        return _bad_request(e)
    except ProviderUnauthorizedError:
        return _error(502, "provider_unauthorized", "감정 분석 서비스 인증에 실패했습니다.")

    return AnalyzeSuccessResponse(result=profile.to_dict() if profile else None)


@router.put("/diaries/{diary_id}/analysis", response_model=DiaryAnalysisResponse)
async def save_diary_analysis_route(
    diary_id: str,
    req: DiaryAnalysisRequest,
    repo: ProfileRepository = Depends(get_profile_repo),
):
    """
    일기 생성/수정 시 호출. 분석이 실패해도 200으로 응답하고
    analysis_error 필드로만 알린다 (일기 쓰기를 막지 않음).
    """
    try:
        if req.is_update:
            outcome = await diary_analysis.update_diary_entry(
                diary_id,
                req.previous_content,
                req.previous_image_ref,
                req.content,
                req.image_ref,
                repo=repo,
            )
        else:
            outcome = await diary_analysis.analyze_diary_entry(
                diary_id, req.content, req.image_ref, repo=repo
            )
    except DiaryDataError as e:
        return _bad_request(e)

    return DiaryAnalysisResponse(
        diary_id=outcome.diary_id,
        reanalyzed=outcome.reanalyzed,
        analysis_error=outcome.analysis_error,
        result=outcome.profile.to_dict() if outcome.profile else None,
    )


@router.get("/diaries/{diary_id}/analysis")
async def get_diary_analysis_route(
    diary_id: str,
    repo: ProfileRepository = Depends(get_profile_repo),
):
    try:
        profile = diary_analysis.get_emotion_profile(diary_id, repo=repo)
    except DiaryDataError as e:
        return _bad_request(e)
    except ProfileNotFoundError as e:
        return _not_found(e)
    return {"status": "ok", "result": diary_analysis.profile_view(profile)}


@router.get("/diaries/{diary_id}/analysis/summary", response_model=SummaryResponse)
async def get_diary_summary_route(
    diary_id: str,
    repo: ProfileRepository = Depends(get_profile_repo),
):
    """요약은 캐시하지 않고 저장된 프로필로 매번 다시 계산한다."""
    try:
        summary = diary_analysis.get_analysis_summary(diary_id, repo=repo)
    except DiaryDataError as e:
        return _bad_request(e)
    except ProfileNotFoundError as e:
        return _not_found(e)
    return SummaryResponse(diary_id=diary_id, result=summary.to_dict())


@router.delete("/diaries/{diary_id}/analysis")
async def delete_diary_analysis_route(
    diary_id: str,
    repo: ProfileRepository = Depends(get_profile_repo),
):
    try:
        deleted = diary_analysis.delete_diary_entry(diary_id, repo=repo)
    except DiaryDataError as e:
        return _bad_request(e)
    return {"status": "ok", "diary_id": diary_id, "deleted": deleted}


@router.get("/analysis/trends")
async def get_trends_route(repo: ProfileRepository = Depends(get_profile_repo)) -> Dict[str, Any]:
    trend = diary_analysis.get_history_trends(repo=repo)
    return {"status": "ok", "result": trend.to_dict()}


@router.get("/analysis/by-emotion/{emotion}")
async def get_by_emotion_route(
    emotion: str,
    repo: ProfileRepository = Depends(get_profile_repo),
):
    try:
        profiles = diary_analysis.find_diaries_by_emotion(emotion, repo=repo)
    except DiaryDataError as e:
        return _bad_request(e)
    return {
        "status": "ok",
        "emotion": emotion,
        "result": [diary_analysis.profile_view(p) for p in profiles],
    }
