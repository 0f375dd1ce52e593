# moodiary/core/config.py
from pathlib import Path
import os

from dotenv import load_dotenv

# 프로젝트 루트 디렉토리
BASE_DIR = Path(__file__).resolve().parents[2]

# .env 로딩
ENV_PATH = BASE_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH)


def _env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None:
        return default
    try:
        return float(v)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        return default


# 로그 레벨 (.env의 LOG_LEVEL로 조절, 기본 INFO)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# CORS 설정 - 없으면 기본으로 전부 허용(["*"])
_cors_raw = os.getenv("CORS_ORIGINS", "")
if _cors_raw:
    CORS_ORIGINS = [o.strip() for o in _cors_raw.split(",") if o.strip()]
else:
    CORS_ORIGINS = ["*"]

# LLM(Together) 설정
TOGETHER_BASE_URL = os.getenv("TOGETHER_BASE_URL") or None
TOGETHER_TEXT_MODEL = os.getenv(
    "TOGETHER_TEXT_MODEL",
    "meta-llama/Meta-Llama-3.1-8B-Instruct-Turbo",
)
TOGETHER_VISION_MODEL = os.getenv(
    "TOGETHER_VISION_MODEL",
    "meta-llama/Llama-3.2-11B-Vision-Instruct-Turbo",
)
TOGETHER_TEMPERATURE = _env_float("TOGETHER_TEMPERATURE", 0.3)
TOGETHER_MAX_TOKENS = _env_int("TOGETHER_MAX_TOKENS", 1000)

# 일기 1건의 text/image/integrated 분석 전체에 거는 공용 제한 시간(초)
ANALYSIS_TIMEOUT_SECONDS = _env_float("ANALYSIS_TIMEOUT_SECONDS", 30.0)

# 요약 점수 가중 방식: fixed(없는 칸 0) / renormalized(있는 칸만)
SUMMARY_WEIGHTING = os.getenv("SUMMARY_WEIGHTING", "fixed").strip().lower()

# 업로드 이미지 / 감정 프로필 저장 위치
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", str(BASE_DIR / "uploads")))
PROFILE_DIR = Path(os.getenv("PROFILE_DIR", str(BASE_DIR / "output" / "profiles")))
