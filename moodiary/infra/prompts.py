# moodiary/infra/prompts.py
from functools import lru_cache
from pathlib import Path

from moodiary.domain.emotions import CATEGORY_TABLE
from moodiary.exceptions import ConfigError, DiaryDataError
from moodiary.infra.paths import (
    PROMPTS_IMAGE_PATH,
    PROMPTS_INTEGRATED_PATH,
    PROMPTS_SYSTEM_PATH,
    PROMPTS_TEXT_PATH,
)

TEXT_PLACEHOLDER = "{{diary_text}}"
LABELS_PLACEHOLDER = "{{emotion_labels}}"


def _read_prompt(path: Path) -> str:
    if not path.exists():
        raise ConfigError(f"프롬프트 파일이 없습니다: {path.name}")
    return path.read_text(encoding="utf-8").strip()


@lru_cache
def load_system_prompt() -> str:
    """emotion-system-prompt.txt 내용을 시스템 프롬프트로 반환."""
    return _read_prompt(PROMPTS_SYSTEM_PATH)


@lru_cache
def _load_template(kind: str) -> str:
    paths = {
        "text": PROMPTS_TEXT_PATH,
        "image": PROMPTS_IMAGE_PATH,
        "integrated": PROMPTS_INTEGRATED_PATH,
    }
    return _read_prompt(paths[kind])


@lru_cache
def emotion_label_guide() -> str:
    """감정명/점수/신뢰도 작성 규칙 안내문 (열거형에서 생성)."""
    lines = ["감정명은 다음 중 하나를 선택하세요:"]
    for category, profile in CATEGORY_TABLE.items():
        lines.append(f"- {category.value} ({profile.display_name})")
    lines.append("")
    lines.append("감정점수(score)는 0(매우 부정적)부터 100(매우 긍정적)까지의 숫자로 표현하세요.")
    lines.append("신뢰도(confidence)는 0(낮음)부터 100(높음)까지의 숫자로 표현하세요.")
    return "\n".join(lines)


def _render(template: str, diary_text: str = "") -> str:
    rendered = template.replace(LABELS_PLACEHOLDER, emotion_label_guide())
    if TEXT_PLACEHOLDER in rendered:
        return rendered.replace(TEXT_PLACEHOLDER, diary_text)
    if diary_text:
        # 템플릿에 placeholder가 빠져 있어도 동작하게 폴백 처리
        return f"{rendered.rstrip()}\n\n텍스트: {diary_text}"
    return rendered


def _require_text(text: str) -> str:
    if not text or not text.strip():
        raise DiaryDataError("분석할 일기 텍스트가 비어 있습니다.")
    return text.strip()


def build_text_prompt(text: str) -> str:
    return _render(_load_template("text"), _require_text(text))


def build_image_prompt() -> str:
    return _render(_load_template("image"))


def build_integrated_prompt(text: str) -> str:
    return _render(_load_template("integrated"), _require_text(text))
