# tests/conftest.py
from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from moodiary.domain.models import RawAnalysisResponse
from moodiary.infra import image_store, llm_client
from moodiary.infra.profile_repo import ProfileRepository


def make_completion(content: Any) -> SimpleNamespace:
    """SDK 응답처럼 생긴 객체: response.choices[0].message.content"""
    message = SimpleNamespace(role="assistant", content=content)
    return SimpleNamespace(choices=[SimpleNamespace(index=0, message=message)])


def flat_json(emotion: str, score: Optional[float] = None, confidence: Optional[float] = None,
              keywords: str = "") -> str:
    data: Dict[str, Any] = {"emotion": emotion}
    if score is not None:
        data["score"] = score
    if confidence is not None:
        data["confidence"] = confidence
    if keywords:
        data["keywords"] = keywords
    return json.dumps(data, ensure_ascii=False)


class FakeProvider:
    """
    llm_client.invoke 대체용. 프롬프트 종류(text/image/integrated)별로
    미리 정한 RawAnalysisResponse를 돌려주고 호출 기록을 남긴다.
    """

    def __init__(self, **responses: RawAnalysisResponse):
        self.responses = responses
        self.calls: List[Dict[str, Any]] = []

    @staticmethod
    def slot_of(prompt: str, image_data: Optional[bytes]) -> str:
        if image_data is None:
            return "text"
        if "종합하여" in prompt:
            return "integrated"
        return "image"

    async def __call__(self, prompt: str, image_data: Optional[bytes] = None,
                       mime_type: str = "image/png") -> RawAnalysisResponse:
        slot = self.slot_of(prompt, image_data)
        self.calls.append({"slot": slot, "prompt": prompt, "image_data": image_data, "mime_type": mime_type})
        response = self.responses.get(slot)
        if response is None:
            raise AssertionError(f"예상하지 못한 {slot} 호출")
        return response


def ok(content: Any) -> RawAnalysisResponse:
    return RawAnalysisResponse.success(make_completion(content))


@pytest.fixture
def fake_provider(monkeypatch):
    """fake_provider(text=..., image=..., integrated=...) 로 LLM을 대체한다."""

    def _install(**responses: RawAnalysisResponse) -> FakeProvider:
        provider = FakeProvider(**responses)
        monkeypatch.setattr(llm_client, "invoke", provider)
        return provider

    return _install


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    directory = tmp_path / "uploads"
    directory.mkdir()
    (directory / "face.jpg").write_bytes(b"\xff\xd8\xff\xe0fake-jpeg")
    monkeypatch.setattr(image_store, "UPLOAD_DIR", directory)
    return directory


@pytest.fixture
def repo(tmp_path) -> ProfileRepository:
    return ProfileRepository(tmp_path / "profiles")
