import asyncio
from functools import partial

import pytest

from moodiary.domain.emotions import EmotionCategory
from moodiary.domain.models import EmotionAnalysisResult, RawAnalysisResponse
from moodiary.exceptions import ProviderUnauthorizedError
from moodiary.infra.image_store import StoredImage, load_image
from moodiary.services import analysis_service
from moodiary.services.analysis_service import aggregate, analyze_diary

from conftest import flat_json, ok

REFUSAL = "I'm sorry, I can't assist with that request."


def _run(coro):
    return asyncio.run(coro)


def test_text_only_diary_copies_text_into_integrated(fake_provider):
    provider = fake_provider(text=ok(flat_json("sad", 15, 90, "비, 이별")))

    profile = _run(analyze_diary("1", "오늘은 비가 와서 우울했다."))

    assert [c["slot"] for c in provider.calls] == ["text"]
    assert profile.text.category is EmotionCategory.SAD
    assert profile.text.temperature == pytest.approx(35.25)
    assert profile.image is None
    assert profile.integrated == profile.text
    assert profile.integrated is not profile.text


def test_text_and_image_run_three_independent_calls(fake_provider, upload_dir):
    provider = fake_provider(
        text=ok(flat_json("sad", 20, 90)),
        image=ok(flat_json("calm", 60, 70)),
        integrated=ok(flat_json("depressed", 10, 85, "피곤, 비")),
    )

    profile = _run(analyze_diary("1", "지친 하루", "/uploads/face.jpg"))

    assert sorted(c["slot"] for c in provider.calls) == ["image", "integrated", "text"]
    image_calls = [c for c in provider.calls if c["image_data"] is not None]
    assert all(c["mime_type"] == "image/jpeg" for c in image_calls)
    assert profile.text.category is EmotionCategory.SAD
    assert profile.image.category is EmotionCategory.CALM
    assert profile.integrated.category is EmotionCategory.DEPRESSED
    assert profile.integrated.keywords == "피곤, 비"


def test_image_only_diary(fake_provider, upload_dir):
    fake_provider(image=ok(flat_json("happy", 90, 60)))

    profile = _run(analyze_diary("1", "   ", "face.jpg"))

    assert profile.text is None
    assert profile.image.category is EmotionCategory.HAPPY
    assert profile.integrated == profile.image


def test_refused_image_falls_back_to_text_result(fake_provider, upload_dir):
    fake_provider(
        text=ok(flat_json("angry", 90, 80)),
        image=ok(REFUSAL),
        integrated=ok(REFUSAL),
    )

    profile = _run(analyze_diary("1", "회의에서 무시당했다", "face.jpg"))

    assert profile.image is None
    assert profile.integrated == profile.text
    assert profile.integrated.temperature == pytest.approx(38.25)


def test_failed_integrated_call_falls_back_to_text(fake_provider, upload_dir):
    fake_provider(
        text=ok(flat_json("happy", 80)),
        image=ok(flat_json("calm", 60)),
        integrated=RawAnalysisResponse.transport_error("connection reset"),
    )

    profile = _run(analyze_diary("1", "산책", "face.jpg"))

    assert profile.image.category is EmotionCategory.CALM
    assert profile.integrated == profile.text


def test_malformed_response_degrades_to_neutral(fake_provider):
    fake_provider(text=ok(""))

    profile = _run(analyze_diary("1", "그냥 그런 날"))

    assert profile.text.category is EmotionCategory.NEUTRAL
    assert profile.text.temperature == 36.5


def test_unparseable_response_degrades_to_neutral(fake_provider):
    fake_provider(text=ok('{"emotion": "bewildered"}'))

    profile = _run(analyze_diary("1", "알 수 없는 기분"))

    assert profile.text.category is EmotionCategory.NEUTRAL


def test_all_signals_failing_yields_no_profile(fake_provider):
    fake_provider(text=RawAnalysisResponse.transport_error("timeout"))

    assert _run(analyze_diary("1", "내용")) is None


def test_nothing_to_analyze_makes_no_calls(fake_provider):
    provider = fake_provider()

    assert _run(analyze_diary("1", None, None)) is None
    assert provider.calls == []


def test_missing_image_file_skips_image_and_integrated(fake_provider, upload_dir):
    provider = fake_provider(text=ok(flat_json("calm", 70)))

    profile = _run(analyze_diary("1", "평범한 하루", "missing.png"))

    assert [c["slot"] for c in provider.calls] == ["text"]
    assert profile.image is None
    assert profile.integrated == profile.text


def test_unauthorized_propagates(fake_provider, upload_dir):
    fake_provider(
        text=RawAnalysisResponse.unauthorized("invalid api key"),
        image=ok(flat_json("calm", 60)),
        integrated=ok(flat_json("calm", 60)),
    )

    with pytest.raises(ProviderUnauthorizedError):
        _run(analyze_diary("1", "내용", "face.jpg"))


def test_shared_timeout_drops_slow_signals(monkeypatch, upload_dir):
    async def slow_for_images(prompt, image_data=None, mime_type="image/png"):
        if image_data is not None:
            await asyncio.sleep(5)
        return ok(flat_json("sad", 10, 90))

    monkeypatch.setattr(analysis_service.llm_client, "invoke", slow_for_images)

    profile = _run(analyze_diary("1", "내용", "face.jpg", timeout=0.05))

    assert profile.image is None
    assert profile.text.category is EmotionCategory.SAD
    assert profile.integrated == profile.text


def test_custom_image_loader(fake_provider, tmp_path):
    (tmp_path / "x.webp").write_bytes(b"RIFFfakewebp")
    provider = fake_provider(image=ok(flat_json("joyful", 95)))

    profile = _run(analyze_diary("1", None, "x.webp", image_loader=partial(load_image, upload_dir=tmp_path)))

    assert provider.calls[0]["image_data"] == b"RIFFfakewebp"
    assert profile.image.category is EmotionCategory.JOYFUL


def test_aggregate_rules():
    text = EmotionAnalysisResult(EmotionCategory.SAD, 35.0, 90.0)
    image = EmotionAnalysisResult(EmotionCategory.CALM, 36.5, 70.0)
    integrated = EmotionAnalysisResult(EmotionCategory.DEPRESSED, 34.5, 80.0)

    assert aggregate(text, image, integrated) is integrated
    assert aggregate(text, image, None) == text
    assert aggregate(text, None, integrated) == text
    assert aggregate(None, image) == image
    assert aggregate(None, None) is None


def test_unexpected_signal_error_only_empties_that_slot(monkeypatch, upload_dir):
    async def image_explodes(prompt, image_data=None, mime_type="image/png"):
        if image_data is not None:
            raise KeyError("choices")
        return ok(flat_json("calm", 60))

    monkeypatch.setattr(analysis_service.llm_client, "invoke", image_explodes)

    profile = _run(analyze_diary("1", "내용", "face.jpg"))

    assert profile.image is None
    assert profile.text.category is EmotionCategory.CALM
    assert profile.integrated == profile.text


def test_loader_returning_empty_bytes_skips_image(fake_provider):
    provider = fake_provider(text=ok(flat_json("calm", 60)))

    profile = _run(analyze_diary("1", "내용", "x.png", image_loader=lambda ref: StoredImage(b"")))

    assert [c["slot"] for c in provider.calls] == ["text"]
    assert profile.image is None
