import asyncio
from types import SimpleNamespace

import pytest

from moodiary.domain.emotions import EmotionCategory
from moodiary.domain.models import RawAnalysisResponse
from moodiary.exceptions import ConfigError, DiaryDataError, ProfileNotFoundError
from moodiary.infra import llm_client
from moodiary.services import analysis_service
from moodiary.usecases.diary_analysis import (
    UNAUTHORIZED_ERROR,
    analyze_adhoc,
    analyze_diary_entry,
    delete_diary_entry,
    find_diaries_by_emotion,
    get_analysis_summary,
    get_emotion_profile,
    get_history_trends,
    has_changed,
    profile_view,
    update_diary_entry,
)

from conftest import flat_json, make_completion, ok


def test_create_saves_profile(fake_provider, repo):
    fake_provider(text=ok(flat_json("sad", 15, 90, "비, 이별")))

    outcome = asyncio.run(analyze_diary_entry("7", "비가 왔다", repo=repo))

    assert outcome.analysis_error is None
    assert outcome.reanalyzed is True
    stored = repo.load("7")
    assert stored.text.category is EmotionCategory.SAD
    assert stored.integrated.keywords == "비, 이별"


def test_create_without_any_signal_leaves_no_profile(fake_provider, repo):
    fake_provider(text=RawAnalysisResponse.transport_error("timeout"))

    outcome = asyncio.run(analyze_diary_entry("7", "내용", repo=repo))

    assert outcome.profile is None
    assert outcome.analysis_error is None
    assert repo.load("7") is None


def test_unauthorized_provider_still_lets_the_diary_save(fake_provider, repo):
    fake_provider(text=RawAnalysisResponse.unauthorized("invalid api key"))

    outcome = asyncio.run(analyze_diary_entry("7", "내용", repo=repo))

    assert outcome.profile is None
    assert outcome.analysis_error == UNAUTHORIZED_ERROR
    assert repo.load("7") is None


def test_blank_diary_id_is_rejected(repo):
    with pytest.raises(DiaryDataError):
        asyncio.run(analyze_diary_entry("  ", "내용", repo=repo))


def test_update_without_changes_skips_reanalysis(fake_provider, repo):
    provider = fake_provider(text=ok(flat_json("calm", 70)))
    asyncio.run(analyze_diary_entry("7", "산책", repo=repo))
    assert len(provider.calls) == 1

    outcome = asyncio.run(update_diary_entry("7", "산책", None, "산책", None, repo=repo))

    assert outcome.reanalyzed is False
    assert outcome.profile.text.category is EmotionCategory.CALM
    assert len(provider.calls) == 1


def test_update_with_new_content_replaces_profile(fake_provider, repo):
    provider = fake_provider(text=ok(flat_json("calm", 70)))
    asyncio.run(analyze_diary_entry("7", "산책", repo=repo))

    provider.responses["text"] = ok(flat_json("angry", 95))
    outcome = asyncio.run(update_diary_entry("7", "산책", None, "말다툼", None, repo=repo))

    assert outcome.reanalyzed is True
    assert repo.load("7").text.category is EmotionCategory.ANGRY


def test_update_that_drops_every_signal_removes_profile(fake_provider, repo):
    provider = fake_provider(text=ok(flat_json("calm", 70)))
    asyncio.run(analyze_diary_entry("7", "산책", repo=repo))

    provider.responses["text"] = RawAnalysisResponse.transport_error("reset")
    asyncio.run(update_diary_entry("7", "산책", None, "다른 내용", None, repo=repo))

    assert repo.load("7") is None


@pytest.mark.parametrize(
    "previous, current, changed",
    [
        (("a", None), ("a", None), False),
        (("a", "x.png"), ("a", "x.png"), False),
        ((None, None), ("", None), False),
        (("a", None), ("b", None), True),
        (("a", None), ("a", "x.png"), True),
        (("a", "x.png"), ("a", "y.png"), True),
        (("a", "x.png"), ("a", None), True),
    ],
)
def test_has_changed(previous, current, changed):
    assert has_changed(*previous, *current) is changed


def test_delete_and_lookup(fake_provider, repo):
    fake_provider(text=ok(flat_json("happy", 90)))
    asyncio.run(analyze_diary_entry("7", "여행", repo=repo))

    assert get_emotion_profile("7", repo).text.category is EmotionCategory.HAPPY
    assert delete_diary_entry("7", repo) is True
    with pytest.raises(ProfileNotFoundError):
        get_emotion_profile("7", repo)


def test_summary_is_computed_from_stored_profile(fake_provider, repo):
    fake_provider(text=ok(flat_json("sad", 30)))
    asyncio.run(analyze_diary_entry("7", "비", repo=repo))

    summary = get_analysis_summary("7", repo)

    assert summary.overall_temperature_score == pytest.approx(0.7 * 34.0)
    assert summary.dominant_emotion == "sad"
    assert summary.insight_text.startswith("text: sad")


def test_trends_and_emotion_filter(fake_provider, repo):
    provider = fake_provider(text=ok(flat_json("sad", 30)))
    asyncio.run(analyze_diary_entry("1", "a", repo=repo))
    provider.responses["text"] = ok(flat_json("angry", 100))
    asyncio.run(analyze_diary_entry("2", "b", repo=repo))

    trend = get_history_trends(repo=repo)
    assert trend.total_diaries == 2
    assert trend.average_temperature == pytest.approx(37.0)
    assert trend.distribution["우울"] == 1
    assert trend.distribution["화남"] == 1

    assert [p.diary_id for p in find_diaries_by_emotion("분노", repo)] == ["2"]
    with pytest.raises(DiaryDataError):
        find_diaries_by_emotion("bewildered", repo)


def test_adhoc_analysis_requires_input(fake_provider):
    fake_provider(text=ok(flat_json("calm", 60)))

    assert asyncio.run(analyze_adhoc("바람", None)).text.category is EmotionCategory.CALM
    with pytest.raises(DiaryDataError):
        asyncio.run(analyze_adhoc("  ", ""))


def test_profile_view_cleans_keywords(fake_provider, repo):
    fake_provider(text=ok(flat_json("happy", 90, 70, '["여행", "바다"]')))
    outcome = asyncio.run(analyze_diary_entry("7", "여행", repo=repo))

    view = profile_view(outcome.profile)

    assert view["keywords"] == ["여행", "바다"]
    assert view["text_emotion"]["emotion"] == "happy"
    assert view["image_emotion"] is None
    assert view["timestamp"] == outcome.profile.analyzed_at.isoformat()


def test_update_with_unauthorized_provider_keeps_previous_profile(fake_provider, repo):
    provider = fake_provider(text=ok(flat_json("calm", 70)))
    asyncio.run(analyze_diary_entry("7", "산책", repo=repo))

    provider.responses["text"] = RawAnalysisResponse.unauthorized("bad key")
    outcome = asyncio.run(update_diary_entry("7", "산책", None, "다른 내용", None, repo=repo))

    assert outcome.analysis_error == UNAUTHORIZED_ERROR
    assert repo.load("7").text.category is EmotionCategory.CALM


def test_template_error_keeps_previous_profile_and_starts_no_calls(fake_provider, repo, upload_dir, monkeypatch):
    provider = fake_provider(text=ok(flat_json("calm", 70)))
    asyncio.run(analyze_diary_entry("7", "산책", repo=repo))

    started = []
    real_analyze_signal = analysis_service.analyze_signal

    def recording_analyze_signal(slot, prompt, image=None):
        started.append(slot)
        return real_analyze_signal(slot, prompt, image)

    def broken_image_prompt():
        raise ConfigError("프롬프트 파일이 없습니다: image-emotion-prompt.txt")

    monkeypatch.setattr(analysis_service, "analyze_signal", recording_analyze_signal)
    monkeypatch.setattr(analysis_service, "build_image_prompt", broken_image_prompt)

    outcome = asyncio.run(update_diary_entry("7", "산책", None, "산책", "face.jpg", repo=repo))

    assert outcome.analysis_error.startswith("analysis_error")
    assert started == []
    assert len(provider.calls) == 1
    assert repo.load("7") is not None


def test_empty_image_file_does_not_block_the_diary_write(monkeypatch, upload_dir, repo):
    (upload_dir / "empty.png").write_bytes(b"")
    sent = []

    class _Completions:
        async def create(self, **kwargs):
            sent.append(kwargs)
            return make_completion(flat_json("happy", 90, 70))

    client = SimpleNamespace(chat=SimpleNamespace(completions=_Completions()))
    monkeypatch.setattr(llm_client, "_get_together_client", lambda: client)

    outcome = asyncio.run(analyze_diary_entry("8", "a", "empty.png", repo=repo))

    assert outcome.analysis_error is None
    assert outcome.profile.image is None
    assert outcome.profile.integrated.category is EmotionCategory.HAPPY
    assert [k["model"] for k in sent] == [llm_client.TOGETHER_TEXT_MODEL]


def test_diary_id_unusable_as_file_name_is_rejected_before_analysis(fake_provider, repo):
    provider = fake_provider(text=ok(flat_json("calm", 70)))

    with pytest.raises(DiaryDataError):
        asyncio.run(analyze_diary_entry("!!!", "내용", repo=repo))
    with pytest.raises(DiaryDataError):
        get_emotion_profile("!!!", repo)
    assert provider.calls == []
