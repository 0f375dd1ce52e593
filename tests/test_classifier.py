import pytest

from moodiary.domain.classifier import classify, extract_content, is_refusal
from moodiary.domain.models import ResponseStatus

from conftest import make_completion


def test_refusal_is_classified_before_json_parsing():
    result = classify(make_completion("I'm sorry, I can't assist with that request."))
    assert result.status is ResponseStatus.REFUSED
    assert result.message == "I'm sorry, I can't assist with that request."


@pytest.mark.parametrize(
    "content",
    [
        "I’m sorry, but I cannot analyze this image.",
        "Sorry, I am unable to help with identifying people.",
        "I cannot assist with that.",
        "죄송하지만 이 이미지는 분석할 수 없습니다.",
    ],
)
def test_refusal_markers(content):
    assert is_refusal(content)


def test_apology_alone_is_not_a_refusal():
    assert not is_refusal('{"emotion": "sad", "keywords": "sorry, apology, regret"}')


def test_empty_content_is_malformed():
    assert classify(make_completion("")).status is ResponseStatus.MALFORMED
    assert classify(make_completion(None)).status is ResponseStatus.MALFORMED
    assert classify(None).status is ResponseStatus.MALFORMED


def test_missing_choices_is_malformed():
    assert classify({"choices": []}).status is ResponseStatus.MALFORMED
    assert classify({"id": "x"}).status is ResponseStatus.MALFORMED


def test_parseable_content_passes_through():
    content = '{"emotion": "happy", "score": 90}'
    result = classify(make_completion(content))
    assert result.status is ResponseStatus.SUCCESS
    assert result.payload == content


def test_dict_envelope_is_supported():
    payload = {"choices": [{"message": {"role": "assistant", "content": " {\"emotion\": \"calm\"} "}}]}
    assert extract_content(payload) == '{"emotion": "calm"}'


def test_list_content_parts_are_merged():
    parts = [{"type": "text", "text": '{"emotion": '}, {"type": "text", "text": '"calm"}'}]
    assert extract_content(make_completion(parts)) == '{"emotion": "calm"}'
