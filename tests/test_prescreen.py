import pytest

from guidance.prescreen import EMERGENCY_KEYWORDS, matched_keywords, pre_screen, show_emergency_banner
from guidance.schema import GuidanceResult


def test_examples():
    assert pre_screen("I have chest pain") is True
    assert pre_screen("I have a headache") is False
    assert pre_screen("Numbness in my left arm") is True


@pytest.mark.parametrize("keyword", EMERGENCY_KEYWORDS)
def test_every_keyword_matches_in_upper_case(keyword):
    assert pre_screen(f"Since this morning: {keyword.upper()}!")


def test_substring_without_word_boundary():
    assert pre_screen("numbness in fingers")
    assert pre_screen("post-seizures fatigue")


def test_empty_and_none():
    assert pre_screen("") is False
    assert pre_screen(None) is False
    assert matched_keywords(None) == []


def test_matched_keywords_in_list_order():
    text = "Slurred speech and then chest pain"
    assert matched_keywords(text) == ["chest pain", "slurred speech"]


def test_banner_ors_keyword_screen_with_model_flag(guidance_payload):
    calm = GuidanceResult.model_validate(guidance_payload)
    urgent = GuidanceResult.model_validate({**guidance_payload, "isEmergency": True})

    assert show_emergency_banner("mild headache") is False
    assert show_emergency_banner("mild headache", calm) is False
    assert show_emergency_banner("mild headache", urgent) is True
    assert show_emergency_banner("chest pain at rest", calm) is True
