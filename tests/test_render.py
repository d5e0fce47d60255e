from guidance.errors import GuidanceErrorKind, GuidanceFailure
from guidance.render import render_emergency_banner, render_failure, render_guidance, render_history
from guidance.schema import HistoryRecord, SymptomIntake


def test_render_guidance_sections(guidance_result):
    md = render_guidance(guidance_result)
    assert "Possible Explanations" in md
    assert "IBUPROFEN" in md
    assert "AI Reasoning Insight" in md


def test_retry_hint_only_for_service_unavailable():
    busy = GuidanceFailure.of(GuidanceErrorKind.service_unavailable)
    denied = GuidanceFailure.of(GuidanceErrorKind.unauthorized)
    assert "again" in render_failure(busy)
    assert "again" not in render_failure(denied)


def test_banner_lists_matched_keywords():
    md = render_emergency_banner("Sudden chest pain and numbness")
    assert "chest pain" in md and "numbness" in md


def test_render_history(guidance_result):
    assert "No recent activity" in render_history([])
    record = HistoryRecord(intake=SymptomIntake(description="x" * 100), result=guidance_result)
    md = render_history([record])
    assert "..." in md
