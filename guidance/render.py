"""Markdown rendering of guidance results and failures for the browser form."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Sequence

from guidance.errors import GuidanceFailure
from guidance.first_aid import MEDICAL_DISCLAIMER
from guidance.prescreen import matched_keywords
from guidance.schema import GuidanceResult, HistoryRecord


def _bullets(items: Iterable[str]) -> str:
    lines = [f"- {item}" for item in items]
    return "\n".join(lines) if lines else "_None listed._"


def render_guidance(result: GuidanceResult) -> str:
    """Format a result the way the results panel shows it."""

    sections: List[str] = [f"> **Note:** {MEDICAL_DISCLAIMER}"]
    if result.reasoning:
        sections.append(f"### AI Reasoning Insight\n{result.reasoning}")
    sections.append(f"### Possible Explanations\n{_bullets(result.possible_causes)}")
    sections.append(f"### Immediate Actions\n{_bullets(result.immediate_actions)}")

    if result.medicines:
        meds = "\n".join(
            f"- **{m.name.upper()}**: {m.dosage}  \n  ⚠️ _{m.warnings}_" for m in result.medicines
        )
    else:
        meds = "_No over-the-counter suggestions._"
    sections.append(f"### OTC Recommendations\n{meds}")
    sections.append(f"### Preventive Measures\n{_bullets(result.preventive_measures)}")
    sections.append(f"### When to See a Doctor\n{_bullets(result.when_to_see_doctor)}")
    return "\n\n".join(sections)


def render_failure(failure: GuidanceFailure) -> str:
    text = f"**{failure.kind.value}:** {failure.message}"
    if failure.retryable:
        text += "\n\nPlease wait a moment and press **Get Health Guidance** again."
    return text


def render_emergency_banner(description: str | None, model_flagged: bool = False) -> str:
    """Banner text; callers decide visibility with ``show_emergency_banner``."""

    lines = [
        "## 🚨 EMERGENCY DETECTED",
        "Symptoms described may require immediate medical attention. "
        "**Call your local emergency number now.**",
    ]
    keywords = matched_keywords(description)
    if keywords:
        lines.append("Warning signs mentioned: " + ", ".join(f"_{kw}_" for kw in keywords))
    elif model_flagged:
        lines.append("The assessment flagged these symptoms as potentially urgent.")
    return "\n\n".join(lines)


def _format_date(millis: int) -> str:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).strftime("%Y-%m-%d")


def render_history(records: Sequence[HistoryRecord]) -> str:
    if not records:
        return "_No recent activity._"
    rows = []
    for record in records:
        desc = record.intake.description
        if len(desc) > 60:
            desc = desc[:57] + "..."
        flag = " 🚨" if record.result.is_emergency else ""
        rows.append(f"- `{_format_date(record.timestamp)}` {desc}{flag}")
    return "\n".join(rows)
