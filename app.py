"""CareAssist demo exposing the FastAPI API and the Gradio symptom form in one process."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

import gradio as gr
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from guidance.errors import GuidanceFailure
from guidance.first_aid import MEDICAL_DISCLAIMER, first_aid_markdown
from guidance.prescreen import show_emergency_banner
from guidance.render import render_emergency_banner, render_failure, render_guidance, render_history
from guidance.report import build_history_report, report_filename
from guidance.schema import Gender, SymptomIntake
from server.main import app as fastapi_app
from server.main import get_app_state, get_guidance_service


logger = logging.getLogger(__name__)

CONSENT_REQUIRED = "Please accept the medical disclaimer in the **Privacy & Settings** tab first."

# Toggles Gradio's dark palette in the browser without a reload.
_THEME_JS = """
(theme) => {
    document.body.classList.toggle('dark', theme === 'dark');
    return theme;
}
"""


def _banner(description: str | None, result=None):
    if not show_emergency_banner(description, result):
        return gr.update(value="", visible=False)
    flagged = bool(result is not None and result.is_emergency)
    return gr.update(value=render_emergency_banner(description, flagged), visible=True)


def on_description_change(description: str):
    """Re-run the keyword screen on each edit of the description only."""

    return _banner(description)


async def on_submit(description: str, age, gender: str, duration: str, severity):
    """Validate the form, request guidance, and append to history on success."""

    state = get_app_state()
    history_md = render_history(state.history)
    if not state.consented:
        return _banner(description), CONSENT_REQUIRED, "", history_md

    try:
        intake = SymptomIntake(
            description=description or "",
            age=int(age) if age is not None else None,
            gender=gender,
            duration=duration,
            severity=int(severity),
        )
    except ValidationError as exc:
        first = exc.errors(include_url=False)[0]
        field = ".".join(str(p) for p in first.get("loc", ()))
        return _banner(description), f"**Invalid {field}:** {first['msg']}", "", history_md

    outcome = await get_guidance_service().arequest_guidance(intake)
    if isinstance(outcome, GuidanceFailure):
        return _banner(description), render_failure(outcome), "", history_md

    await run_in_threadpool(state.append_history, intake, outcome.result)
    return (
        _banner(description, outcome.result),
        "",
        render_guidance(outcome.result),
        render_history(state.history),
    )


def on_clear_history():
    get_app_state().clear_history()
    return render_history([]), None


def on_export():
    state = get_app_state()
    try:
        pdf = build_history_report(state.history)
    except ValueError as exc:
        raise gr.Error(str(exc)) from exc
    path = Path(tempfile.gettempdir()) / report_filename()
    path.write_bytes(pdf)
    logger.info("Wrote history report with %d records to %s", len(state.history), path)
    return str(path)


def on_consent_change(accepted: bool):
    get_app_state().set_consent(bool(accepted))
    return "Consent recorded." if accepted else "Consent withdrawn. Guidance requests are disabled."


def on_theme_change(theme: str):
    get_app_state().set_theme(theme)


def on_load():
    state = get_app_state()
    return state.consented, state.theme.value, render_history(state.history)


def _lock_submit():
    return gr.update(interactive=False, value="AI Reasoning in Progress...")


def _unlock_submit():
    return gr.update(interactive=True, value="Get Health Guidance")


# ---------------------------------------------------------------------------
# Gradio UI


with gr.Blocks(title="CareAssist") as demo:
    gr.Markdown("# CareAssist\nInformational symptom guidance. Not a diagnosis.")

    with gr.Tab("Symptom Check"):
        banner = gr.Markdown(visible=False)
        description = gr.Textbox(
            label="Describe how you feel",
            lines=4,
            placeholder="Describe your symptoms in detail...",
        )
        with gr.Row():
            age = gr.Number(label="Age", precision=0, minimum=0)
            gender = gr.Dropdown(
                choices=[g.value for g in Gender],
                value=Gender.other.value,
                label="Gender",
            )
        with gr.Row():
            duration = gr.Textbox(label="Duration", placeholder="e.g. 2 days")
            severity = gr.Slider(1, 10, value=5, step=1, label="Severity (1-10)")
        submit_btn = gr.Button("Get Health Guidance", variant="primary")
        error_box = gr.Markdown()
        result_box = gr.Markdown()

    with gr.Tab("History"):
        history_box = gr.Markdown("_No recent activity._")
        with gr.Row():
            clear_btn = gr.Button("Clear", variant="stop")
            export_btn = gr.Button("Download PDF")
        report_file = gr.File(label="Health report")

    with gr.Tab("First Aid"):
        gr.Markdown("## Offline First Aid\nEssential steps for emergencies. Works without the AI service.")
        gr.Markdown(first_aid_markdown())

    with gr.Tab("Privacy & Settings"):
        gr.Markdown(f"### Medical Disclaimer\n{MEDICAL_DISCLAIMER}")
        consent = gr.Checkbox(label="I understand and accept the disclaimer above")
        consent_status = gr.Markdown()
        theme = gr.Radio(choices=["light", "dark"], value="light", label="Theme")

    description.change(on_description_change, inputs=description, outputs=banner)

    submit_btn.click(_lock_submit, outputs=submit_btn).then(
        on_submit,
        inputs=[description, age, gender, duration, severity],
        outputs=[banner, error_box, result_box, history_box],
    ).then(_unlock_submit, outputs=submit_btn)

    clear_btn.click(on_clear_history, outputs=[history_box, report_file])
    export_btn.click(on_export, outputs=report_file)
    consent.change(on_consent_change, inputs=consent, outputs=consent_status)
    theme.change(on_theme_change, inputs=theme, js=_THEME_JS)
    demo.load(on_load, outputs=[consent, theme, history_box])


# Mount Gradio UI at `/` and expose FastAPI under `/api`.
app = gr.mount_gradio_app(fastapi_app, demo, path="/")
