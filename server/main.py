# server/main.py
from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Optional

import dateparser
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from db.state import AppState, Theme
from guidance.errors import GuidanceErrorKind, GuidanceFailure
from guidance.first_aid import FIRST_AID_GUIDE, MEDICAL_DISCLAIMER
from guidance.prescreen import matched_keywords, pre_screen, show_emergency_banner
from guidance.report import build_history_report, report_filename
from guidance.schema import SymptomIntake
from guidance.service import GuidanceConfig, GuidanceService

app = FastAPI(title="CareAssist API", version="0.1.0")

# --- CORS (configurable) ---
def _parse_cors_origins(env_val: str | None):
    """
    Parse comma-separated origins. If env is None or '*', return ['*'] (dev).
    Otherwise, return a cleaned list like ['https://app.example.com', 'https://example.com'].
    """
    if not env_val or env_val.strip() == "*":
        return ["*"]
    parts = [p.strip() for p in env_val.split(",")]
    return [p for p in parts if p] or ["*"]

_CORS_ORIGINS = _parse_cors_origins(os.getenv("CORS_ORIGINS"))

app.add_middleware(
    CORSMiddleware,
    allow_origins=_CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = logging.getLogger(__name__)
if _CORS_ORIGINS == ["*"]:
    logger.warning("CORS is permissive ('*'). This is fine for local use but restrict it via CORS_ORIGINS otherwise.")
else:
    logger.info("CORS allowed origins: %s", _CORS_ORIGINS)

# --- Shared collaborators ---
_service: GuidanceService | None = None
_state: AppState | None = None


def get_guidance_service() -> GuidanceService:
    """Return the process-wide guidance service, configured from the environment on first use."""
    global _service
    if _service is None:
        _service = GuidanceService(GuidanceConfig.from_env())
    return _service


def get_app_state() -> AppState:
    """Return the process-wide application state, loaded from the local store on first use."""
    global _state
    if _state is None:
        _state = AppState.load()
    return _state


_FAILURE_STATUS = {
    GuidanceErrorKind.missing_credential: status.HTTP_503_SERVICE_UNAVAILABLE,
    GuidanceErrorKind.unauthorized: status.HTTP_502_BAD_GATEWAY,
    GuidanceErrorKind.service_unavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
    GuidanceErrorKind.region_restricted: status.HTTP_451_UNAVAILABLE_FOR_LEGAL_REASONS,
    GuidanceErrorKind.malformed_response: status.HTTP_502_BAD_GATEWAY,
    GuidanceErrorKind.unknown_failure: status.HTTP_502_BAD_GATEWAY,
}
RETRY_AFTER_SECONDS = 5


def _failure_response(failure: GuidanceFailure) -> JSONResponse:
    """
    Convert a guidance failure into a JSON error response.

    ServiceUnavailable carries a ``Retry-After`` header; the other kinds are not retry-safe.
    """
    headers = {"Retry-After": str(RETRY_AFTER_SECONDS)} if failure.retryable else None
    return JSONResponse(
        status_code=_FAILURE_STATUS[failure.kind],
        content={"kind": failure.kind.value, "message": failure.message, "retryable": failure.retryable},
        headers=headers,
    )


def _ensure_aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _parse_since(since_str: Optional[str]) -> Optional[datetime]:
    """
    Parse a date expression ("2025-01-01", "yesterday", "3 days ago") into an aware datetime.

    Raises:
        HTTPException: 400 Bad Request if `since_str` cannot be parsed.
    """
    if not since_str:
        return None
    dt = dateparser.parse(since_str)
    if dt is None:
        raise HTTPException(status_code=400, detail="Invalid 'since' parameter")
    return _ensure_aware(dt)

# --- Routes ---
@app.get("/health")
def health():
    """
    Indicate whether the service is healthy.

    Returns:
        dict: A JSON-serializable mapping with key `"ok"` set to `True` when the service is healthy.
    """
    return {"ok": True}


class PreScreenRequest(BaseModel):
    text: str = ""


class SettingsUpdate(BaseModel):
    theme: Optional[Theme] = None
    consented: Optional[bool] = None


api_router = APIRouter(prefix="/api")


@api_router.post("/prescreen")
def api_prescreen(payload: PreScreenRequest):
    """Run the offline emergency keyword screen on a description."""
    return {"emergency": pre_screen(payload.text), "keywords": matched_keywords(payload.text)}


@api_router.post("/guidance")
async def api_guidance(
    intake: SymptomIntake,
    service: GuidanceService = Depends(get_guidance_service),
    state: AppState = Depends(get_app_state),
):
    """
    Request guidance for an intake and record it in the history on success.

    Returns:
        dict: `result`, the stored history `record`, and `showEmergencyBanner`
        (keyword screen OR the model's emergency flag). Failures are returned
        as `{kind, message, retryable}` with a non-2xx status.
    """
    outcome = await service.arequest_guidance(intake)
    if isinstance(outcome, GuidanceFailure):
        return _failure_response(outcome)

    record = await run_in_threadpool(state.append_history, intake, outcome.result)
    return {
        "result": outcome.result.model_dump(by_alias=True, mode="json"),
        "record": record.model_dump(by_alias=True, mode="json"),
        "showEmergencyBanner": show_emergency_banner(intake.description, outcome.result),
    }


@api_router.get("/history")
def api_history(
    since: Optional[str] = Query(default=None, description="Only records on or after this date"),
    state: AppState = Depends(get_app_state),
):
    """List stored history records, newest first."""
    dt = _parse_since(since)
    return [r.model_dump(by_alias=True, mode="json") for r in state.history_since(dt)]


@api_router.delete("/history", status_code=status.HTTP_204_NO_CONTENT)
def api_clear_history(state: AppState = Depends(get_app_state)):
    """Delete every history record from this device."""
    state.clear_history()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@api_router.get("/history/report.pdf")
def api_history_report(state: AppState = Depends(get_app_state)):
    """Download the history as a PDF report."""
    try:
        pdf = build_history_report(state.history)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{report_filename()}"'},
    )


@api_router.get("/settings")
def api_settings(state: AppState = Depends(get_app_state)):
    return {"theme": state.theme.value, "consented": state.consented}


@api_router.put("/settings")
def api_update_settings(payload: SettingsUpdate, state: AppState = Depends(get_app_state)):
    """Apply a partial settings update (theme and/or consent)."""
    if payload.theme is not None:
        state.set_theme(payload.theme)
    if payload.consented is not None:
        state.set_consent(payload.consented)
    return {"theme": state.theme.value, "consented": state.consented}


@api_router.get("/first-aid")
def api_first_aid():
    """Offline first-aid topics plus the medical disclaimer."""
    return {
        "disclaimer": MEDICAL_DISCLAIMER,
        "topics": [topic._asdict() for topic in FIRST_AID_GUIDE],
    }


app.include_router(api_router)
