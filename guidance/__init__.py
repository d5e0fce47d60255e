"""Symptom guidance: intake model, emergency pre-screen and the LLM request service."""

from .errors import GuidanceErrorKind, GuidanceFailure, GuidanceOutcome, GuidanceSuccess  # noqa: F401
from .prescreen import EMERGENCY_KEYWORDS, pre_screen, show_emergency_banner  # noqa: F401
from .schema import Gender, GuidanceResult, HistoryRecord, Medicine, SymptomIntake  # noqa: F401
from .service import GuidanceConfig, GuidanceService  # noqa: F401

__all__ = [
    "EMERGENCY_KEYWORDS",
    "Gender",
    "GuidanceConfig",
    "GuidanceErrorKind",
    "GuidanceFailure",
    "GuidanceOutcome",
    "GuidanceResult",
    "GuidanceService",
    "GuidanceSuccess",
    "HistoryRecord",
    "Medicine",
    "SymptomIntake",
    "pre_screen",
    "show_emergency_banner",
]
