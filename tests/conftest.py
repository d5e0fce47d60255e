import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from guidance.schema import GuidanceResult, SymptomIntake  # noqa: E402


@pytest.fixture
def knee_intake() -> SymptomIntake:
    return SymptomIntake(
        description="sharp pain in left knee for 2 days",
        age=30,
        gender="Male",
        duration="2 days",
        severity=6,
    )


@pytest.fixture
def guidance_payload() -> dict:
    """A well-formed model response in wire (camelCase) form."""
    return {
        "possibleCauses": ["Minor sprain", "Tendon irritation"],
        "immediateActions": ["Rest the knee", "Apply ice for 15 minutes"],
        "preventiveMeasures": ["Warm up before exercise"],
        "whenToSeeDoctor": ["Swelling that does not improve within 3 days"],
        "medicines": [
            {
                "name": "Ibuprofen",
                "dosage": "200-400 mg every 6 hours with food",
                "warnings": "Avoid with stomach ulcers or kidney disease.",
            }
        ],
        "isEmergency": False,
        "reasoning": "Localised pain after activity without red flags.",
    }


@pytest.fixture
def guidance_result(guidance_payload) -> GuidanceResult:
    return GuidanceResult.model_validate(guidance_payload)


@pytest.fixture
def store_path(tmp_path, monkeypatch):
    """Point the local store at a throwaway SQLite file."""
    path = tmp_path / "careassist.db"
    monkeypatch.setenv("CAREASSIST_DB_PATH", str(path))
    return path
