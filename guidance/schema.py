from __future__ import annotations

import time
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

__all__ = [
    "Gender",
    "ReasoningMode",
    "SymptomIntake",
    "Medicine",
    "GuidanceResult",
    "HistoryRecord",
    "guidance_response_schema",
]


class Gender(str, Enum):
    """Gender options offered on the intake form."""

    male = "Male"
    female = "Female"
    other = "Other"

    @classmethod
    def _missing_(cls, value: object) -> "Gender":
        if not isinstance(value, str):
            raise ValueError(f"Unknown gender: {value}")
        val = value.strip().lower()
        synonyms = {
            "m": "Male",
            "man": "Male",
            "f": "Female",
            "woman": "Female",
            "": "Other",
            "prefer not to say": "Other",
        }
        for member in cls:
            if member.value.lower() == val:
                return member
        if val in synonyms:
            return cls(synonyms[val])
        return super()._missing_(value)


class ReasoningMode(str, Enum):
    """How the optional ``reasoning`` field appears in the response schema."""

    off = "off"
    optional = "optional"
    required = "required"


class SymptomIntake(BaseModel):
    """Structured symptom description submitted for one guidance request."""

    model_config = ConfigDict(frozen=True)

    description: str
    age: Optional[int] = Field(default=None, ge=0)
    gender: Gender = Gender.other
    duration: str = ""
    severity: int = Field(default=5, ge=1, le=10)

    @field_validator("description", mode="before")
    def _check_description(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("description must not be empty")
        return v

    @field_validator("age", mode="before")
    def _blank_age(cls, v: Any) -> Any:
        # HTML number inputs submit "" when left empty
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("duration", mode="before")
    def _clean_duration(cls, v: str | None) -> str:
        if v is None:
            return ""
        return str(v).strip()


RequiredText = Annotated[str, StringConstraints(strict=True, strip_whitespace=True, min_length=1)]


class Medicine(BaseModel):
    """An over-the-counter suggestion returned by the model."""

    model_config = ConfigDict(frozen=True)

    name: RequiredText
    dosage: RequiredText
    warnings: RequiredText


class GuidanceResult(BaseModel):
    """Validated advisory output for one intake.

    Field names are snake_case in Python and camelCase on the wire, matching
    the JSON schema the model is asked to follow. Every field except
    ``reasoning`` is required: a payload missing one is rejected rather than
    defaulted. Sequences are tuples so a stored result cannot be edited in
    place.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    possible_causes: Tuple[StrictStr, ...]
    immediate_actions: Tuple[StrictStr, ...]
    preventive_measures: Tuple[StrictStr, ...]
    when_to_see_doctor: Tuple[StrictStr, ...]
    medicines: Tuple[Medicine, ...]
    is_emergency: StrictBool
    reasoning: Optional[StrictStr] = None


def _now_millis() -> int:
    return int(time.time() * 1000)


class HistoryRecord(BaseModel):
    """An intake frozen together with the result it produced."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    timestamp: int = Field(default_factory=_now_millis)
    intake: SymptomIntake
    result: GuidanceResult


_STRING_LIST = {"type": "array", "items": {"type": "string"}}


def guidance_response_schema(reasoning: ReasoningMode = ReasoningMode.optional) -> Dict[str, Any]:
    """Return the JSON schema the model output must conform to."""

    properties: Dict[str, Any] = {
        "possibleCauses": {**_STRING_LIST, "description": "List of common informational causes."},
        "immediateActions": {**_STRING_LIST, "description": "Non-medicinal steps to take immediately."},
        "preventiveMeasures": {**_STRING_LIST, "description": "How to avoid this issue in the future."},
        "whenToSeeDoctor": {**_STRING_LIST, "description": "Red flags that require professional attention."},
        "medicines": {
            "type": "array",
            "description": "Suggested over-the-counter medicines only.",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "dosage": {"type": "string"},
                    "warnings": {"type": "string"},
                },
                "required": ["name", "dosage", "warnings"],
                "additionalProperties": False,
            },
        },
        "isEmergency": {"type": "boolean", "description": "True if symptoms suggest an emergency."},
    }
    required = [
        "possibleCauses",
        "immediateActions",
        "preventiveMeasures",
        "whenToSeeDoctor",
        "medicines",
        "isEmergency",
    ]
    if reasoning is not ReasoningMode.off:
        # strict structured output needs every property listed as required;
        # optional reasoning is expressed as nullable instead
        properties["reasoning"] = {
            "type": "string" if reasoning is ReasoningMode.required else ["string", "null"],
            "description": "Short explanation of how the guidance was reached.",
        }
        required.append("reasoning")

    return {
        "type": "object",
        "properties": properties,
        "required": required,
        "additionalProperties": False,
    }
