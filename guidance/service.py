"""Guidance request service: one schema-constrained LLM call per intake."""

from __future__ import annotations

import logging
import os
import re
from typing import Any, Callable, List, Optional, Tuple, Union

from llama_index.core.llms import ChatMessage, MessageRole
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from guidance.errors import (
    GuidanceErrorKind,
    GuidanceFailure,
    GuidanceOutcome,
    GuidanceSuccess,
    classify_failure,
)
from guidance.schema import GuidanceResult, ReasoningMode, SymptomIntake, guidance_response_schema

__all__ = [
    "DEFAULT_MODEL",
    "PRESCRIPTION_DENYLIST",
    "SYSTEM_INSTRUCTION",
    "GuidanceConfig",
    "GuidanceService",
    "build_prompt",
    "guidance_response_format",
    "sanitize_credential",
]

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"

SYSTEM_INSTRUCTION = (
    "You are an expert medical assistant providing informational health guidance.\n"
    "- Suggest ONLY over-the-counter (OTC) medications. NEVER suggest prescription-only drugs.\n"
    "- Be concise, professional and empathetic.\n"
    "- Never give a definitive diagnosis; describe possible causes only.\n"
    "- Set isEmergency to true whenever the symptoms imply high risk "
    "(e.g. chest pain, signs of stroke, severe bleeding).\n"
    "Answer with a single JSON object that follows the provided schema."
)

DEFAULT_PROMPT_TEMPLATE = (
    "User query:\n"
    "Description: {description}\n"
    "Age: {age}\n"
    "Gender: {gender}\n"
    "Duration: {duration}\n"
    "Severity: {severity}/10"
)

# Prescription-only substances that must never reach the user as OTC advice.
PRESCRIPTION_DENYLIST = frozenset(
    {
        "alprazolam",
        "amoxicillin",
        "atorvastatin",
        "azithromycin",
        "cephalexin",
        "ciprofloxacin",
        "clindamycin",
        "clonazepam",
        "codeine",
        "diazepam",
        "doxycycline",
        "fluoxetine",
        "gabapentin",
        "hydrocodone",
        "levofloxacin",
        "lisinopril",
        "lorazepam",
        "metformin",
        "methylprednisolone",
        "metronidazole",
        "morphine",
        "oxycodone",
        "penicillin",
        "prednisone",
        "sertraline",
        "sildenafil",
        "tramadol",
        "warfarin",
        "zolpidem",
    }
)

_ZERO_WIDTH = {ord(ch): None for ch in "\u200b\u200c\u200d\u2060\ufeff"}
_PLACEHOLDERS = {"undefined", "null", "none"}


def sanitize_credential(value: Optional[str]) -> str:
    """Strip whitespace, quote characters and zero-width characters from a key."""

    if not value:
        return ""
    cleaned = value.translate(_ZERO_WIDTH).strip(" \t\r\n\"'`")
    if cleaned.lower() in _PLACEHOLDERS:
        return ""
    return cleaned


class GuidanceConfig(BaseModel):
    """Settings for :class:`GuidanceService`."""

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(default="", repr=False)
    model: str = DEFAULT_MODEL
    temperature: float = 0.2
    timeout: float = 60.0
    reasoning: ReasoningMode = ReasoningMode.optional
    system_instruction: str = SYSTEM_INSTRUCTION
    prompt_template: str = DEFAULT_PROMPT_TEMPLATE

    @field_validator("reasoning", mode="before")
    def _parse_reasoning(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower() or ReasoningMode.optional
        return v

    @classmethod
    def from_env(cls) -> "GuidanceConfig":
        return cls(
            api_key=os.getenv("OPENAI_API_KEY", ""),
            model=os.getenv("CAREASSIST_MODEL") or DEFAULT_MODEL,
            temperature=float(os.getenv("CAREASSIST_TEMPERATURE", "0.2")),
            timeout=float(os.getenv("CAREASSIST_TIMEOUT", "60")),
            reasoning=os.getenv("CAREASSIST_REASONING", "optional"),
        )


def build_prompt(intake: SymptomIntake, template: str = DEFAULT_PROMPT_TEMPLATE) -> str:
    """Render the user prompt for ``intake``."""

    return template.format(
        description=intake.description,
        age=intake.age if intake.age is not None else "unknown",
        gender=intake.gender.value,
        duration=intake.duration or "not specified",
        severity=intake.severity,
    )


def guidance_response_format(reasoning: ReasoningMode) -> dict:
    """Structured-output request block; ``strict`` makes the endpoint enforce the schema."""

    return {
        "type": "json_schema",
        "json_schema": {
            "name": "health_guidance",
            "strict": True,
            "schema": guidance_response_schema(reasoning),
        },
    }


def _default_llm_factory(config: GuidanceConfig):
    from llama_index.llms.openai import OpenAI

    return OpenAI(
        model=config.model,
        temperature=config.temperature,
        api_key=config.api_key,
        timeout=config.timeout,
        max_retries=0,
        additional_kwargs={"response_format": guidance_response_format(config.reasoning)},
    )


LLMFactory = Callable[[GuidanceConfig], Any]


def _is_prescription_only(name: str) -> bool:
    return any(word in PRESCRIPTION_DENYLIST for word in re.findall(r"[a-z]+", name.lower()))


class GuidanceService:
    """Turns a :class:`SymptomIntake` into a :class:`GuidanceResult` or a failure.

    Each call issues at most one request and never retries; whether to try
    again is left to the caller (see ``GuidanceFailure.retryable``).
    """

    def __init__(self, config: GuidanceConfig | None = None, llm_factory: LLMFactory | None = None):
        self.config = config or GuidanceConfig.from_env()
        self._llm_factory = llm_factory or _default_llm_factory

    def build_messages(self, intake: SymptomIntake) -> List[ChatMessage]:
        return [
            ChatMessage(role=MessageRole.SYSTEM, content=self.config.system_instruction),
            ChatMessage(role=MessageRole.USER, content=build_prompt(intake, self.config.prompt_template)),
        ]

    def request_guidance(self, intake: SymptomIntake) -> GuidanceOutcome:
        prepared = self._prepare(intake)
        if isinstance(prepared, GuidanceFailure):
            return prepared
        llm, messages = prepared
        try:
            response = llm.chat(messages)
        except Exception as exc:
            return self._failed(exc)
        return self._parse(response)

    async def arequest_guidance(self, intake: SymptomIntake) -> GuidanceOutcome:
        prepared = self._prepare(intake)
        if isinstance(prepared, GuidanceFailure):
            return prepared
        llm, messages = prepared
        try:
            response = await llm.achat(messages)
        except Exception as exc:
            return self._failed(exc)
        return self._parse(response)

    # ------------------------------------------------------------------

    def _prepare(self, intake: SymptomIntake) -> Union[GuidanceFailure, Tuple[Any, List[ChatMessage]]]:
        api_key = sanitize_credential(self.config.api_key)
        if not api_key:
            logger.error("No API key configured; skipping guidance request")
            return GuidanceFailure.of(GuidanceErrorKind.missing_credential)

        logger.info(
            "Requesting guidance (model=%s, severity=%s, reasoning=%s)",
            self.config.model,
            intake.severity,
            self.config.reasoning.value,
        )
        config = self.config.model_copy(update={"api_key": api_key})
        try:
            llm = self._llm_factory(config)
        except Exception as exc:
            return self._failed(exc)
        return llm, self.build_messages(intake)

    def _failed(self, exc: Exception) -> GuidanceFailure:
        failure = classify_failure(exc)
        if failure.kind is GuidanceErrorKind.unknown_failure:
            logger.exception("Guidance request failed")
        else:
            logger.warning("Guidance request failed: %s", failure.kind.value)
        return failure

    def _parse(self, response: Any) -> GuidanceOutcome:
        message = getattr(response, "message", None)
        text = getattr(message, "content", None) if message is not None else None
        if not text or not str(text).strip():
            logger.warning("Guidance response was empty")
            return GuidanceFailure.of(
                GuidanceErrorKind.malformed_response, "The AI model returned an empty response."
            )

        try:
            result = GuidanceResult.model_validate_json(str(text))
        except ValidationError as exc:
            logger.warning("Guidance response failed validation: %s", exc.errors(include_url=False))
            return GuidanceFailure.of(GuidanceErrorKind.malformed_response)

        if self.config.reasoning is ReasoningMode.required and not (result.reasoning or "").strip():
            logger.warning("Guidance response is missing the required reasoning field")
            return GuidanceFailure.of(GuidanceErrorKind.malformed_response, "reasoning missing")

        kept = [m for m in result.medicines if not _is_prescription_only(m.name)]
        if len(kept) != len(result.medicines):
            dropped = [m.name for m in result.medicines if _is_prescription_only(m.name)]
            logger.warning("Dropped prescription-only suggestions: %s", ", ".join(dropped))
            result = result.model_copy(update={"medicines": tuple(kept)})

        logger.info("Guidance received (emergency=%s, medicines=%d)", result.is_emergency, len(result.medicines))
        return GuidanceSuccess(result=result)
