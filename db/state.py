"""Application state (theme, consent, history) persisted in the local store."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from db import repository as repo
from guidance.schema import GuidanceResult, HistoryRecord, SymptomIntake

__all__ = ["AppState", "Theme", "HISTORY_LIMIT", "THEME_KEY", "CONSENT_KEY", "HISTORY_KEY"]

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10

THEME_KEY = "careassist_theme"
CONSENT_KEY = "careassist_consented"
HISTORY_KEY = "careassist_history"

_history_adapter = TypeAdapter(List[HistoryRecord])


class Theme(str, Enum):
    light = "light"
    dark = "dark"


def _load_theme() -> Theme:
    raw = repo.get_value(THEME_KEY)
    try:
        return Theme(raw) if raw else Theme.light
    except ValueError:
        logger.warning("Ignoring unknown stored theme %r", raw)
        return Theme.light


def _load_history() -> List[HistoryRecord]:
    raw = repo.get_value(HISTORY_KEY)
    if not raw:
        return []
    try:
        records = _history_adapter.validate_json(raw)
    except ValidationError as exc:
        logger.warning("Stored history is unreadable, starting empty: %s", exc)
        return []
    return records[:HISTORY_LIMIT]


class AppState:
    """Theme, consent and history for the single local user.

    Built from the store with :meth:`load`; every named operation writes
    through to the store before returning.
    """

    def __init__(self, theme: Theme = Theme.light, consented: bool = False, history: Optional[List[HistoryRecord]] = None):
        self._theme = theme
        self._consented = consented
        self._history: List[HistoryRecord] = list(history or [])[:HISTORY_LIMIT]
        self._lock = threading.Lock()

    @classmethod
    def load(cls) -> "AppState":
        return cls(
            theme=_load_theme(),
            consented=repo.get_value(CONSENT_KEY) == "true",
            history=_load_history(),
        )

    @property
    def theme(self) -> Theme:
        return self._theme

    @property
    def consented(self) -> bool:
        return self._consented

    @property
    def history(self) -> List[HistoryRecord]:
        """Records newest first (a copy)."""
        return list(self._history)

    def history_since(self, since: Optional[datetime]) -> List[HistoryRecord]:
        if since is None:
            return self.history
        cutoff = int(since.timestamp() * 1000)
        return [r for r in self._history if r.timestamp >= cutoff]

    def set_theme(self, theme: Theme | str) -> Theme:
        theme = Theme(theme)
        with self._lock:
            repo.set_value(THEME_KEY, theme.value)
            self._theme = theme
        return theme

    def set_consent(self, accepted: bool) -> None:
        with self._lock:
            if accepted:
                repo.set_value(CONSENT_KEY, "true")
            else:
                repo.delete_value(CONSENT_KEY)
            self._consented = accepted

    def append_history(
        self,
        intake: SymptomIntake,
        result: GuidanceResult,
        timestamp: Optional[int] = None,
    ) -> HistoryRecord:
        """Record a successful request; the oldest entry drops off past the limit."""

        if timestamp is None:
            record = HistoryRecord(intake=intake, result=result)
        else:
            record = HistoryRecord(intake=intake, result=result, timestamp=timestamp)
        with self._lock:
            updated = [record, *self._history][:HISTORY_LIMIT]
            repo.set_value(HISTORY_KEY, _history_adapter.dump_json(updated, by_alias=True).decode("utf-8"))
            self._history = updated
        return record

    def clear_history(self) -> None:
        with self._lock:
            repo.delete_value(HISTORY_KEY)
            self._history = []
