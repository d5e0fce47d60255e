"""PDF export of the local query history."""

from __future__ import annotations

import io
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from guidance.schema import HistoryRecord

__all__ = ["build_history_report", "register_report_fonts", "report_filename"]

logger = logging.getLogger(__name__)

_BLUE = (37 / 255, 99 / 255, 235 / 255)
_SLATE_800 = (30 / 255, 41 / 255, 59 / 255)
_SLATE_700 = (51 / 255, 65 / 255, 85 / 255)
_SLATE_500 = (100 / 255, 116 / 255, 139 / 255)
_SLATE_200 = (226 / 255, 232 / 255, 240 / 255)

_MARGIN = 15 * mm
_LINE = 5 * mm
_TOP = 25 * mm
_BOTTOM = 30 * mm

# The built-in Helvetica only covers Latin-1; a Unicode TTF is used when one is installed.
_FALLBACK_FONTS = ("Helvetica", "Helvetica-Bold")
_FONT_FILES = ("DejaVuSans.ttf", "DejaVuSans-Bold.ttf")
_FONT_DIRS = (
    "/usr/share/fonts/truetype/dejavu",
    "/usr/share/fonts/dejavu",
    "/usr/share/fonts/TTF",
    "/Library/Fonts",
    "C:/Windows/Fonts",
)


def register_report_fonts(search_dirs: Optional[Iterable[str]] = None) -> Tuple[str, str]:
    """Register a Unicode TrueType pair and return its (regular, bold) font names.

    ``CAREASSIST_REPORT_FONT_DIR`` is searched before the platform defaults.
    Falls back to Helvetica when no directory holds both DejaVu files.
    """

    if search_dirs is None:
        override = os.getenv("CAREASSIST_REPORT_FONT_DIR")
        search_dirs = ((override,) if override else ()) + _FONT_DIRS

    for folder in search_dirs:
        regular, bold = (Path(folder) / name for name in _FONT_FILES)
        if not (regular.is_file() and bold.is_file()):
            continue
        names = (regular.stem, bold.stem)
        registered = pdfmetrics.getRegisteredFontNames()
        for name, path in zip(names, (regular, bold)):
            if name not in registered:
                pdfmetrics.registerFont(TTFont(name, str(path)))
        return names

    logger.warning("No Unicode font found for PDF export; non-Latin text may not render")
    return _FALLBACK_FONTS


class _NumberedCanvas(canvas.Canvas):
    """Canvas that defers page output so every footer can show the page total."""

    def __init__(self, *args, fonts: Tuple[str, str] = _FALLBACK_FONTS, **kwargs):
        super().__init__(*args, **kwargs)
        self.regular_font, self.bold_font = fonts
        self._saved_pages: list[dict] = []

    def showPage(self):
        self._saved_pages.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_pages)
        for state in self._saved_pages:
            self.__dict__.update(state)
            self._draw_footer(total)
            super().showPage()
        super().save()

    def _draw_footer(self, total: int) -> None:
        width, _ = self._pagesize
        self.setStrokeColorRGB(*_SLATE_200)
        self.line(_MARGIN, 25 * mm, width - _MARGIN, 25 * mm)
        self.setFillColorRGB(*_SLATE_500)
        self.setFont(self.regular_font, 8)
        self.drawCentredString(width / 2, 18 * mm, "Informational guidance only. Not a medical diagnosis.")
        self.setFont(self.bold_font, 8)
        self.drawCentredString(width / 2, 13 * mm, "CareAssist")
        self.setFont(self.regular_font, 8)
        self.drawRightString(width - _MARGIN, 10 * mm, f"Page {self._pageNumber} of {total}")


class _ReportWriter:
    def __init__(self, pdf: _NumberedCanvas):
        self.pdf = pdf
        self.width, self.height = A4
        self.y = self.height - _TOP

    def ensure_space(self, needed: float) -> None:
        if self.y - needed < _BOTTOM:
            self.pdf.showPage()
            self.y = self.height - _TOP

    def header(self) -> None:
        pdf = self.pdf
        pdf.setFillColorRGB(*_BLUE)
        pdf.circle(_MARGIN + 2 * mm, self.y + 2 * mm, 3 * mm, stroke=0, fill=1)
        pdf.setFillColorRGB(*_SLATE_800)
        pdf.setFont(pdf.bold_font, 22)
        pdf.drawString(_MARGIN + 8 * mm, self.y, "CareAssist")
        pdf.setFillColorRGB(*_SLATE_500)
        pdf.setFont(pdf.regular_font, 10)
        pdf.drawString(_MARGIN + 8 * mm, self.y - 6 * mm, "Personal Health History Report")
        pdf.setStrokeColorRGB(*_SLATE_200)
        pdf.line(_MARGIN, self.y - 12 * mm, self.width - _MARGIN, self.y - 12 * mm)
        self.y -= 22 * mm

    def heading(self, text: str, size: int = 10, color=_SLATE_700) -> None:
        self.ensure_space(_LINE)
        self.pdf.setFont(self.pdf.bold_font, size)
        self.pdf.setFillColorRGB(*color)
        self.pdf.drawString(_MARGIN, self.y, text)
        self.y -= _LINE + (3 if size > 10 else 0)

    def paragraph(self, text: str, indent: float = 0, bullet: str = "") -> None:
        self.pdf.setFont(self.pdf.regular_font, 10)
        self.pdf.setFillColorRGB(*_SLATE_700)
        max_width = self.width - 2 * _MARGIN - indent
        lines = simpleSplit(text, self.pdf.regular_font, 10, max_width) or [""]
        for i, line in enumerate(lines):
            self.ensure_space(_LINE)
            prefix = bullet if i == 0 else " " * len(bullet)
            self.pdf.drawString(_MARGIN + indent, self.y, prefix + line)
            self.y -= _LINE
        self.y -= 2

    def divider(self) -> None:
        self.pdf.setStrokeColorRGB(*_SLATE_200)
        self.pdf.line(_MARGIN, self.y, self.width - _MARGIN, self.y)
        self.y -= 10 * mm


def _format_timestamp(millis: int) -> str:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def build_history_report(records: Sequence[HistoryRecord]) -> bytes:
    """Render ``records`` (newest first) as a paginated PDF document.

    Raises:
        ValueError: if there is nothing to export.
    """

    if not records:
        raise ValueError("No history found to export.")

    buf = io.BytesIO()
    pdf = _NumberedCanvas(buf, pagesize=A4, fonts=register_report_fonts())
    pdf.setTitle("CareAssist Health History")
    writer = _ReportWriter(pdf)
    writer.header()

    total = len(records)
    for index, record in enumerate(records):
        writer.ensure_space(4 * _LINE)
        writer.heading(
            f"Record #{total - index} - {_format_timestamp(record.timestamp)}", size=12, color=_BLUE
        )

        writer.heading("Symptom Description:")
        writer.paragraph(record.intake.description or "No description provided")

        causes = record.result.possible_causes
        if causes:
            writer.heading("Possible Causes:")
            writer.paragraph(", ".join(causes))

        if record.result.medicines:
            writer.heading("OTC Recommendations:")
            for med in record.result.medicines:
                writer.paragraph(f"{med.name}: {med.dosage} ({med.warnings})", indent=3 * mm, bullet="- ")

        writer.divider()

    pdf.showPage()
    pdf.save()
    return buf.getvalue()


def report_filename(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"CareAssist_History_{now.date().isoformat()}.pdf"
