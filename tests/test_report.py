import pytest

from pathlib import Path

from guidance import report
from guidance.report import build_history_report, register_report_fonts, report_filename
from guidance.schema import HistoryRecord, SymptomIntake


def test_empty_history_raises():
    with pytest.raises(ValueError):
        build_history_report([])


def test_report_is_pdf(guidance_result):
    record = HistoryRecord(intake=SymptomIntake(description="sore knee"), result=guidance_result)
    pdf = build_history_report([record])
    assert pdf.startswith(b"%PDF")


def test_long_history_paginates(guidance_result):
    long_text = "persistent cough with mild fever and tiredness " * 20
    records = [
        HistoryRecord(intake=SymptomIntake(description=long_text), result=guidance_result)
        for _ in range(10)
    ]
    single = build_history_report(records[:1])
    many = build_history_report(records)
    assert many.startswith(b"%PDF")
    assert len(many) > len(single)


def test_report_filename():
    assert report_filename().startswith("CareAssist_History_")
    assert report_filename().endswith(".pdf")


def _system_font_dir():
    for folder in report._FONT_DIRS:
        if all((Path(folder) / name).is_file() for name in report._FONT_FILES):
            return folder
    pytest.skip("DejaVu fonts are not installed")


def test_missing_fonts_fall_back_to_helvetica(tmp_path):
    assert register_report_fonts([str(tmp_path)]) == ("Helvetica", "Helvetica-Bold")


def test_font_dir_override_is_searched_first(tmp_path, monkeypatch):
    folder = _system_font_dir()
    for name in report._FONT_FILES:
        (tmp_path / name).write_bytes((Path(folder) / name).read_bytes())
    monkeypatch.setenv("CAREASSIST_REPORT_FONT_DIR", str(tmp_path))
    assert register_report_fonts() == ("DejaVuSans", "DejaVuSans-Bold")


def test_cyrillic_description_renders_with_unicode_font(guidance_result):
    _system_font_dir()
    record = HistoryRecord(
        intake=SymptomIntake(description="Острая боль в колене два дня"), result=guidance_result
    )
    pdf = build_history_report([record])
    assert pdf.startswith(b"%PDF")
    assert b"DejaVuSans" in pdf
