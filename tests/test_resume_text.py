from __future__ import annotations

from io import BytesIO

import pytest

RESUME = (
    "Ada Lovelace\n"
    "Senior Backend Engineer\n\n"
    "Experience\n"
    "Built REST APIs using FastAPI and deployed them on AWS.\n"
)


def test_clean_extracted_text_drops_page_markers_and_fixes_hyphenation():
    from backend.app.services.resume_analysis import clean_extracted_text

    raw = "Experience\r\nDevel-\nopment of backend   services.\n\n\n\nPage 1 of 2\n• Led a team\n2 / 2\n"
    cleaned = clean_extracted_text(raw)

    assert "Page 1" not in cleaned
    assert "2 / 2" not in cleaned
    assert "Development of backend services." in cleaned
    assert "- Led a team" in cleaned
    assert "\n\n\n" not in cleaned
    assert "\r" not in cleaned


def test_extract_txt_resume():
    from backend.app.services.resume_analysis import extract_resume_text

    text = extract_resume_text(RESUME.encode("utf-8"), ".txt")
    assert text.startswith("Ada Lovelace")
    assert "FastAPI" in text


def test_extract_docx_resume():
    import docx

    from backend.app.services.resume_analysis import extract_resume_text

    d = docx.Document()
    for line in RESUME.splitlines():
        d.add_paragraph(line)
    buf = BytesIO()
    d.save(buf)

    text = extract_resume_text(buf.getvalue(), ".docx")
    assert "Senior Backend Engineer" in text
    assert "Built REST APIs using FastAPI" in text


def test_short_or_unreadable_documents_are_rejected():
    from pypdf import PdfWriter

    from backend.app.services.resume_analysis import ResumeExtractionError, extract_resume_text

    with pytest.raises(ResumeExtractionError):
        extract_resume_text(b"too short", ".txt")

    with pytest.raises(ResumeExtractionError):
        extract_resume_text(b"not a zip file", ".docx")

    # A text-less PDF (what a scanned resume looks like to pypdf).
    writer = PdfWriter()
    writer.add_blank_page(width=612, height=792)
    buf = BytesIO()
    writer.write(buf)
    with pytest.raises(ResumeExtractionError):
        extract_resume_text(buf.getvalue(), ".pdf")


def test_resume_extension_prefers_filename_then_content_type():
    from backend.app.services.resume_analysis import resume_extension

    assert resume_extension("CV.PDF", "application/octet-stream") == ".pdf"
    assert resume_extension("resume", "application/vnd.openxmlformats-officedocument.wordprocessingml.document") == ".docx"
    assert resume_extension("photo.png", "image/png") is None
