import fitz
import pytest

from utils.pdf_extractor import (
    CorruptedPDFError,
    EmptyPDFError,
    PDFExtractionError,
    clean_pdf_text,
    extract_text_from_pdf_bytes,
    truncate_text,
)


def make_pdf_bytes(page_bodies, **write_kwargs) -> bytes:
    doc = fitz.open()
    for body in page_bodies:
        page = doc.new_page()
        if body:
            page.insert_textbox(fitz.Rect(72, 72, 500, 700), body)
    doc.set_metadata({"title": "Leaf Study", "author": "A. Researcher"})
    return doc.write(**write_kwargs)


@pytest.mark.unit
def test_extract_pages_and_metadata():
    pdf_bytes = make_pdf_bytes(
        ["First page about photosynthesis.", "", "Third page about chlorophyll."]
    )
    extracted = extract_text_from_pdf_bytes(pdf_bytes)

    assert extracted.pages == 3
    # Blank pages are skipped but numbering follows the document
    assert [p.page_number for p in extracted.page_texts] == [1, 3]
    assert "photosynthesis" in extracted.page_texts[0].text
    assert "chlorophyll" in extracted.text
    assert extracted.info["title"] == "Leaf Study"
    assert extracted.info["subject"] is None


@pytest.mark.unit
def test_corrupted_bytes_raise():
    with pytest.raises(CorruptedPDFError) as exc_info:
        extract_text_from_pdf_bytes(b"this is not a pdf", document_id="doc-9")
    assert "doc-9" in str(exc_info.value)
    assert isinstance(exc_info.value, PDFExtractionError)


@pytest.mark.unit
def test_pdf_without_text_raises_empty():
    with pytest.raises(EmptyPDFError):
        extract_text_from_pdf_bytes(make_pdf_bytes(["", ""]))


@pytest.mark.unit
def test_encrypted_pdf_raises():
    pdf_bytes = make_pdf_bytes(
        ["Secret text."],
        encryption=fitz.PDF_ENCRYPT_AES_256,
        owner_pw="owner",
        user_pw="user",
    )
    with pytest.raises(CorruptedPDFError, match="encrypted"):
        extract_text_from_pdf_bytes(pdf_bytes)


@pytest.mark.unit
def test_clean_pdf_text():
    raw = "  Title   of    paper  \n\n\n\n  Body  line  "
    assert clean_pdf_text(raw) == "Title of paper\n\nBody line"


@pytest.mark.unit
def test_truncate_text_short_input_unchanged():
    assert truncate_text("short text", max_chars=100) == "short text"


@pytest.mark.unit
def test_truncate_text_cuts_at_late_sentence_boundary():
    text = "a" * 95 + ". " + "b" * 50
    assert truncate_text(text, max_chars=100) == "a" * 95 + "."


@pytest.mark.unit
def test_truncate_text_hard_cut_adds_ellipsis():
    text = "Early stop. " + "c" * 300
    assert truncate_text(text, max_chars=100) == text[:100] + "..."


@pytest.mark.unit
def test_truncate_text_default_limit():
    assert len(truncate_text("x" * 20000)) == 15000 + len("...")
