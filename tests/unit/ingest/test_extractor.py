"""Tests for text extraction and normalization."""

from __future__ import annotations

import io
from unittest.mock import MagicMock, patch

import pypdf
import pytest

from kbsync.exceptions import EmptyDocumentError, ExtractionError
from kbsync.ingest.extractor import extract, is_supported, normalize


def _blank_pdf() -> bytes:
    writer = pypdf.PdfWriter()
    writer.add_blank_page(width=200, height=200)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


# ------------------------------------------------------------------
# normalize
# ------------------------------------------------------------------


def test_normalize_collapses_whitespace():
    assert normalize("  a\n\n b\t\tc  \r\n") == "a b c"


def test_normalize_empty():
    assert normalize(" \n\t ") == ""


# ------------------------------------------------------------------
# Plain text
# ------------------------------------------------------------------


def test_extract_text_file():
    assert extract(b"Hello\n\nworld.  Bye.", "notes.txt") == "Hello world. Bye."


def test_extract_strips_utf8_bom():
    assert extract("\ufeffCafé menu".encode("utf-8"), "menu.md") == "Café menu"


def test_extract_extension_is_case_insensitive():
    assert extract(b"upper", "README.TXT") == "upper"


def test_extract_invalid_utf8_raises():
    with pytest.raises(ExtractionError, match="not valid UTF-8"):
        extract(b"\xff\xfe\xfa", "bad.txt")


def test_extract_whitespace_only_is_empty():
    with pytest.raises(EmptyDocumentError, match="File blank.txt is empty"):
        extract(b"   \n\n  ", "blank.txt")


def test_extract_unsupported_extension():
    with pytest.raises(ExtractionError, match="Unsupported file type"):
        extract(b"MZ...", "setup.exe")


def test_extract_no_extension():
    with pytest.raises(ExtractionError, match="none"):
        extract(b"data", "Makefile")


def test_is_supported():
    assert is_supported("a.pdf")
    assert is_supported("b.Markdown")
    assert not is_supported("c.docx")


# ------------------------------------------------------------------
# PDF
# ------------------------------------------------------------------


def test_extract_pdf_joins_pages():
    page1, page2 = MagicMock(), MagicMock()
    page1.extract_text.return_value = "Opening hours:\n9 to 5."
    page2.extract_text.return_value = "Closed on Sundays."
    reader = MagicMock()
    reader.pages = [page1, page2]
    with patch("kbsync.ingest.extractor.pypdf.PdfReader", return_value=reader):
        text = extract(b"%PDF-fake", "hours.pdf")
    assert text == "Opening hours: 9 to 5. Closed on Sundays."


def test_extract_pdf_corrupt_raises():
    with pytest.raises(ExtractionError, match="Could not read PDF"):
        extract(b"definitely not a pdf", "broken.pdf")


def test_extract_pdf_without_text_is_empty():
    with pytest.raises(EmptyDocumentError):
        extract(_blank_pdf(), "scan.pdf")
