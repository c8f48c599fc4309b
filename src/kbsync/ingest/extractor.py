"""Text extraction: PDF via pypdf, everything else as UTF-8 text.

The output is normalized: every whitespace run (newlines included) becomes a
single space and the result is trimmed.
"""

from __future__ import annotations

import io
from pathlib import PurePosixPath

import pypdf

from kbsync.exceptions import EmptyDocumentError, ExtractionError

PDF_EXTS = {".pdf"}
TEXT_EXTS = {
    ".txt", ".text", ".md", ".markdown", ".csv", ".json", ".log", ".rst",
    ".html", ".htm", ".xml", ".yaml", ".yml",
}
SUPPORTED_EXTS = PDF_EXTS | TEXT_EXTS


def normalize(text: str) -> str:
    """Collapse all whitespace runs to single spaces and trim."""
    return " ".join(text.split())


def is_supported(file_name: str) -> bool:
    return PurePosixPath(file_name).suffix.lower() in SUPPORTED_EXTS


def extract(raw: bytes, file_name: str) -> str:
    """Return the normalized text of *raw*.

    Raises:
        ExtractionError: Unsupported extension, unparsable payload, or no
            text after normalization.
    """
    ext = PurePosixPath(file_name).suffix.lower()
    if ext in PDF_EXTS:
        text = _extract_pdf(raw, file_name)
    elif ext in TEXT_EXTS:
        text = _decode_text(raw, file_name)
    else:
        raise ExtractionError(f"Unsupported file type {ext or '(none)'!r} for {file_name}")

    normalized = normalize(text)
    if not normalized:
        raise EmptyDocumentError(f"File {file_name} is empty")
    return normalized


def _extract_pdf(raw: bytes, file_name: str) -> str:
    """Extract all page text from an in-memory PDF."""
    try:
        reader = pypdf.PdfReader(io.BytesIO(raw))
        parts: list[str] = []
        for page in reader.pages:
            page_text = page.extract_text() or ""
            if page_text.strip():
                parts.append(page_text)
    except Exception as exc:
        # pypdf raises a wide range of types on damaged input
        raise ExtractionError(f"Could not read PDF {file_name}: {exc}") from exc
    return "\n".join(parts)


def _decode_text(raw: bytes, file_name: str) -> str:
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ExtractionError(f"{file_name} is not valid UTF-8: {exc}") from exc
