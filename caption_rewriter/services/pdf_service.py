from __future__ import annotations

import logging
import re
from pathlib import Path

import fitz  # PyMuPDF

from caption_rewriter.exceptions import InputValidationError, PdfParseError

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"


def extract_text(data: bytes) -> str:
    """Extract plain text from all pages of a PDF and normalize whitespace.

    - Page texts joined with newlines
    - Collapses multiple spaces/tabs to a single space
    - Collapses multiple blank lines
    """
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            text = "\n".join(page.get_text("text") for page in doc)
    except Exception as exc:
        logger.error("Failed to parse PDF: %s", exc)
        raise PdfParseError("Failed to extract text from PDF") from exc
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{2,}", "\n", text).strip()
    return text


def extract_rules(filename: str, data: bytes, mime: str | None = None) -> str:
    """Validate an uploaded rules file and return its text."""
    if (mime and mime != PDF_MIME) or Path(filename or "").suffix.lower() != ".pdf":
        raise InputValidationError("Please upload a valid PDF file.")
    text = extract_text(data)
    logger.info("Loaded %d characters of custom rules from %s", len(text), filename)
    return text
