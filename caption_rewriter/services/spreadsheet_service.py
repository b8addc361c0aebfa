from __future__ import annotations

import logging
from datetime import date
from io import BytesIO
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from openpyxl import Workbook, load_workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.cell.rich_text import CellRichText, TextBlock
from openpyxl.cell.text import InlineFont
from openpyxl.utils import get_column_letter

from caption_rewriter.config import (
    CAPTION_HEADER_KEYWORDS,
    DIFF_STYLES,
    EXPORT_COLUMN_WIDTHS,
    EXPORT_FILENAME_TEMPLATE,
    EXPORT_HEADERS,
    EXPORT_SHEET_TITLE,
    IMAGE_HEADER_KEYWORDS,
)
from caption_rewriter.exceptions import SpreadsheetParseError
from caption_rewriter.models import CaptionRow, RowStatus, new_row_id
from caption_rewriter.services.diff_service import (
    diff_chars,
    extract_rewritten_text,
    original_segments,
    rewritten_segments,
)

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = {".xlsx", ".xlsm"}

# Columns only an exported sheet carries; their presence restores full rows.
_ID, _STATUS, _ERROR, _REPORT = "ID", "Status", "Error", "Rewritten Report"


# ---------------------------
# Import
# ---------------------------
def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _headers(raw: Sequence[Any]) -> List[str]:
    return [
        str(h).strip() if h is not None and str(h).strip() else f"column_{i + 1}"
        for i, h in enumerate(raw)
    ]


def find_column(headers: Sequence[str], keywords: Iterable[str], exclude: Optional[int] = None) -> Optional[int]:
    """Index of the first header containing any keyword (case-insensitive)."""
    keywords = tuple(k.lower() for k in keywords)
    for i, header in enumerate(headers):
        if i == exclude:
            continue
        low = header.lower()
        if any(k in low for k in keywords):
            return i
    return None


def locate_columns(headers: Sequence[str]) -> Tuple[int, Optional[int]]:
    """Return (caption column, image path column) using header-name heuristics."""
    caption_idx = find_column(headers, CAPTION_HEADER_KEYWORDS)
    if caption_idx is None:
        caption_idx = 0
    image_idx = find_column(headers, IMAGE_HEADER_KEYWORDS, exclude=caption_idx)
    return caption_idx, image_idx


def _read_sheet(data: bytes) -> List[Tuple[Any, ...]]:
    try:
        wb = load_workbook(BytesIO(data), read_only=True, data_only=True)
    except Exception as exc:
        raise SpreadsheetParseError(
            "Failed to parse the spreadsheet. Make sure the file is a valid .xlsx workbook."
        ) from exc
    try:
        if not wb.worksheets:
            raise SpreadsheetParseError("The workbook contains no sheets.")
        return list(wb.worksheets[0].iter_rows(values_only=True))
    finally:
        wb.close()


def _parse_status(value: str) -> RowStatus:
    try:
        status = RowStatus(value.strip().lower())
    except ValueError:
        return RowStatus.PENDING
    # nothing is in flight after an import
    return RowStatus.PENDING if status == RowStatus.PROCESSING else status


def import_rows(data: bytes, filename: str = "") -> List[CaptionRow]:
    """Create one pending row per spreadsheet data row with a non-blank caption.

    Sheets written by :func:`export_rows` restore ids, rewritten text, status
    and errors as well, and keep rows with an empty caption (image-only rows).
    """
    suffix = Path(filename).suffix.lower()
    if suffix and suffix not in SUPPORTED_SUFFIXES:
        raise SpreadsheetParseError(
            f"Unsupported spreadsheet type '{suffix}'. Save the file as .xlsx and try again."
        )
    table = _read_sheet(data)
    if not table:
        return []

    headers = _headers(table[0])
    caption_idx, image_idx = locate_columns(headers)
    exported = {_ID, _STATUS, _REPORT}.issubset(headers)
    logger.info(
        "Importing %s: caption column %r, image column %r%s",
        filename or "<workbook>",
        headers[caption_idx],
        headers[image_idx] if image_idx is not None else None,
        " (exported sheet)" if exported else "",
    )

    def col(values: Sequence[Any], idx: Optional[int]) -> str:
        if idx is None or idx >= len(values):
            return ""
        return _cell_text(values[idx])

    rows: List[CaptionRow] = []
    for values in table[1:]:
        if all(v is None or not str(v).strip() for v in values):
            continue
        original = col(values, caption_idx)
        image_path = col(values, image_idx) or None
        if not exported:
            if not original.strip():
                continue
            rows.append(CaptionRow(original=original, image_path=image_path))
            continue
        rewritten = col(values, headers.index(_REPORT))
        error = col(values, headers.index(_ERROR)) if _ERROR in headers else ""
        rows.append(
            CaptionRow(
                id=col(values, headers.index(_ID)) or new_row_id(),
                original=original,
                rewritten=rewritten or None,
                status=_parse_status(col(values, headers.index(_STATUS))),
                image_path=image_path,
                error=error or None,
            )
        )
    logger.info("Imported %d rows", len(rows))
    return rows


# ---------------------------
# Export
# ---------------------------
def _clean(text: Optional[str]) -> str:
    return ILLEGAL_CHARACTERS_RE.sub("", text or "")


def _rich_cell(segments: List[Tuple[str, bool]], style: dict) -> Any:
    """Rich text runs for one diff column; plain string when nothing is highlighted."""
    segments = [(_clean(text), hl) for text, hl in segments if _clean(text)]
    if not any(hl for _, hl in segments):
        return "".join(text for text, _ in segments)
    font = InlineFont(**style)
    return CellRichText([TextBlock(font, text) if hl else text for text, hl in segments])


def export_rows(rows: Sequence[CaptionRow]) -> bytes:
    """Write rows to an .xlsx workbook with character-level diff highlighting."""
    wb = Workbook()
    ws = wb.active
    ws.title = EXPORT_SHEET_TITLE
    ws.append(EXPORT_HEADERS)

    for row in rows:
        parts = diff_chars(row.original, extract_rewritten_text(row.rewritten))
        ws.append([
            _clean(row.id),
            _rich_cell(original_segments(parts), DIFF_STYLES["removed"]),
            _rich_cell(rewritten_segments(parts), DIFF_STYLES["added"]),
            _clean(row.image_path),
            row.status.value,
            _clean(row.error),
            _clean(row.rewritten),
        ])
        # text starting with "=" would otherwise be written as a formula
        for cell in ws[ws.max_row]:
            if isinstance(cell.value, str):
                cell.data_type = "s"

    for i, width in enumerate(EXPORT_COLUMN_WIDTHS, start=1):
        ws.column_dimensions[get_column_letter(i)].width = width

    buf = BytesIO()
    wb.save(buf)
    logger.info("Exported %d rows", len(rows))
    return buf.getvalue()


def export_filename(today: Optional[date] = None) -> str:
    return EXPORT_FILENAME_TEMPLATE.format(date=(today or date.today()).isoformat())


def export_for_download(rows: Sequence[CaptionRow], *, processing: bool) -> bytes:
    """Workbook bytes for the download button; skipped while a batch is running."""
    if processing or not rows:
        return b""
    return export_rows(rows)
