"""Application state and the pure transitions applied to it.

Every function here returns new rows/lists and leaves its inputs untouched,
so the Streamlit layer only ever swaps whole values in ``st.session_state``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence

from caption_rewriter.models import CaptionRow, ProcessingStats, RowStatus
from caption_rewriter.providers.base import RewriteResult

if TYPE_CHECKING:
    from caption_rewriter.processing import BatchProcessor

RUNNABLE_STATUSES = (RowStatus.PENDING, RowStatus.ERROR)

UPLOAD_MODES = ("excel", "match", "image", "manual")


@dataclass
class AppState:
    rows: List[CaptionRow] = field(default_factory=list)
    upload_mode: str = "excel"
    processor: Optional["BatchProcessor"] = None
    # bumped to reset Streamlit file_uploader widgets after an import
    uploader_nonce: int = 0

    @property
    def is_processing(self) -> bool:
        return self.processor is not None and not self.processor.done


# ---------------------------
# Row transitions
# ---------------------------
def mark_processing(row: CaptionRow) -> CaptionRow:
    return row.model_copy(update={"status": RowStatus.PROCESSING, "error": None})


def mark_completed(row: CaptionRow, result: RewriteResult) -> CaptionRow:
    # validated, unlike model_copy: provider output must be a string
    return CaptionRow.model_validate(
        {
            **row.model_dump(),
            "status": RowStatus.COMPLETED,
            "rewritten": result.rewritten,
            "original": result.extracted_original or row.original,
            "error": None,
        }
    )


def mark_failed(row: CaptionRow, message: str) -> CaptionRow:
    return row.model_copy(update={"status": RowStatus.ERROR, "error": message})


def strip_image(row: CaptionRow) -> CaptionRow:
    return row.model_copy(update={"image_data": None})


# ---------------------------
# List transitions
# ---------------------------
def replace_row(rows: Sequence[CaptionRow], index: int, row: CaptionRow) -> List[CaptionRow]:
    updated = list(rows)
    updated[index] = row
    return updated


def append_rows(rows: Sequence[CaptionRow], new_rows: Iterable[CaptionRow]) -> List[CaptionRow]:
    return [*rows, *new_rows]


def runnable_indices(rows: Sequence[CaptionRow]) -> List[int]:
    """Indices of rows a (re-)run should pick up, in list order."""
    return [i for i, row in enumerate(rows) if row.status in RUNNABLE_STATUSES]


def reset_interrupted(rows: Sequence[CaptionRow]) -> List[CaptionRow]:
    """Send rows left in ``processing`` by an interrupted run back to ``pending``."""
    return [
        row.model_copy(update={"status": RowStatus.PENDING}) if row.status == RowStatus.PROCESSING else row
        for row in rows
    ]


def compute_stats(rows: Sequence[CaptionRow]) -> ProcessingStats:
    return ProcessingStats(
        total=len(rows),
        completed=sum(1 for r in rows if r.status == RowStatus.COMPLETED),
        failed=sum(1 for r in rows if r.status == RowStatus.ERROR),
    )


def progress_percentage(stats: ProcessingStats) -> int:
    if stats.total <= 0:
        return 0
    return round((stats.completed + stats.failed) / stats.total * 100)
