import pytest
from pydantic import ValidationError

from caption_rewriter.models import CaptionRow, ProcessingStats, RowStatus
from caption_rewriter.providers.base import RewriteResult
from caption_rewriter.state import (
    AppState,
    append_rows,
    compute_stats,
    mark_completed,
    mark_failed,
    mark_processing,
    progress_percentage,
    replace_row,
    reset_interrupted,
    runnable_indices,
    strip_image,
)


def test_transitions_return_new_rows():
    row = CaptionRow(original="a cat", status=RowStatus.ERROR, error="old failure")

    processing = mark_processing(row)
    assert processing.status == RowStatus.PROCESSING
    assert processing.error is None
    assert row.status == RowStatus.ERROR

    done = mark_completed(processing, RewriteResult(rewritten="A cat.", extracted_original=None))
    assert done.status == RowStatus.COMPLETED
    assert done.original == "a cat"
    assert done.rewritten == "A cat."
    assert done.id == row.id

    failed = mark_failed(processing, "quota exceeded")
    assert failed.status == RowStatus.ERROR
    assert failed.error == "quota exceeded"


def test_replace_row_does_not_alias():
    rows = [CaptionRow(original="a"), CaptionRow(original="b")]
    updated = replace_row(rows, 1, CaptionRow(original="c"))
    assert [r.original for r in rows] == ["a", "b"]
    assert [r.original for r in updated] == ["a", "c"]


def test_append_rows_keeps_order():
    rows = append_rows([CaptionRow(original="a")], [CaptionRow(original="b"), CaptionRow(original="c")])
    assert [r.original for r in rows] == ["a", "b", "c"]


def test_runnable_indices_and_stats():
    rows = [
        CaptionRow(original="a", status=RowStatus.COMPLETED),
        CaptionRow(original="b", status=RowStatus.ERROR),
        CaptionRow(original="c"),
        CaptionRow(original="d", status=RowStatus.COMPLETED),
    ]
    assert runnable_indices(rows) == [1, 2]

    stats = compute_stats(rows)
    assert stats == ProcessingStats(total=4, completed=2, failed=1)
    assert progress_percentage(stats) == 75


def test_progress_of_empty_batch_is_zero():
    assert progress_percentage(ProcessingStats()) == 0


def test_reset_interrupted_only_touches_processing_rows():
    rows = [
        CaptionRow(original="a", status=RowStatus.PROCESSING),
        CaptionRow(original="b", status=RowStatus.COMPLETED),
    ]
    reset = reset_interrupted(rows)
    assert [r.status for r in reset] == [RowStatus.PENDING, RowStatus.COMPLETED]
    assert reset[1] is rows[1]


def test_strip_image():
    row = CaptionRow(original="", image_data="data:image/png;base64,AAAA", image_path="a.png")
    stripped = strip_image(row)
    assert stripped.image_data is None
    assert stripped.image_path == "a.png"


def test_app_state_defaults():
    state = AppState()
    assert state.rows == []
    assert state.upload_mode == "excel"
    assert not state.is_processing


def test_mark_completed_rejects_non_text_report():
    row = mark_processing(CaptionRow(original="a cat"))
    with pytest.raises(ValidationError):
        mark_completed(row, RewriteResult(rewritten={"analysis": "x"}))
