from datetime import date
from io import BytesIO

import pytest
from openpyxl import load_workbook
from openpyxl.cell.rich_text import CellRichText, TextBlock

from caption_rewriter.config import EXPORT_HEADERS
from caption_rewriter.exceptions import SpreadsheetParseError
from caption_rewriter.models import CaptionRow, RowStatus
from caption_rewriter.services.spreadsheet_service import (
    export_filename,
    export_for_download,
    export_rows,
    import_rows,
    locate_columns,
)


@pytest.mark.parametrize(
    "headers, expected",
    [
        (["Image Path", "Caption"], (1, 0)),
        (["图片路径", "描述"], (1, 0)),
        (["Description", "img"], (0, 1)),
        (["name", "notes"], (0, None)),
    ],
)
def test_locate_columns(headers, expected):
    assert locate_columns(headers) == expected


def test_import_uses_caption_header_and_skips_blank_rows(workbook_bytes):
    data = workbook_bytes(
        [
            ("Image Path", "Caption"),
            ("a.png", "a cat on a mat"),
            (None, None),
            ("b.png", "   "),
            ("c.png", "a dog"),
        ]
    )
    rows = import_rows(data, "captions.xlsx")

    assert [r.original for r in rows] == ["a cat on a mat", "a dog"]
    assert [r.image_path for r in rows] == ["a.png", "c.png"]
    assert all(r.status == RowStatus.PENDING for r in rows)
    assert len({r.id for r in rows}) == 2


def test_import_falls_back_to_first_column(workbook_bytes):
    rows = import_rows(workbook_bytes([("text", "other"), ("first", "second")]), "x.xlsx")
    assert [r.original for r in rows] == ["first"]
    assert rows[0].image_path is None


def test_import_of_header_only_sheet_is_empty(workbook_bytes):
    assert import_rows(workbook_bytes([("Caption",)]), "x.xlsx") == []


def test_legacy_xls_is_rejected(workbook_bytes):
    with pytest.raises(SpreadsheetParseError, match=r"\.xls"):
        import_rows(workbook_bytes([("Caption",), ("a",)]), "old.xls")


def test_garbage_bytes_raise_parse_error():
    with pytest.raises(SpreadsheetParseError):
        import_rows(b"definitely not a workbook", "broken.xlsx")


def test_export_layout():
    rows = [CaptionRow(original="a cat", rewritten="Rewritten Caption: a black cat", status=RowStatus.COMPLETED)]
    wb = load_workbook(BytesIO(export_rows(rows)))
    ws = wb.active

    assert [c.value for c in ws[1]] == EXPORT_HEADERS
    assert ws.max_row == 2
    assert ws.cell(row=2, column=1).value == rows[0].id
    assert ws.cell(row=2, column=5).value == "completed"
    assert ws.cell(row=2, column=7).value == "Rewritten Caption: a black cat"
    assert ws.column_dimensions["B"].width == 60


def test_export_highlights_added_characters():
    rows = [CaptionRow(original="a cat", rewritten="a black cat", status=RowStatus.COMPLETED)]
    wb = load_workbook(BytesIO(export_rows(rows)), rich_text=True)
    ws = wb.active

    # nothing was removed, so the original stays plain
    assert ws.cell(row=2, column=2).value == "a cat"

    rewritten = ws.cell(row=2, column=3).value
    assert isinstance(rewritten, CellRichText)
    assert str(rewritten) == "a black cat"
    added = [part for part in rewritten if isinstance(part, TextBlock)]
    assert "".join(p.text for p in added).strip() == "black"
    assert added[0].font.b


def test_export_strips_illegal_characters():
    rows = [CaptionRow(original="bad\x07char", rewritten="bad\x07char", status=RowStatus.COMPLETED)]
    ws = load_workbook(BytesIO(export_rows(rows))).active
    assert ws.cell(row=2, column=2).value == "badchar"


def test_exported_sheet_round_trips():
    rows = [
        CaptionRow(original="a cat", rewritten="Analysis: ok\nRewritten Caption: a black cat", status=RowStatus.COMPLETED),
        CaptionRow(original="a dog", status=RowStatus.ERROR, error="quota exceeded", image_path="dogs/d.png"),
        CaptionRow(original="a bird", status=RowStatus.PROCESSING),
        CaptionRow(original="a fish"),
        CaptionRow(original="", rewritten="Rewritten Caption: a red bus", status=RowStatus.COMPLETED, image_path="bus.png"),
    ]
    restored = import_rows(export_rows(rows), "caption_rewrites.xlsx")

    assert [r.id for r in restored] == [r.id for r in rows]
    assert [r.original for r in restored] == ["a cat", "a dog", "a bird", "a fish", ""]
    assert restored[0].rewritten == rows[0].rewritten
    assert restored[0].status == RowStatus.COMPLETED
    assert restored[1].status == RowStatus.ERROR
    assert restored[1].error == "quota exceeded"
    assert restored[1].image_path == "dogs/d.png"
    assert restored[2].status == RowStatus.PENDING
    assert restored[3].rewritten is None
    assert restored[4].rewritten == "Rewritten Caption: a red bus"
    assert restored[4].image_path == "bus.png"
    assert restored[4].status == RowStatus.COMPLETED


def test_export_filename():
    assert export_filename(date(2024, 3, 9)) == "caption_rewrites_2024-03-09.xlsx"


def test_plain_sheet_still_skips_blank_captions(workbook_bytes):
    rows = import_rows(workbook_bytes([("Caption", "Image Path"), (None, "a.png"), ("a dog", "b.png")]), "x.xlsx")
    assert [r.original for r in rows] == ["a dog"]


def test_leading_equals_is_kept_as_text():
    rows = [
        CaptionRow(
            original="=)) smiley caption",
            rewritten="=)) smiley caption, edited",
            status=RowStatus.ERROR,
            error="=bad",
        )
    ]
    data = export_rows(rows)

    ws = load_workbook(BytesIO(data)).active
    assert ws.cell(row=2, column=2).data_type == "s"
    assert ws.cell(row=2, column=2).value == "=)) smiley caption"

    [restored] = import_rows(data, "caption_rewrites.xlsx")
    assert restored.original == "=)) smiley caption"
    assert restored.rewritten == "=)) smiley caption, edited"
    assert restored.error == "=bad"


def test_export_for_download_skips_running_batch():
    rows = [CaptionRow(original="a cat")]
    assert export_for_download(rows, processing=True) == b""
    assert export_for_download([], processing=False) == b""
    data = export_for_download(rows, processing=False)
    assert [r.original for r in import_rows(data, "x.xlsx")] == ["a cat"]
