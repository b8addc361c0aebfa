from io import BytesIO

import pytest
from openpyxl import Workbook

from caption_rewriter.models import CaptionRow, RowStatus

PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
    b"\x00\x00\x00\rIDATx\x9cc\xf8\xff\xff?\x00\x05\xfe\x02\xfe\xa7V\x9f\x11\x00\x00\x00\x00IEND\xaeB`\x82"
)


@pytest.fixture
def make_rows():
    def _make(n, status=RowStatus.PENDING, **fields):
        return [CaptionRow(original=f"caption {i}", status=status, **fields) for i in range(n)]

    return _make


@pytest.fixture
def workbook_bytes():
    def _build(table):
        wb = Workbook()
        ws = wb.active
        for values in table:
            ws.append(list(values))
        buf = BytesIO()
        wb.save(buf)
        return buf.getvalue()

    return _build


@pytest.fixture
def png_bytes():
    return PNG_BYTES
