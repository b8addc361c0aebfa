import pytest

from caption_rewriter.exceptions import InputValidationError
from caption_rewriter.models import CaptionRow
from caption_rewriter.services.image_service import (
    data_urls_by_name,
    manual_row,
    match_images,
    rows_from_images,
    split_data_url,
    to_data_url,
)


def test_data_url_round_trip(png_bytes):
    url = to_data_url("pixel.png", png_bytes)
    assert url.startswith("data:image/png;base64,")
    assert split_data_url(url) == ("image/png", png_bytes)


def test_non_image_is_rejected():
    with pytest.raises(InputValidationError):
        to_data_url("notes.txt", b"hello")


def test_malformed_data_url():
    with pytest.raises(InputValidationError):
        split_data_url("no comma here")


def test_rows_from_images_skips_other_files(png_bytes):
    rows = rows_from_images(
        [
            ("a.png", png_bytes, "image/png"),
            ("notes.txt", b"hello", "text/plain"),
            ("b.jpg", b"\xff\xd8\xff", None),
        ]
    )
    assert [r.image_path for r in rows] == ["a.png", "b.jpg"]
    assert all(r.original == "" for r in rows)
    assert rows[1].image_data.startswith("data:image/jpeg;base64,")


def test_manual_row(png_bytes):
    assert manual_row("a cat").original == "a cat"
    row = manual_row("", ("cat.png", png_bytes, "image/png"))
    assert row.original == ""
    assert row.image_path == "cat.png"
    with pytest.raises(InputValidationError):
        manual_row("   ")


def test_match_images_by_filename_suffix(png_bytes):
    files = data_urls_by_name([("cat.png", png_bytes, "image/png"), ("readme.md", b"#", None)])
    assert list(files) == ["cat.png"]

    rows = [
        CaptionRow(original="posix", image_path="photos/cat.png"),
        CaptionRow(original="windows", image_path="C:\\photos\\cat.png"),
        CaptionRow(original="other", image_path="photos/dog.png"),
        CaptionRow(original="no path"),
        CaptionRow(original="has image", image_path="cat.png", image_data="data:image/png;base64,AAAA"),
    ]
    updated, matched = match_images(rows, files)

    assert matched == 2
    assert updated[0].image_data == files["cat.png"]
    assert updated[1].image_data == files["cat.png"]
    assert updated[2] is rows[2]
    assert updated[3] is rows[3]
    assert updated[4].image_data == "data:image/png;base64,AAAA"
