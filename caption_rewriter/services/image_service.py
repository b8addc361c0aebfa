from __future__ import annotations

import base64
import logging
import mimetypes
from typing import Dict, List, Mapping, Optional, Tuple

from caption_rewriter.exceptions import InputValidationError
from caption_rewriter.models import CaptionRow

logger = logging.getLogger(__name__)


def guess_mime(filename: str, declared: Optional[str] = None) -> Optional[str]:
    if declared:
        return declared
    mime, _ = mimetypes.guess_type(filename or "")
    return mime


def is_image(filename: str, declared: Optional[str] = None) -> bool:
    mime = guess_mime(filename, declared)
    return bool(mime and mime.startswith("image/"))


def to_data_url(filename: str, data: bytes, mime: Optional[str] = None) -> str:
    """Embed raw image bytes as a ``data:`` URL for preview and API payloads."""
    mime = guess_mime(filename, mime)
    if not mime or not mime.startswith("image/"):
        raise InputValidationError(f"{filename} is not an image file.")
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def split_data_url(data_url: str) -> Tuple[str, bytes]:
    """Return (mime type, raw bytes) from a base64 data URL."""
    try:
        header, payload = data_url.split(",", 1)
        mime = header[header.index(":") + 1 : header.index(";")]
        return mime, base64.b64decode(payload)
    except ValueError as exc:
        raise InputValidationError("Malformed image data URL.") from exc


def rows_from_images(files: List[Tuple[str, bytes, Optional[str]]]) -> List[CaptionRow]:
    """Image-only mode: one pending row per image; non-images are skipped."""
    rows: List[CaptionRow] = []
    for name, data, mime in files:
        if not is_image(name, mime):
            logger.info("Skipping non-image upload %s", name)
            continue
        rows.append(CaptionRow(original="", image_data=to_data_url(name, data, mime), image_path=name))
    return rows


def manual_row(text: str, image: Optional[Tuple[str, bytes, Optional[str]]] = None) -> CaptionRow:
    """Manual entry: a row from free text and/or one image."""
    if not (text or "").strip() and image is None:
        raise InputValidationError("Provide a caption text or an image.")
    if image is None:
        return CaptionRow(original=text)
    name, data, mime = image
    return CaptionRow(original=text, image_data=to_data_url(name, data, mime), image_path=name)


def _find_match(path: Optional[str], names: Mapping[str, str]) -> Optional[str]:
    if not path:
        return None
    if path in names:
        return path
    for name in names:
        if path.endswith(name) or path.endswith("/" + name) or path.endswith("\\" + name):
            return name
    return None


def match_images(rows: List[CaptionRow], files: Mapping[str, str]) -> Tuple[List[CaptionRow], int]:
    """Match mode: attach images to rows by filename suffix of their image path.

    ``files`` maps uploaded filename to its data URL. Rows that already carry an
    image are left alone. Returns the new row list and how many rows matched.
    """
    matched = 0
    out: List[CaptionRow] = []
    for row in rows:
        name = None if row.image_data else _find_match(row.image_path, files)
        if name is None:
            out.append(row)
            continue
        out.append(row.model_copy(update={"image_data": files[name]}))
        matched += 1
    logger.info("Matched %d/%d rows to uploaded images", matched, len(rows))
    return out, matched


def data_urls_by_name(files: List[Tuple[str, bytes, Optional[str]]]) -> Dict[str, str]:
    """Encode uploads for :func:`match_images`, skipping files that are not images."""
    out: Dict[str, str] = {}
    for name, data, mime in files:
        if not is_image(name, mime):
            logger.info("Skipping non-image upload %s", name)
            continue
        out[name] = to_data_url(name, data, mime)
    return out
