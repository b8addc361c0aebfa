from __future__ import annotations

import html
import re
from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import List, Optional, Tuple

from caption_rewriter.config import REWRITTEN_MARKER_PATTERN

_MARKER_RE = re.compile(REWRITTEN_MARKER_PATTERN, re.IGNORECASE)


@dataclass(frozen=True)
class DiffPart:
    value: str
    added: bool = False
    removed: bool = False


def extract_rewritten_text(report: Optional[str]) -> str:
    """Return the final caption from a review report, or the report itself.

    The model answers with analysis, rewrite notes and then the caption after a
    marker such as ``Rewritten Caption:`` or ``改写caption：``.
    """
    if not report:
        return ""
    m = _MARKER_RE.search(report)
    if m and m.group(1).strip():
        return m.group(1).strip()
    return report


def diff_chars(original: str, rewritten: str) -> List[DiffPart]:
    """Character-level diff; works for mixed CJK/latin text without tokenising."""
    original = original or ""
    rewritten = rewritten or ""
    parts: List[DiffPart] = []
    matcher = SequenceMatcher(None, original, rewritten, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            parts.append(DiffPart(original[i1:i2]))
            continue
        # removals before additions, like a unified diff
        if tag in ("delete", "replace"):
            parts.append(DiffPart(original[i1:i2], removed=True))
        if tag in ("insert", "replace"):
            parts.append(DiffPart(rewritten[j1:j2], added=True))
    return parts


def original_segments(parts: List[DiffPart]) -> List[Tuple[str, bool]]:
    """(text, highlighted) runs for the original column: removals highlighted, additions dropped."""
    return [(p.value, p.removed) for p in parts if not p.added]


def rewritten_segments(parts: List[DiffPart]) -> List[Tuple[str, bool]]:
    """(text, highlighted) runs for the rewritten column: additions highlighted, removals dropped."""
    return [(p.value, p.added) for p in parts if not p.removed]


_HIGHLIGHT = {
    "original": "background:#fecaca;border-bottom:2px solid #f87171;border-radius:2px;padding:0 1px",
    "rewritten": "background:#bbf7d0;border-bottom:2px solid #86efac;border-radius:2px;padding:0 1px",
}


def render_html(original: str, report: Optional[str], side: str) -> str:
    """HTML for one side of the preview diff. ``side`` is ``original`` or ``rewritten``."""
    if side not in _HIGHLIGHT:
        raise ValueError(f"Unknown diff side: {side}")
    parts = diff_chars(original, extract_rewritten_text(report))
    segments = original_segments(parts) if side == "original" else rewritten_segments(parts)
    out = []
    for text, highlighted in segments:
        escaped = html.escape(text)
        if highlighted:
            out.append(f'<span style="{_HIGHLIGHT[side]}">{escaped}</span>')
        else:
            out.append(f"<span>{escaped}</span>")
    return '<div style="white-space:pre-wrap;line-height:1.6;word-break:break-word">' + "".join(out) + "</div>"
