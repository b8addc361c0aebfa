from __future__ import annotations

from typing import Sequence

import streamlit as st

from caption_rewriter.models import CaptionRow, RowStatus
from caption_rewriter.services.diff_service import extract_rewritten_text, render_html
from caption_rewriter.services.image_service import split_data_url

STATUS_BADGES = {
    RowStatus.PENDING: "🕒 pending",
    RowStatus.PROCESSING: "⏳ processing",
    RowStatus.COMPLETED: "✅ completed",
    RowStatus.ERROR: "⚠️ error",
}


def _row_card(n: int, row: CaptionRow, show_diff: bool) -> None:
    with st.container(border=True):
        c_img, c_orig, c_new = st.columns([1, 3, 3], gap="medium")
        with c_img:
            st.caption(f"#{n} • {STATUS_BADGES[row.status]}")
            if row.image_data:
                _, data = split_data_url(row.image_data)
                st.image(data, use_container_width=True)
            if row.image_path:
                st.caption(row.image_path)
        with c_orig:
            st.markdown("**Original**")
            if show_diff and row.rewritten:
                st.markdown(render_html(row.original, row.rewritten, "original"), unsafe_allow_html=True)
            else:
                st.text(row.original or "—")
        with c_new:
            st.markdown("**Rewritten**")
            if row.status == RowStatus.ERROR:
                st.error(row.error or "Unknown error")
            elif row.rewritten is None:
                st.caption("Processing…" if row.status == RowStatus.PROCESSING else "Not processed yet")
            elif show_diff:
                st.markdown(render_html(row.original, row.rewritten, "rewritten"), unsafe_allow_html=True)
            else:
                st.text(extract_rewritten_text(row.rewritten))
                with st.expander("Full report"):
                    st.text(row.rewritten)


def render_preview(rows: Sequence[CaptionRow], is_processing: bool) -> None:
    if not rows:
        return
    head_l, head_r = st.columns([3, 1])
    with head_l:
        st.subheader(f"Preview ({len(rows)} rows)")
    with head_r:
        show_diff = st.toggle("Show diff", key="show_diff", disabled=is_processing)
    for n, row in enumerate(rows, start=1):
        _row_card(n, row, show_diff)
