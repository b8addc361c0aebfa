from __future__ import annotations

import time
from typing import List, Optional, Tuple

import streamlit as st

from caption_rewriter.config import UI_POLL_SECONDS
from caption_rewriter.exceptions import (
    InputValidationError,
    ParseError,
    ProviderError,
    StorageError,
)
from caption_rewriter.processing import BatchProcessor, run_in_background
from caption_rewriter.services.image_service import (
    data_urls_by_name,
    manual_row,
    match_images,
    rows_from_images,
)
from caption_rewriter.services.rewrite_service import RewriteService
from caption_rewriter.services.spreadsheet_service import export_filename, export_for_download, import_rows
from caption_rewriter.settings import load_settings
from caption_rewriter.state import (
    UPLOAD_MODES,
    AppState,
    append_rows,
    compute_stats,
    progress_percentage,
    runnable_indices,
)
from caption_rewriter.ui.debug import debug_panel
from caption_rewriter.ui.preview import render_preview
from caption_rewriter.ui.sidebar import SidebarValues, render_sidebar
from caption_rewriter.utils.log import configure_logging
from caption_rewriter.utils.storage import HistoryStore

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
IMAGE_TYPES = ["png", "jpg", "jpeg", "webp"]
MODE_LABELS = {
    "excel": "Spreadsheet batch",
    "match": "Spreadsheet + images",
    "image": "Image analysis",
    "manual": "Manual entry",
}

settings = load_settings()
configure_logging(settings.log_level, file_path=settings.log_file)

st.set_page_config(page_title="AI Caption Rewriter", layout="wide")
st.title("AI Caption Rewriter")
st.caption("Upload captions or images → pick a model → click **Start rewriting** → review the diff → export.")


@st.cache_resource
def get_history_store(root: str, limit: int) -> HistoryStore:
    return HistoryStore(root, limit=limit)


def _files(uploads) -> List[Tuple[str, bytes, Optional[str]]]:
    return [(f.name, f.getvalue(), f.type) for f in uploads or []]


def _flash(msg: str) -> None:
    st.session_state["flash"] = msg


state: AppState = st.session_state.setdefault("app_state", AppState())
store = get_history_store(settings.app_storage_dir, settings.history_limit)

# Pull rows from a running (or just finished) batch
if state.processor is not None:
    finished = state.processor.done
    state.rows = state.processor.snapshot()
    if finished:
        state.processor = None

sidebar: SidebarValues = render_sidebar(settings, store, state)
debug_panel(settings)

flash = st.session_state.pop("flash", None)
if flash:
    st.success(flash)

# -------- Header actions --------
if state.rows:
    a1, a2, a3 = st.columns(3)
    with a1:
        if st.button("💾 Save to history", disabled=state.is_processing, use_container_width=True):
            try:
                session = store.save_session(state.rows, compute_stats(state.rows))
            except StorageError as e:
                st.error(str(e))
            else:
                _flash(f"Saved as “{session.name}”.")
                st.rerun()
    with a2:
        if st.button("🗑️ Clear", disabled=state.is_processing, use_container_width=True):
            state.rows = []
            state.processor = None
            state.uploader_nonce += 1
            st.rerun()
    with a3:
        st.download_button(
            "⬇️ Export .xlsx",
            data=export_for_download(state.rows, processing=state.is_processing),
            file_name=export_filename(),
            mime=XLSX_MIME,
            disabled=state.is_processing,
            use_container_width=True,
        )

# -------- Input area --------
def spreadsheet_input(nonce: int) -> None:
    uploaded = st.file_uploader(
        "Upload a spreadsheet (.xlsx)", type=["xlsx", "xlsm", "xls"], key=f"sheet_{nonce}"
    )
    if state.upload_mode == "match":
        st.caption("Upload the spreadsheet first, then link the images it references.")
    if uploaded is None:
        return
    try:
        rows = import_rows(uploaded.getvalue(), uploaded.name)
    except ParseError as e:
        st.error(str(e))
        return
    if not rows:
        st.warning("No captions found in the first sheet.")
        return
    state.rows = rows
    state.uploader_nonce += 1
    _flash(f"Imported {len(rows)} rows from {uploaded.name}.")
    st.rerun()


def image_input(nonce: int) -> None:
    uploads = st.file_uploader(
        "Upload images to extract and rewrite their captions",
        type=IMAGE_TYPES,
        accept_multiple_files=True,
        key=f"images_{nonce}",
    )
    if not uploads:
        return
    new_rows = rows_from_images(_files(uploads))
    state.rows = append_rows(state.rows, new_rows)
    state.uploader_nonce += 1
    _flash(f"Added {len(new_rows)} images.")
    st.rerun()


def manual_input(nonce: int) -> None:
    with st.form(f"manual_{nonce}", clear_on_submit=True):
        image = st.file_uploader("Image (optional)", type=IMAGE_TYPES)
        text = st.text_area("Original caption", placeholder="Type the original caption…")
        submitted = st.form_submit_button("Add to list")
    if not submitted:
        return
    try:
        row = manual_row(text, (image.name, image.getvalue(), image.type) if image else None)
    except InputValidationError as e:
        st.warning(str(e))
        return
    state.rows = append_rows(state.rows, [row])
    st.rerun()


INPUTS = {
    "excel": spreadsheet_input,
    "match": spreadsheet_input,
    "image": image_input,
    "manual": manual_input,
}

if not state.is_processing:
    if not state.rows:
        state.upload_mode = st.radio(
            "Input mode",
            UPLOAD_MODES,
            index=UPLOAD_MODES.index(state.upload_mode),
            format_func=MODE_LABELS.get,
            horizontal=True,
        )
        INPUTS[state.upload_mode](state.uploader_nonce)
    elif state.upload_mode in ("image", "manual"):
        with st.expander(f"Add more ({MODE_LABELS[state.upload_mode]})"):
            INPUTS[state.upload_mode](state.uploader_nonce)
    elif state.upload_mode == "match":
        linked = sum(1 for r in state.rows if r.image_data)
        with st.expander(f"Link images ({linked}/{len(state.rows)} rows have an image)", expanded=linked == 0):
            uploads = st.file_uploader(
                "Upload the images referenced by the spreadsheet (matched by filename)",
                type=IMAGE_TYPES,
                accept_multiple_files=True,
                key=f"match_{state.uploader_nonce}",
            )
            if uploads:
                state.rows, matched = match_images(state.rows, data_urls_by_name(_files(uploads)))
                state.uploader_nonce += 1
                _flash(f"Matched and loaded {matched} images.")
                st.rerun()

# -------- Processing --------
def start_batch() -> None:
    if not runnable_indices(state.rows):
        st.info("Nothing to process: every row is already completed.")
        return
    try:
        transform = RewriteService(
            sidebar.api_key,
            sidebar.model,
            sidebar.custom_rules,
            timeout=settings.request_timeout,
        )
    except InputValidationError as e:
        st.warning(str(e))
        return
    except ProviderError as e:
        st.error(str(e))
        return
    state.processor = BatchProcessor(state.rows, transform, concurrency=settings.concurrency)
    run_in_background(state.processor)
    st.rerun()


if state.rows:
    st.divider()
    stats = compute_stats(state.rows)
    pct = progress_percentage(stats)
    st.progress(
        pct / 100,
        text=f"{stats.completed} completed • {stats.failed} failed • {stats.total} total ({pct}%)",
    )
    if state.is_processing:
        proc = state.processor
        if proc.cancelled:
            st.caption("Stopping… waiting for in-flight requests to finish.")
        elif st.button("⏹️ Stop"):
            proc.cancel()
            st.rerun()
    elif st.button("▶️ Start rewriting", type="primary"):
        start_batch()

render_preview(state.rows, state.is_processing)

if state.is_processing:
    time.sleep(UI_POLL_SECONDS)
    st.rerun()
