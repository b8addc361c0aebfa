from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import streamlit as st

from caption_rewriter.config import MODEL_OPTIONS
from caption_rewriter.exceptions import CaptionRewriterError, InputValidationError, ParseError
from caption_rewriter.providers import provider_for_model
from caption_rewriter.services.pdf_service import extract_rules
from caption_rewriter.settings import Settings
from caption_rewriter.state import AppState
from caption_rewriter.utils.storage import HistoryStore


@dataclass
class SidebarValues:
    api_key: str
    model: str
    custom_rules: str


def _model_label(model_id: str) -> str:
    return dict((m, label) for label, m in MODEL_OPTIONS).get(model_id, model_id)


def _settings_tab(settings: Settings) -> SidebarValues:
    model_ids = [m for _, m in MODEL_OPTIONS]
    if settings.default_model not in model_ids:
        model_ids.insert(0, settings.default_model)
    model = st.selectbox(
        "Model",
        model_ids,
        index=model_ids.index(settings.default_model),
        format_func=_model_label,
        key="model",
    )

    spec = provider_for_model(model)
    api_key = st.text_input(
        f"{spec.name.title()} API key",
        value=settings.api_key_for(spec.name),
        type="password",
        key=f"api_key_{spec.name}",
        help="Read from the environment / .env when set; never stored in history.",
    )
    if not spec.supports_vision:
        st.caption("This model rewrites text only. Use a Gemini model for image modes.")

    st.markdown("**Custom rules**")
    nonce = st.session_state.setdefault("rules_nonce", 0)
    rules_pdf = st.file_uploader("Extract rules from PDF", type=["pdf"], key=f"rules_pdf_{nonce}")
    if rules_pdf is not None:
        try:
            with st.spinner("Extracting text from PDF…"):
                st.session_state["custom_rules"] = extract_rules(
                    rules_pdf.name, rules_pdf.getvalue(), rules_pdf.type
                )
        except InputValidationError as e:
            st.warning(str(e))
        except ParseError:
            st.error("Could not extract text from the PDF.")
        else:
            st.session_state["rules_nonce"] = nonce + 1
            st.rerun()

    custom_rules = st.text_area(
        "Rules text (appended to the system prompt)",
        key="custom_rules",
        height=180,
    )
    return SidebarValues(api_key=api_key.strip(), model=model, custom_rules=custom_rules)


def _history_tab(store: HistoryStore, state: AppState) -> None:
    sessions = store.get_sessions()
    if not sessions:
        st.caption("No saved sessions yet.")
        return
    for session in sessions:
        saved = datetime.fromtimestamp(session.timestamp / 1000).strftime("%Y-%m-%d %H:%M")
        with st.container(border=True):
            st.markdown(f"**{session.name}**")
            st.caption(
                f"{saved} • {session.stats.total} rows • "
                f"{session.stats.completed} done • {session.stats.failed} failed"
            )
            c1, c2 = st.columns(2)
            with c1:
                if st.button("Load", key=f"load_{session.id}", disabled=state.is_processing):
                    try:
                        state.rows = store.load_session(session)
                    except CaptionRewriterError as e:
                        st.warning(str(e))
                    else:
                        state.upload_mode = "excel"
                        state.processor = None
                        st.rerun()
            with c2:
                if st.button("Delete", key=f"delete_{session.id}"):
                    try:
                        store.delete_session(session.id)
                    except CaptionRewriterError as e:
                        st.error(str(e))
                    else:
                        st.rerun()


def render_sidebar(settings: Settings, store: HistoryStore, state: AppState) -> SidebarValues:
    st.sidebar.markdown("### ⚙️ Caption Rewriter")
    tab_settings, tab_history = st.sidebar.tabs(["Settings", "History"])
    with tab_settings:
        values = _settings_tab(settings)
    with tab_history:
        _history_tab(store, state)
    return values
