from __future__ import annotations

import glob
import os
import sys
from pathlib import Path

import streamlit as st

from caption_rewriter.providers import REGISTRY
from caption_rewriter.settings import Settings


def debug_panel(settings: Settings):
    st.sidebar.markdown("---")
    st.sidebar.subheader("🔧 Debug")
    dbg = st.sidebar.checkbox("Enable debug mode")
    if not dbg:
        return

    st.sidebar.write("**Python**:", sys.version)
    st.sidebar.write("**Interpreter**:", sys.executable)
    st.sidebar.write("**CWD**:", os.getcwd())

    # Show presence of .env without leaking secrets
    env_paths = [Path(".env"), *[Path(p) for p in glob.glob("**/.env", recursive=False)]]
    env_exists = [str(p.resolve()) for p in env_paths if p.exists()]
    st.sidebar.write("**.env found at**:", env_exists or "(none)")

    for name, spec in REGISTRY.items():
        key = settings.api_key_for(name)
        caps = "vision" if spec.supports_vision else "text only"
        st.sidebar.write(f"**{name.upper()}_API_KEY set** ({caps}):", bool(key), "| length:", len(key))

    st.sidebar.write("**Storage dir**:", str(Path(settings.app_storage_dir).resolve()))
    st.sidebar.write("**Workers**:", settings.concurrency, "| **timeout**:", settings.request_timeout)
    st.sidebar.write("**Log level**:", settings.log_level, "| **log file**:", settings.log_file or "(none)")

    # Network / TLS diagnostics
    st.sidebar.markdown("**Network/TLS diagnostics**")
    for k in ("SSL_CERT_FILE", "REQUESTS_CA_BUNDLE", "HTTPS_PROXY", "HTTP_PROXY", "NO_PROXY"):
        v = os.getenv(k)
        st.sidebar.write(f"{k}:", v if v else "(unset)")

    if st.sidebar.button("🔄 Rerun"):
        st.rerun()
