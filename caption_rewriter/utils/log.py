from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s | %(threadName)-15s | %(levelname)-8s | %(name)s | %(message)s"

_configured = False


def configure_logging(
    level: Union[int, str] = logging.INFO,
    *,
    file_path: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """Attach console (and optional rotating file) handlers to the package logger.

    Streamlit re-executes the script on every interaction, so repeated calls
    are no-ops once the handlers are in place.
    """
    global _configured
    logger = logging.getLogger("caption_rewriter")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)
    if _configured:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    sh = logging.StreamHandler(sys.stderr)
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    if file_path:
        fp = Path(file_path)
        fp.parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(fp, maxBytes=5 * 1024 * 1024, backupCount=2, encoding="utf-8")
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    # Streamlit installs its own root handlers; keep our lines from doubling up
    logger.propagate = False
    _configured = True
    return logger
