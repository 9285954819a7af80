"""
Cấu hình logging cho toàn bộ backend.
"""

from __future__ import annotations

import logging

from .config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Gắn handler cho root logger (chỉ một lần)."""

    root = logging.getLogger()
    if level is None:
        level = "DEBUG" if settings.debug else settings.log_level
    root.setLevel(level.upper())

    if any(getattr(h, "_attp_handler", False) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._attp_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
