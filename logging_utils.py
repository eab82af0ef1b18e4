"""Logging helpers for consistent console output."""
import logging
import sys
import tempfile
from pathlib import Path
from typing import Optional

LOG_FORMAT = "[%(levelname)s] %(message)s"
FALLBACK_LOG_NAME = "paper2poster.run.log"


def _file_handler(log_path: Path) -> Optional[logging.Handler]:
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path, mode="w", encoding="utf-8")
    except OSError as exc:
        fallback = Path(tempfile.gettempdir()) / FALLBACK_LOG_NAME
        try:
            handler = logging.FileHandler(fallback, mode="w", encoding="utf-8")
        except OSError:
            print(
                f"[WARN] Failed to open log file at {log_path} ({exc}). Continuing without file logging.",
                file=sys.stderr,
            )
            return None
        print(
            f"[WARN] Failed to open log file at {log_path} ({exc}). Logging to {fallback} instead.",
            file=sys.stderr,
        )
        return handler


def setup_logging(verbose: bool = False, log_path: Optional[Path] = None) -> None:
    """Configure root logging for the app."""
    level = logging.DEBUG if verbose else logging.INFO
    handlers = [logging.StreamHandler()]
    if log_path is not None:
        handler = _file_handler(Path(log_path))
        if handler is not None:
            handlers.append(handler)
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
