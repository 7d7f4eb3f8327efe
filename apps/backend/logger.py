import logging
import sys
from pathlib import Path
from typing import Optional


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Attach stdout (and optionally file) handlers to the root logger.

    Safe to call more than once: handlers are only added the first time.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    # Prevent duplicate handlers if called multiple times (reload, tests)
    if getattr(root, "_cronograma_configured", False):
        return root

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    root.addHandler(stream_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        root.addHandler(file_handler)

    root._cronograma_configured = True
    return root
