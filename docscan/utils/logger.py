"""Logging setup shared by the docscan command line and library modules.

Library modules only ask for named loggers; handlers are installed once by
the entry point so that embedding applications keep control of output.
"""

import logging
import sys
from typing import TextIO

# Pillow logs every plugin import and chunk at DEBUG.
_NOISY_LOGGERS = ("PIL",)


def setup_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    """Install a single formatted handler on the root logger.

    Calling this again once a handler exists is a no-op.

    Args:
        level: Logging level name. Unknown names fall back to INFO.
        stream: Destination for log records. Defaults to stderr so that
            recognized text written to stdout stays clean.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()

    if root.handlers:
        return

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.INFO))


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name`` (usually the caller's ``__name__``)."""
    return logging.getLogger(name)
