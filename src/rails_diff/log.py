from __future__ import annotations

import logging
import os
import sys
from typing import TextIO

LOGGER_NAME = "rails_diff"

_LABEL_COLORS = {
    "DEBUG": "\033[1;33m",
    "INFO": "\033[1;34m",
    "WARNING": "\033[1;35m",
    "ERROR": "\033[1;31m",
    "CRITICAL": "\033[1;31m",
}
_RESET = "\033[0m"


class LabelFormatter(logging.Formatter):
    """Render records as ``<level>:<tab><message>``, coloring the label on terminals."""

    def __init__(self, *, color: bool) -> None:
        super().__init__("%(message)s")
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        label = f"{record.levelname.lower()}:"
        if self.color:
            label = f"{_LABEL_COLORS.get(record.levelname, '')}{label}{_RESET}"
        return f"{label}\t{super().format(record)}"


def debug_requested(environ: dict[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return any(env.get(name, "").strip() for name in ("RAILS_DIFF_DEBUG", "DEBUG"))


def configure_logging(*, debug: bool = False, stream: TextIO | None = None) -> logging.Logger:
    out = sys.stderr if stream is None else stream
    isatty = getattr(out, "isatty", None)
    handler = logging.StreamHandler(out)
    handler.setFormatter(LabelFormatter(color=bool(callable(isatty) and isatty())))

    logger = logging.getLogger(LOGGER_NAME)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug or debug_requested() else logging.INFO)
    return logger
