from __future__ import annotations

import difflib
from pathlib import Path

DEFAULT_CONTEXT_LINES = 3

_RED = "\033[31m"
_GREEN = "\033[32m"
_CYAN = "\033[36m"
_BOLD = "\033[1m"
_RESET = "\033[0m"


def _colorize(line: str, *, header: bool = False) -> str:
    if header:
        return f"{_BOLD}{line}{_RESET}"
    if line.startswith("@@"):
        return f"{_CYAN}{line}{_RESET}"
    if line.startswith("-"):
        return f"{_RED}{line}{_RESET}"
    if line.startswith("+"):
        return f"{_GREEN}{line}{_RESET}"
    return line


def render_text_diff(
    left: str,
    right: str,
    *,
    left_label: str = "a",
    right_label: str = "b",
    context: int = DEFAULT_CONTEXT_LINES,
    color: bool = False,
) -> str:
    """Unified diff of two strings; the empty string means they are identical."""
    if left == right:
        return ""
    lines = difflib.unified_diff(
        left.splitlines(),
        right.splitlines(),
        fromfile=left_label,
        tofile=right_label,
        n=max(context, 0),
        lineterm="",
    )
    # File headers are the first two lines only; a removed "-- x" also reads "--- x".
    rendered = [_colorize(line, header=index < 2) if color else line for index, line in enumerate(lines)]
    if not rendered:
        # Only trailing-newline differences remain.
        return f"{left_label} and {right_label} differ only in line endings"
    return "\n".join(rendered)


def render_file_diff(
    left: Path,
    right: Path,
    *,
    left_label: str | None = None,
    right_label: str | None = None,
    context: int = DEFAULT_CONTEXT_LINES,
    color: bool = False,
) -> str:
    left_bytes = Path(left).read_bytes()
    right_bytes = Path(right).read_bytes()
    left_label = left_label or str(left)
    right_label = right_label or str(right)
    if left_bytes == right_bytes:
        return ""
    try:
        left_text = left_bytes.decode("utf-8")
        right_text = right_bytes.decode("utf-8")
    except UnicodeDecodeError:
        return f"Binary files {left_label} and {right_label} differ"
    return render_text_diff(
        left_text,
        right_text,
        left_label=left_label,
        right_label=right_label,
        context=context,
        color=color,
    )
