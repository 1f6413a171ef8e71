from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from rails_diff.errors import CommandFailedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _execute(argv: list[str], *, cwd: Path | None) -> CommandResult:
    if not argv:
        raise ValueError("argv must be non-empty")
    try:
        proc = subprocess.run(
            argv,
            cwd=None if cwd is None else str(cwd),
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError:
        missing = argv[0]
        if cwd is not None and not Path(cwd).is_dir():
            missing = f"working directory {cwd}"
        return CommandResult(
            argv=list(argv),
            returncode=127,
            stdout="",
            stderr=f"Command not found: {missing}",
        )
    except OSError as exc:
        return CommandResult(
            argv=list(argv),
            returncode=126,
            stdout="",
            stderr=f"Failed to execute {argv[0]!r}: {exc}",
        )
    return CommandResult(
        argv=list(argv),
        returncode=proc.returncode,
        stdout=proc.stdout,
        stderr=proc.stderr,
    )


def _fail(result: CommandResult) -> CommandFailedError:
    command = " ".join(result.argv)
    logger.error("Command failed: %s", command)
    return CommandFailedError(result.argv, returncode=result.returncode, stderr=result.stderr)


def run(argv: list[str], *, cwd: Path | None = None, abort: bool = True) -> bool:
    """Run ``argv`` to completion with stdout/stderr captured.

    Returns True on a zero exit status. A non-zero status raises
    CommandFailedError (carrying the captured stderr) unless ``abort`` is False,
    in which case False is returned and the caller decides what to do next.
    """

    result = _execute(argv, cwd=cwd)
    logger.debug(" ".join(result.argv))
    if result.ok:
        return True
    if abort:
        raise _fail(result)
    return False


def capture(argv: list[str], *, cwd: Path | None = None) -> str:
    result = _execute(argv, cwd=cwd)
    logger.debug(" ".join(result.argv))
    if not result.ok:
        raise _fail(result)
    return result.stdout.strip()
