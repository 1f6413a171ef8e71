from __future__ import annotations


class RailsDiffError(RuntimeError):
    pass


class ConfigError(RailsDiffError):
    pass


class CommandFailedError(RailsDiffError):
    def __init__(self, argv: list[str], *, returncode: int, stderr: str) -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        msg = stderr.strip() or f"command failed (exit {returncode})"
        super().__init__(f"{' '.join(argv)}: {msg}")
