from __future__ import annotations

import logging
import shutil
from collections.abc import Sequence
from pathlib import Path

from rails_diff import shell
from rails_diff.config import DiffConfig

logger = logging.getLogger(__name__)

TOOL_SUBDIR = "railties"


class UpstreamRepository:
    """Local mirror of the upstream Rails repository.

    The mirror lives at ``<cache_dir>/<mirror_name>`` and is cloned lazily by any
    operation that needs it. A mirror found behind the remote tip is removed so
    the next operation starts from a fresh clone.
    """

    def __init__(self, config: DiffConfig) -> None:
        self.config = config
        self.cache_dir = Path(config.cache_dir)
        self.path = self.cache_dir / config.mirror_name

    @property
    def tool_dir(self) -> Path:
        return self.path / TOOL_SUBDIR

    def exists(self) -> bool:
        return self.path.exists()

    def clone(self) -> None:
        logger.info("Cloning Rails repository")
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        shell.run(
            [
                "git",
                "clone",
                "--depth",
                "1",
                "--branch",
                self.config.branch,
                self.config.repo_url,
                str(self.path),
            ]
        )

    def ensure_cloned(self) -> Path:
        if not self.exists():
            self.clone()
        return self.path

    def latest_commit(self) -> str:
        self.ensure_cloned()
        branch = self.config.branch
        shell.run(["git", "fetch", "origin", branch], cwd=self.path)
        return shell.capture(["git", "rev-parse", f"origin/{branch}"], cwd=self.path)

    def current_commit(self) -> str:
        self.ensure_cloned()
        return shell.capture(["git", "rev-parse", "HEAD"], cwd=self.path)

    def check_staleness(self) -> bool | None:
        """Return True when the mirror is behind the remote tip, None when absent."""
        if not self.exists():
            return None
        return self.current_commit() != self.latest_commit()

    def evict(self) -> None:
        if self.exists():
            logger.debug("Removing stale mirror at %s", self.path)
            shutil.rmtree(self.path)

    def is_up_to_date(self) -> bool:
        stale = self.check_staleness()
        if stale is None:
            return False
        if stale:
            self.evict()
            return False
        return True

    def _has_commit(self, commit: str) -> bool:
        return shell.run(
            ["git", "cat-file", "-e", f"{commit}^{{commit}}"],
            cwd=self.path,
            abort=False,
        )

    def checkout(self, commit: str) -> None:
        self.ensure_cloned()
        logger.info("Checking out Rails (at commit %s)", commit[:7])
        if not self._has_commit(commit):
            # Shallow mirrors only hold the tip; pull the pinned commit on demand.
            shell.run(["git", "fetch", "--depth", "1", "origin", commit], cwd=self.path, abort=False)
        shell.run(["git", "checkout", "--force", commit], cwd=self.path)

    def install_dependencies(self) -> None:
        self.ensure_cloned()
        if not shell.run(self.config.dependency_check_command, cwd=self.tool_dir, abort=False):
            logger.info("Installing Rails dependencies")
            shell.run(self.config.dependency_install_command, cwd=self.tool_dir)

    def new_app_command(self, target: Path, options: Sequence[str]) -> list[str]:
        argv = [part.replace("{target}", str(target)) for part in self.config.new_app_command]
        return [*argv, *options]

    def new_app(self, target: Path, options: Sequence[str]) -> None:
        target = Path(target)
        if target.exists():
            shutil.rmtree(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        self.ensure_cloned()
        command = self.new_app_command(target, options)
        logger.info("Generating new Rails application\n\t  > %s", " ".join(command))
        shell.run(command, cwd=self.tool_dir)
