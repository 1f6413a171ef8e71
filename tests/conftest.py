from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Iterator
from pathlib import Path

import pytest

from rails_diff.cache import read_default_options

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def git(*args: str, cwd: Path) -> str:
    proc = subprocess.run(
        [
            "git",
            "-c",
            "user.name=Test User",
            "-c",
            "user.email=test@example.com",
            "-c",
            "commit.gpgsign=false",
            *args,
        ],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=False,
    )
    if proc.returncode != 0:
        raise RuntimeError(f"git {' '.join(args)} failed: {proc.stderr.strip()}")
    return proc.stdout.strip()


class GitRemote:
    """Bare `main`-branch repository standing in for the upstream Rails remote."""

    def __init__(self, root: Path) -> None:
        root.mkdir(parents=True, exist_ok=True)
        self.url = str(root / "origin.git")
        self.work_dir = root / "work"
        git("init", "--bare", self.url, cwd=root)
        git("symbolic-ref", "HEAD", "refs/heads/main", cwd=Path(self.url))

        git("init", str(self.work_dir), cwd=root)
        git("symbolic-ref", "HEAD", "refs/heads/main", cwd=self.work_dir)
        (self.work_dir / "railties").mkdir()
        (self.work_dir / "railties" / "README").write_text("keep\n", encoding="utf-8")
        git("add", "railties", cwd=self.work_dir)
        git("commit", "-m", "add railties dir", cwd=self.work_dir)
        git("remote", "add", "origin", self.url, cwd=self.work_dir)
        git("push", "origin", "main", cwd=self.work_dir)
        self.commits = [git("rev-parse", "HEAD", cwd=self.work_dir)]

    def add_commit(self, message: str) -> str:
        git("commit", "--allow-empty", "-n", "-m", message, cwd=self.work_dir)
        git("push", "origin", "main", cwd=self.work_dir)
        self.commits.append(git("rev-parse", "HEAD", cwd=self.work_dir))
        return self.commits[-1]

    def clone_at(self, commit: str, dest: Path) -> None:
        git("clone", self.url, str(dest), cwd=dest.parent)
        git("checkout", commit, cwd=dest)


@pytest.fixture
def git_remote(tmp_path: Path) -> GitRemote:
    remote = GitRemote(tmp_path / "remote")
    remote.add_commit("commit1")
    remote.add_commit("commit2")
    return remote


@pytest.fixture(autouse=True)
def _isolate_process_state(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in ("RAILS_DIFF_CACHE_DIR", "RAILS_DIFF_REPO", "RAILS_DIFF_BRANCH", "RAILS_DIFF_DEBUG", "DEBUG"):
        monkeypatch.delenv(name, raising=False)
    read_default_options.cache_clear()
    yield
    read_default_options.cache_clear()
    pkg_logger = logging.getLogger("rails_diff")
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
    pkg_logger.setLevel(logging.NOTSET)
