from __future__ import annotations

import functools
import hashlib
import logging
import shlex
import shutil
import warnings
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import IO

from rails_diff import shell
from rails_diff.config import DiffConfig
from rails_diff.errors import ConfigError
from rails_diff.upstream import UpstreamRepository

try:
    import fcntl

    HAVE_FCNTL = True
except ImportError:  # pragma: no cover
    HAVE_FCNTL = False

logger = logging.getLogger(__name__)

COMMIT_PREFIX_LEN = 10
APP_DIR_PREFIX = "mirror-"


@dataclass(frozen=True)
class CacheKey:
    source_commit_prefix: str
    options_digest: str
    application_name: str

    @classmethod
    def build(cls, *, commit: str, options: Iterable[str], application_name: str) -> CacheKey:
        return cls(
            source_commit_prefix=commit[:COMMIT_PREFIX_LEN],
            options_digest=options_digest(options),
            application_name=application_name,
        )

    def path(self, cache_root: Path) -> Path:
        return (
            Path(cache_root)
            / f"{APP_DIR_PREFIX}{self.source_commit_prefix}"
            / self.options_digest
            / self.application_name
        )


def options_digest(options: Iterable[str]) -> str:
    return hashlib.md5(" ".join(options).encode("utf-8")).hexdigest()


def split_options(raw: str | Iterable[str] | None) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        try:
            return shlex.split(raw)
        except ValueError as exc:
            raise ConfigError(f"Invalid --new-app-options: {exc}") from exc
    tokens = [str(token) for token in raw]
    return [token for token in tokens if token]


@functools.lru_cache(maxsize=None)
def read_default_options(path: Path) -> tuple[str, ...]:
    """Tokens from a ``.railsrc``-style file, one per non-empty line. Read once per path."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ()
    return tuple(line.strip() for line in text.splitlines() if line.strip())


class CacheLock:
    """Exclusive advisory lock next to the cache root (fcntl on POSIX)."""

    def __init__(self, cache_dir: Path) -> None:
        cache_dir = Path(cache_dir)
        self.lock_path = cache_dir.parent / f".{cache_dir.name}.lock"
        self._handle: IO[str] | None = None

    def __enter__(self) -> CacheLock:
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self.lock_path.open("w", encoding="utf-8")
        if HAVE_FCNTL:
            fcntl.flock(self._handle.fileno(), fcntl.LOCK_EX)
        else:  # pragma: no cover
            warnings.warn("File locking not available on this platform", stacklevel=2)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._handle is None:
            return
        if HAVE_FCNTL:
            fcntl.flock(self._handle.fileno(), fcntl.LOCK_UN)
        self._handle.close()
        self._handle = None


class ReferenceAppCache:
    """Generated reference applications keyed by upstream commit and new-app options.

    Layout under ``cache_dir``::

        <mirror_name>/                                  upstream mirror
        mirror-<commit[:10]>/<md5(options)>/<app_name>/  reference application
    """

    def __init__(
        self,
        config: DiffConfig,
        *,
        upstream: UpstreamRepository | None = None,
        cwd: Path | None = None,
    ) -> None:
        self.config = config
        self.cache_dir = Path(config.cache_dir)
        self.upstream = upstream if upstream is not None else UpstreamRepository(config)
        self.app_name = config.resolved_app_name(cwd)
        self.app_path: Path | None = None

    def default_options(self) -> list[str]:
        return list(read_default_options(Path(self.config.railsrc_path)))

    def effective_options(self, new_app_options: str | Iterable[str] | None = None) -> list[str]:
        return split_options(new_app_options) + self.default_options()

    def key_for(self, commit: str, options: Iterable[str]) -> CacheKey:
        return CacheKey.build(commit=commit, options=options, application_name=self.app_name)

    def is_cached(self, path: Path, *, pinned: bool = False) -> bool:
        if not path.exists():
            return False
        # Always evaluated so a stale mirror is evicted; an app built at a pinned
        # commit stays valid whatever the remote tip is.
        up_to_date = self.upstream.is_up_to_date()
        return up_to_date or pinned

    def ensure(
        self,
        commit: str | None = None,
        new_app_options: str | Iterable[str] | None = None,
    ) -> Path:
        """Return the reference application path, generating it on a cache miss."""
        with CacheLock(self.cache_dir):
            effective_commit = commit or self.upstream.latest_commit()
            options = self.effective_options(new_app_options)
            path = self.key_for(effective_commit, options).path(self.cache_dir)
            self.app_path = path

            if self.is_cached(path, pinned=bool(commit)):
                logger.debug("Using cached Rails application at %s", path)
                return path

            self.upstream.checkout(effective_commit)
            self.upstream.install_dependencies()
            defaults = self.default_options()
            if defaults:
                logger.info(
                    "Using default options from %s:\n\t  > %s",
                    self.config.railsrc_path,
                    " ".join(defaults),
                )
            self.upstream.new_app(path, options)
            return path

    def clear(self) -> None:
        logger.info("Clearing cache")
        with CacheLock(self.cache_dir):
            if self.cache_dir.exists():
                shutil.rmtree(self.cache_dir)
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.app_path = None

    def install_app_dependencies(self, app_path: Path | None = None) -> None:
        target = app_path or self.app_path
        if target is None:
            raise ValueError("No reference application; call ensure() first")
        if not shell.run(self.config.dependency_check_command, cwd=target, abort=False):
            logger.info("Installing application dependencies")
            shell.run(self.config.dependency_install_command, cwd=target)
