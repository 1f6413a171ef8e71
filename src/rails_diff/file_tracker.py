from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path

# Relative to the tracked directory root; never reported as new files.
EXCLUDED_SUBPATHS: tuple[str, ...] = (".git", "tmp", "log", "test")


def _normalize_prefixes(prefixes: Iterable[str]) -> tuple[str, ...]:
    out: list[str] = []
    for raw in prefixes:
        prefix = str(raw).replace("\\", "/").strip().strip("/")
        while prefix.startswith("./"):
            prefix = prefix[2:]
        if prefix and prefix != ".":
            out.append(prefix)
    return tuple(out)


def _is_under(rel_path: str, prefixes: tuple[str, ...]) -> bool:
    return any(rel_path == p or rel_path.startswith(p + "/") for p in prefixes)


def _iter_files(base_dir: Path) -> Iterator[tuple[str, Path]]:
    for root, dirnames, filenames in os.walk(base_dir):
        dirnames.sort()
        for filename in sorted(filenames):
            abs_path = Path(root) / filename
            if abs_path.is_dir():
                continue
            yield abs_path.relative_to(base_dir).as_posix(), abs_path


def list_files(
    base_dir: Path,
    *,
    skip: Iterable[str] = (),
    only: Iterable[str] = (),
) -> set[Path]:
    """Snapshot the regular files under ``base_dir`` as absolute paths.

    Files under EXCLUDED_SUBPATHS or a ``skip`` prefix are dropped. When ``only``
    is non-empty, files outside every ``only`` prefix are dropped as well.
    Prefixes are matched on whole path components relative to ``base_dir``.
    """

    base_dir = Path(base_dir).resolve()
    skip_prefixes = _normalize_prefixes(skip)
    only_prefixes = _normalize_prefixes(only)

    files: set[Path] = set()
    if not base_dir.is_dir():
        return files
    for rel_path, abs_path in _iter_files(base_dir):
        if _is_under(rel_path, EXCLUDED_SUBPATHS):
            continue
        if skip_prefixes and _is_under(rel_path, skip_prefixes):
            continue
        if only_prefixes and not _is_under(rel_path, only_prefixes):
            continue
        files.add(abs_path)
    return files


def new_files(
    base_dir: Path,
    work: Callable[[], object],
    *,
    skip: Iterable[str] = (),
    only: Iterable[str] = (),
) -> set[Path]:
    # skip/only narrow the post-work snapshot only; the baseline stays unfiltered.
    before = list_files(base_dir)
    work()
    after = list_files(base_dir, skip=skip, only=only)
    return after - before
