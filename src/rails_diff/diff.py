from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

from rails_diff import file_tracker, shell
from rails_diff.cache import ReferenceAppCache
from rails_diff.render import DEFAULT_CONTEXT_LINES, render_file_diff

logger = logging.getLogger(__name__)

NOT_IN_TEMPLATE = "File not found in the Rails template"
NOT_IN_REPO = "File not found in your repository"


def diff_file(
    file: str,
    template_app_path: Path,
    *,
    cwd: Path | None = None,
    context: int = DEFAULT_CONTEXT_LINES,
    color: bool = False,
) -> str:
    rails_file = Path(template_app_path) / file
    repo_file = (cwd or Path.cwd()) / file

    if not rails_file.is_file():
        return NOT_IN_TEMPLATE
    if not repo_file.is_file():
        return NOT_IN_REPO

    return render_file_diff(
        rails_file,
        repo_file,
        left_label=f"Rails File ({file})",
        right_label=f"Repo File ({file})",
        context=context,
        color=color,
    ).rstrip("\n")


def diff_with_header(
    file: str,
    template_app_path: Path,
    *,
    cwd: Path | None = None,
    context: int = DEFAULT_CONTEXT_LINES,
    color: bool = False,
) -> str | None:
    diff = diff_file(file, template_app_path, cwd=cwd, context=context, color=color)
    if not diff:
        return None
    header = f"{file} diff:"
    return "\n".join([header, "=" * len(header), diff])


def _join_sections(
    files: Iterable[str],
    template_app_path: Path,
    *,
    cwd: Path | None,
    context: int,
    color: bool,
) -> str:
    sections = []
    for file in files:
        section = diff_with_header(file, template_app_path, cwd=cwd, context=context, color=color)
        if section is not None:
            sections.append(section)
    return "\n\n".join(sections)


def diff_files(
    files: Sequence[str],
    *,
    app_cache: ReferenceAppCache,
    commit: str | None = None,
    new_app_options: str | None = None,
    cwd: Path | None = None,
    context: int = DEFAULT_CONTEXT_LINES,
    color: bool = False,
) -> str:
    """Compare repository files with their counterparts in the reference application."""
    template_app_path = app_cache.ensure(commit=commit, new_app_options=new_app_options)
    return _join_sections(files, template_app_path, cwd=cwd, context=context, color=color)


def run_generator(
    app_cache: ReferenceAppCache,
    template_app_path: Path,
    generator_name: str,
    args: Sequence[str],
    *,
    skip: Iterable[str] = (),
    only: Iterable[str] = (),
) -> list[str]:
    """Destroy then re-run ``generator_name`` and return the files it created, repo-relative."""
    rails = list(app_cache.config.generator_command)
    shell.run([*rails, "destroy", generator_name, *args], cwd=template_app_path)
    logger.info("Running generator: rails generate %s %s", generator_name, " ".join(args))

    created = file_tracker.new_files(
        template_app_path,
        lambda: shell.run([*rails, "generate", generator_name, *args], cwd=template_app_path),
        skip=skip,
        only=only,
    )
    base = Path(template_app_path).resolve()
    return sorted(path.relative_to(base).as_posix() for path in created)


def diff_generated(
    generator_name: str,
    args: Sequence[str] = (),
    *,
    app_cache: ReferenceAppCache,
    skip: Iterable[str] = (),
    only: Iterable[str] = (),
    commit: str | None = None,
    new_app_options: str | None = None,
    cwd: Path | None = None,
    context: int = DEFAULT_CONTEXT_LINES,
    color: bool = False,
) -> str:
    """Compare the files a Rails generator creates with the repository's versions."""
    template_app_path = app_cache.ensure(commit=commit, new_app_options=new_app_options)
    app_cache.install_app_dependencies(template_app_path)
    files = run_generator(
        app_cache,
        template_app_path,
        generator_name,
        list(args),
        skip=skip,
        only=only,
    )
    return _join_sections(files, template_app_path, cwd=cwd, context=context, color=color)
