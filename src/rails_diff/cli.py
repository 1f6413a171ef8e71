#!/usr/bin/env python
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

from rails_diff import __version__
from rails_diff.cache import ReferenceAppCache
from rails_diff.config import load_config
from rails_diff.diff import diff_files, diff_generated
from rails_diff.errors import CommandFailedError, RailsDiffError
from rails_diff.log import configure_logging
from rails_diff.render import DEFAULT_CONTEXT_LINES


def _eprint(*args: object) -> None:
    print(*args, file=sys.stderr)


def _enable_console_backslashreplace(stream: Any) -> None:
    reconfigure = getattr(stream, "reconfigure", None)
    if not callable(reconfigure):
        return
    try:
        if str(getattr(stream, "errors", "")).lower() == "backslashreplace":
            return
        reconfigure(errors="backslashreplace")
    except (OSError, ValueError):
        return


def _use_color(choice: str) -> bool:
    if choice == "always":
        return True
    if choice == "never":
        return False
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(callable(isatty) and isatty())


def _build_cache(args: argparse.Namespace) -> ReferenceAppCache:
    config = load_config(args.config)
    app_cache = ReferenceAppCache(config)
    if args.no_cache:
        app_cache.clear()
    return app_cache


def _emit(diff: str, *, fail_on_diff: bool) -> int:
    if not diff:
        return 0
    if fail_on_diff:
        _eprint(diff)
        return 1
    print(diff)
    return 0


def cmd_file(args: argparse.Namespace) -> int:
    if not args.files:
        _eprint("Please provide at least one file to compare")
        return 2
    app_cache = _build_cache(args)
    diff = diff_files(
        args.files,
        app_cache=app_cache,
        commit=args.commit,
        new_app_options=args.new_app_options,
        context=args.context,
        color=_use_color(args.color),
    )
    return _emit(diff, fail_on_diff=args.fail_on_diff)


def cmd_generated(args: argparse.Namespace) -> int:
    app_cache = _build_cache(args)
    diff = diff_generated(
        args.generator_name,
        args.args,
        app_cache=app_cache,
        skip=args.skip,
        only=args.only,
        commit=args.commit,
        new_app_options=args.new_app_options,
        context=args.context,
        color=_use_color(args.color),
    )
    return _emit(diff, fail_on_diff=args.fail_on_diff)


def _common_options() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--no-cache",
        "--clear-cache",
        dest="no_cache",
        action="store_true",
        help="Clear cache before running.",
    )
    common.add_argument("--fail-on-diff", action="store_true", help="Fail if there are differences.")
    common.add_argument(
        "--commit",
        help="Compare against a specific Rails commit (full 40-character SHA; the mirror is shallow).",
    )
    common.add_argument(
        "--new-app-options",
        dest="new_app_options",
        help="Options to pass to the rails new command, e.g. --new-app-options=\"--api --skip-test\".",
    )
    common.add_argument("-d", "--debug", action="store_true", help="Print debug information.")
    common.add_argument(
        "--context",
        type=int,
        default=DEFAULT_CONTEXT_LINES,
        help=f"Number of context lines in diffs (default: {DEFAULT_CONTEXT_LINES}).",
    )
    common.add_argument(
        "--color",
        choices=["auto", "always", "never"],
        default="auto",
        help="Colorize diff output (default: auto).",
    )
    common.add_argument("--config", type=Path, help="Path to a rails-diff YAML config file.")
    return common


def build_parser() -> argparse.ArgumentParser:
    common = _common_options()
    parser = argparse.ArgumentParser(
        prog="rails-diff",
        description="Compare your Rails application files with a freshly generated Rails app.",
    )
    parser.add_argument("-v", "--version", action="version", version=__version__)
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_file = sub.add_parser(
        "file",
        parents=[common],
        help="Compare one or more files from your repository with Rails' generated version.",
    )
    p_file.add_argument("files", nargs="*", metavar="FILE")
    p_file.set_defaults(func=cmd_file)

    p_gen = sub.add_parser(
        "generated",
        parents=[common],
        help="Compare files that would be created by a Rails generator.",
    )
    p_gen.add_argument("generator_name", metavar="GENERATOR")
    p_gen.add_argument(
        "args",
        nargs="*",
        metavar="ARG",
        help="Generator arguments; put options after `--` (e.g. -- --skip-routes).",
    )
    p_gen.add_argument(
        "-s",
        "--skip",
        nargs="+",
        default=[],
        help=(
            "Skip files under these paths. Prefixes match whole path components: "
            "app/models matches app/models/user.rb, not app/models_extra.rb."
        ),
    )
    p_gen.add_argument(
        "-o",
        "--only",
        nargs="+",
        default=[],
        help="Only include files under these paths (whole path components, as with --skip).",
    )
    p_gen.set_defaults(func=cmd_generated)
    return parser


def main(argv: list[str] | None = None) -> int:
    _enable_console_backslashreplace(sys.stdout)
    _enable_console_backslashreplace(sys.stderr)
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(debug=args.debug)
    try:
        return int(args.func(args))
    except CommandFailedError as exc:
        _eprint(exc.stderr.rstrip() or str(exc))
        return 1
    except RailsDiffError as exc:
        _eprint(f"ERROR: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
