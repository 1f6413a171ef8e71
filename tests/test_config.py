from __future__ import annotations

from pathlib import Path

import pytest

from rails_diff.config import DEFAULT_REPO_URL, DiffConfig, load_config
from rails_diff.errors import ConfigError


def test_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    config = load_config(environ={})

    assert config.repo_url == DEFAULT_REPO_URL
    assert config.branch == "main"
    assert config.cache_dir == tmp_path / ".rails-diff" / "cache"
    assert config.railsrc_path == tmp_path / ".railsrc"
    assert config.dependency_check_command == ["bundle", "check"]


def test_yaml_file_overrides_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "repo_url: /srv/rails.git\n"
        "branch: 7-2-stable\n"
        f"cache_dir: {tmp_path / 'c'}\n"
        "generator_command: [bin/rails]\n",
        encoding="utf-8",
    )

    config = load_config(path, environ={})

    assert config.repo_url == "/srv/rails.git"
    assert config.branch == "7-2-stable"
    assert config.cache_dir == tmp_path / "c"
    assert config.generator_command == ["bin/rails"]


def test_environment_wins_over_file(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("branch: 7-2-stable\n", encoding="utf-8")

    config = load_config(
        path,
        environ={"RAILS_DIFF_BRANCH": "main", "RAILS_DIFF_CACHE_DIR": str(tmp_path / "env-cache")},
    )

    assert config.branch == "main"
    assert config.cache_dir == tmp_path / "env-cache"


def test_empty_yaml_is_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(path, environ={}).branch == "main"


@pytest.mark.parametrize(
    "text",
    [
        "- not\n- a mapping\n",
        "unknown_key: 1\n",
        "branch: ''\n",
        "new_app_command: rails new\n",
        "dependency_check_command: []\n",
        "repo_url: [unterminated\n",
    ],
)
def test_invalid_config_files(tmp_path: Path, text: str) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path, environ={})


def test_explicit_missing_config_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.yaml", environ={})


def test_resolved_app_name(tmp_path: Path) -> None:
    assert DiffConfig(app_name="blog").resolved_app_name(tmp_path) == "blog"
    assert DiffConfig().resolved_app_name(tmp_path) == tmp_path.resolve().name
