from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from rails_diff.errors import ConfigError

DEFAULT_REPO_URL = "https://github.com/rails/rails.git"
DEFAULT_BRANCH = "main"
DEFAULT_MIRROR_NAME = "rails"


def default_home() -> Path:
    return Path.home() / ".rails-diff"


def default_cache_dir() -> Path:
    return default_home() / "cache"


def default_config_path() -> Path:
    return default_home() / "config.yaml"


def default_railsrc_path() -> Path:
    return Path.home() / ".railsrc"


@dataclass(frozen=True)
class DiffConfig:
    cache_dir: Path = field(default_factory=default_cache_dir)
    repo_url: str = DEFAULT_REPO_URL
    branch: str = DEFAULT_BRANCH
    mirror_name: str = DEFAULT_MIRROR_NAME
    railsrc_path: Path = field(default_factory=default_railsrc_path)
    app_name: str | None = None

    # Run from the mirror's `railties/` directory.
    dependency_check_command: list[str] = field(default_factory=lambda: ["bundle", "check"])
    dependency_install_command: list[str] = field(default_factory=lambda: ["bundle", "install"])
    new_app_command: list[str] = field(
        default_factory=lambda: [
            "bundle",
            "exec",
            "rails",
            "new",
            "{target}",
            "--main",
            "--skip-bundle",
            "--force",
            "--quiet",
        ]
    )
    # Run from the generated application directory.
    generator_command: list[str] = field(default_factory=lambda: ["bin/rails"])

    def resolved_app_name(self, cwd: Path | None = None) -> str:
        if self.app_name:
            return self.app_name
        return (cwd or Path.cwd()).resolve().name


_PATH_KEYS = {"cache_dir", "railsrc_path"}
_COMMAND_KEYS = {
    "dependency_check_command",
    "dependency_install_command",
    "new_app_command",
    "generator_command",
}
_ENV_OVERRIDES = {
    "RAILS_DIFF_CACHE_DIR": "cache_dir",
    "RAILS_DIFF_REPO": "repo_url",
    "RAILS_DIFF_BRANCH": "branch",
}


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected mapping in {path}, got {type(data).__name__}")
    return data


def _coerce(key: str, value: Any, *, where: str) -> Any:
    if key in _PATH_KEYS:
        if not isinstance(value, str) or not value.strip():
            raise ConfigError(f"{where}: {key} must be a non-empty string")
        return Path(value).expanduser()
    if key in _COMMAND_KEYS:
        if (
            not isinstance(value, list)
            or not value
            or not all(isinstance(x, str) and x for x in value)
        ):
            raise ConfigError(f"{where}: {key} must be a non-empty list of strings")
        return list(value)
    if value is None and key == "app_name":
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{where}: {key} must be a non-empty string")
    return value.strip()


def apply_overrides(config: DiffConfig, data: Mapping[str, Any], *, where: str) -> DiffConfig:
    known = {f.name for f in fields(DiffConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"{where}: unknown key(s): {', '.join(unknown)}")
    changes = {key: _coerce(key, value, where=where) for key, value in data.items()}
    return replace(config, **changes)


def load_config(
    path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> DiffConfig:
    """Build the effective configuration.

    Defaults first, then the YAML file (``path`` or ``~/.rails-diff/config.yaml``
    when present), then RAILS_DIFF_* environment variables. An explicit ``path``
    that does not exist is an error; the default one is optional.
    """

    env = os.environ if environ is None else environ
    config = DiffConfig()

    config_path = path if path is not None else default_config_path()
    if config_path.exists():
        config = apply_overrides(config, _load_yaml(config_path), where=str(config_path))
    elif path is not None:
        raise ConfigError(f"Config file not found: {path}")

    env_data = {key: env[name] for name, key in _ENV_OVERRIDES.items() if env.get(name, "").strip()}
    if env_data:
        config = apply_overrides(config, env_data, where="environment")
    return config
