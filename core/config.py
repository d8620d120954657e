from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from core.errors import ValidationError
from core.models import SwitcherConfig

_GIT_SCOPES = ("local", "global")


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_str(key: str, default: str | None) -> str | None:
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return value.strip()


def _expand(path: str) -> str:
    return str(Path(path).expanduser())


def _ensure_dirs(config: SwitcherConfig) -> None:
    for file_path in (config.users_file, config.profiles_file, config.projects_file):
        Path(file_path).parent.mkdir(parents=True, exist_ok=True)


def load_config(overrides: dict[str, Any] | None = None) -> SwitcherConfig:
    load_dotenv(override=False)
    data: dict[str, Any] = {
        "users_file": _env_str("GH_USERS_CONFIG", "~/.gh-users"),
        "profiles_file": _env_str("GH_USER_PROFILES", "~/.gh-user-profiles"),
        "projects_file": _env_str("GH_PROJECT_CONFIG", "~/.gh-project-accounts"),
        "logs_dir": _env_str("GHS_LOGS_DIR", "~/.gh-switcher/logs"),
        "log_level": (_env_str("GHS_LOG_LEVEL", "WARNING") or "WARNING").upper(),
        "log_to_file": _env_bool("GHS_LOG_TO_FILE", True),
        "guard_verbose": _env_bool("GHS_GUARD_VERBOSE", True),
        "skip_hook": _env_bool("GHS_SKIP_HOOK", False),
        "ssh_base_dir": _env_str("GHS_SSH_BASE_DIR", "~"),
        "project_name": _env_str("GHS_PROJECT_NAME", None),
        "git_scope": _env_str("GHS_GIT_SCOPE", "local"),
    }
    if overrides:
        data.update(overrides)
    if data["git_scope"] not in _GIT_SCOPES:
        raise ValidationError(
            f"Invalid GHS_GIT_SCOPE {data['git_scope']!r} (expected local or global)"
        )
    config = SwitcherConfig(**data)
    config = config.model_copy(
        update={
            "users_file": _expand(config.users_file),
            "profiles_file": _expand(config.profiles_file),
            "projects_file": _expand(config.projects_file),
            "logs_dir": _expand(config.logs_dir),
            "ssh_base_dir": _expand(config.ssh_base_dir),
        }
    )
    _ensure_dirs(config)
    return config


def current_project_name(config: SwitcherConfig, cwd: Path | None = None) -> str:
    if config.project_name:
        return config.project_name
    return (cwd or Path.cwd()).resolve().name
