from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from core.errors import ValidationError

HOOK_MARKER = "# gh-switcher guard hook"

HOOK_SCRIPT = f"""#!/bin/sh
{HOOK_MARKER}
# Bypass with: GHS_SKIP_HOOK=1 git commit ...
exec ghs guard run
"""


@dataclass(slots=True)
class HookStatus:
    installed: bool
    path: str
    foreign_hook: bool = False
    backup_present: bool = False


def _hooks_dir(repo_root: str | Path) -> Path:
    git_dir = Path(repo_root) / ".git"
    if not git_dir.is_dir():
        raise ValidationError(f"Not a git repository: {repo_root}")
    return git_dir / "hooks"


def _is_ours(path: Path) -> bool:
    return path.is_file() and HOOK_MARKER in path.read_text(encoding="utf-8", errors="replace")


def hook_status(repo_root: str | Path) -> HookStatus:
    hooks = _hooks_dir(repo_root)
    hook = hooks / "pre-commit"
    return HookStatus(
        installed=_is_ours(hook),
        path=str(hook),
        foreign_hook=hook.is_file() and not _is_ours(hook),
        backup_present=(hooks / "pre-commit.backup").is_file(),
    )


def install_hook(repo_root: str | Path) -> HookStatus:
    hooks = _hooks_dir(repo_root)
    hooks.mkdir(parents=True, exist_ok=True)
    hook = hooks / "pre-commit"
    if hook.is_file() and not _is_ours(hook):
        backup = hooks / "pre-commit.backup"
        hook.replace(backup)
        logger.info("Backed up existing pre-commit hook to {}", backup)
    hook.write_text(HOOK_SCRIPT, encoding="utf-8")
    hook.chmod(0o755)
    logger.info("Installed guard hook at {}", hook)
    return hook_status(repo_root)


def uninstall_hook(repo_root: str | Path) -> bool:
    hooks = _hooks_dir(repo_root)
    hook = hooks / "pre-commit"
    if not _is_ours(hook):
        return False
    hook.unlink()
    backup = hooks / "pre-commit.backup"
    if backup.is_file():
        backup.replace(hook)
        logger.info("Restored previous pre-commit hook from {}", backup)
    logger.info("Removed guard hook from {}", hook)
    return True
