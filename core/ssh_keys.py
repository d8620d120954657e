"""Private key checks for profiles that authenticate over SSH.

Only presence, header format and file mode are checked. The key material is
never parsed or verified.
"""

from __future__ import annotations

import os
import re
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from loguru import logger

SshKeyError = Literal[
    "directory_traversal",
    "key_not_found",
    "invalid_format",
    "incorrect_permissions",
]

REQUIRED_MODE = 0o600

_PRIVATE_KEY_MARKER = re.compile(r"BEGIN .*PRIVATE KEY")


@dataclass(slots=True)
class SshKeyCheck:
    ok: bool
    path: str = ""
    error: SshKeyError | None = None
    message: str = ""
    fixed: bool = False


def expand_key_path(path: str) -> Path:
    if path.startswith("~"):
        return Path(path).expanduser()
    return Path(path)


def _escapes_base(candidate: Path, base_dir: Path) -> bool:
    if ".." not in candidate.parts:
        return False
    absolute = candidate if candidate.is_absolute() else Path.cwd() / candidate
    normalized = Path(os.path.normpath(absolute))
    base = Path(os.path.normpath(base_dir.expanduser().absolute()))
    return not normalized.is_relative_to(base)


def validate_ssh_key(
    path: str,
    fix_permissions: bool = False,
    base_dir: str | Path | None = None,
) -> SshKeyCheck:
    if not path:
        return SshKeyCheck(ok=True, message="No SSH key configured")

    candidate = expand_key_path(path)
    base = Path(base_dir) if base_dir is not None else Path.home()
    if _escapes_base(candidate, base):
        return SshKeyCheck(
            ok=False,
            path=str(candidate),
            error="directory_traversal",
            message=f"SSH key path escapes {base}: {path}",
        )

    if not candidate.is_file():
        return SshKeyCheck(
            ok=False,
            path=str(candidate),
            error="key_not_found",
            message=f"SSH key not found: {candidate}",
        )

    try:
        content = candidate.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        return SshKeyCheck(
            ok=False,
            path=str(candidate),
            error="key_not_found",
            message=f"SSH key not readable: {exc}",
        )
    if not _PRIVATE_KEY_MARKER.search(content):
        return SshKeyCheck(
            ok=False,
            path=str(candidate),
            error="invalid_format",
            message=f"File is not a private key: {candidate}",
        )

    mode = stat.S_IMODE(candidate.stat().st_mode)
    if mode == REQUIRED_MODE:
        return SshKeyCheck(ok=True, path=str(candidate), message="SSH key valid")
    if fix_permissions:
        candidate.chmod(REQUIRED_MODE)
        logger.info("Fixed SSH key permissions on {} ({:o} -> 600)", candidate, mode)
        return SshKeyCheck(
            ok=True,
            path=str(candidate),
            message="Set permissions to 600",
            fixed=True,
        )
    return SshKeyCheck(
        ok=False,
        path=str(candidate),
        error="incorrect_permissions",
        message=f"SSH key has permissions {mode:o}, expected 600",
    )


def detect_ssh_key(username: str, ssh_dir: str | Path = "~/.ssh") -> str:
    root = Path(ssh_dir).expanduser()
    candidates = [
        f"id_ed25519_{username}",
        f"id_rsa_{username}",
        f"{username}_ed25519",
        f"{username}_rsa",
        "id_ed25519",
        "id_rsa",
    ]
    for name in candidates:
        key_path = root / name
        if key_path.is_file():
            return str(key_path)
    return ""


def ssh_command_for(path: str) -> str:
    return f"ssh -i {expand_key_path(path)} -o IdentitiesOnly=yes"
