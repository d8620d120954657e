from __future__ import annotations

import subprocess
from collections.abc import Sequence
from typing import Literal, Protocol

from core.errors import SwitcherError
from core.models import DEFAULT_HOST, GitIdentity, SwitcherConfig

GitScope = Literal["local", "global"]


class GitHubIdentityProvider(Protocol):
    def is_authenticated(self) -> bool:
        ...

    def current_login(self) -> str:
        ...


class GitConfigAccessor(Protocol):
    def get_identity(self, scope: GitScope) -> GitIdentity:
        ...

    def set_identity(self, scope: GitScope, name: str, email: str) -> None:
        ...

    def get_ssh_command(self, scope: GitScope) -> str:
        ...

    def set_ssh_command(self, scope: GitScope, command: str) -> None:
        ...

    def set_signing(self, scope: GitScope, key: str, auto_sign: bool) -> None:
        ...


def _run(command: Sequence[str], args: list[str]) -> tuple[int, str]:
    try:
        proc = subprocess.run(
            [*command, *args],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            check=False,
        )
    except OSError:
        return 127, ""
    return proc.returncode, proc.stdout.strip()


def _scope_flag(scope: GitScope) -> str:
    return "--global" if scope == "global" else "--local"


class GhCliIdentityProvider:
    """Asks the ``gh`` binary who is logged in. A missing binary means not authenticated."""

    def __init__(self, command: Sequence[str] = ("gh",), host: str = DEFAULT_HOST):
        self.command = list(command)
        self.host = host

    @classmethod
    def from_config(cls, config: SwitcherConfig, host: str | None = None) -> GhCliIdentityProvider:
        return cls(config.gh_command, host or config.default_host)

    def is_authenticated(self) -> bool:
        code, _ = _run(self.command, ["auth", "status", "--hostname", self.host])
        return code == 0

    def current_login(self) -> str:
        code, out = _run(
            self.command,
            ["api", "user", "--hostname", self.host, "--jq", ".login"],
        )
        return out if code == 0 else ""

    def switch_account(self, username: str) -> bool:
        code, _ = _run(
            self.command,
            ["auth", "switch", "--hostname", self.host, "--user", username],
        )
        return code == 0


class GitCliConfig:
    def __init__(self, command: Sequence[str] = ("git",), cwd: str | None = None):
        self.command = list(command)
        self.cwd = cwd

    @classmethod
    def from_config(cls, config: SwitcherConfig) -> GitCliConfig:
        return cls(config.git_command)

    def _git(self, args: list[str]) -> tuple[int, str]:
        command = [*self.command, "-C", self.cwd] if self.cwd else self.command
        return _run(command, args)

    def _get(self, scope: GitScope, key: str) -> str:
        code, out = self._git(["config", _scope_flag(scope), "--get", key])
        return out if code == 0 else ""

    def _set(self, scope: GitScope, key: str, value: str) -> None:
        code, _ = self._git(["config", _scope_flag(scope), key, value])
        if code != 0:
            raise SwitcherError(f"git config {_scope_flag(scope)} {key} failed (exit {code})")

    def _unset(self, scope: GitScope, key: str) -> None:
        # exit 5 means the key was not set
        code, _ = self._git(["config", _scope_flag(scope), "--unset", key])
        if code not in (0, 5):
            raise SwitcherError(f"git config {_scope_flag(scope)} --unset {key} failed (exit {code})")

    def get_identity(self, scope: GitScope) -> GitIdentity:
        return GitIdentity(
            name=self._get(scope, "user.name"),
            email=self._get(scope, "user.email"),
        )

    def set_identity(self, scope: GitScope, name: str, email: str) -> None:
        self._set(scope, "user.name", name)
        self._set(scope, "user.email", email)

    def get_ssh_command(self, scope: GitScope) -> str:
        return self._get(scope, "core.sshCommand")

    def set_ssh_command(self, scope: GitScope, command: str) -> None:
        if command:
            self._set(scope, "core.sshCommand", command)
        else:
            self._unset(scope, "core.sshCommand")

    def set_signing(self, scope: GitScope, key: str, auto_sign: bool) -> None:
        if key:
            self._set(scope, "user.signingkey", key)
            self._set(scope, "commit.gpgsign", "true" if auto_sign else "false")
        else:
            self._set(scope, "commit.gpgsign", "false")

    def repo_root(self) -> str:
        code, out = self._git(["rev-parse", "--show-toplevel"])
        return out if code == 0 else ""


def resolve_git_identity(accessor: GitConfigAccessor, scope: GitScope = "local") -> tuple[GitIdentity, GitScope]:
    identity = accessor.get_identity(scope)
    if identity.complete or scope == "global":
        return identity, scope
    return accessor.get_identity("global"), "global"
