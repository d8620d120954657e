from __future__ import annotations

import pytest

from core.config import load_config
from core.models import GitIdentity
from guard.runtime import SwitcherRuntime


class FakeIdentity:
    def __init__(self, login: str = "", authenticated: bool = True, error: Exception | None = None):
        self.login = login
        self.authenticated = authenticated
        self.error = error
        self.switched: list[str] = []

    def is_authenticated(self) -> bool:
        if self.error is not None:
            raise self.error
        return self.authenticated

    def current_login(self) -> str:
        if self.error is not None:
            raise self.error
        return self.login

    def switch_account(self, username: str) -> bool:
        self.switched.append(username)
        self.login = username
        return True


class FakeGitConfig:
    def __init__(self, local: GitIdentity | None = None, global_: GitIdentity | None = None):
        self.identities = {
            "local": local or GitIdentity(),
            "global": global_ or GitIdentity(),
        }
        self.ssh_commands = {"local": "", "global": ""}
        self.signing: dict[str, tuple[str, bool]] = {}

    def get_identity(self, scope):
        return self.identities[scope]

    def set_identity(self, scope, name, email):
        self.identities[scope] = GitIdentity(name=name, email=email)

    def get_ssh_command(self, scope):
        return self.ssh_commands[scope]

    def set_ssh_command(self, scope, command):
        self.ssh_commands[scope] = command

    def set_signing(self, scope, key, auto_sign):
        self.signing[scope] = (key, auto_sign)


@pytest.fixture
def cfg(tmp_path):
    return load_config(
        {
            "users_file": str(tmp_path / "gh-users"),
            "profiles_file": str(tmp_path / "gh-user-profiles"),
            "projects_file": str(tmp_path / "gh-project-accounts"),
            "logs_dir": str(tmp_path / "logs"),
            "log_to_file": False,
            "skip_hook": False,
            "guard_verbose": True,
            "ssh_base_dir": str(tmp_path),
            "project_name": None,
            "git_scope": "local",
        }
    )


@pytest.fixture
def make_runtime(cfg):
    def _make(
        login: str = "",
        authenticated: bool = True,
        error: Exception | None = None,
        local: GitIdentity | None = None,
        global_: GitIdentity | None = None,
        config=None,
    ) -> SwitcherRuntime:
        return SwitcherRuntime.from_config(
            config or cfg,
            identity=FakeIdentity(login, authenticated, error),
            git_config=FakeGitConfig(local, global_),
            configure_logging=False,
        )

    return _make
