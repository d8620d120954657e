from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

DEFAULT_HOST = "github.com"

SchemaVersion = Literal[1, 2, 3, 4, 5]
LATEST_SCHEMA_VERSION: SchemaVersion = 5


class UserProfile(BaseModel):
    username: str
    schema_version: SchemaVersion = LATEST_SCHEMA_VERSION
    name: str
    email: str
    ssh_key: str = ""
    gpg_key: str = ""
    auto_sign: bool = False
    host: str = DEFAULT_HOST

    def same_identity(self, other: UserProfile) -> bool:
        return self.model_dump(exclude={"schema_version"}) == other.model_dump(
            exclude={"schema_version"}
        )


class GitIdentity(BaseModel):
    name: str = ""
    email: str = ""

    @property
    def complete(self) -> bool:
        return bool(self.name) and bool(self.email)


class SwitcherConfig(BaseModel):
    users_file: str = "~/.gh-users"
    profiles_file: str = "~/.gh-user-profiles"
    projects_file: str = "~/.gh-project-accounts"
    logs_dir: str = "~/.gh-switcher/logs"
    log_level: str = "WARNING"
    log_to_file: bool = True
    guard_verbose: bool = True
    skip_hook: bool = False
    ssh_base_dir: str = "~"
    project_name: str | None = None
    git_scope: Literal["local", "global"] = "local"
    default_host: str = DEFAULT_HOST
    gh_command: list[str] = Field(default_factory=lambda: ["gh"])
    git_command: list[str] = Field(default_factory=lambda: ["git"])
