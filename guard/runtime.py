from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from core.config import load_config
from core.identity import (
    GhCliIdentityProvider,
    GitCliConfig,
    GitConfigAccessor,
    GitHubIdentityProvider,
)
from core.models import SwitcherConfig
from core.observability import EventLog, configure_logger
from core.profiles import ProfileStore
from core.projects import ProjectAssignmentStore
from core.users import UserRegistry

ProviderFactory = Callable[[str], GitHubIdentityProvider]


@dataclass(slots=True)
class SwitcherRuntime:
    config: SwitcherConfig
    profiles: ProfileStore
    projects: ProjectAssignmentStore
    users: UserRegistry
    identity: GitHubIdentityProvider
    git_config: GitConfigAccessor
    events: EventLog
    provider_factory: ProviderFactory | None = None

    @classmethod
    def from_config(
        cls,
        config: SwitcherConfig | None = None,
        *,
        identity: GitHubIdentityProvider | None = None,
        git_config: GitConfigAccessor | None = None,
        configure_logging: bool = True,
    ) -> SwitcherRuntime:
        cfg = config or load_config()
        if configure_logging:
            configure_logger(cfg)
        provider_factory: ProviderFactory | None = None
        if identity is None:
            identity = GhCliIdentityProvider.from_config(cfg)
            provider_factory = lambda host: GhCliIdentityProvider.from_config(cfg, host)  # noqa: E731
        return cls(
            config=cfg,
            profiles=ProfileStore.from_config(cfg),
            projects=ProjectAssignmentStore.from_config(cfg),
            users=UserRegistry.from_config(cfg),
            identity=identity,
            git_config=git_config or GitCliConfig.from_config(cfg),
            events=EventLog(cfg),
            provider_factory=provider_factory,
        )

    def identity_for(self, host: str) -> GitHubIdentityProvider:
        if self.provider_factory is None or host == self.config.default_host:
            return self.identity
        return self.provider_factory(host)
