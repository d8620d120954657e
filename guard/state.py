from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from core.models import DEFAULT_HOST, GitIdentity, UserProfile

Severity = Literal["PASS", "WARN", "BLOCK"]

SEVERITY_RANK: dict[Severity, int] = {"PASS": 0, "WARN": 1, "BLOCK": 2}


@dataclass(slots=True, frozen=True)
class Finding:
    severity: Severity
    code: str
    message: str
    detail: str = ""
    remediation: str = ""
    command: str = ""


@dataclass(slots=True)
class GuardState:
    project: str
    profiles: dict[str, UserProfile] = field(default_factory=dict)
    assigned_user: str | None = None
    authenticated: bool = False
    current_user: str = ""
    git_identity: GitIdentity | None = None
    git_scope: str = "local"
    host: str = DEFAULT_HOST

    @property
    def current_profile(self) -> UserProfile | None:
        return self.profiles.get(self.current_user) if self.current_user else None

    @property
    def assigned_profile(self) -> UserProfile | None:
        return self.profiles.get(self.assigned_user) if self.assigned_user else None


@dataclass(slots=True)
class GuardResult:
    verdict: Severity
    findings: list[Finding]
    project: str
    current_user: str = ""
    assigned_user: str | None = None
    git_identity: GitIdentity | None = None
    host: str = DEFAULT_HOST
    skipped: bool = False

    @property
    def blocked(self) -> bool:
        return self.verdict == "BLOCK"

    @property
    def exit_code(self) -> int:
        return exit_code(self.verdict)


def aggregate_verdict(findings: list[Finding]) -> Severity:
    verdict: Severity = "PASS"
    for finding in findings:
        if SEVERITY_RANK[finding.severity] > SEVERITY_RANK[verdict]:
            verdict = finding.severity
    return verdict


def exit_code(verdict: Severity) -> int:
    return 1 if verdict == "BLOCK" else 0
