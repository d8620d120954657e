"""Pure guard checks. Each one looks at a ``GuardState`` and returns at most one finding."""

from __future__ import annotations

import re
import shlex
from dataclasses import replace

from core.hosts import is_enterprise_host
from guard.state import Finding, GuardState

_GH_AUTH_COMMAND = re.compile(r"\bgh auth (login|logout|refresh|status|switch)\b")


def _git_config_command(name: str, email: str) -> str:
    return (
        f"git config user.name {shlex.quote(name)} && "
        f"git config user.email {shlex.quote(email)}"
    )


def check_auth(state: GuardState) -> Finding | None:
    if state.authenticated:
        return None
    return Finding(
        severity="WARN",
        code="auth_skipped",
        message="GitHub CLI not authenticated — validation skipped",
        detail="The commit will proceed, but the active account could not be verified.",
        remediation="Run 'gh auth login' to enable validation.",
        command="gh auth login",
    )


def check_identity(state: GuardState) -> Finding | None:
    if state.current_user:
        return None
    return Finding(
        severity="WARN",
        code="identity_unknown",
        message="Could not determine current GitHub user — validation skipped",
        detail="The GitHub CLI is authenticated but did not report a login.",
        remediation="Check 'gh auth status' and log in again if the token expired.",
        command="gh auth status",
    )


def check_assignment_lookup(state: GuardState) -> Finding | None:
    if state.assigned_user:
        return None
    return Finding(
        severity="WARN",
        code="no_assignment",
        message="No project assignment found",
        detail=f"Project '{state.project}' has no expected account, so the active account was not compared.",
        remediation="Run 'ghs assign <number>' to set the default account for this project.",
        command=f"ghs assign {state.current_user}" if state.current_user else "ghs assign <number>",
    )


def check_assignment_match(state: GuardState) -> Finding | None:
    if not state.assigned_user or state.current_user == state.assigned_user:
        return None
    return Finding(
        severity="BLOCK",
        code="account_mismatch",
        message=(
            f"Account mismatch: current user {state.current_user}, "
            f"project assigned to {state.assigned_user}"
        ),
        detail=(
            f"Commits in '{state.project}' are expected from {state.assigned_user}, "
            f"but the GitHub CLI is logged in as {state.current_user}."
        ),
        remediation=(
            f"Run 'ghs switch {state.assigned_user}' to switch accounts, "
            f"or 'ghs assign {state.current_user}' to update the project assignment."
        ),
        command=f"gh auth switch --user {state.assigned_user}",
    )


def check_git_config_complete(state: GuardState) -> Finding | None:
    identity = state.git_identity
    if identity is not None and identity.complete:
        return None
    missing = []
    if identity is None or not identity.name:
        missing.append("user.name")
    if identity is None or not identity.email:
        missing.append("user.email")
    profile = state.current_profile
    if profile is not None:
        command = _git_config_command(profile.name, profile.email)
        remediation = f"Run 'ghs switch {profile.username}' to apply the stored profile."
    else:
        command = _git_config_command("Your Name", "your@email.com")
        remediation = "Set both user.name and user.email in git config."
    return Finding(
        severity="BLOCK",
        code="git_config_incomplete",
        message="Git config incomplete",
        detail=f"Missing {' and '.join(missing)} in local and global git config.",
        remediation=remediation,
        command=command,
    )


def check_profile_consistency(state: GuardState) -> Finding | None:
    profile = state.current_profile
    identity = state.git_identity
    if profile is None or identity is None or not identity.complete:
        return None
    if identity.name == profile.name and identity.email == profile.email:
        return None
    return Finding(
        severity="WARN",
        code="profile_mismatch",
        message=f"Git config doesn't match profile for {profile.username}",
        detail=(
            f"Profile: {profile.name} <{profile.email}>; "
            f"git config ({state.git_scope}): {identity.name} <{identity.email}>"
        ),
        remediation=f"Run 'ghs switch {profile.username}' to update git config.",
        command=_git_config_command(profile.name, profile.email),
    )


def relevant_host(state: GuardState, default: str) -> str:
    profile = state.assigned_profile or state.current_profile
    return profile.host if profile is not None else default


def qualify_for_host(findings: list[Finding], host: str) -> list[Finding]:
    if not is_enterprise_host(host):
        return findings
    qualified: list[Finding] = []
    hint = f"For {host}, verify with 'gh auth status --hostname {host}'."
    for finding in findings:
        if finding.severity == "PASS":
            qualified.append(finding)
            continue
        remediation = _GH_AUTH_COMMAND.sub(rf"gh auth \1 --hostname {host}", finding.remediation)
        command = _GH_AUTH_COMMAND.sub(rf"gh auth \1 --hostname {host}", finding.command)
        remediation = f"{remediation} {hint}".strip()
        qualified.append(replace(finding, remediation=remediation, command=command))
    return qualified


def passing_finding(state: GuardState) -> Finding:
    identity = state.git_identity
    detail = ""
    if identity is not None:
        detail = f"{state.current_user} with {identity.name} <{identity.email}>"
    return Finding(
        severity="PASS",
        code="ok",
        message="Account and git config match project",
        detail=detail,
    )
