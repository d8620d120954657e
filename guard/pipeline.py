from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from core.identity import GitHubIdentityProvider, resolve_git_identity
from guard.checks import (
    check_assignment_lookup,
    check_assignment_match,
    check_auth,
    check_git_config_complete,
    check_identity,
    check_profile_consistency,
    passing_finding,
    qualify_for_host,
    relevant_host,
)
from guard.runtime import SwitcherRuntime
from guard.state import Finding, GuardResult, GuardState, aggregate_verdict

Loader = Callable[[GuardState, SwitcherRuntime, GitHubIdentityProvider], None]
Check = Callable[[GuardState], Finding | None]


def _ask(fn: Callable[[], object], fallback: object) -> object:
    # the identity provider may be missing or offline; that is never fatal
    try:
        return fn()
    except Exception as exc:  # noqa: BLE001
        logger.debug("Identity provider call failed: {}", exc)
        return fallback


def _load_auth(state: GuardState, runtime: SwitcherRuntime, provider: GitHubIdentityProvider) -> None:
    state.authenticated = bool(_ask(provider.is_authenticated, False))


def _load_login(state: GuardState, runtime: SwitcherRuntime, provider: GitHubIdentityProvider) -> None:
    login = _ask(provider.current_login, "")
    state.current_user = str(login or "").strip()


def _load_git_identity(state: GuardState, runtime: SwitcherRuntime, provider: GitHubIdentityProvider) -> None:
    identity, scope = resolve_git_identity(runtime.git_config, runtime.config.git_scope)
    state.git_identity = identity
    state.git_scope = scope


@dataclass(slots=True, frozen=True)
class GuardStep:
    name: str
    check: Check
    load: Loader | None = None
    terminal: bool = False


PIPELINE: tuple[GuardStep, ...] = (
    GuardStep("auth", check_auth, load=_load_auth, terminal=True),
    GuardStep("identity", check_identity, load=_load_login, terminal=True),
    GuardStep("assignment_lookup", check_assignment_lookup),
    GuardStep("assignment_match", check_assignment_match),
    GuardStep("git_config_complete", check_git_config_complete, load=_load_git_identity),
    GuardStep("profile_consistency", check_profile_consistency),
)


def build_initial_state(project: str, runtime: SwitcherRuntime) -> GuardState:
    state = GuardState(project=project)
    state.profiles = {item.username: item for item in runtime.profiles.load()}
    state.assigned_user = runtime.projects.lookup(project)
    state.host = relevant_host(state, runtime.config.default_host)
    return state


def evaluate(project: str, runtime: SwitcherRuntime) -> GuardResult:
    state = build_initial_state(project, runtime)
    provider = runtime.identity_for(state.host)
    findings: list[Finding] = []

    for step in PIPELINE:
        if step.load is not None:
            step.load(state, runtime, provider)
        finding = step.check(state)
        if finding is None:
            continue
        findings.append(finding)
        if step.terminal:
            break

    # the current user's profile can only be known once the login is resolved
    state.host = relevant_host(state, runtime.config.default_host)
    findings = qualify_for_host(findings, state.host)
    verdict = aggregate_verdict(findings)
    if verdict == "PASS":
        findings.append(passing_finding(state))

    runtime.events.event(
        "guard",
        "Guard verdict computed",
        payload={
            "project": project,
            "verdict": verdict,
            "codes": [item.code for item in findings],
            "current_user": state.current_user,
            "assigned_user": state.assigned_user,
            "host": state.host,
        },
    )
    return GuardResult(
        verdict=verdict,
        findings=findings,
        project=project,
        current_user=state.current_user,
        assigned_user=state.assigned_user,
        git_identity=state.git_identity,
        host=state.host,
    )
