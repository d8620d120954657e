from __future__ import annotations

from dataclasses import dataclass

from core.config import current_project_name, load_config
from core.errors import ValidationError
from core.identity import GitScope, resolve_git_identity
from core.models import SwitcherConfig, UserProfile
from core.ssh_keys import SshKeyCheck, ssh_command_for, validate_ssh_key
from guard.pipeline import evaluate
from guard.runtime import SwitcherRuntime
from guard.state import Finding, GuardResult


@dataclass(slots=True)
class SwitchOutcome:
    username: str
    profile: UserProfile
    account_switched: bool
    profile_created: bool = False
    ssh_check: SshKeyCheck | None = None


def run_guard(
    project: str | None = None,
    *,
    config: SwitcherConfig | None = None,
    runtime: SwitcherRuntime | None = None,
) -> GuardResult:
    rt = runtime or SwitcherRuntime.from_config(config)
    name = project or current_project_name(rt.config)
    if rt.config.skip_hook:
        return GuardResult(
            verdict="PASS",
            findings=[
                Finding(
                    severity="PASS",
                    code="skipped",
                    message="Guard skipped (GHS_SKIP_HOOK=1)",
                )
            ],
            project=name,
            skipped=True,
        )
    return evaluate(name, rt)


def create_profile_from_git(username: str, runtime: SwitcherRuntime, *, force: bool = False) -> UserProfile:
    identity, _ = resolve_git_identity(runtime.git_config, runtime.config.git_scope)
    return runtime.profiles.create(
        username,
        name=identity.name,
        email=identity.email,
        force=force,
    )


def check_profile_key(profile: UserProfile, runtime: SwitcherRuntime) -> SshKeyCheck:
    ssh_check = validate_ssh_key(
        profile.ssh_key,
        fix_permissions=True,
        base_dir=runtime.config.ssh_base_dir,
    )
    if not ssh_check.ok:
        raise ValidationError(f"Cannot apply profile {profile.username}: {ssh_check.message}")
    return ssh_check


def apply_profile(
    profile: UserProfile,
    runtime: SwitcherRuntime,
    scope: GitScope | None = None,
    ssh_check: SshKeyCheck | None = None,
) -> SshKeyCheck:
    target: GitScope = scope or runtime.config.git_scope
    ssh_check = ssh_check or check_profile_key(profile, runtime)
    runtime.git_config.set_identity(target, profile.name, profile.email)
    runtime.git_config.set_signing(target, profile.gpg_key, profile.auto_sign)
    runtime.git_config.set_ssh_command(
        target, ssh_command_for(profile.ssh_key) if profile.ssh_key else ""
    )
    runtime.events.event(
        "switch",
        "Profile applied to git config",
        payload={"username": profile.username, "scope": target, "host": profile.host},
    )
    return ssh_check


def switch_user(ref: str, runtime: SwitcherRuntime) -> SwitchOutcome:
    username = runtime.users.resolve(ref)
    if runtime.users.number_of(username) is None:
        raise ValidationError(f"User {username} not found in user list. Use 'ghs add-user {username}' first.")

    profile = runtime.profiles.find(username)
    created = False
    if profile is None:
        profile = create_profile_from_git(username, runtime)
        created = True

    # a key that cannot be used stops the switch before any account moves
    ssh_check = check_profile_key(profile, runtime)
    provider = runtime.identity_for(profile.host)
    switch = getattr(provider, "switch_account", None)
    switched = bool(switch(username)) if callable(switch) else False
    apply_profile(profile, runtime, ssh_check=ssh_check)
    return SwitchOutcome(
        username=username,
        profile=profile,
        account_switched=switched,
        profile_created=created,
        ssh_check=ssh_check,
    )


if __name__ == "__main__":
    result = run_guard(config=load_config())
    raise SystemExit(result.exit_code)
