from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from core.config import current_project_name, load_config
from core.errors import GuardBlockedError, SwitcherError, ValidationError
from core.hooks import hook_status, install_hook, uninstall_hook
from core.identity import GitCliConfig, resolve_git_identity
from core.models import DEFAULT_HOST
from core.profiles import profile_issues
from core.ssh_keys import detect_ssh_key, validate_ssh_key
from guard.render import render
from guard.runtime import SwitcherRuntime
from main import run_guard, switch_user

app = typer.Typer(add_completion=False, help="gh-switcher: per-project GitHub account switching")
guard_app = typer.Typer(add_completion=False, help="Pre-commit guard for account and git identity.")
app.add_typer(guard_app, name="guard")
console = Console()


@contextmanager
def _errors() -> Iterator[None]:
    try:
        yield
    except SwitcherError as exc:
        console.print(f"[red]{exc}[/red]", soft_wrap=True, highlight=False)
        raise typer.Exit(code=1) from exc


def _runtime() -> SwitcherRuntime:
    with _errors():
        return SwitcherRuntime.from_config(load_config())


def _print_plain(text: str) -> None:
    console.print(text, markup=False, highlight=False, soft_wrap=True)


@app.command()
def users() -> None:
    """List users with their numbers."""
    rt = _runtime()
    numbered = rt.users.numbered()
    if not numbered:
        console.print("No users configured. Use 'ghs add-user <username>' to add one.")
        return
    profiles = {item.username: item for item in rt.profiles.load()}
    table = Table(title="Users")
    table.add_column("#")
    table.add_column("Username")
    table.add_column("Profile")
    table.add_column("Host")
    for number, username in numbered:
        profile = profiles.get(username)
        table.add_row(
            str(number),
            username,
            f"{profile.name} <{profile.email}>" if profile else "missing",
            profile.host if profile else "",
        )
    console.print(table)


@app.command("add-user")
def add_user(
    username: str = typer.Argument(..., help="GitHub username to add."),
    name: str = typer.Option("", help="Git user.name (defaults to current git config)."),
    email: str = typer.Option("", help="Git user.email (defaults to current git config)."),
    ssh_key: str = typer.Option("", "--ssh-key", help="Path to the SSH private key."),
    gpg_key: str = typer.Option("", "--gpg-key", help="GPG signing key id."),
    auto_sign: bool = typer.Option(False, "--auto-sign", help="Sign commits automatically."),
    host: str = typer.Option(DEFAULT_HOST, help="GitHub host, e.g. github.company.com."),
) -> None:
    with _errors():
        rt = _runtime()
        key = ssh_key or detect_ssh_key(username, Path(rt.config.ssh_base_dir) / ".ssh")
        if key:
            check = validate_ssh_key(key, fix_permissions=True, base_dir=rt.config.ssh_base_dir)
            if not check.ok:
                raise ValidationError(check.message)
            if check.fixed:
                console.print(f"[yellow]{check.message}[/yellow] ({check.path})")
        if not name or not email:
            identity, _ = resolve_git_identity(rt.git_config, rt.config.git_scope)
            # a current git identity only seeds the profile on the default host
            if host == DEFAULT_HOST:
                name = name or identity.name
                email = email or identity.email
        if rt.profiles.find(username.strip()) is None:
            profile = rt.profiles.create(
                username,
                name=name,
                email=email,
                ssh_key=key,
                gpg_key=gpg_key,
                auto_sign=auto_sign,
                host=host,
            )
            console.print(f"Created profile: {profile.name} <{profile.email}> on {profile.host}")
        added = rt.users.add(username)
        number = rt.users.number_of(username.strip())
        if added:
            console.print(f"[green]Added {username} as user #{number}[/green]")
        else:
            console.print(f"{username} is already user #{number}")


@app.command("remove-user")
def remove_user(ref: str = typer.Argument(..., help="Username or user number.")) -> None:
    with _errors():
        rt = _runtime()
        username = rt.users.resolve(ref)
        removed_user = rt.users.remove(username)
        removed_profile = rt.profiles.remove(username)
        if not removed_user and not removed_profile:
            raise ValidationError(f"User {username} not found")
        console.print(f"[green]Removed {username}[/green]")
        stale = [project for project, assigned in rt.projects.items() if assigned == username]
        if stale:
            console.print(
                f"[yellow]Still assigned to: {', '.join(stale)}[/yellow] "
                "(use 'ghs unassign --project <name>' to clear)"
            )


@app.command()
def profiles() -> None:
    """List stored profiles."""
    rt = _runtime()
    items = rt.profiles.load()
    table = Table(title="Profiles")
    table.add_column("Username")
    table.add_column("Name")
    table.add_column("Email")
    table.add_column("SSH Key")
    table.add_column("GPG")
    table.add_column("Host")
    for profile in items:
        table.add_row(
            profile.username,
            profile.name,
            profile.email,
            profile.ssh_key or "-",
            f"{profile.gpg_key} (auto)" if profile.auto_sign else (profile.gpg_key or "-"),
            profile.host,
        )
    console.print(table)
    for warning in rt.profiles.warnings:
        console.print(f"[yellow]Skipped unreadable record, {warning}[/yellow]", highlight=False)


@app.command()
def show(ref: str = typer.Argument(..., help="Username or user number.")) -> None:
    with _errors():
        rt = _runtime()
        profile = rt.profiles.get(rt.users.resolve(ref))
        table = Table(title=f"Profile {profile.username}")
        table.add_column("Field")
        table.add_column("Value")
        table.add_row("Name", profile.name)
        table.add_row("Email", profile.email)
        table.add_row("SSH Key", profile.ssh_key or "none")
        table.add_row("GPG Key", profile.gpg_key or "none")
        table.add_row("Auto Sign", str(profile.auto_sign))
        table.add_row("Host", profile.host)
        table.add_row("Stored Version", f"v{profile.schema_version}")
        console.print(table)
        issues = profile_issues(profile, rt.config.ssh_base_dir)
        if issues:
            console.print("\n[bold yellow]Issues[/bold yellow]")
            for issue in issues:
                console.print(f"- {issue}", highlight=False, soft_wrap=True)


@app.command()
def edit(
    ref: str = typer.Argument(..., help="Username or user number."),
    name: Optional[str] = typer.Option(None, help="New git user.name."),
    email: Optional[str] = typer.Option(None, help="New git user.email."),
    ssh_key: Optional[str] = typer.Option(None, "--ssh-key", help="New SSH key path (empty to clear)."),
    gpg_key: Optional[str] = typer.Option(None, "--gpg-key", help="New GPG key id (empty to clear)."),
    auto_sign: Optional[bool] = typer.Option(None, "--auto-sign/--no-auto-sign", help="Toggle commit signing."),
    host: Optional[str] = typer.Option(None, help="New GitHub host."),
) -> None:
    changes = {
        "name": name,
        "email": email,
        "ssh_key": ssh_key,
        "gpg_key": gpg_key,
        "auto_sign": auto_sign,
        "host": host,
    }
    pending = {key: value for key, value in changes.items() if value is not None}
    with _errors():
        if not pending:
            raise ValidationError("Nothing to change. Pass at least one option, e.g. --email.")
        rt = _runtime()
        username = rt.users.resolve(ref)
        if pending.get("ssh_key"):
            check = validate_ssh_key(pending["ssh_key"], fix_permissions=True, base_dir=rt.config.ssh_base_dir)
            if not check.ok:
                raise ValidationError(check.message)
        profile = rt.profiles.update_many(username, pending)
        console.print(f"[green]Updated profile {profile.username}[/green]: {profile.name} <{profile.email}> on {profile.host}")


@app.command()
def validate(ref: Optional[str] = typer.Argument(None, help="Username or number; all profiles when omitted.")) -> None:
    with _errors():
        rt = _runtime()
        if ref:
            targets = [rt.profiles.get(rt.users.resolve(ref))]
        else:
            targets = rt.profiles.load()
        failed = 0
        for profile in targets:
            issues = profile_issues(profile, rt.config.ssh_base_dir)
            if issues:
                failed += 1
                console.print(f"[red]✗ {profile.username}[/red]")
                for issue in issues:
                    console.print(f"   - {issue}", highlight=False, soft_wrap=True)
            else:
                console.print(f"[green]✓ {profile.username}[/green]")
        for warning in rt.profiles.warnings:
            failed += 1
            console.print(f"[yellow]Unreadable record, {warning}[/yellow]", highlight=False)
        if failed:
            raise typer.Exit(code=1)


@app.command()
def migrate() -> None:
    """Rewrite the profiles file in the current record layout."""
    with _errors():
        rt = _runtime()
        upgraded = rt.profiles.migrate_file()
        if upgraded:
            console.print(f"[green]Migrated {upgraded} profile(s)[/green]")
        else:
            console.print("All profiles already use the current format")


@app.command()
def assign(
    ref: str = typer.Argument(..., help="Username or user number."),
    project: Optional[str] = typer.Option(None, help="Project name (defaults to current directory)."),
) -> None:
    with _errors():
        rt = _runtime()
        username = rt.users.resolve(ref)
        name = project or current_project_name(rt.config)
        rt.projects.assign(name, username)
        console.print(f"[green]Assigned {username} to {name}[/green]")


@app.command()
def unassign(
    project: Optional[str] = typer.Option(None, help="Project name (defaults to current directory)."),
) -> None:
    with _errors():
        rt = _runtime()
        name = project or current_project_name(rt.config)
        if not rt.projects.unassign(name):
            raise ValidationError(f"No assignment for project {name}")
        console.print(f"Removed assignment for {name}")


@app.command("list")
def list_assignments() -> None:
    """List project assignments."""
    rt = _runtime()
    known = set(rt.users.list_users())
    table = Table(title="Project Assignments")
    table.add_column("Project")
    table.add_column("User")
    for project, username in rt.projects.items():
        table.add_row(project, username if username in known else f"{username} (not in user list)")
    console.print(table)


@app.command()
def switch(ref: str = typer.Argument(..., help="Username or user number.")) -> None:
    with _errors():
        rt = _runtime()
        outcome = switch_user(ref, rt)
        if outcome.profile_created:
            console.print(f"Created profile for {outcome.username} from current git config")
        if not outcome.account_switched:
            console.print(
                f"[yellow]Could not switch GitHub CLI account; run "
                f"'gh auth switch --hostname {outcome.profile.host} --user {outcome.username}'[/yellow]",
                soft_wrap=True,
            )
        if outcome.ssh_check is not None and outcome.ssh_check.fixed:
            console.print(f"[yellow]{outcome.ssh_check.message}[/yellow] ({outcome.ssh_check.path})")
        profile = outcome.profile
        console.print(f"[green]Switched to {outcome.username}[/green]: {profile.name} <{profile.email}>")


@app.command()
def status() -> None:
    """Show the active account, git identity and project assignment."""
    rt = _runtime()
    project = current_project_name(rt.config)
    assigned = rt.projects.lookup(project)
    profile = rt.profiles.find(assigned) if assigned else None
    provider = rt.identity_for(profile.host if profile else rt.config.default_host)
    login = provider.current_login() if provider.is_authenticated() else ""
    identity, scope = resolve_git_identity(rt.git_config, rt.config.git_scope)

    table = Table(title="gh-switcher status")
    table.add_column("Check")
    table.add_column("Value")
    table.add_row("Project", project)
    table.add_row("Assigned User", assigned or "none")
    table.add_row("GitHub User", login or "not authenticated")
    table.add_row("Git Name", identity.name or "unset")
    table.add_row("Git Email", identity.email or "unset")
    table.add_row("Git Scope", scope)
    table.add_row("SSH Command", rt.git_config.get_ssh_command(scope) or "default")
    table.add_row("Host", profile.host if profile else rt.config.default_host)
    console.print(table)
    if assigned and login and assigned != login:
        console.print(f"[bold yellow]Account mismatch[/bold yellow]: run 'ghs switch {assigned}'")


@guard_app.command("run")
def guard_run(
    project: Optional[str] = typer.Option(None, help="Project name (defaults to current directory)."),
    verbose: Optional[bool] = typer.Option(None, "--verbose/--terse", help="Output style."),
) -> None:
    with _errors():
        rt = _runtime()
        result = run_guard(project, runtime=rt)
        _print_plain(render(result, rt.config.guard_verbose if verbose is None else verbose))
        if result.blocked:
            raise GuardBlockedError(result.project, [item.code for item in result.findings])


def _repo_root(path: Optional[str]) -> str:
    return path or GitCliConfig().repo_root() or "."


@guard_app.command("install")
def guard_install(path: Optional[str] = typer.Option(None, help="Repository root.")) -> None:
    with _errors():
        state = install_hook(_repo_root(path))
        console.print(f"[green]Guard hook installed[/green] at {state.path}")
        if state.backup_present:
            console.print("Previous pre-commit hook saved as pre-commit.backup")


@guard_app.command("uninstall")
def guard_uninstall(path: Optional[str] = typer.Option(None, help="Repository root.")) -> None:
    with _errors():
        if uninstall_hook(_repo_root(path)):
            console.print("[green]Guard hook removed[/green]")
        else:
            console.print("Guard hook not installed")


@guard_app.command("status")
def guard_status(path: Optional[str] = typer.Option(None, help="Repository root.")) -> None:
    with _errors():
        state = hook_status(_repo_root(path))
        table = Table(title="Guard Hook")
        table.add_column("Check")
        table.add_column("Value")
        table.add_row("Installed", str(state.installed))
        table.add_row("Path", state.path)
        table.add_row("Other Hook Present", str(state.foreign_hook))
        table.add_row("Backup Present", str(state.backup_present))
        console.print(table)


def main() -> None:
    app()
