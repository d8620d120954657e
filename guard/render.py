"""Text renderers for guard results. Neither one changes the verdict."""

from __future__ import annotations

from guard.state import Finding, GuardResult

_ICONS = {"PASS": "✅", "WARN": "⚠️ ", "BLOCK": "❌"}


def render_terse(result: GuardResult) -> str:
    lines = []
    for finding in result.findings:
        line = f"[{finding.severity}] {finding.message}"
        if finding.command and finding.severity != "PASS":
            line += f" -> {finding.command}"
        lines.append(line)
    return "\n".join(lines)


def _render_finding(finding: Finding) -> list[str]:
    lines = [f"{_ICONS[finding.severity]} [{finding.severity}] {finding.message}"]
    if finding.detail:
        lines.append(f"   Why: {finding.detail}")
    if finding.remediation:
        lines.append(f"   How to fix: {finding.remediation}")
    if finding.command:
        lines.append(f"   Command: {finding.command}")
    return lines


def render_verbose(result: GuardResult) -> str:
    lines = [
        "🛡️  gh-switcher pre-commit validation",
        f"📁 Project: {result.project}",
    ]
    if result.current_user:
        lines.append(f"👤 Current GitHub user: {result.current_user}")
    if result.assigned_user:
        lines.append(f"🔗 Project assigned to: {result.assigned_user}")
    if result.git_identity is not None:
        lines.append(f"📧 Git config: {result.git_identity.name} <{result.git_identity.email}>")
    if result.host and result.current_user:
        lines.append(f"🌐 Host: {result.host}")
    lines.append("")
    lines.append("What happened:")
    for finding in result.findings:
        lines.extend(_render_finding(finding))
    lines.append("")
    if result.blocked:
        lines.append("🚫 Pre-commit validation failed")
        lines.append("   Fix the issues above before committing.")
        lines.append("   To bypass (not recommended): GHS_SKIP_HOOK=1 git commit -m \"message\"")
    elif result.verdict == "WARN":
        lines.append("⚠️  Pre-commit validation passed with warnings")
    else:
        lines.append("✅ Pre-commit validation passed")
    return "\n".join(lines)


def render(result: GuardResult, verbose: bool) -> str:
    return render_verbose(result) if verbose else render_terse(result)
