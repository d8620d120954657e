from core.models import GitIdentity
from guard.render import render, render_terse, render_verbose
from guard.state import Finding, GuardResult, aggregate_verdict

BLOCKED = GuardResult(
    verdict="BLOCK",
    findings=[
        Finding(
            severity="BLOCK",
            code="account_mismatch",
            message="Account mismatch: current user bob, project assigned to alice",
            detail="why",
            remediation="Run 'ghs switch alice'.",
            command="gh auth switch --user alice",
        )
    ],
    project="demo",
    current_user="bob",
    assigned_user="alice",
    git_identity=GitIdentity(name="Bob", email="bob@example.com"),
)


def test_terse_output_is_one_line_per_finding():
    text = render_terse(BLOCKED)
    assert text == (
        "[BLOCK] Account mismatch: current user bob, project assigned to alice"
        " -> gh auth switch --user alice"
    )


def test_verbose_output_explains_and_offers_bypass():
    text = render_verbose(BLOCKED)
    assert "Project: demo" in text
    assert "Why: why" in text
    assert "Command: gh auth switch --user alice" in text
    assert "GHS_SKIP_HOOK=1" in text


def test_render_does_not_change_verdict():
    render(BLOCKED, verbose=True)
    render(BLOCKED, verbose=False)
    assert BLOCKED.verdict == "BLOCK"
    assert BLOCKED.exit_code == 1


def test_aggregate_verdict_takes_most_severe():
    warn = Finding(severity="WARN", code="w", message="w")
    block = Finding(severity="BLOCK", code="b", message="b")
    assert aggregate_verdict([]) == "PASS"
    assert aggregate_verdict([warn]) == "WARN"
    assert aggregate_verdict([warn, block, warn]) == "BLOCK"
