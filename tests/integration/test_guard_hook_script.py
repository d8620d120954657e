from loguru import logger

from core.models import GitIdentity
from main import run_guard
from scripts import guard_hook


def test_hook_script_returns_guard_exit_code(make_runtime, monkeypatch, capsys):
    rt = make_runtime(login="bob", local=GitIdentity(name="Bob", email="bob@example.com"))
    rt.projects.assign("demo", "alice")
    monkeypatch.setattr(guard_hook, "load_config", lambda: rt.config.model_copy(update={"guard_verbose": False}))
    monkeypatch.setattr(guard_hook, "run_guard", lambda project, config: run_guard("demo", runtime=rt))

    assert guard_hook.run_hook() == 1
    assert "[BLOCK]" in capsys.readouterr().out


def test_hook_script_honours_skip(monkeypatch, cfg):
    monkeypatch.setenv("GHS_SKIP_HOOK", "1")
    monkeypatch.setenv("GH_USERS_CONFIG", cfg.users_file)
    monkeypatch.setenv("GH_USER_PROFILES", cfg.profiles_file)
    monkeypatch.setenv("GH_PROJECT_CONFIG", cfg.projects_file)
    monkeypatch.setenv("GHS_LOGS_DIR", cfg.logs_dir)
    monkeypatch.setenv("GHS_LOG_TO_FILE", "0")
    try:
        assert guard_hook.main() == 0
    finally:
        logger.remove()
