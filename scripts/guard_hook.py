from __future__ import annotations

from core.config import load_config
from guard.render import render
from main import run_guard


def run_hook(project: str | None = None) -> int:
    config = load_config()
    result = run_guard(project, config=config)
    print(render(result, config.guard_verbose))
    return result.exit_code


def main() -> int:
    return run_hook()


if __name__ == "__main__":
    raise SystemExit(main())
