from __future__ import annotations

from pathlib import Path

from loguru import logger

from core.errors import RecordParseError, ValidationError
from core.models import SwitcherConfig

SEPARATOR = "="


def _validate_project(project: str) -> str:
    value = project.strip()
    if not value:
        raise ValidationError("Project name cannot be empty")
    if any(char in value for char in (SEPARATOR, "\t", "\r", "\n")):
        raise ValidationError(f"Project name cannot contain '{SEPARATOR}', tabs or newlines")
    return value


class ProjectAssignmentStore:
    """``project=username`` lines. A username may name a profile that no longer exists."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.warnings: list[RecordParseError] = []

    @classmethod
    def from_config(cls, config: SwitcherConfig) -> ProjectAssignmentStore:
        return cls(config.projects_file)

    def _read_all(self) -> list[tuple[str, str]]:
        self.warnings = []
        if not self.path.exists():
            return []
        pairs: list[tuple[str, str]] = []
        lines = self.path.read_text(encoding="utf-8").splitlines()
        for line_number, line in enumerate(lines, start=1):
            text = line.strip()
            if not text:
                continue
            project, sep, username = text.partition(SEPARATOR)
            if not sep or not project.strip() or not username.strip():
                error = RecordParseError(line_number, text, "expected project=username")
                logger.warning("Skipping assignment in {}: {}", self.path, error)
                self.warnings.append(error)
                continue
            pairs.append((project.strip(), username.strip()))
        return pairs

    def _write_all(self, pairs: list[tuple[str, str]]) -> None:
        lines = [f"{project}{SEPARATOR}{username}" for project, username in pairs]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("\n".join(lines) + ("\n" if lines else ""), encoding="utf-8")

    def items(self) -> list[tuple[str, str]]:
        latest: dict[str, str] = {}
        for project, username in self._read_all():
            latest.setdefault(project, username)
        return list(latest.items())

    def lookup(self, project: str) -> str | None:
        for name, username in self._read_all():
            if name == project:
                return username
        return None

    def assign(self, project: str, username: str) -> None:
        project = _validate_project(project)
        username = username.strip()
        if not username or any(char in username for char in "\t\r\n"):
            raise ValidationError("Username cannot be empty")
        pairs = self._read_all()
        replaced = False
        updated: list[tuple[str, str]] = []
        for name, current in pairs:
            if name != project:
                updated.append((name, current))
            elif not replaced:
                updated.append((project, username))
                replaced = True
        if not replaced:
            updated.append((project, username))
        self._write_all(updated)
        logger.info("Assigned {} to project {}", username, project)

    def unassign(self, project: str) -> bool:
        pairs = self._read_all()
        remaining = [(name, username) for name, username in pairs if name != project]
        if len(remaining) == len(pairs):
            return False
        self._write_all(remaining)
        logger.info("Removed assignment for project {}", project)
        return True
