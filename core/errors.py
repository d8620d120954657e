from __future__ import annotations


class SwitcherError(Exception):
    """Base class for every error the switcher reports to its caller."""


class RecordParseError(SwitcherError):
    """A single malformed record line. Loading recovers and keeps going."""

    def __init__(self, line_number: int, line: str, reason: str):
        self.line_number = line_number
        self.line = line
        self.reason = reason
        super().__init__(f"line {line_number}: {reason}")


class ValidationError(SwitcherError):
    pass


class NotFoundError(SwitcherError):
    pass


class ProfileNotFoundError(NotFoundError):
    def __init__(self, username: str):
        self.username = username
        super().__init__(f"No profile found for {username}")


class UserNotFoundError(NotFoundError):
    pass


class ProfileExistsError(SwitcherError):
    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Profile for {username} already exists")


class GuardBlockedError(SwitcherError):
    """Raised at the CLI boundary when the guard verdict is BLOCK."""

    def __init__(self, project: str, codes: list[str]):
        self.project = project
        self.codes = codes
        super().__init__(f"Pre-commit validation failed for {project}: {', '.join(codes)}")
