"""Versioned profile store.

Every line of the profiles file is one profile. Five layouts have shipped:

    v1  username:1:b64(name):b64(email)
    v2  username:2:b64(name):b64(email):b64(gpg):b64(ssh):auto_sign:last_used
    v3  username:name:email[:gpg][:auto_sign]
    v4  username<TAB>v4<TAB>name<TAB>email<TAB>gpg<TAB>auto_sign<TAB>ssh_key
    v5  username<TAB>v5<TAB>name<TAB>email<TAB>gpg<TAB>auto_sign<TAB>ssh_key<TAB>host

Reading decodes any layout into a ``ProfileRecord`` and ``migrate`` turns that
into a canonical ``UserProfile``. Writing always emits v5.
"""

from __future__ import annotations

import base64
import binascii
import re
import shutil
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from core.errors import (
    ProfileExistsError,
    ProfileNotFoundError,
    RecordParseError,
    ValidationError,
)
from core.hosts import validate_host
from core.models import (
    DEFAULT_HOST,
    LATEST_SCHEMA_VERSION,
    SchemaVersion,
    SwitcherConfig,
    UserProfile,
)
from core.ssh_keys import validate_ssh_key

MAX_FIELD_LENGTH = 255

_USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_TAB_VERSION_TOKENS: dict[str, SchemaVersion] = {"v4": 4, "v5": 5}
_COLON_VERSION_TOKENS: dict[str, SchemaVersion] = {"1": 1, "2": 2}

_TRUE_VALUES = {"true", "1", "yes", "y", "on"}
_FALSE_VALUES = {"false", "0", "no", "n", "off", ""}

FIELD_ALIASES = {
    "name": "name",
    "display_name": "name",
    "email": "email",
    "ssh_key": "ssh_key",
    "ssh_key_path": "ssh_key",
    "gpg_key": "gpg_key",
    "gpg": "gpg_key",
    "auto_sign": "auto_sign",
    "host": "host",
}


@dataclass(slots=True)
class ProfileRecord:
    version: SchemaVersion
    fields: list[str]
    line_number: int = 0


@dataclass(slots=True)
class LoadResult:
    profiles: list[UserProfile] = field(default_factory=list)
    warnings: list[RecordParseError] = field(default_factory=list)


def default_email(username: str, host: str = DEFAULT_HOST) -> str:
    if host == DEFAULT_HOST:
        return f"{username}@users.noreply.github.com"
    return f"{username}@{host}"


def _decode_b64(value: str, record: ProfileRecord, label: str) -> str:
    if not value:
        return ""
    try:
        return base64.b64decode(value, validate=True).decode("utf-8").rstrip("\n")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise RecordParseError(
            record.line_number, "", f"invalid base64 in {label}: {exc}"
        ) from exc


def _as_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def _expect_fields(record: ProfileRecord, allowed: tuple[int, ...]) -> None:
    if len(record.fields) not in allowed:
        expected = " or ".join(str(count) for count in allowed)
        raise RecordParseError(
            record.line_number,
            "",
            f"v{record.version} record needs {expected} fields, got {len(record.fields)}",
        )


def _decode_v1(record: ProfileRecord) -> dict[str, Any]:
    _expect_fields(record, (4,))
    username, _, name, email = record.fields
    return {
        "username": username,
        "name": _decode_b64(name, record, "name"),
        "email": _decode_b64(email, record, "email"),
    }


def _decode_v2(record: ProfileRecord) -> dict[str, Any]:
    _expect_fields(record, (7, 8))
    username, _, name, email, gpg_key, ssh_key, auto_sign = record.fields[:7]
    return {
        "username": username,
        "name": _decode_b64(name, record, "name"),
        "email": _decode_b64(email, record, "email"),
        "gpg_key": _decode_b64(gpg_key, record, "gpg_key"),
        "ssh_key": _decode_b64(ssh_key, record, "ssh_key"),
        "auto_sign": _as_bool(auto_sign),
    }


def _decode_v3(record: ProfileRecord) -> dict[str, Any]:
    _expect_fields(record, (3, 4, 5))
    padded = record.fields + [""] * (5 - len(record.fields))
    username, name, email, gpg_key, auto_sign = padded
    return {
        "username": username,
        "name": name,
        "email": email,
        "gpg_key": gpg_key,
        "auto_sign": _as_bool(auto_sign),
    }


def _decode_v4(record: ProfileRecord) -> dict[str, Any]:
    _expect_fields(record, (7,))
    username, _, name, email, gpg_key, auto_sign, ssh_key = record.fields
    return {
        "username": username,
        "name": name,
        "email": email,
        "gpg_key": gpg_key,
        "auto_sign": _as_bool(auto_sign),
        "ssh_key": ssh_key,
    }


def _decode_v5(record: ProfileRecord) -> dict[str, Any]:
    _expect_fields(record, (6, 8))
    if len(record.fields) == 6:
        # compact form written without signing fields
        username, _, name, email, ssh_key, host = record.fields
        gpg_key, auto_sign = "", ""
    else:
        username, _, name, email, gpg_key, auto_sign, ssh_key, host = record.fields
    return {
        "username": username,
        "name": name,
        "email": email,
        "gpg_key": gpg_key,
        "auto_sign": _as_bool(auto_sign),
        "ssh_key": ssh_key,
        "host": host,
    }


_DECODERS: dict[int, Callable[[ProfileRecord], dict[str, Any]]] = {
    1: _decode_v1,
    2: _decode_v2,
    3: _decode_v3,
    4: _decode_v4,
    5: _decode_v5,
}


def parse_record(line: str, line_number: int = 0) -> ProfileRecord:
    text = line.rstrip("\r\n")
    if "\t" in text:
        fields = text.split("\t")
        token = fields[1] if len(fields) > 1 else ""
        version = _TAB_VERSION_TOKENS.get(token)
        if version is None:
            raise RecordParseError(line_number, text, f"unknown schema version {token!r}")
        return ProfileRecord(version=version, fields=fields, line_number=line_number)

    fields = text.split(":")
    if len(fields) < 3:
        raise RecordParseError(line_number, text, "not a profile record")
    version = _COLON_VERSION_TOKENS.get(fields[1], 3)
    return ProfileRecord(version=version, fields=fields, line_number=line_number)


def migrate(record: ProfileRecord) -> UserProfile:
    data = _DECODERS[record.version](record)
    username = data["username"].strip()
    if not username:
        raise RecordParseError(record.line_number, "", "empty username")
    host = (data.get("host") or DEFAULT_HOST).strip()
    host_check = validate_host(host)
    if not host_check.ok:
        raise RecordParseError(record.line_number, "", host_check.reason)
    data["username"] = username
    data["host"] = host
    data["name"] = data.get("name") or username
    data["email"] = data.get("email") or default_email(username, host)
    return UserProfile(schema_version=record.version, **data)


def parse(line: str, line_number: int = 0) -> UserProfile:
    try:
        return migrate(parse_record(line, line_number))
    except RecordParseError as exc:
        if not exc.line:
            exc.line = line.rstrip("\r\n")
        raise


def serialize(profile: UserProfile) -> str:
    return "\t".join(
        [
            profile.username,
            f"v{LATEST_SCHEMA_VERSION}",
            profile.name,
            profile.email,
            profile.gpg_key,
            "true" if profile.auto_sign else "false",
            profile.ssh_key,
            profile.host,
        ]
    )


def validate_profile(profile: UserProfile) -> None:
    if not _USERNAME_PATTERN.match(profile.username):
        raise ValidationError(
            "Username contains invalid characters "
            "(only letters, numbers, dots, underscores, and hyphens allowed)"
        )
    if not profile.name:
        raise ValidationError("Name cannot be empty")
    if not _EMAIL_PATTERN.match(profile.email):
        raise ValidationError(f"Invalid email format: {profile.email}")
    for label, value in (
        ("Name", profile.name),
        ("Email", profile.email),
        ("GPG key", profile.gpg_key),
        ("SSH key path", profile.ssh_key),
    ):
        if len(value) > MAX_FIELD_LENGTH:
            raise ValidationError(f"{label} too long (max {MAX_FIELD_LENGTH} characters)")
        if any(char in value for char in "\t\r\n"):
            raise ValidationError(f"{label} cannot contain tabs or newlines")
    host_check = validate_host(profile.host)
    if not host_check.ok:
        raise ValidationError(host_check.reason)


def parse_bool(value: str) -> bool:
    text = value.strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES - {""}:
        return False
    raise ValidationError(f"Invalid boolean value: {value!r} (use true/false)")


def profile_issues(profile: UserProfile, ssh_base_dir: str | Path | None = None) -> list[str]:
    issues: list[str] = []
    if not profile.name:
        issues.append("Missing name")
    if not profile.email:
        issues.append("Missing email")
    host_check = validate_host(profile.host)
    if not host_check.ok:
        issues.append(f"Invalid host: {host_check.reason}")
    if profile.ssh_key:
        ssh_check = validate_ssh_key(profile.ssh_key, base_dir=ssh_base_dir)
        if not ssh_check.ok:
            issues.append(ssh_check.message)
    if profile.auto_sign and not profile.gpg_key:
        issues.append("Auto-sign enabled without a GPG key")
    return issues


def _field_change(current: UserProfile, target: str, value: str | bool) -> dict[str, Any]:
    if target == "auto_sign":
        return {"auto_sign": value if isinstance(value, bool) else parse_bool(value)}
    text = str(value).strip()
    changes: dict[str, Any] = {}
    if target == "host":
        text = text or DEFAULT_HOST
        host_check = validate_host(text)
        if not host_check.ok:
            raise ValidationError(host_check.reason)
        # a derived address follows the host it was derived from
        if current.email == default_email(current.username, current.host):
            changes["email"] = default_email(current.username, text)
    elif target == "email" and not text:
        text = default_email(current.username, current.host)
    changes[target] = text
    return changes


class ProfileStore:
    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.warnings: list[RecordParseError] = []

    @classmethod
    def from_config(cls, config: SwitcherConfig) -> ProfileStore:
        return cls(config.profiles_file)

    def _read(self) -> LoadResult:
        result = LoadResult()
        if not self.path.exists():
            return result
        seen: set[str] = set()
        lines = self.path.read_text(encoding="utf-8").splitlines()
        for line_number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                profile = parse(line, line_number)
            except RecordParseError as exc:
                logger.warning("Skipping profile record in {}: {}", self.path, exc)
                result.warnings.append(exc)
                continue
            if profile.username in seen:
                duplicate = RecordParseError(
                    line_number, line, f"duplicate username {profile.username!r}"
                )
                logger.warning("Skipping profile record in {}: {}", self.path, duplicate)
                result.warnings.append(duplicate)
                continue
            seen.add(profile.username)
            result.profiles.append(profile)
        return result

    def _write_all(self, profiles: list[UserProfile]) -> None:
        # unreadable records are carried over verbatim so a rewrite never loses them
        lines = [serialize(item) for item in profiles]
        lines.extend(item.line for item in self.warnings if item.line)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("\n".join(lines) + ("\n" if lines else ""), encoding="utf-8")

    def load(self) -> list[UserProfile]:
        result = self._read()
        self.warnings = result.warnings
        return result.profiles

    def list_profiles(self) -> list[UserProfile]:
        return self.load()

    def find(self, username: str) -> UserProfile | None:
        for profile in self.load():
            if profile.username == username:
                return profile
        return None

    def get(self, username: str) -> UserProfile:
        profile = self.find(username)
        if profile is None:
            raise ProfileNotFoundError(username)
        return profile

    def create(
        self,
        username: str,
        *,
        name: str = "",
        email: str = "",
        ssh_key: str = "",
        gpg_key: str = "",
        auto_sign: bool = False,
        host: str = DEFAULT_HOST,
        force: bool = False,
    ) -> UserProfile:
        username = username.strip()
        host = (host or DEFAULT_HOST).strip()
        host_check = validate_host(host)
        if not host_check.ok:
            raise ValidationError(host_check.reason)
        profile = UserProfile(
            username=username,
            name=name.strip() or username,
            email=email.strip() or default_email(username, host),
            ssh_key=ssh_key.strip(),
            gpg_key=gpg_key.strip(),
            auto_sign=auto_sign,
            host=host,
        )
        validate_profile(profile)

        profiles = self.load()
        existing = [item for item in profiles if item.username == username]
        if existing and not force:
            raise ProfileExistsError(username)
        if existing:
            profiles = [profile if item.username == username else item for item in profiles]
        else:
            profiles.append(profile)
        self._write_all(profiles)
        logger.info("Wrote profile for {} ({})", username, host)
        return profile

    def update(self, username: str, field_name: str, value: str | bool) -> UserProfile:
        return self.update_many(username, {field_name: value})

    def update_many(self, username: str, changes: dict[str, str | bool]) -> UserProfile:
        """Apply every change to one profile; nothing is written unless all of them validate."""
        resolved: list[tuple[str, str | bool]] = []
        for field_name, value in changes.items():
            target = FIELD_ALIASES.get(field_name.strip().lower())
            if target is None:
                allowed = ", ".join(sorted(set(FIELD_ALIASES.values())))
                raise ValidationError(f"Unknown profile field {field_name!r} (expected one of: {allowed})")
            resolved.append((target, value))

        profiles = self.load()
        index = next(
            (pos for pos, item in enumerate(profiles) if item.username == username),
            None,
        )
        if index is None:
            raise ProfileNotFoundError(username)

        updated = profiles[index]
        for target, value in resolved:
            updated = updated.model_copy(update=_field_change(updated, target, value))
        updated = updated.model_copy(update={"schema_version": LATEST_SCHEMA_VERSION})
        validate_profile(updated)
        profiles[index] = updated
        self._write_all(profiles)
        logger.info("Updated {} for profile {}", ", ".join(target for target, _ in resolved), username)
        return updated

    def remove(self, username: str) -> bool:
        profiles = self.load()
        remaining = [item for item in profiles if item.username != username]
        if len(remaining) == len(profiles):
            return False
        self._write_all(remaining)
        logger.info("Removed profile {}", username)
        return True

    def migrate_file(self) -> int:
        profiles = self.load()
        upgraded = sum(
            1 for item in profiles if item.schema_version != LATEST_SCHEMA_VERSION
        )
        if not upgraded:
            return 0
        backup = self.path.with_name(f"{self.path.name}.backup.{int(time.time())}")
        shutil.copy2(self.path, backup)
        canonical = [
            item.model_copy(update={"schema_version": LATEST_SCHEMA_VERSION})
            for item in profiles
        ]
        self._write_all(canonical)
        logger.info(
            "Migrated {} profile records to v{} (backup: {})",
            upgraded,
            LATEST_SCHEMA_VERSION,
            backup,
        )
        return upgraded
