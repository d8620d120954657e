from __future__ import annotations

import re
from dataclasses import dataclass

from core.models import DEFAULT_HOST

MAX_HOST_LENGTH = 253

_PORT_PATTERN = re.compile(r":\d+")


@dataclass(slots=True, frozen=True)
class HostCheck:
    ok: bool
    reason: str = ""


def validate_host(host: str) -> HostCheck:
    value = (host or "").strip()
    if not value:
        return HostCheck(False, "Host cannot be empty")
    if "://" in value:
        return HostCheck(False, "Host should not include protocol")
    if _PORT_PATTERN.search(value):
        return HostCheck(False, "Host should not include port")
    labels = value.split(".")
    if len(labels) < 2 or not all(labels):
        return HostCheck(False, "Host must be a fully qualified domain")
    if len(value) > MAX_HOST_LENGTH:
        return HostCheck(False, "Host too long")
    return HostCheck(True)


def is_enterprise_host(host: str) -> bool:
    value = (host or "").strip().lower()
    return bool(value) and value != DEFAULT_HOST and validate_host(value).ok
