"""Operator-facing notices and support reference codes."""

import logging
import secrets
import time
from dataclasses import dataclass, asdict
from typing import Optional

logger = logging.getLogger("grant_portal.bulk_removal")

BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(BASE36[rem])
    return "".join(reversed(digits))


def generate_reference_code(now_ms: Optional[int] = None) -> str:
    """Opaque ``ERR-<timestamp36>-<random4>`` code for support correlation."""
    timestamp = to_base36(now_ms if now_ms is not None else int(time.time() * 1000))
    random_part = "".join(secrets.choice(BASE36) for _ in range(4))
    return f"ERR-{timestamp}-{random_part}"


@dataclass(frozen=True)
class Notice:
    """A toast-style message for the operator."""

    level: str  # success, info, warning, error
    title: str
    description: Optional[str] = None
    duration_ms: Optional[int] = None
    reference_code: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


class NoticeBoard:
    """Collects notices raised during one workflow run."""

    def __init__(self, error_duration_ms: int = 10000):
        self.error_duration_ms = error_duration_ms
        self.notices: list[Notice] = []

    def error(self, title: str, description: str, reference_code: Optional[str] = None) -> Notice:
        if reference_code:
            description = f"{description}. Code: {reference_code}"
        notice = Notice(
            level="error",
            title=title,
            description=description,
            duration_ms=self.error_duration_ms,
            reference_code=reference_code,
        )
        self.notices.append(notice)
        return notice

    def success(self, title: str, description: Optional[str] = None) -> Notice:
        notice = Notice(level="success", title=title, description=description)
        self.notices.append(notice)
        return notice

    def clear(self) -> None:
        self.notices = []
