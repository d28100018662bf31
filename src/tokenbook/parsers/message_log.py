"""Parse pasted chat logs into token candidates.

Each message looks like::

    [11/21/2025 10:04 AM] Alice: abc123

Dates are month/day/year, times 12-hour with an optional meridiem. Lines
that do not match are skipped silently; pasted logs routinely contain
system messages and wrapped lines.
"""

import re
from collections.abc import Iterator
from datetime import datetime, tzinfo

from pydantic import BaseModel

MESSAGE_PATTERN = re.compile(
    r"\[(\d{1,2})/(\d{1,2})/(\d{4})\s+(\d{1,2}):(\d{2})\s*(AM|PM)?\]\s*([^:]+):\s*(.+)",
    re.IGNORECASE,
)


class MessageCandidate(BaseModel):
    name: str
    value: str
    created_at: datetime
    line: str


def _to_24_hour(hours: int, meridiem: str | None) -> int:
    if not meridiem:
        return hours
    meridiem = meridiem.upper()
    if meridiem == "PM" and hours != 12:
        return hours + 12
    if meridiem == "AM" and hours == 12:
        return 0
    return hours


def parse_line(line: str, tz: tzinfo | None = None) -> MessageCandidate | None:
    line = line.strip()
    if not line:
        return None

    match = MESSAGE_PATTERN.search(line)
    if not match:
        return None

    month, day, year, hours, minutes, meridiem, name, value = match.groups()
    try:
        created_at = datetime(
            int(year),
            int(month),
            int(day),
            _to_24_hour(int(hours), meridiem),
            int(minutes),
        )
    except ValueError:
        # 13/45/2025 and friends
        return None

    # Local wall-clock time uses the UTC offset in force on that date
    if tz is None:
        created_at = created_at.astimezone()
    else:
        created_at = created_at.replace(tzinfo=tz)

    name = name.strip()
    value = value.strip()
    if not name or not value:
        return None

    return MessageCandidate(name=name, value=value, created_at=created_at, line=line)


def iter_messages(text: str, tz: tzinfo | None = None) -> Iterator[MessageCandidate]:
    for line in text.splitlines():
        candidate = parse_line(line, tz)
        if candidate is not None:
            yield candidate


def parse_messages(text: str, tz: tzinfo | None = None) -> list[MessageCandidate]:
    """Parse every message in text. Calling again starts from scratch."""
    return list(iter_messages(text, tz))
