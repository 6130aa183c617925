"""
RFC3339 timestamp helpers.

Workflow operations never read the clock themselves; the CLI resolves the
timestamp once (``--time`` or now) and passes it down.
"""

from datetime import datetime, timezone
from typing import Optional


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC3339 / ISO 8601 timestamp.

    A trailing ``Z`` is accepted. Naive values are taken as UTC.

    Raises:
        ValueError: If the value is not a timestamp
    """
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_optional(value: Optional[str]) -> Optional[datetime]:
    if value is None or not value.strip():
        return None
    return parse_timestamp(value)


def format_timestamp(value: datetime) -> str:
    """Format as RFC3339, using ``Z`` for UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def now() -> datetime:
    """Current UTC time, whole seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def resolve(flag_value: Optional[str]) -> datetime:
    """Timestamp for a command: the ``--time`` value if given, else now."""
    if flag_value:
        return parse_timestamp(flag_value)
    return now()
