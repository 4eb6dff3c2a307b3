import secrets
import time
from datetime import datetime, date
from typing import Any, Dict, Mapping

from pydantic.alias_generators import to_snake

DATE_FORMATS = ("%d-%m-%Y", "%Y-%m-%d")


def generate_application_id(prefix: str) -> str:
    """Human-readable application code, e.g. ``DEATH-482913-a1b2c3``.

    The numeric part is the last six digits of the epoch milliseconds and the
    suffix is three random bytes, hex encoded. Uniqueness is finally enforced
    by the unique index on ``applications.application_id``.
    """
    timestamp = str(int(time.time() * 1000))[-6:]
    return f"{prefix}-{timestamp}-{secrets.token_hex(3)}"


def parse_date(value: Any) -> datetime:
    """Parse ``dd-mm-yyyy`` or ``yyyy-mm-dd`` into a midnight datetime."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        raise ValueError("Date must be a string in dd-mm-yyyy or yyyy-mm-dd format")

    text = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"Invalid date '{text}', expected dd-mm-yyyy or yyyy-mm-dd")


def normalize_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Snake-case the keys of a submitted form, strip strings and drop blanks."""
    normalized = {}
    for key, value in fields.items():
        if isinstance(value, str):
            value = value.strip()
            if value == "" or value.lower() in ("null", "undefined"):
                continue
        elif value is None:
            continue
        normalized[to_snake(key.strip())] = value
    return normalized
