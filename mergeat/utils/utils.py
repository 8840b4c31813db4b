"""
mergeat Utilities
"""

import hashlib
from datetime import datetime, timezone
from typing import Optional, Tuple


def mask_secret(secret: str, length: int = 5) -> str:
    """Return a short SHA-256 hash of a secret for logging."""
    h = hashlib.sha256(str(secret).encode("utf-8")).hexdigest()
    return f"<masked:{h[:length]}>"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_repository(repository: str) -> Tuple[str, str]:
    """Split an 'owner/repo' string.

    Raises:
        ValueError: if the string is not exactly two non-empty parts.
    """
    parts = (repository or "").strip().split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Invalid repository '{repository}', expected 'owner/repo'")
    return parts[0], parts[1]


def parse_repository_url(repository_url: str) -> Optional[Tuple[str, str]]:
    """Extract (owner, repo) from an API repository URL such as
    'https://api.github.com/repos/owner/repo'. Returns None when malformed."""
    parts = repository_url.rstrip("/").split("/")
    if len(parts) < 2:
        return None
    owner, repo = parts[-2:]
    if not owner or not repo:
        return None
    return owner, repo


def to_iso_z(moment: datetime) -> str:
    """Format an aware datetime as UTC ISO-8601 with milliseconds, e.g.
    '2024-01-02T19:30:00.000Z'."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_iso_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive values are taken as UTC.

    Raises:
        ValueError: if the value is not a parseable timestamp or has no UTC equivalent.
        TypeError: if the value is not a string.
    """
    if not isinstance(value, str):
        raise TypeError(f"Expected timestamp string, got {type(value).__name__}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError as e:
        raise ValueError(f"Timestamp out of range: {value}") from e
