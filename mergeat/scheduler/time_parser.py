# Entrius 2025

"""
Parsing and validation of `@merge-at` date/time expressions.

An expression is a calendar date followed by a time of day, e.g.
``2024-01-02 14:30`` or ``2024-01-02 2:30 pm``. The wall-clock time is read
in an IANA timezone (UTC by default) and converted to an absolute UTC instant,
which must lie in the future and no more than MAX_SCHEDULE_DAYS ahead.

Checks run in a fixed order so that a malformed expression always reports its
format problem rather than a range problem:

    1. date and time both present
    2. time has the 12-hour or 24-hour shape
    3. hour/minute in range for that shape
    4. real calendar date and known timezone
    5. instant is in the future
    6. instant is within the scheduling window
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from mergeat.classes import ParseResult, ScheduleCommand, TimeToken
from mergeat.constants import (
    DEFAULT_TIMEZONE,
    MAX_SCHEDULE_DAYS,
    PARSE_ERROR_PREFIX,
    REASON_IN_PAST,
    REASON_INVALID_DATE,
    REASON_INVALID_TIME,
    REASON_MISSING_PARTS,
    REASON_TOO_FAR,
)

TIME_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})(AM|PM)?$')
DATE_FORMAT = '%Y-%m-%d'


class ScheduleParseError(ValueError):
    """Raised when a schedule expression is rejected.

    str(error) is the full user-facing message; `reason` is the bare check
    that failed.
    """

    def __init__(self, reason: str):
        super().__init__(f"{PARSE_ERROR_PREFIX}{reason}")
        self.reason = reason


def split_date_time(text: str) -> Tuple[str, str]:
    """Split an expression into its date token and time token.

    Anything after the date is the time token; a meridiem separated by a space
    ("2:30 PM") is rejoined with a single space.
    """
    tokens = text.strip().split()
    if not tokens:
        return '', ''
    return tokens[0], ' '.join(tokens[1:])


def tokenize_time(time_token: str) -> TimeToken:
    """Read a time token into hour, minute and optional meridiem.

    Raises:
        ScheduleParseError: if the token has neither the 12-hour nor the 24-hour shape,
        or its fields are out of range for that shape.
    """
    normalized = re.sub(r'\s+', '', time_token).upper()
    match = TIME_PATTERN.match(normalized)
    if not match:
        raise ScheduleParseError(REASON_INVALID_TIME)

    hour, minute, meridiem = int(match.group(1)), int(match.group(2)), match.group(3)

    if meridiem:
        if not 1 <= hour <= 12 or not 0 <= minute <= 59:
            raise ScheduleParseError(REASON_INVALID_TIME)
    elif not 0 <= hour <= 23 or not 0 <= minute <= 59:
        raise ScheduleParseError(REASON_INVALID_TIME)

    return TimeToken(hour=hour, minute=minute, meridiem=meridiem)


def tokenize(text: str, timezone_name: str = DEFAULT_TIMEZONE) -> ScheduleCommand:
    """Steps 1-3: split and tokenize an expression without resolving it.

    Raises:
        ScheduleParseError: if the date or time is missing or the time is malformed.
    """
    date_token, time_token = split_date_time(text)
    if not date_token or not time_token:
        raise ScheduleParseError(REASON_MISSING_PARTS)
    return ScheduleCommand(date_part=date_token, time_part=tokenize_time(time_token), timezone_name=timezone_name)


def resolve_instant(command: ScheduleCommand) -> datetime:
    """Step 4: interpret the command's wall-clock time in its timezone and return the UTC instant.

    A real date whose UTC equivalent falls outside the datetime range is
    rejected with the range reason it would have failed anyway.

    Raises:
        ScheduleParseError: if the date, timezone or UTC conversion is invalid.
    """
    try:
        zone = ZoneInfo(command.timezone_name)
        day = datetime.strptime(command.date_part, DATE_FORMAT)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        raise ScheduleParseError(REASON_INVALID_DATE)

    local = datetime(
        day.year, day.month, day.day, command.time_part.hour24, command.time_part.minute, tzinfo=zone
    )
    try:
        return local.astimezone(timezone.utc)
    except OverflowError:
        raise ScheduleParseError(REASON_IN_PAST if day.year == datetime.min.year else REASON_TOO_FAR)


def _as_utc(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def validate_schedule_time(
    text: str, timezone_name: str = DEFAULT_TIMEZONE, now: Optional[datetime] = None
) -> ParseResult:
    """Validate a schedule expression without raising.

    Args:
        text (str): Date and time, e.g. "2024-01-02 2:30 PM"
        timezone_name (str): IANA timezone the time is written in
        now (Optional[datetime]): Reference time, defaults to the current UTC time

    Returns:
        ParseResult: the UTC instant, or the reason of the first failing check
    """
    current = _as_utc(now)
    try:
        instant = resolve_instant(tokenize(text, timezone_name or DEFAULT_TIMEZONE))
    except ScheduleParseError as e:
        return ParseResult.failure(e.reason)

    if instant <= current:
        return ParseResult.failure(REASON_IN_PAST)
    if instant > current + timedelta(days=MAX_SCHEDULE_DAYS):
        return ParseResult.failure(REASON_TOO_FAR)

    return ParseResult.success(instant)


def parse_schedule_time(
    text: str, timezone_name: str = DEFAULT_TIMEZONE, now: Optional[datetime] = None
) -> datetime:
    """Parse a schedule expression into a UTC instant.

    Raises:
        ScheduleParseError: with message "Invalid date/time format: <reason>"
    """
    result = validate_schedule_time(text, timezone_name, now)
    if not result.ok:
        raise ScheduleParseError(result.reason)
    return result.instant
