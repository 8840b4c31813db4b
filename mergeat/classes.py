from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from mergeat.constants import DEFAULT_TIMEZONE


class MergeState(Enum):
    """Lifecycle of a single merge attempt"""

    PENDING = "PENDING"
    MERGEABLE = "MERGEABLE"
    CONFLICTED = "CONFLICTED"
    MERGED = "MERGED"
    FAILED = "FAILED"


@dataclass
class TimeToken:
    """Time of day as written in a command, before timezone resolution"""

    hour: int
    minute: int
    meridiem: Optional[str] = None  # "AM", "PM" or None for 24-hour input

    @property
    def hour24(self) -> int:
        if self.meridiem is None:
            return self.hour
        if self.meridiem == "PM":
            return self.hour if self.hour == 12 else self.hour + 12
        return 0 if self.hour == 12 else self.hour


@dataclass
class ScheduleCommand:
    """A tokenized `@merge-at` date/time expression"""

    date_part: str
    time_part: TimeToken
    timezone_name: str = DEFAULT_TIMEZONE


@dataclass
class ParseResult:
    """Outcome of validating a schedule expression: an instant or a reason."""

    instant: Optional[datetime] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.instant is not None

    @classmethod
    def success(cls, instant: datetime) -> 'ParseResult':
        return cls(instant=instant)

    @classmethod
    def failure(cls, reason: str) -> 'ParseResult':
        return cls(reason=reason)


@dataclass
class ScheduledMerge:
    """A merge recorded on a PR through the schedule label and marker comment"""

    owner: str
    repo: str
    number: int
    schedule_time: datetime

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def is_due(self, now: datetime) -> bool:
        return self.schedule_time <= now

    def __str__(self) -> str:
        return f"{self.full_name}#{self.number} @ {self.schedule_time.isoformat()}"


@dataclass
class SweepReport:
    """Tally of one sweep over the scheduled PRs"""

    found: int = 0
    merged: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    pending: List[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.merged) + len(self.failed)
