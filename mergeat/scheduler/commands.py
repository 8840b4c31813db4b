# Entrius 2025

"""Handling of `@merge-at` PR comments."""

import logging
import re
from datetime import datetime
from typing import Callable, Optional, Tuple
from zoneinfo import ZoneInfo

from mergeat.constants import (
    CANCEL_COMMAND,
    DEFAULT_TIMEZONE,
    LOCAL_TIME_FORMAT,
    MSG_CANCELLED,
    MSG_GENERIC_ERROR,
    MSG_INVALID_COMMAND,
    MSG_NO_PERMISSION,
    UTC_TIME_FORMAT,
    WRITE_PERMISSIONS,
)
from mergeat.scheduler.store import ScheduleStore
from mergeat.scheduler.time_parser import parse_schedule_time
from mergeat.utils.github_api_tools import GitHubClient
from mergeat.utils.logging import log_event
from mergeat.utils.utils import parse_repository, utc_now

logger = logging.getLogger(__name__)

COMMAND_PATTERN = re.compile(r'@merge-at\s+(\d{4}-\d{2}-\d{2}\s+\d{1,2}:\d{2}(?:\s*(?i:AM|PM)(?![\w/]))?)\s*([\w/]+)?')


def parse_command(comment_body: str) -> Optional[Tuple[str, str]]:
    """Return (date_time_text, timezone_name) for a schedule command, or None if the body has none."""
    match = COMMAND_PATTERN.search(comment_body)
    if not match:
        return None
    return match.group(1), match.group(2) or DEFAULT_TIMEZONE


def format_schedule_times(schedule_time: datetime, timezone_name: str) -> Tuple[str, str]:
    """Local and UTC display strings for a confirmation comment."""
    local_time = schedule_time.astimezone(ZoneInfo(timezone_name)).strftime(LOCAL_TIME_FORMAT)
    utc_time = schedule_time.strftime(UTC_TIME_FORMAT)
    return local_time, utc_time


class CommandHandler:
    """Authorizes the comment author and applies a schedule or cancel command.

    Every outcome, including failures, is reported back as a PR comment;
    handle() does not raise.
    """

    def __init__(
        self,
        client: GitHubClient,
        store: Optional[ScheduleStore] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.client = client
        self.store = store or ScheduleStore(client)
        self.clock = clock

    def has_write_permission(self, owner: str, repo: str, username: str) -> bool:
        """Users need admin or write permission to schedule merges."""
        try:
            permission = self.client.get_collaborator_permission(owner, repo, username)
        except Exception as e:
            logger.warning(f"Could not get permission of {username} on {owner}/{repo}: {e}")
            return False
        return permission in WRITE_PERMISSIONS

    def handle(self, repository: str, pr_number: int, comment_body: str, comment_id: int) -> None:
        try:
            owner, repo = parse_repository(repository)
        except ValueError as e:
            logger.error(f"Cannot handle comment on PR #{pr_number}: {e}")
            return

        try:
            comment = self.client.get_comment(owner, repo, comment_id)
            author = comment['user']['login']

            if not self.has_write_permission(owner, repo, author):
                logger.info(f"Rejected command from {author} on {repository}#{pr_number}: no write permission")
                log_event('rejected', repository, pr_number, f'author={author}')
                self.store.create_comment(owner, repo, pr_number, MSG_NO_PERMISSION)
                return

            if CANCEL_COMMAND in comment_body:
                self.store.remove(owner, repo, pr_number)
                self.store.create_comment(owner, repo, pr_number, MSG_CANCELLED)
                logger.info(f"Cancelled scheduled merge for {repository}#{pr_number}")
                log_event('cancelled', repository, pr_number, f'author={author}')
                return

            command = parse_command(comment_body)
            if command is None:
                self.store.create_comment(owner, repo, pr_number, MSG_INVALID_COMMAND)
                return

            self._schedule(owner, repo, pr_number, *command)

        except Exception as e:
            logger.error(f"Error handling comment on {repository}#{pr_number}: {e}")
            try:
                self.store.create_comment(owner, repo, pr_number, MSG_GENERIC_ERROR)
            except Exception as post_error:
                logger.error(f"Could not report error on {repository}#{pr_number}: {post_error}")

    def _schedule(self, owner: str, repo: str, pr_number: int, date_time_text: str, timezone_name: str) -> None:
        try:
            schedule_time = parse_schedule_time(date_time_text, timezone_name, now=self.clock())
            local_time, utc_time = format_schedule_times(schedule_time, timezone_name)

            # At most one schedule per PR
            self.store.remove(owner, repo, pr_number)
            self.store.store(owner, repo, pr_number, schedule_time, local_time, utc_time, timezone_name)
        except Exception as e:
            logger.info(f"Could not schedule {owner}/{repo}#{pr_number}: {e}")
            self.store.create_comment(owner, repo, pr_number, f"❌ {e}")
            return

        logger.info(f"Scheduled merge of {owner}/{repo}#{pr_number} for {utc_time} UTC")
        log_event('scheduled', f"{owner}/{repo}", pr_number, f'{utc_time} UTC ({timezone_name})')


def handle_comment(token: str, repository: str, pr_number: int, comment_body: str, comment_id: int) -> None:
    """Process one `@merge-at` comment using a client built from token."""
    CommandHandler(GitHubClient(token)).handle(repository, pr_number, comment_body, comment_id)
