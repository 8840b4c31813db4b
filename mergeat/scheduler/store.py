# Entrius 2025

"""Schedule state kept on the PR itself: the `merge-scheduled` label plus a
marker comment carrying the UTC instant as a hidden JSON payload."""

import json
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from mergeat.classes import ScheduledMerge
from mergeat.constants import (
    CANCEL_COMMAND,
    COMMAND_PREFIX,
    COMMENTS_PER_PAGE,
    SCHEDULE_INFO_TYPE,
    SCHEDULE_LABEL,
    SCHEDULE_MARKER,
    SCHEDULED_PRS_QUERY,
    SEARCH_RESULTS_PER_PAGE,
)
from mergeat.utils.github_api_tools import GitHubAPIError, GitHubClient
from mergeat.utils.utils import parse_iso_timestamp, parse_repository_url, to_iso_z

logger = logging.getLogger(__name__)

MARKER_PATTERN = re.compile(rf'{SCHEDULE_MARKER} (.+) -->')


def build_schedule_comment(schedule_time: datetime, local_time: str, utc_time: str, timezone_name: str) -> str:
    """Render the marker comment posted when a merge is scheduled."""
    schedule_info = {'type': SCHEDULE_INFO_TYPE, 'scheduleDate': to_iso_z(schedule_time)}
    payload = json.dumps(schedule_info, separators=(',', ':'), ensure_ascii=False)

    return (
        f"<!-- {SCHEDULE_MARKER} {payload} -->\n"
        f"\n"
        f"📅 PR merge scheduled for:\n"
        f"• {local_time} {timezone_name}\n"
        f"• {utc_time} UTC\n"
        f"\n"
        f"I'll merge this PR at the scheduled time if it's mergeable.\n"
        f"To cancel, comment: {CANCEL_COMMAND}"
    )


def parse_schedule_marker(body: str) -> datetime:
    """Extract the scheduled instant from a marker comment body.

    Raises:
        ValueError: if the payload is missing, not a JSON object, or carries no valid date.
    """
    match = MARKER_PATTERN.search(body or '')
    if not match:
        raise ValueError("No schedule payload in marker comment")

    schedule_info = json.loads(match.group(1))
    if not isinstance(schedule_info, dict):
        raise ValueError("Schedule payload is not an object")

    try:
        return parse_iso_timestamp(schedule_info.get('scheduleDate'))
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid schedule date: {schedule_info.get('scheduleDate')!r}") from e


def is_marker_comment(comment: Dict[str, Any]) -> bool:
    return SCHEDULE_MARKER in (comment.get('body') or '')


class ScheduleStore:
    """Reads and writes schedule state through the GitHub client."""

    def __init__(self, client: GitHubClient):
        self.client = client

    def create_comment(self, owner: str, repo: str, issue_number: int, body: str) -> Dict[str, Any]:
        try:
            return self.client.create_comment(owner, repo, issue_number, body)
        except Exception as e:
            logger.error(f"Error creating comment on {owner}/{repo}#{issue_number}: {e}")
            raise

    def store(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        schedule_time: datetime,
        local_time: str,
        utc_time: str,
        timezone_name: str,
    ) -> None:
        """Label the PR and post the marker comment for schedule_time."""
        try:
            self.client.add_labels(owner, repo, pr_number, [SCHEDULE_LABEL])
            body = build_schedule_comment(schedule_time, local_time, utc_time, timezone_name)
            self.create_comment(owner, repo, pr_number, body)
            logger.info(f"Stored schedule for {owner}/{repo}#{pr_number}: {to_iso_z(schedule_time)}")
        except Exception as e:
            logger.error(f"Error storing schedule info for {owner}/{repo}#{pr_number}: {e}")
            raise

    def remove(self, owner: str, repo: str, pr_number: int) -> None:
        """Drop the label and every marker comment. Safe to call when nothing is scheduled."""
        try:
            try:
                self.client.remove_label(owner, repo, pr_number, SCHEDULE_LABEL)
            except GitHubAPIError as e:
                if not e.is_not_found:
                    raise

            comments = self.client.list_comments(owner, repo, pr_number, per_page=COMMENTS_PER_PAGE)
            for comment in filter(is_marker_comment, comments):
                self.client.delete_comment(owner, repo, comment['id'])
                logger.debug(f"Deleted schedule comment {comment['id']} on {owner}/{repo}#{pr_number}")
        except Exception as e:
            logger.error(f"Error removing schedule info for {owner}/{repo}#{pr_number}: {e}")
            raise

    def latest_command(self, owner: str, repo: str, pr_number: int) -> Optional[Dict[str, Any]]:
        """Most recent comment mentioning the schedule command, or None."""
        try:
            comments = self.client.list_comments(owner, repo, pr_number, per_page=COMMENTS_PER_PAGE)
        except Exception as e:
            logger.error(f"Error getting latest schedule comment for {owner}/{repo}#{pr_number}: {e}")
            raise

        for comment in reversed(comments):
            if COMMAND_PREFIX in (comment.get('body') or ''):
                return comment
        return None

    def list_due(self) -> List[ScheduledMerge]:
        """
        Find every open PR carrying the schedule label and read its scheduled instant.

        PRs whose repository or marker comment cannot be read are logged and
        skipped. Only a failed search raises.

        Returns:
            List[ScheduledMerge]: scheduled PRs in search order, due or not
        """
        try:
            items = self.client.search_issues(SCHEDULED_PRS_QUERY, per_page=SEARCH_RESULTS_PER_PAGE)
        except Exception as e:
            logger.error(f"Error getting scheduled PRs: {e}")
            raise

        scheduled = []
        for item in items:
            try:
                entry = self._read_scheduled(item)
            except Exception as e:
                logger.error(f"Error processing PR #{item.get('number')}: {e}")
                continue
            if entry is not None:
                scheduled.append(entry)

        return scheduled

    def _read_scheduled(self, item: Dict[str, Any]) -> Optional[ScheduledMerge]:
        """Read one search result into a ScheduledMerge, or None if it carries no usable schedule."""
        number = item.get('number')
        repository_url = item.get('repository_url')

        if not repository_url or not isinstance(repository_url, str):
            logger.error(f"Invalid repository URL for PR #{number}")
            return None

        repository = parse_repository_url(repository_url)
        if repository is None:
            logger.error(f"Malformed repository URL for PR #{number}")
            return None
        owner, repo = repository

        comments = self.client.list_comments(owner, repo, number, per_page=COMMENTS_PER_PAGE)
        marker = next(filter(is_marker_comment, comments), None)
        if marker is None:
            logger.warning(f"PR #{number} in {owner}/{repo} is labeled but has no schedule comment")
            return None

        try:
            schedule_time = parse_schedule_marker(marker['body'])
        except ValueError as e:
            logger.error(f"Error parsing schedule info for PR #{number}: {e}")
            return None

        return ScheduledMerge(owner=owner, repo=repo, number=number, schedule_time=schedule_time)
