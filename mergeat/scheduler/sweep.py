# Entrius 2025

"""Timer-driven sweep over scheduled PRs and the merge attempt for each due one."""

import logging
from datetime import datetime
from typing import Callable, Optional

from mergeat.classes import MergeState, ScheduledMerge, SweepReport
from mergeat.constants import (
    MERGE_CONFLICTED,
    MERGE_FAILED_PREFIX,
    MERGE_METHOD,
    MERGE_NOT_ALLOWED,
    MERGE_NOT_FOUND,
    MERGE_UNEXPECTED,
    MSG_MERGED,
    SECONDS_PER_MINUTE,
)
from mergeat.scheduler.store import ScheduleStore
from mergeat.utils.github_api_tools import GitHubAPIError, GitHubClient
from mergeat.utils.logging import log_event
from mergeat.utils.utils import utc_now

logger = logging.getLogger(__name__)


class MergeError(Exception):
    """A merge attempt that ended without merging. The message has already been posted to the PR."""

    def __init__(self, message: str, state: MergeState = MergeState.FAILED):
        super().__init__(message)
        self.message = message
        self.state = state


def classify_merge_failure(error: GitHubAPIError) -> str:
    """Map a failed merge call to the message posted on the PR."""
    if error.status_code == 405:
        reason = MERGE_NOT_ALLOWED
    elif error.status_code == 404:
        reason = MERGE_NOT_FOUND
    else:
        reason = error.message or MERGE_UNEXPECTED
    return f"{MERGE_FAILED_PREFIX}{reason}"


class MergeSweeper:
    """Merges every scheduled PR whose time has come.

    A failed merge leaves the label and marker comment in place, so the PR is
    picked up again by the next sweep.
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

    def _fail(self, owner: str, repo: str, pr_number: int, message: str, state: MergeState) -> MergeError:
        logger.error(f"Merge failed for {owner}/{repo}#{pr_number}: {message}")
        self.store.create_comment(owner, repo, pr_number, f"❌ {message}")
        log_event('failed', f"{owner}/{repo}", pr_number, message)
        return MergeError(message, state)

    def check_mergeable(self, owner: str, repo: str, pr_number: int) -> MergeState:
        """Fetch the PR and decide whether it can be merged now.

        Raises:
            MergeError: if the PR cannot be fetched or is not mergeable
        """
        logger.info(f"Checking mergeability for PR #{pr_number}")
        try:
            pr = self.client.get_pull_request(owner, repo, pr_number)
        except GitHubAPIError as e:
            if e.is_not_found:
                raise self._fail(owner, repo, pr_number, f"{MERGE_FAILED_PREFIX}{MERGE_NOT_FOUND}", MergeState.FAILED)
            raise self._fail(owner, repo, pr_number, f"{MERGE_FAILED_PREFIX}{e.message}", MergeState.FAILED)

        logger.debug(f"PR Status - Mergeable: {pr.get('mergeable')}, State: {pr.get('mergeable_state')}")
        if not pr.get('mergeable'):
            raise self._fail(owner, repo, pr_number, f"{MERGE_FAILED_PREFIX}{MERGE_CONFLICTED}", MergeState.CONFLICTED)
        return MergeState.MERGEABLE

    def attempt_merge(self, owner: str, repo: str, pr_number: int) -> MergeState:
        """
        Squash-merge one PR and clear its schedule.

        Returns:
            MergeState.MERGED on success

        Raises:
            MergeError: if the PR was not merged (already reported on the PR)
        """
        self.check_mergeable(owner, repo, pr_number)

        logger.info(f"Attempting to merge PR #{pr_number}")
        try:
            self.client.merge_pull_request(owner, repo, pr_number, merge_method=MERGE_METHOD)
        except GitHubAPIError as e:
            raise self._fail(owner, repo, pr_number, classify_merge_failure(e), MergeState.FAILED)

        logger.info(f"Successfully merged PR #{pr_number}")
        self.store.create_comment(owner, repo, pr_number, MSG_MERGED)
        log_event('merged', f"{owner}/{repo}", pr_number)

        self.store.remove(owner, repo, pr_number)
        logger.info(f"Cleaned up schedule info for PR #{pr_number}")
        return MergeState.MERGED

    def _process(self, scheduled: ScheduledMerge, now: datetime, report: SweepReport) -> None:
        logger.info(f"Processing PR #{scheduled.number} in {scheduled.full_name}")
        logger.info(f"→ Scheduled for: {scheduled.schedule_time.isoformat()}")

        if not scheduled.is_due(now):
            waiting = round((scheduled.schedule_time - now).total_seconds() / SECONDS_PER_MINUTE)
            logger.info(f"PR #{scheduled.number} is scheduled for future execution")
            logger.info(f"→ Waiting time: {waiting} minutes")
            report.pending.append(str(scheduled))
            return

        logger.info(f"Time to merge PR #{scheduled.number}")
        try:
            self.attempt_merge(scheduled.owner, scheduled.repo, scheduled.number)
            report.merged.append(str(scheduled))
        except Exception as e:
            logger.error(f"Failed to merge PR #{scheduled.number} in {scheduled.full_name}: {e}")
            report.failed.append(str(scheduled))

    def sweep(self) -> SweepReport:
        """Attempt every due scheduled merge once.

        Raises:
            Exception: only when the scheduled PRs cannot be listed at all
        """
        try:
            scheduled_prs = self.store.list_due()
        except Exception as e:
            logger.error(f"Failed to process scheduled merges: {e}")
            raise

        now = self.clock()
        logger.info(f"Found {len(scheduled_prs)} scheduled PRs")
        logger.info(f"Current time: {now.isoformat()}")

        report = SweepReport(found=len(scheduled_prs))
        for scheduled in scheduled_prs:
            self._process(scheduled, now, report)

        logger.info(
            f"Completed processing scheduled merges: {len(report.merged)} merged, "
            f"{len(report.failed)} failed, {len(report.pending)} pending"
        )
        return report


def process_scheduled_merges(token: str) -> SweepReport:
    """Run one sweep using a client built from token."""
    return MergeSweeper(GitHubClient(token)).sweep()
