# The MIT License (MIT)
# Copyright © 2025 Entrius

"""Shared fixtures for mergeat tests."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from mergeat.utils.github_api_tools import GitHubAPIError, GitHubClient

FIXED_NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
REPOSITORY_URL = 'https://api.github.com/repos/owner/repo'


def marker_body(schedule_date: str = '2024-01-01T12:00:00.000Z') -> str:
    """A schedule marker comment body as posted by the store."""
    return (
        f'<!-- MERGE_SCHEDULE_INFO {{"type":"merge-schedule-info","scheduleDate":"{schedule_date}"}} -->\n\n'
        '📅 PR merge scheduled for:'
    )


def not_found() -> GitHubAPIError:
    return GitHubAPIError('Not Found', 404)


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def clock():
    """Clock callable pinned to 2024-01-01T12:00:00Z."""
    return lambda: FIXED_NOW


@pytest.fixture
def mock_client():
    """GitHubClient mock with empty, successful defaults."""
    client = MagicMock(spec=GitHubClient)
    client.list_comments.return_value = []
    client.search_issues.return_value = []
    client.get_collaborator_permission.return_value = 'write'
    client.get_comment.return_value = {'id': 99, 'user': {'login': 'maintainer'}}
    client.get_pull_request.return_value = {'number': 123, 'mergeable': True, 'mergeable_state': 'clean'}
    client.merge_pull_request.return_value = {'merged': True}
    return client


def posted_bodies(client) -> list:
    """Bodies of every comment created through the mock client."""
    return [c.args[3] for c in client.create_comment.call_args_list]
