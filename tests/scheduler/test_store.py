#!/usr/bin/env python3
# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Unit tests for ScheduleStore: label + marker comment persistence and
discovery of scheduled PRs.
"""

import json
from datetime import datetime, timezone

import pytest

from mergeat.scheduler.store import ScheduleStore, build_schedule_comment, parse_schedule_marker
from mergeat.utils.github_api_tools import GitHubAPIError
from tests.conftest import REPOSITORY_URL, marker_body, not_found

SCHEDULE_TIME = datetime(2024, 1, 2, 19, 30, tzinfo=timezone.utc)


@pytest.fixture
def store(mock_client):
    return ScheduleStore(mock_client)


def scheduled_item(number: int = 123, repository_url: str = REPOSITORY_URL) -> dict:
    return {'number': number, 'repository_url': repository_url}


# ============================================================================
# Marker comment format
# ============================================================================


class TestMarkerComment:
    def test_exact_comment_format(self):
        body = build_schedule_comment(SCHEDULE_TIME, '2024-01-02 02:30 PM', '2024-01-02 19:30', 'America/New_York')

        assert body == (
            '<!-- MERGE_SCHEDULE_INFO {"type":"merge-schedule-info","scheduleDate":"2024-01-02T19:30:00.000Z"} -->\n'
            '\n'
            '📅 PR merge scheduled for:\n'
            '• 2024-01-02 02:30 PM America/New_York\n'
            '• 2024-01-02 19:30 UTC\n'
            '\n'
            "I'll merge this PR at the scheduled time if it's mergeable.\n"
            'To cancel, comment: @merge-at cancel'
        )

    def test_marker_payload_reads_back(self):
        body = build_schedule_comment(SCHEDULE_TIME, 'local', 'utc', 'UTC')
        assert parse_schedule_marker(body) == SCHEDULE_TIME

    def test_reads_marker_without_milliseconds(self):
        assert parse_schedule_marker(marker_body('2024-01-02T19:30:00Z')) == SCHEDULE_TIME

    @pytest.mark.parametrize(
        'body',
        [
            '<!-- MERGE_SCHEDULE_INFO -->',
            '<!-- MERGE_SCHEDULE_INFO invalid-json -->',
            '<!-- MERGE_SCHEDULE_INFO ["2024-01-02T19:30:00Z"] -->',
            '<!-- MERGE_SCHEDULE_INFO {"type":"merge-schedule-info"} -->',
            marker_body('invalid-date'),
        ],
    )
    def test_rejects_bad_markers(self, body):
        with pytest.raises(ValueError):
            parse_schedule_marker(body)


# ============================================================================
# store / remove
# ============================================================================


class TestStore:
    def test_adds_label_and_posts_marker(self, store, mock_client):
        store.store('owner', 'repo', 123, SCHEDULE_TIME, '2024-01-02 02:30 PM', '2024-01-02 19:30', 'America/New_York')

        mock_client.add_labels.assert_called_once_with('owner', 'repo', 123, ['merge-scheduled'])
        owner, repo, number, body = mock_client.create_comment.call_args.args
        assert (owner, repo, number) == ('owner', 'repo', 123)
        assert 'MERGE_SCHEDULE_INFO' in body
        assert '"scheduleDate":"2024-01-02T19:30:00.000Z"' in body

    def test_label_failure_propagates(self, store, mock_client):
        mock_client.add_labels.side_effect = GitHubAPIError('API Error', 500)

        with pytest.raises(GitHubAPIError, match='API Error'):
            store.store('owner', 'repo', 123, SCHEDULE_TIME, 'local', 'utc', 'UTC')
        mock_client.create_comment.assert_not_called()


class TestRemove:
    def test_removes_label_and_marker_comments(self, store, mock_client):
        mock_client.list_comments.return_value = [
            {'id': 1, 'body': 'regular comment'},
            {'id': 456, 'body': '<!-- MERGE_SCHEDULE_INFO {} -->'},
            {'id': 789, 'body': marker_body()},
        ]

        store.remove('owner', 'repo', 123)

        mock_client.remove_label.assert_called_once_with('owner', 'repo', 123, 'merge-scheduled')
        deleted = [c.args[2] for c in mock_client.delete_comment.call_args_list]
        assert deleted == [456, 789]

    def test_missing_label_is_ignored(self, store, mock_client):
        mock_client.remove_label.side_effect = not_found()

        store.remove('owner', 'repo', 123)

        mock_client.list_comments.assert_called_once()

    def test_other_label_errors_propagate(self, store, mock_client):
        mock_client.remove_label.side_effect = GitHubAPIError('API Error', 500)

        with pytest.raises(GitHubAPIError, match='API Error'):
            store.remove('owner', 'repo', 123)
        mock_client.list_comments.assert_not_called()

    def test_cancelling_twice_is_idempotent(self, store, mock_client):
        """Second removal finds no label and no marker and still succeeds."""
        comments = [{'id': 456, 'body': marker_body()}]
        mock_client.list_comments.side_effect = lambda *args, **kwargs: list(comments)
        mock_client.delete_comment.side_effect = lambda owner, repo, comment_id: comments.clear()
        mock_client.remove_label.side_effect = [None, not_found()]

        store.remove('owner', 'repo', 123)
        store.remove('owner', 'repo', 123)

        assert comments == []
        assert mock_client.delete_comment.call_count == 1


class TestAtMostOneSchedule:
    def test_replacing_a_schedule_leaves_one_marker_and_one_label(self, store, mock_client):
        """Remove-then-store over an existing schedule leaves exactly one marker and one label."""
        labels = set()
        comments = [{'id': 1, 'body': marker_body('2024-01-05T10:00:00.000Z')}]

        def add_labels(owner, repo, number, names):
            labels.update(names)

        def remove_label(owner, repo, number, name):
            if name not in labels:
                raise not_found()
            labels.discard(name)

        def create_comment(owner, repo, number, body):
            comments.append({'id': len(comments) + 100, 'body': body})

        def delete_comment(owner, repo, comment_id):
            comments[:] = [c for c in comments if c['id'] != comment_id]

        labels.add('merge-scheduled')
        mock_client.add_labels.side_effect = add_labels
        mock_client.remove_label.side_effect = remove_label
        mock_client.create_comment.side_effect = create_comment
        mock_client.delete_comment.side_effect = delete_comment
        mock_client.list_comments.side_effect = lambda *args, **kwargs: list(comments)

        store.remove('owner', 'repo', 123)
        store.store('owner', 'repo', 123, SCHEDULE_TIME, 'local', 'utc', 'UTC')

        markers = [c for c in comments if 'MERGE_SCHEDULE_INFO' in c['body']]
        assert len(markers) == 1
        assert parse_schedule_marker(markers[0]['body']) == SCHEDULE_TIME
        assert labels == {'merge-scheduled'}


# ============================================================================
# latest_command
# ============================================================================


class TestLatestCommand:
    def test_finds_most_recent_command(self, store, mock_client):
        mock_client.list_comments.return_value = [
            {'body': '@merge-at 2024-01-01 10:00'},
            {'body': '@merge-at 2024-01-01 12:00'},
            {'body': 'another comment'},
        ]

        assert store.latest_command('owner', 'repo', 123)['body'] == '@merge-at 2024-01-01 12:00'

    def test_none_without_commands(self, store, mock_client):
        mock_client.list_comments.return_value = [{'body': 'regular comment'}, {'body': None}]

        assert store.latest_command('owner', 'repo', 123) is None

    def test_api_error_propagates(self, store, mock_client):
        mock_client.list_comments.side_effect = GitHubAPIError('API Error', 500)

        with pytest.raises(GitHubAPIError):
            store.latest_command('owner', 'repo', 123)


# ============================================================================
# list_due
# ============================================================================


class TestListDue:
    def test_reads_scheduled_pr(self, store, mock_client):
        mock_client.search_issues.return_value = [scheduled_item()]
        mock_client.list_comments.return_value = [{'id': 1, 'body': marker_body('2024-01-01T12:00:00.000Z')}]

        result = store.list_due()

        mock_client.search_issues.assert_called_once_with('is:pr is:open label:merge-scheduled', per_page=100)
        assert len(result) == 1
        assert (result[0].owner, result[0].repo, result[0].number) == ('owner', 'repo', 123)
        assert result[0].schedule_time == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_multiple_prs_in_order(self, store, mock_client):
        mock_client.search_issues.return_value = [scheduled_item(123), scheduled_item(124)]
        mock_client.list_comments.return_value = [{'id': 1, 'body': marker_body()}]

        assert [pr.number for pr in store.list_due()] == [123, 124]

    def test_empty_search(self, store, mock_client):
        assert store.list_due() == []

    def test_search_error_propagates(self, store, mock_client):
        mock_client.search_issues.side_effect = GitHubAPIError('Search API Error', 500)

        with pytest.raises(GitHubAPIError, match='Search API Error'):
            store.list_due()

    @pytest.mark.parametrize(
        'item',
        [
            {'number': 123},
            {'number': 123, 'repository_url': None},
            {'number': 123, 'repository_url': 42},
            {'number': 123, 'repository_url': 'invalid-url'},
            {'number': 123, 'repository_url': 'invalid'},
        ],
    )
    def test_skips_missing_or_malformed_repository(self, store, mock_client, item):
        mock_client.search_issues.return_value = [item]

        assert store.list_due() == []
        mock_client.list_comments.assert_not_called()

    @pytest.mark.parametrize(
        'body',
        [
            'regular comment',
            '<!-- MERGE_SCHEDULE_INFO -->',
            '<!-- MERGE_SCHEDULE_INFO invalid-json -->',
            marker_body('invalid-date'),
        ],
    )
    def test_skips_unreadable_markers(self, store, mock_client, body):
        mock_client.search_issues.return_value = [scheduled_item()]
        mock_client.list_comments.return_value = [{'id': 1, 'body': body}]

        assert store.list_due() == []

    def test_comment_failure_skips_only_that_pr(self, store, mock_client):
        mock_client.search_issues.return_value = [scheduled_item(123), scheduled_item(124)]
        mock_client.list_comments.side_effect = [
            GitHubAPIError('Comments API Error', 502),
            [{'id': 1, 'body': marker_body()}],
        ]

        result = store.list_due()

        assert [pr.number for pr in result] == [124]

    def test_bad_pr_does_not_hide_good_ones(self, store, mock_client):
        mock_client.search_issues.return_value = [
            {'number': 1},
            scheduled_item(2),
            scheduled_item(3),
        ]
        mock_client.list_comments.side_effect = [
            [{'id': 1, 'body': '<!-- MERGE_SCHEDULE_INFO {not json} -->'}],
            [{'id': 2, 'body': marker_body('2024-01-03T08:00:00.000Z')}],
        ]

        result = store.list_due()

        assert [pr.number for pr in result] == [3]
        assert result[0].schedule_time == datetime(2024, 1, 3, 8, 0, tzinfo=timezone.utc)

    def test_out_of_range_date_skips_only_that_pr(self, store, mock_client):
        """A marker date with no UTC equivalent is skipped like any unreadable date."""
        mock_client.search_issues.return_value = [scheduled_item(1), scheduled_item(2)]
        mock_client.list_comments.side_effect = [
            [{'id': 1, 'body': marker_body('0001-01-01T00:00:00+01:00')}],
            [{'id': 2, 'body': marker_body('2024-01-03T08:00:00.000Z')}],
        ]

        assert [pr.number for pr in store.list_due()] == [2]

    def test_unexpected_error_skips_only_that_pr(self, store, mock_client):
        mock_client.search_issues.return_value = [scheduled_item(1), scheduled_item(2)]
        mock_client.list_comments.side_effect = [
            [{'id': 1, 'body': 42}],
            [{'id': 2, 'body': marker_body()}],
        ]

        assert [pr.number for pr in store.list_due()] == [2]

    def test_payload_is_compact_json(self):
        body = build_schedule_comment(SCHEDULE_TIME, 'local', 'utc', 'UTC')
        payload = body.split('MERGE_SCHEDULE_INFO ', 1)[1].split(' -->', 1)[0]
        assert json.loads(payload) == {'type': 'merge-schedule-info', 'scheduleDate': '2024-01-02T19:30:00.000Z'}
        assert ' ' not in payload
