# Entrius 2025
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import requests

from mergeat.constants import (
    BASE_GITHUB_API_URL,
    COMMENTS_PER_PAGE,
    DEFAULT_REQUEST_TIMEOUT,
    MERGE_METHOD,
    SEARCH_RESULTS_PER_PAGE,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Rate Limit Configuration
# =============================================================================
RATE_LIMIT_MIN_REMAINING = 10  # Remaining requests at which a warning is logged


class GitHubAPIError(Exception):
    """A failed GitHub API call.

    status_code is the HTTP status of the response, or None when the request
    never got a response (connection error, timeout).
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


@dataclass
class RateLimitInfo:
    """Represents GitHub API rate limit information extracted from response headers."""

    limit: int  # Maximum requests allowed per hour
    remaining: int  # Requests remaining in current window
    reset_timestamp: int  # Unix timestamp when the rate limit resets
    used: int  # Requests used in current window

    @property
    def is_exceeded(self) -> bool:
        """Check if rate limit has been exceeded."""
        return self.remaining == 0

    @property
    def seconds_until_reset(self) -> int:
        """Calculate seconds until rate limit resets."""
        current_time = int(time.time())
        return max(0, self.reset_timestamp - current_time)

    def __str__(self) -> str:
        return f"RateLimit(remaining={self.remaining}/{self.limit}, resets_in={self.seconds_until_reset}s)"


def parse_rate_limit_headers(response: requests.Response) -> Optional[RateLimitInfo]:
    """
    Parse GitHub API rate limit information from response headers.

    Args:
        response: The HTTP response from GitHub API

    Returns:
        RateLimitInfo object if headers are present, None otherwise
    """
    headers = response.headers

    try:
        limit = int(headers.get('X-RateLimit-Limit', 0))
        remaining = int(headers.get('X-RateLimit-Remaining', 0))
        reset_timestamp = int(headers.get('X-RateLimit-Reset', 0))
        used = int(headers.get('X-RateLimit-Used', 0))

        if limit == 0 and reset_timestamp == 0:
            return None

        return RateLimitInfo(limit=limit, remaining=remaining, reset_timestamp=reset_timestamp, used=used)
    except (ValueError, TypeError) as e:
        logger.debug(f"Could not parse rate limit headers: {e}")
        return None


def is_rate_limited(response: requests.Response) -> Tuple[bool, Optional[int]]:
    """
    Check if a response indicates rate limiting and how long until the window resets.

    Args:
        response: The HTTP response from GitHub API

    Returns:
        Tuple of (is_rate_limited, seconds_until_reset)
    """
    if response.status_code not in (403, 429):
        return (False, None)

    rate_limit_info = parse_rate_limit_headers(response)
    if rate_limit_info and rate_limit_info.is_exceeded:
        return (True, rate_limit_info.seconds_until_reset)

    if 'rate limit' in response.text.lower():
        retry_after = response.headers.get('Retry-After')
        if retry_after:
            try:
                return (True, int(retry_after))
            except ValueError:
                pass
        return (True, None)

    return (False, None)


def check_preemptive_rate_limit(response: requests.Response) -> None:
    """
    Check if we're approaching rate limit and log a warning.

    Args:
        response: The HTTP response from GitHub API
    """
    rate_limit_info = parse_rate_limit_headers(response)

    if rate_limit_info:
        if rate_limit_info.remaining <= RATE_LIMIT_MIN_REMAINING:
            logger.warning(
                f"Approaching GitHub API rate limit: {rate_limit_info.remaining} requests remaining, "
                f"resets in {rate_limit_info.seconds_until_reset}s"
            )
        elif rate_limit_info.remaining <= rate_limit_info.limit * 0.1:
            logger.info(f"GitHub API rate limit status: {rate_limit_info.remaining}/{rate_limit_info.limit} remaining")


def make_headers(token: str) -> Dict[str, str]:
    """Build standard GitHub HTTP headers for a PAT.

    Args:
        token (str): Github pat
    Returns:
        Dict[str, str]: Mapping of HTTP header names to values.
    """
    return {
        "Authorization": f"token {token}",
        "Accept": "application/vnd.github.v3+json",
    }


def _error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get('message'):
        return str(payload['message'])
    return f"GitHub API request failed with status {response.status_code}"


class GitHubClient:
    """Thin GitHub REST client covering the issue, label, search and pull
    request calls the scheduler needs.

    Every call either returns the decoded JSON body or raises GitHubAPIError.
    There is no retry; a failed call is retried by the next invocation.
    """

    def __init__(self, token: str, api_url: str = BASE_GITHUB_API_URL, timeout: int = DEFAULT_REQUEST_TIMEOUT):
        self.token = token
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.api_url}{path}"
        try:
            response = requests.request(method, url, headers=make_headers(self.token), timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.warning(f"GitHub {method} {path} connection error: {e}")
            raise GitHubAPIError(f"Could not reach GitHub: {e}") from e

        rate_limited, wait_seconds = is_rate_limited(response)
        if rate_limited:
            wait_str = f", resets in {wait_seconds}s" if wait_seconds is not None else ""
            logger.error(f"GitHub API rate limit exceeded for {method} {path}{wait_str}")
            raise GitHubAPIError(f"GitHub API rate limit exceeded{wait_str}", response.status_code)

        if response.status_code >= 400:
            message = _error_message(response)
            logger.debug(f"GitHub {method} {path} failed with status {response.status_code}: {message}")
            raise GitHubAPIError(message, response.status_code)

        check_preemptive_rate_limit(response)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def get_comment(self, owner: str, repo: str, comment_id: int) -> Dict[str, Any]:
        return self._request('GET', f"/repos/{owner}/{repo}/issues/comments/{comment_id}")

    def list_comments(
        self, owner: str, repo: str, issue_number: int, per_page: int = COMMENTS_PER_PAGE
    ) -> List[Dict[str, Any]]:
        """List comments on an issue or PR, oldest first (a single page)."""
        return self._request(
            'GET', f"/repos/{owner}/{repo}/issues/{issue_number}/comments", params={'per_page': per_page}
        ) or []

    def create_comment(self, owner: str, repo: str, issue_number: int, body: str) -> Dict[str, Any]:
        return self._request('POST', f"/repos/{owner}/{repo}/issues/{issue_number}/comments", json={'body': body})

    def delete_comment(self, owner: str, repo: str, comment_id: int) -> None:
        self._request('DELETE', f"/repos/{owner}/{repo}/issues/comments/{comment_id}")

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------

    def add_labels(self, owner: str, repo: str, issue_number: int, labels: List[str]) -> List[Dict[str, Any]]:
        return self._request('POST', f"/repos/{owner}/{repo}/issues/{issue_number}/labels", json={'labels': labels})

    def remove_label(self, owner: str, repo: str, issue_number: int, name: str) -> None:
        """Remove a label; raises GitHubAPIError with status 404 when the label is not on the issue."""
        self._request('DELETE', f"/repos/{owner}/{repo}/issues/{issue_number}/labels/{quote(name, safe='')}")

    # ------------------------------------------------------------------
    # Collaborators & search
    # ------------------------------------------------------------------

    def get_collaborator_permission(self, owner: str, repo: str, username: str) -> str:
        """Return the collaborator role string ('admin', 'write', 'read', 'none', ...)."""
        data = self._request('GET', f"/repos/{owner}/{repo}/collaborators/{username}/permission")
        return (data or {}).get('permission', 'none')

    def search_issues(self, query: str, per_page: int = SEARCH_RESULTS_PER_PAGE) -> List[Dict[str, Any]]:
        data = self._request('GET', "/search/issues", params={'q': query, 'per_page': per_page})
        return (data or {}).get('items', [])

    # ------------------------------------------------------------------
    # Pull requests
    # ------------------------------------------------------------------

    def get_pull_request(self, owner: str, repo: str, pr_number: int) -> Dict[str, Any]:
        return self._request('GET', f"/repos/{owner}/{repo}/pulls/{pr_number}")

    def merge_pull_request(
        self, owner: str, repo: str, pr_number: int, merge_method: str = MERGE_METHOD
    ) -> Dict[str, Any]:
        """Merge a PR. GitHub answers 405 when the PR cannot be merged and 404 when it is not visible."""
        return self._request(
            'PUT', f"/repos/{owner}/{repo}/pulls/{pr_number}/merge", json={'merge_method': merge_method}
        )
