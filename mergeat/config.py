import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from mergeat.constants import BASE_GITHUB_API_URL, DEFAULT_REQUEST_TIMEOUT

logger = logging.getLogger(__name__)

DEFAULT_LOG_LEVEL = 'INFO'
DEFAULT_EVENTS_RETENTION_SIZE = 5 * 1024 * 1024  # 5 MB per events.log file


@dataclass
class Settings:
    """Runtime settings, resolved from the environment."""

    github_token: Optional[str] = None
    api_url: str = BASE_GITHUB_API_URL
    request_timeout: int = DEFAULT_REQUEST_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL
    events_log_dir: Optional[str] = None
    events_retention_size: int = DEFAULT_EVENTS_RETENTION_SIZE


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == '':
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={value!r}, using {default}")
        return default


def load_settings(dotenv_path: Optional[str] = None) -> Settings:
    """Load settings from the environment, after reading a `.env` file if present."""
    load_dotenv(dotenv_path)

    return Settings(
        github_token=os.getenv('MERGEAT_GITHUB_TOKEN') or os.getenv('GITHUB_TOKEN'),
        api_url=os.getenv('MERGEAT_API_URL') or os.getenv('GITHUB_API_URL') or BASE_GITHUB_API_URL,
        request_timeout=_int_env('MERGEAT_REQUEST_TIMEOUT', DEFAULT_REQUEST_TIMEOUT),
        log_level=os.getenv('MERGEAT_LOG_LEVEL', DEFAULT_LOG_LEVEL),
        events_log_dir=os.getenv('MERGEAT_EVENTS_LOG_DIR') or None,
        events_retention_size=_int_env('MERGEAT_EVENTS_RETENTION_SIZE', DEFAULT_EVENTS_RETENTION_SIZE),
    )


def load_event_payload(event_path: Optional[str] = None) -> Dict[str, Any]:
    """Read the GitHub Actions webhook payload (GITHUB_EVENT_PATH). Returns {} when unavailable."""
    path = event_path or os.getenv('GITHUB_EVENT_PATH')
    if not path or not os.path.exists(path):
        return {}
    try:
        with open(path, 'r') as f:
            return json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Could not read event payload from {path}: {e}")
        return {}


def comment_id_from_event(payload: Dict[str, Any]) -> Optional[int]:
    comment = payload.get('comment') or {}
    comment_id = comment.get('id')
    return int(comment_id) if comment_id is not None else None
