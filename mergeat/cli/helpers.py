# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Shared helper functions for CLI commands
"""

from datetime import datetime
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from mergeat.classes import ScheduledMerge, SweepReport
from mergeat.config import Settings
from mergeat.constants import SECONDS_PER_MINUTE
from mergeat.utils.github_api_tools import GitHubClient
from mergeat.utils.utils import parse_repository

console = Console()


def print_success(message: str) -> None:
    """Print a standardized success message."""
    console.print(f'\n  [green]✓[/green] {message}\n')


def print_error(message: str) -> None:
    """Print a standardized error message."""
    console.print(f'\n  [red]✗[/red] {message}\n')


def require_token(token: Optional[str]) -> str:
    if not token:
        raise click.ClickException('Missing GitHub token (pass --token or set GITHUB_TOKEN)')
    return token


def build_client(settings: Settings, token: Optional[str]) -> GitHubClient:
    return GitHubClient(require_token(token), api_url=settings.api_url, timeout=settings.request_timeout)


def validate_repository(repository: str) -> Tuple[str, str]:
    """Validate an 'owner/repo' argument. Raises click.BadParameter if invalid."""
    try:
        return parse_repository(repository)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--repository')


def format_wait(schedule_time: datetime, now: datetime) -> str:
    minutes = round((schedule_time - now).total_seconds() / SECONDS_PER_MINUTE)
    if minutes <= 0:
        return '[yellow]due[/yellow]'
    if minutes < 60:
        return f'in {minutes}m'
    hours, minutes = divmod(minutes, 60)
    if hours < 24:
        return f'in {hours}h {minutes}m'
    days, hours = divmod(hours, 24)
    return f'in {days}d {hours}h'


def build_schedule_table(scheduled: List[ScheduledMerge], now: datetime) -> Table:
    """Build a Rich table of scheduled merges."""
    table = Table(show_header=True, header_style='bold magenta')
    table.add_column('Repository', style='cyan')
    table.add_column('PR', justify='right')
    table.add_column('Scheduled (UTC)', style='green')
    table.add_column('Status')

    for item in scheduled:
        table.add_row(
            item.full_name,
            f'#{item.number}',
            item.schedule_time.strftime('%Y-%m-%d %H:%M'),
            format_wait(item.schedule_time, now),
        )
    return table


def print_sweep_report(report: SweepReport) -> None:
    console.print(
        f'[bold]Scheduled PRs:[/bold] {report.found}  '
        f'[green]merged:[/green] {len(report.merged)}  '
        f'[red]failed:[/red] {len(report.failed)}  '
        f'[dim]pending:[/dim] {len(report.pending)}'
    )
    for name in report.merged:
        console.print(f'  [green]✓[/green] {name}')
    for name in report.failed:
        console.print(f'  [red]✗[/red] {name}')
