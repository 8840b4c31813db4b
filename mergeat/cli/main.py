# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
mergeat CLI - Main entry point

Usage:
    merge-at comment ...     - Handle one @merge-at PR comment
    merge-at scheduler       - Merge every scheduled PR that is due
    merge-at run --mode ...  - GitHub Action entry point (comment | scheduler)
    merge-at status          - List scheduled PRs
    merge-at latest ...      - Show the latest @merge-at command on a PR
    merge-at config          - Show resolved configuration
"""

import logging
from typing import Optional

import click
from rich.table import Table

from mergeat import __version__
from mergeat.cli.helpers import (
    build_client,
    build_schedule_table,
    console,
    print_error,
    print_success,
    print_sweep_report,
    validate_repository,
)
from mergeat.config import Settings, comment_id_from_event, load_event_payload, load_settings
from mergeat.scheduler.commands import CommandHandler
from mergeat.scheduler.store import ScheduleStore
from mergeat.scheduler.sweep import MergeSweeper
from mergeat.utils.logging import setup_events_logger, setup_logging
from mergeat.utils.utils import mask_secret, utc_now

logger = logging.getLogger(__name__)

MODES = ('comment', 'scheduler')

token_option = click.option('--token', envvar='MERGEAT_GITHUB_TOKEN', help='GitHub token (default: GITHUB_TOKEN)')
repository_option = click.option(
    '--repository', envvar='GITHUB_REPOSITORY', help='Repository as owner/repo (default: GITHUB_REPOSITORY)'
)
pr_number_option = click.option('--pr-number', type=int, help='Pull request number')


@click.group()
@click.version_option(version=__version__, prog_name='mergeat')
@click.option('--log-level', default=None, help='Logging level (default: MERGEAT_LOG_LEVEL or INFO)')
@click.pass_context
def cli(ctx, log_level: Optional[str]):
    """mergeat - Schedule pull request merges from PR comments"""
    settings = load_settings()
    if log_level:
        settings.log_level = log_level

    setup_logging(settings.log_level)
    if settings.events_log_dir:
        setup_events_logger(settings.events_log_dir, settings.events_retention_size)

    ctx.obj = settings


def _run_comment(
    settings: Settings,
    token: Optional[str],
    repository: Optional[str],
    pr_number: Optional[int],
    comment_body: Optional[str],
    comment_id: Optional[int],
) -> None:
    if comment_id is None:
        comment_id = comment_id_from_event(load_event_payload())

    if not comment_body or not pr_number or not repository or comment_id is None:
        raise click.ClickException('Missing required inputs for comment handling')

    validate_repository(repository)
    client = build_client(settings, token or settings.github_token)
    CommandHandler(client).handle(repository, pr_number, comment_body, comment_id)


def _run_scheduler(settings: Settings, token: Optional[str]) -> None:
    client = build_client(settings, token or settings.github_token)
    try:
        report = MergeSweeper(client).sweep()
    except Exception as e:
        raise click.ClickException(f'Failed to process scheduled merges: {e}')
    print_sweep_report(report)


@cli.command('comment')
@token_option
@repository_option
@pr_number_option
@click.option('--comment-body', help='Text of the comment')
@click.option('--comment-id', type=int, help='Comment id (default: read from GITHUB_EVENT_PATH)')
@click.pass_obj
def comment_command(
    settings: Settings,
    token: Optional[str],
    repository: Optional[str],
    pr_number: Optional[int],
    comment_body: Optional[str],
    comment_id: Optional[int],
):
    """Handle one @merge-at comment on a pull request.

    \b
    Examples:
        merge-at comment --repository octo/app --pr-number 12 \\
            --comment-body "@merge-at 2024-01-02 2:30PM America/New_York" --comment-id 99
        merge-at comment --repository octo/app --pr-number 12 --comment-body "@merge-at cancel"
    """
    _run_comment(settings, token, repository, pr_number, comment_body, comment_id)


@cli.command('scheduler')
@token_option
@click.pass_obj
def scheduler_command(settings: Settings, token: Optional[str]):
    """Merge every scheduled PR whose time has come."""
    _run_scheduler(settings, token)


@cli.command('run')
@click.option('--mode', default='comment', show_default=True, help='comment or scheduler')
@token_option
@repository_option
@pr_number_option
@click.option('--comment-body', help='Text of the comment (comment mode)')
@click.option('--comment-id', type=int, help='Comment id (comment mode)')
@click.pass_obj
def run_command(
    settings: Settings,
    mode: str,
    token: Optional[str],
    repository: Optional[str],
    pr_number: Optional[int],
    comment_body: Optional[str],
    comment_id: Optional[int],
):
    """GitHub Action entry point.

    \b
    Modes:
        comment      Handle the triggering @merge-at comment
        scheduler    Run one sweep over scheduled PRs
    """
    try:
        if mode not in MODES:
            raise click.ClickException(f'Invalid mode: {mode}')
        if mode == 'comment':
            _run_comment(settings, token, repository, pr_number, comment_body, comment_id)
        else:
            _run_scheduler(settings, token)
    except click.ClickException as e:
        logger.debug('Action failed', exc_info=True)
        raise click.ClickException(f'Action failed: {e.format_message()}')


@cli.command('status')
@token_option
@click.pass_obj
def status_command(settings: Settings, token: Optional[str]):
    """List every open PR with a scheduled merge."""
    store = ScheduleStore(build_client(settings, token or settings.github_token))
    try:
        scheduled = store.list_due()
    except Exception as e:
        raise click.ClickException(f'Failed to list scheduled merges: {e}')

    if not scheduled:
        console.print('\n[yellow]No scheduled merges.[/yellow]\n')
        return

    console.print(f'\n[bold cyan]Scheduled merges ({len(scheduled)})[/bold cyan]\n')
    console.print(build_schedule_table(scheduled, utc_now()))


@cli.command('latest')
@token_option
@repository_option
@pr_number_option
@click.pass_obj
def latest_command(settings: Settings, token: Optional[str], repository: Optional[str], pr_number: Optional[int]):
    """Show the most recent @merge-at command on a pull request."""
    if not repository or not pr_number:
        raise click.ClickException('Both --repository and --pr-number are required')
    owner, repo = validate_repository(repository)

    store = ScheduleStore(build_client(settings, token or settings.github_token))
    try:
        comment = store.latest_command(owner, repo, pr_number)
    except Exception as e:
        raise click.ClickException(f'Failed to read comments: {e}')

    if comment is None:
        print_error(f'No @merge-at command found on {repository}#{pr_number}')
        return

    author = (comment.get('user') or {}).get('login', 'unknown')
    print_success(f'Latest command on {repository}#{pr_number} by {author} ({comment.get("created_at", "?")})')
    console.print(comment.get('body', ''), markup=False)


@cli.command('config')
@click.pass_obj
def config_command(settings: Settings):
    """Show the resolved configuration."""
    console.print('\n[bold cyan]mergeat Configuration[/bold cyan]\n')

    table = Table(show_header=True, header_style='bold magenta')
    table.add_column('Setting', style='cyan')
    table.add_column('Value', style='green')

    table.add_row('github_token', mask_secret(settings.github_token) if settings.github_token else '(not set)')
    table.add_row('api_url', settings.api_url)
    table.add_row('request_timeout', f'{settings.request_timeout}s')
    table.add_row('log_level', settings.log_level)
    table.add_row('events_log_dir', settings.events_log_dir or '(disabled)')
    table.add_row('events_retention_size', str(settings.events_retention_size))

    console.print(table)


def main():
    """Main entry point for the CLI"""
    cli()


if __name__ == '__main__':
    main()
