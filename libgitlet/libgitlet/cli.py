"""Command-line interface: ``gitlet <command> [operands]``.

Every command except ``init`` runs against an existing repository in the current directory. A command that
is rejected prints its reason and leaves the repository exactly as it was."""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import click

from .constants import DEFAULT_REPO_DIR
from .exceptions import RepositoryError, UserError
from .graph import LogEntry
from .merge import MergeOutcome
from .repository import Repository
from .state import RepositoryState

logger = logging.getLogger(__name__)

NOT_INITIALIZED = 'Not in an initialized Gitlet directory.'
INCORRECT_OPERANDS = 'Incorrect operands.'
LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR']


class _RawArgsCommand(click.Command):
    """A command that remembers its arguments as typed, ``--`` included.

    click consumes ``--`` while parsing, but ``checkout`` tells its three forms apart by it."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        ctx.meta['gitlet.raw_args'] = list(args)
        return super().parse_args(ctx, args)


@contextmanager
def _session(ctx: click.Context, persist: bool = True) -> Generator[tuple[Repository, RepositoryState], None, None]:
    """Load the repository state for one command and persist it if the command succeeds.

    User errors are printed and end the command without persisting. System errors abort with a non-zero
    exit status."""
    repo: Repository = ctx.obj
    if not repo.exists():
        click.echo(NOT_INITIALIZED)
        ctx.exit(0)

    try:
        state = repo.load_state()
        yield repo, state
        if persist:
            repo.save_state(state)
    except UserError as e:
        logger.debug('Command rejected: %s', e)
        click.echo(str(e))
    except RepositoryError as e:
        raise click.ClickException(str(e)) from e


def format_timestamp(timestamp: int) -> str:
    moment = datetime.fromtimestamp(timestamp).astimezone()
    return f'{moment:%a %b} {moment.day} {moment:%H:%M:%S %Y %z}'


def format_log_entry(entry: LogEntry) -> str:
    commit = entry.commit
    lines = ['===', f'commit {entry.commit_ref}']
    if commit.is_merge and commit.parent:
        lines.append(f'Merge: {commit.parent[:7]} {commit.merge_parent[:7]}')
    lines.append(f'Date: {format_timestamp(commit.timestamp)}')
    lines.append(commit.message)
    lines.append('')

    return '\n'.join(lines)


@click.group()
@click.option('--repo-dir', envvar='GITLET_DIR', default=DEFAULT_REPO_DIR, show_default=True,
              help='Name of the repository directory inside the working directory.')
@click.option('--log-level', envvar='GITLET_LOG_LEVEL', default='WARNING', show_default=True,
              type=click.Choice(LOG_LEVELS, case_sensitive=False), help='Diagnostic logging level (stderr).')
@click.pass_context
def main(ctx: click.Context, repo_dir: str, log_level: str) -> None:
    """A tiny local version-control system."""
    logging.basicConfig(level=log_level.upper(), format='%(levelname)s %(name)s: %(message)s')
    ctx.obj = Repository(Path.cwd(), repo_dir)


@main.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Create a repository in the current directory."""
    repo: Repository = ctx.obj
    try:
        repo.init()
    except UserError as e:
        click.echo(str(e))


@main.command()
@click.argument('file')
@click.pass_context
def add(ctx: click.Context, file: str) -> None:
    """Stage FILE for the next commit."""
    with _session(ctx) as (repo, state):
        repo.add(state, file)


@main.command()
@click.argument('message')
@click.pass_context
def commit(ctx: click.Context, message: str) -> None:
    """Record the staged changes with MESSAGE."""
    with _session(ctx) as (repo, state):
        repo.commit(state, message)


@main.command()
@click.argument('file')
@click.pass_context
def rm(ctx: click.Context, file: str) -> None:
    """Unstage FILE, and stop tracking it if the current commit tracks it."""
    with _session(ctx) as (repo, state):
        repo.remove(state, file)


@main.command()
@click.pass_context
def log(ctx: click.Context) -> None:
    """Show the history of the current branch."""
    with _session(ctx, persist=False) as (repo, state):
        for entry in repo.log(state):
            click.echo(format_log_entry(entry))


@main.command('global-log')
@click.pass_context
def global_log(ctx: click.Context) -> None:
    """Show every commit ever made."""
    with _session(ctx, persist=False) as (repo, _):
        for entry in repo.global_log():
            click.echo(format_log_entry(entry))


@main.command()
@click.argument('message')
@click.pass_context
def find(ctx: click.Context, message: str) -> None:
    """Print the ids of all commits with exactly MESSAGE."""
    with _session(ctx, persist=False) as (repo, _):
        for commit_ref in repo.find(message):
            click.echo(commit_ref)


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show branches, staged files and working directory changes."""
    with _session(ctx, persist=False) as (repo, state):
        report = repo.status(state)

        click.echo('=== Branches ===')
        for name in report.branches:
            click.echo(f'*{name}' if name == report.current_branch else name)
        click.echo()

        click.echo('=== Staged Files ===')
        for path in report.staged:
            click.echo(path)
        click.echo()

        click.echo('=== Removed Files ===')
        for path in report.removed:
            click.echo(path)
        click.echo()

        click.echo('=== Modifications Not Staged For Commit ===')
        for path, change in report.unstaged:
            click.echo(f'{path} ({change})')
        click.echo()

        click.echo('=== Untracked Files ===')
        for path in report.untracked:
            click.echo(path)
        click.echo()


@main.command()
@click.argument('name')
@click.pass_context
def branch(ctx: click.Context, name: str) -> None:
    """Create branch NAME at the current commit."""
    with _session(ctx) as (repo, state):
        repo.add_branch(state, name)


@main.command('rm-branch')
@click.argument('name')
@click.pass_context
def rm_branch(ctx: click.Context, name: str) -> None:
    """Delete branch NAME. Its commits are kept."""
    with _session(ctx) as (repo, state):
        repo.delete_branch(state, name)


@main.command(cls=_RawArgsCommand, context_settings={'ignore_unknown_options': True})
@click.argument('operands', nargs=-1)
@click.pass_context
def checkout(ctx: click.Context, operands: tuple[str, ...]) -> None:
    """Restore files or switch branches.

    \b
    checkout -- FILE              restore FILE from the current commit
    checkout COMMIT -- FILE       restore FILE from COMMIT
    checkout BRANCH               switch to BRANCH"""
    raw = ctx.meta.get('gitlet.raw_args', list(operands))

    match raw:
        case ['--', file]:
            with _session(ctx) as (repo, state):
                repo.checkout_file(state, file)
        case [commit_id, '--', file]:
            with _session(ctx) as (repo, state):
                repo.checkout_file(state, file, commit_id)
        case [name] if name != '--':
            with _session(ctx) as (repo, state):
                repo.checkout_branch(state, name)
        case _:
            click.echo(INCORRECT_OPERANDS)


@main.command()
@click.argument('commit_id')
@click.pass_context
def reset(ctx: click.Context, commit_id: str) -> None:
    """Check out every file of COMMIT_ID and move the current branch there."""
    with _session(ctx) as (repo, state):
        repo.reset(state, commit_id)


@main.command()
@click.argument('name')
@click.pass_context
def merge(ctx: click.Context, name: str) -> None:
    """Merge branch NAME into the current branch."""
    with _session(ctx) as (repo, state):
        result = repo.merge(state, name)

        match result.outcome:
            case MergeOutcome.UP_TO_DATE:
                click.echo('Given branch is an ancestor of the current branch.')
            case MergeOutcome.FAST_FORWARD:
                click.echo('Current branch fast-forwarded.')
            case MergeOutcome.MERGED if result.has_conflicts:
                click.echo('Encountered a merge conflict.')
