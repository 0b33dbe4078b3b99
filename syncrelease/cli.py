#!/usr/bin/env python3
import subprocess
from pathlib import Path
from typing import Dict, Optional, Tuple

import click
from git import GitCommandError
from rich.console import Console

from .commit_message import (
    CommitMessageValidator,
    cache_rejected_message,
    restore_rejected_message,
)
from .config import (
    DEFAULT_RELEASE_CONFIG,
    DEFAULT_REPO_INFO_CONFIG,
    Config,
    parse_invocation,
)
from .core import ReleaseSynchronizer, RepoInfoSynchronizer
from .errors import ConfigError, SyncReleaseError
from .history import ConventionalHistory
from .observers import ConsoleLogObserver, FileLogObserver
from .output import error_console, make_console, print_error, print_validation_result
from .prompts import ConsolePrompter, DefaultsPrompter, Prompter
from .vcs import Repository, open_repository

FATAL_ERRORS = (SyncReleaseError, GitCommandError, subprocess.CalledProcessError)

STARTER_ANCHORS = {
    DEFAULT_RELEASE_CONFIG: {
        "major": "VERSION_MAJOR =",
        "minor": "VERSION_MINOR =",
        "patch": "VERSION_PATCH =",
        "tweak": "VERSION_TWEAK =",
    },
    DEFAULT_REPO_INFO_CONFIG: {
        "repo_url": "REPO_URL =",
        "repo_hash": "REPO_HASH =",
        "modify_time": "MODIFY_TIME =",
        "build_user": "BUILD_USER =",
        "build_time": "BUILD_TIME =",
        "host_name": "HOST_NAME =",
        "host_user": "HOST_USER =",
        "host_osnv": "HOST_OSNV =",
    },
}


def load_config(
    config_path: Path,
    invocation: Dict[str, str],
    interactive: Optional[bool] = None,
    testing: bool = False,
    log_file: Optional[Path] = None,
) -> Config:
    """Load the configuration file and apply command line overrides."""
    config = Config.load(config_path)
    config.apply_invocation(invocation)
    if interactive is not None:
        config.interactive = interactive
    if testing:
        config.testing = True
    if config.testing:
        config.interactive = False
    if log_file is not None:
        config.log_file = str(log_file)
    return config


def write_starter_config(config_path: Path, template: str) -> None:
    if config_path.exists():
        raise ConfigError(f"Configuration file already exists: {config_path}")
    config = Config(
        vs_vfile=Path("version.txt"),
        changelog=Path("CHANGELOG.md") if template == DEFAULT_RELEASE_CONFIG else None,
        anchors=STARTER_ANCHORS[template],
    )
    config.save(config_path)


def make_prompter(config: Config, console: Console) -> Prompter:
    if config.interactive:
        return ConsolePrompter(console)
    return DefaultsPrompter(config.answers)


def attach_observers(target, config: Config, console: Console) -> None:
    target.add_observer(ConsoleLogObserver(console))
    log_file_path = config.get_log_file()
    if log_file_path:
        target.add_observer(FileLogObserver(str(log_file_path)))


def find_repository(path: Path) -> Optional[Repository]:
    try:
        return open_repository(path)
    except ConfigError:
        return None


def config_options(func):
    """Options shared by the synchronizer commands."""
    func = click.option(
        "-l",
        "--log-file",
        type=click.Path(dir_okay=False, path_type=Path),
        help="Optional file to log release operations (overrides config setting)",
    )(func)
    func = click.option(
        "--init",
        is_flag=True,
        help="Write a starter configuration file and exit",
    )(func)
    func = click.option(
        "--testing",
        is_flag=True,
        help="Use deterministic default answers and suppress output",
    )(func)
    func = click.option(
        "--interactive/--non-interactive",
        default=None,
        help="Prompt for confirmations (overrides INTERACTIVE and the config setting)",
    )(func)
    func = click.option(
        "-c",
        "--config",
        "config_path",
        type=click.Path(dir_okay=False, path_type=Path),
        help="Configuration file (overrides CONFIG=...)",
    )(func)
    func = click.argument("settings", nargs=-1)(func)
    return func


@click.command()
@click.argument(
    "message_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help=f"Configuration file (defaults to {DEFAULT_RELEASE_CONFIG} when present)",
)
@click.option(
    "--signoff/--no-signoff",
    default=None,
    help="Require a Signed-off-by trailer (overrides config setting)",
)
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Untracked directory where a rejected message is kept for reuse",
)
@click.option(
    "--restore",
    is_flag=True,
    help="Copy a previously rejected message into MESSAGE_FILE and exit",
)
@click.option(
    "--max-line-length",
    default=100,
    show_default=True,
    help="Recommended maximum line length (advisory only)",
)
def commit_msg(
    message_file: Path,
    config_path: Optional[Path],
    signoff: Optional[bool],
    cache_dir: Optional[Path],
    restore: bool,
    max_line_length: int,
):
    """
    Validate a commit message file against the conventional commit grammar.

    Install as the git commit-msg hook. The header must read
    "type(scope): subject" or "type: subject", followed by a blank line,
    an optional body and an optional footer of [CLOSE], [KNOWN ISSUE] or
    [BREAKING CHANGES] entries. Exits 1 when the message is rejected.
    """
    try:
        config = Config.load_optional(config_path or Path(DEFAULT_RELEASE_CONFIG))
    except SyncReleaseError as e:
        print_error(str(e))
        raise click.Abort()

    require_signoff = config.require_signoff if signoff is None else signoff
    cache_dir = cache_dir or config.message_cache_dir

    if restore:
        if cache_dir is not None and restore_rejected_message(cache_dir, message_file):
            error_console.print(f"[green]Restored rejected message into {message_file}[/green]")
        return

    text = message_file.read_text(encoding="utf-8")
    result = CommitMessageValidator(require_signoff, max_line_length).validate(text)
    print_validation_result(result)
    if result.valid:
        return

    if cache_dir is not None:
        cached = cache_rejected_message(text, cache_dir, find_repository(cache_dir))
        if cached is not None:
            error_console.print(
                f"[yellow]Message saved to {cached}; restore it with --restore[/yellow]"
            )
    raise SystemExit(1)


@click.command()
@config_options
def sync_release(
    settings: Tuple[str, ...],
    config_path: Optional[Path],
    interactive: Optional[bool],
    testing: bool,
    init: bool,
    log_file: Optional[Path],
):
    """
    Synchronize the semantic version held in a source file and tag the release.

    This tool will:
    1. Read MAJOR/MINOR/PATCH/TWEAK from the configured file
    2. Compute the next version from conventional commits since the last tag
    3. Let you accept the new version or override each field
    4. Rewrite the file, update the changelog and optionally commit and tag

    Settings may also be given as KEY=value tokens: CONFIG=path,
    INTERACTIVE=true|false, TESTING=true|false.
    """
    try:
        invocation = parse_invocation(settings)
        path = config_path or Path(invocation.get("CONFIG", DEFAULT_RELEASE_CONFIG))
        if init:
            write_starter_config(path, DEFAULT_RELEASE_CONFIG)
            click.echo(f"Created {path}")
            return

        config = load_config(path, invocation, interactive, testing, log_file)
        console = make_console(config.testing)
        repository = open_repository(config.repo_dir, config.repo_vcs)
        config.check_paths(repository.root)

        synchronizer = ReleaseSynchronizer(
            config,
            repository,
            ConventionalHistory(repository),
            make_prompter(config, console),
            console,
        )
        attach_observers(synchronizer, config, console)
        change = synchronizer.run()
        console.print(
            f"\n[bold green]Release {change.tag} done ({synchronizer.state.value})[/bold green]"
        )
    except KeyboardInterrupt:
        error_console.print("\n[yellow]Operation cancelled by user[/yellow]")
        raise click.Abort()
    except FATAL_ERRORS as e:
        print_error(str(e))
        raise click.Abort()


@click.command()
@config_options
def sync_repo_info(
    settings: Tuple[str, ...],
    config_path: Optional[Path],
    interactive: Optional[bool],
    testing: bool,
    init: bool,
    log_file: Optional[Path],
):
    """
    Write build host, build user and repository metadata into a source file.

    Settings may also be given as KEY=value tokens: CONFIG=path,
    INTERACTIVE=true|false, TESTING=true|false.
    """
    try:
        invocation = parse_invocation(settings)
        path = config_path or Path(invocation.get("CONFIG", DEFAULT_REPO_INFO_CONFIG))
        if init:
            write_starter_config(path, DEFAULT_REPO_INFO_CONFIG)
            click.echo(f"Created {path}")
            return

        config = load_config(path, invocation, interactive, testing, log_file)
        console = make_console(config.testing)
        repository = open_repository(config.repo_dir, config.repo_vcs)
        config.check_paths(repository.root)

        synchronizer = RepoInfoSynchronizer(config, repository, console)
        attach_observers(synchronizer, config, console)
        synchronizer.run()
    except KeyboardInterrupt:
        error_console.print("\n[yellow]Operation cancelled by user[/yellow]")
        raise click.Abort()
    except FATAL_ERRORS as e:
        print_error(str(e))
        raise click.Abort()


if __name__ == "__main__":
    sync_release()
