"""Core functionality for syncrelease."""
import getpass
import platform
import re
import socket
from dataclasses import replace
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from rich.console import Console

from .commands import CommitCommand, ReleaseCommand, TagCommand
from .config import Config
from .errors import ConfigError, FieldNotFoundError, GrammarError, UserAbort
from .field_map import FieldMap
from .history import HistoryTool, finalize_changelog
from .observers import ReleaseObserver
from .output import version_table
from .prompts import (
    ACCEPT_VERSION,
    COMMIT_RELEASE,
    CONFIRM_BRANCH,
    UPDATE_CHANGELOG,
    DefaultsPrompter,
    Prompter,
)
from .semver import SemVer, Tweak, VersionChange, select_release_tag
from .vcs import Repository

TIME_FORMAT = "%Y-%m-%d %H:%M:%S %z"
USER_PATTERN = re.compile(r"^[0-9A-Za-z@.\- ]*$")


class SyncState(str, Enum):
    LOADED = "loaded"
    BRANCH_CONFIRMED = "branch-confirmed"
    CHANGELOG_PLANNED = "changelog-planned"
    CANDIDATE_COMPUTED = "candidate-computed"
    NEGOTIATED = "negotiated"
    VALIDATED = "validated"
    PERSISTED = "persisted"
    CHANGELOG_UPDATED = "changelog-updated"
    COMMIT_TAGGED = "commit-tagged"


def compose_release_message(change: VersionChange, files: List[Path], root: Path) -> str:
    """Commit and tag message: header plus the released files and history boundary."""
    lines = [f"chore(release): {change.tag}", ""]
    for path in files:
        lines.append(f"- update {path.resolve().relative_to(root.resolve())}")
    lines.append("")
    if change.previous_tag:
        lines.append(f"Changes since {change.previous_tag} ({change.previous} -> {change.current})")
    else:
        lines.append(f"First release ({change.previous} -> {change.current})")
    return "\n".join(lines)


class ReleaseSynchronizer:
    """Moves the version held in the target file to a newly agreed value.

    The steps run in order and update :attr:`state`; a declined confirmation
    raises :class:`UserAbort` without undoing earlier steps.
    """

    def __init__(
        self,
        config: Config,
        repository: Repository,
        history: HistoryTool,
        prompter: Optional[Prompter] = None,
        console: Optional[Console] = None,
        today: Optional[date] = None,
    ):
        self.config = config
        self.repository = repository
        self.history = history
        self.prompter = prompter or DefaultsPrompter(config.answers)
        self.console = console or Console()
        self.today = today
        self.observers: List[ReleaseObserver] = []
        self.state: Optional[SyncState] = None
        self.field_map: Optional[FieldMap] = None

    def add_observer(self, observer: ReleaseObserver) -> None:
        self.observers.append(observer)

    def remove_observer(self, observer: ReleaseObserver) -> None:
        self.observers.remove(observer)

    def load(self) -> SemVer:
        """Read the current version fields from the target file."""
        self.config.check_release_anchors()
        self.field_map = FieldMap.load(self.config.vs_vfile, self.config.release_anchors())
        current = SemVer.from_fields(
            self.field_map.require("major"),
            self.field_map.require("minor"),
            self.field_map.require("patch"),
            self.field_map.get("tweak", ""),
            self.config.vocabulary,
        )
        self.state = SyncState.LOADED
        return current

    def confirm_branch(self) -> str:
        branch = self.repository.current_branch()
        if not self.prompter.confirm(CONFIRM_BRANCH, f"Release from branch '{branch}'?", True):
            raise UserAbort(f"Release from branch '{branch}' declined")
        self.state = SyncState.BRANCH_CONFIRMED
        return branch

    def plan_changelog(self) -> bool:
        planned = False
        if self.config.changelog is not None:
            planned = self.prompter.confirm(
                UPDATE_CHANGELOG, f"Update changelog {self.config.changelog}?", True
            )
        self.state = SyncState.CHANGELOG_PLANNED
        return planned

    def stamp(self, previous: SemVer, candidate: SemVer) -> SemVer:
        """Refresh date counters and attach the commit hash to a changed tweak."""
        previous_tweak = previous.tweak or Tweak()
        tweak = (candidate.tweak or Tweak()).refresh_date(self.today or date.today())
        if tweak.base and tweak.base != previous_tweak.base:
            tweak = tweak.with_hash(self.repository.head_hash(self.config.hash_length))
        elif tweak.base == previous_tweak.base:
            tweak = tweak.with_hash(previous_tweak.commit_hash)
        else:
            tweak = tweak.with_hash(None)
        return replace(candidate, tweak=tweak)

    def compute_candidate(self, current: SemVer) -> SemVer:
        text = self.history.next_version(current)
        candidate = self.stamp(current, SemVer.parse(text, self.config.vocabulary))
        self.state = SyncState.CANDIDATE_COMPUTED
        return candidate

    def _override(self, candidate: SemVer) -> SemVer:
        fields = candidate.fields()
        answers = {
            name: self.prompter.ask(name, f"New {name}", fields[name])
            for name in ("major", "minor", "patch", "tweak")
        }
        chosen = SemVer.from_fields(
            answers["major"],
            answers["minor"],
            answers["patch"],
            answers["tweak"],
            self.config.vocabulary,
        )
        if not self.history.is_valid_semver(str(chosen)):
            raise GrammarError(f"Invalid semantic version: {chosen}")
        return chosen

    def negotiate(self, current: SemVer, candidate: SemVer) -> VersionChange:
        """Let the operator accept the candidate or override each field."""
        self.console.print(version_table(current, candidate))
        if self.prompter.confirm(ACCEPT_VERSION, f"Accept version {candidate}?", True):
            chosen = candidate
        else:
            chosen = self._override(candidate)
        self.state = SyncState.NEGOTIATED
        return VersionChange(
            previous=current,
            current=chosen,
            previous_tag=self.repository.last_tag(),
        )

    def validate(self, change: VersionChange) -> VersionChange:
        if change.current.tweak is not None and "tweak" not in self.field_map:
            raise FieldNotFoundError("tweak", self.config.anchors.get("tweak", ""))
        tag = select_release_tag(change.current, self.repository.tags())
        self.state = SyncState.VALIDATED
        return replace(change, tag=tag, short_tag=change.current.short_tag)

    def persist(self, change: VersionChange) -> bool:
        """Write changed fields back to the target file; returns True if written."""
        for name, value in change.current.fields().items():
            if name in self.field_map:
                self.field_map.set(name, value)
        if "semver" in self.field_map:
            self.field_map.set("semver", str(change.current))

        written = self.field_map.changed
        if written:
            self.field_map.save(self.config.vs_vfile)
            for observer in self.observers:
                observer.on_version_written(change, self.config.vs_vfile)
        else:
            self.console.print("[yellow]Version unchanged, nothing written[/yellow]")
        self.state = SyncState.PERSISTED
        return written

    def update_changelog(self, change: VersionChange) -> None:
        path = self.config.changelog
        self.history.update_changelog(path)
        finalize_changelog(path, change.tag)
        for observer in self.observers:
            observer.on_changelog_updated(path, change.tag)
        self.state = SyncState.CHANGELOG_UPDATED

    def _run_command(self, command: ReleaseCommand) -> str:
        for observer in self.observers:
            command.add_observer(observer)
        return command.execute()

    def commit_and_tag(self, change: VersionChange, files: List[Path]) -> None:
        message = compose_release_message(change, files, self.repository.root)
        if files:
            self._run_command(CommitCommand(self.repository, files, message, self.console))
        self._run_command(TagCommand(self.repository, change.tag, message, self.console))
        self.state = SyncState.COMMIT_TAGGED

    def run(self) -> VersionChange:
        """Run every step from loading the version to the optional commit and tag."""
        current = self.load()
        self.confirm_branch()
        changelog_planned = self.plan_changelog()
        candidate = self.compute_candidate(current)
        change = self.validate(self.negotiate(current, candidate))

        files = []
        if self.persist(change):
            files.append(self.config.vs_vfile)
        if changelog_planned:
            self.update_changelog(change)
            files.append(self.config.changelog)

        if self.prompter.confirm(COMMIT_RELEASE, f"Commit and tag {change.tag}?", True):
            self.commit_and_tag(change, files)
        return change


def format_time(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return moment.strftime(TIME_FORMAT)


def host_os_name_version() -> str:
    release = None
    if platform.system() == "Linux":
        try:
            release = platform.freedesktop_os_release()
        except OSError:
            # no os-release file
            release = None
    if release:
        return f"{release.get('NAME', 'Linux')} {release.get('VERSION_ID', '')}".strip()
    return f"{platform.system()} {platform.release()}".strip()


class RepoInfoSynchronizer:
    """Refreshes host, user and VCS metadata fields in the target file."""

    def __init__(
        self,
        config: Config,
        repository: Repository,
        console: Optional[Console] = None,
        now: Optional[datetime] = None,
    ):
        self.config = config
        self.repository = repository
        self.console = console or Console()
        self.now = now
        self.observers: List[ReleaseObserver] = []

    def add_observer(self, observer: ReleaseObserver) -> None:
        self.observers.append(observer)

    def build_user(self) -> str:
        vcs_name, vcs_email = self.repository.user_identity()
        name = self.config.user_name or vcs_name
        email = self.config.user_email if self.config.user_email is not None else vcs_email
        for value in (name, email):
            if not USER_PATTERN.match(value):
                raise ConfigError(f"User name and email must consist of [0-9A-Za-z@.- ]: {value!r}")
        return f"{name} <{email}>" if email else name

    def collect(self) -> Dict[str, str]:
        now = self.now or datetime.now().astimezone()
        return {
            "repo_url": self.repository.remote_url(),
            "repo_hash": self.repository.head_hash(7),
            "modify_time": format_time(self.repository.last_modified()),
            "build_user": self.build_user(),
            "build_time": format_time(now),
            "host_name": socket.gethostname(),
            "host_user": getpass.getuser(),
            "host_osnv": host_os_name_version(),
        }

    def run(self) -> List[str]:
        """Write the collected values; returns the names of the fields changed."""
        anchors = self.config.repo_info_anchors()
        if not anchors:
            raise ConfigError("No repository-info anchors configured")
        field_map = FieldMap.load(self.config.vs_vfile, anchors)
        for name in anchors:
            field_map.require(name)

        values = self.collect()
        for name in field_map:
            field_map.set(name, values[name])

        changed = field_map.changed_fields()
        if changed:
            field_map.save(self.config.vs_vfile)
            for observer in self.observers:
                observer.on_repo_info_written(self.config.vs_vfile, changed)
        else:
            self.console.print("[yellow]Repository info unchanged, nothing written[/yellow]")
        return changed
