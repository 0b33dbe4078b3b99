"""Version control queries and the release commit/tag operations."""
import re
import subprocess
import xml.etree.ElementTree as ElementTree
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from .errors import ConfigError
from .models import CommitRecord


class Repository(ABC):
    """The small set of VCS operations the release tools need."""

    kind = ""

    @property
    @abstractmethod
    def root(self) -> Path:
        """Working-copy root directory."""

    @abstractmethod
    def current_branch(self) -> str:
        pass

    @abstractmethod
    def remote_url(self) -> str:
        pass

    @abstractmethod
    def head_hash(self, length: int = 10) -> str:
        """Short identifier of the latest commit."""

    @abstractmethod
    def tags(self) -> List[str]:
        pass

    @abstractmethod
    def last_tag(self) -> Optional[str]:
        pass

    @abstractmethod
    def commits_since(self, tag: Optional[str]) -> List[CommitRecord]:
        """Commits after ``tag`` (all commits when ``tag`` is None), newest first."""

    @abstractmethod
    def last_modified(self) -> datetime:
        pass

    @abstractmethod
    def user_identity(self) -> Tuple[str, str]:
        """Return ``(name, email)``; either may be empty."""

    @abstractmethod
    def is_tracked(self, path: Path) -> bool:
        pass

    @abstractmethod
    def commit(self, paths: Sequence[Path], message: str) -> str:
        """Commit ``paths`` and return the new commit identifier."""

    @abstractmethod
    def create_tag(self, name: str, message: str) -> None:
        """Create an annotated tag at the latest commit."""


class GitRepository(Repository):
    kind = "GIT"

    def __init__(self, path: Path):
        try:
            self.repo = Repo(path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise ConfigError(f"Not a git repository: {path}") from e

    @property
    def root(self) -> Path:
        return Path(self.repo.working_tree_dir)

    def current_branch(self) -> str:
        try:
            return self.repo.active_branch.name
        except TypeError:
            # detached HEAD
            return "HEAD"

    def remote_url(self) -> str:
        if not self.repo.remotes:
            return ""
        names = [remote.name for remote in self.repo.remotes]
        remote = self.repo.remote("origin") if "origin" in names else self.repo.remotes[0]
        return remote.url

    def head_hash(self, length: int = 10) -> str:
        return self.repo.head.commit.hexsha[:length]

    def tags(self) -> List[str]:
        return [tag.name for tag in self.repo.tags]

    def last_tag(self) -> Optional[str]:
        try:
            return self.repo.git.describe("--tags", "--abbrev=0")
        except GitCommandError:
            # no tag reachable from HEAD
            return None

    def commits_since(self, tag: Optional[str]) -> List[CommitRecord]:
        rev = f"{tag}..HEAD" if tag else "HEAD"
        return [CommitRecord(c.hexsha, c.message) for c in self.repo.iter_commits(rev)]

    def last_modified(self) -> datetime:
        return self.repo.head.commit.committed_datetime

    def user_identity(self) -> Tuple[str, str]:
        reader = self.repo.config_reader()
        name = reader.get_value("user", "name", "")
        email = reader.get_value("user", "email", "")
        return str(name), str(email)

    def is_tracked(self, path: Path) -> bool:
        path = Path(path).resolve()
        try:
            path.relative_to(self.root.resolve())
        except ValueError:
            return False
        return bool(self.repo.git.ls_files("--", str(path)))

    def _relative(self, path: Path) -> str:
        return str(Path(path).resolve().relative_to(self.root.resolve()))

    def commit(self, paths: Sequence[Path], message: str) -> str:
        self.repo.index.add([self._relative(path) for path in paths])
        return self.repo.index.commit(message).hexsha

    def create_tag(self, name: str, message: str) -> None:
        self.repo.create_tag(name, message=message)


class SvnRepository(Repository):
    """Subversion working copy, driven through the ``svn`` command line."""

    kind = "SVN"

    def __init__(self, path: Path):
        self.path = Path(path)
        self._root = Path(self._svn("info", "--show-item", "wc-root"))

    def _svn(self, *args: str) -> str:
        result = subprocess.run(
            ["svn", "--non-interactive", *args],
            cwd=self.path,
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.strip()

    @property
    def root(self) -> Path:
        return self._root

    def _relative_url(self) -> str:
        return self._svn("info", "--show-item", "relative-url", str(self._root))

    def current_branch(self) -> str:
        parts = self._relative_url().lstrip("^/").split("/")
        if parts[0] in ("branches", "tags") and len(parts) > 1:
            return parts[1]
        return parts[0] or "trunk"

    def remote_url(self) -> str:
        return self._svn("info", "--show-item", "url", str(self._root))

    def head_hash(self, length: int = 10) -> str:
        # svn has no hashes; the last changed revision identifies the commit
        return self._svn("info", "--show-item", "last-changed-revision", str(self._root))

    def _tag_revisions(self) -> List[Tuple[int, str]]:
        listing = self._svn("ls", "-v", "^/tags")
        entries = []
        for line in listing.splitlines():
            parts = line.split()
            if len(parts) < 2 or parts[-1] == "./":
                continue
            entries.append((int(parts[0]), parts[-1].rstrip("/")))
        return entries

    def tags(self) -> List[str]:
        return [name for _, name in self._tag_revisions()]

    def last_tag(self) -> Optional[str]:
        entries = self._tag_revisions()
        return max(entries)[1] if entries else None

    def commits_since(self, tag: Optional[str]) -> List[CommitRecord]:
        since = 0
        if tag:
            since = dict((name, rev) for rev, name in self._tag_revisions()).get(tag, 0)
        log = ElementTree.fromstring(self._svn("log", "--xml", str(self._root)))
        records = []
        for entry in log.iter("logentry"):
            revision = int(entry.get("revision"))
            if revision <= since:
                continue
            records.append(CommitRecord(str(revision), entry.findtext("msg") or ""))
        return records

    def last_modified(self) -> datetime:
        stamp = self._svn("info", "--show-item", "last-changed-date", str(self._root))
        return datetime.fromisoformat(stamp.replace("Z", "+00:00"))

    def user_identity(self) -> Tuple[str, str]:
        log = ElementTree.fromstring(self._svn("log", "--xml", "-l", "1", str(self._root)))
        return log.findtext("logentry/author") or "", ""

    def is_tracked(self, path: Path) -> bool:
        result = subprocess.run(
            ["svn", "--non-interactive", "info", str(path)],
            cwd=self.path,
            capture_output=True,
            text=True,
        )
        return result.returncode == 0

    def commit(self, paths: Sequence[Path], message: str) -> str:
        output = self._svn("commit", "-m", message, *[str(path) for path in paths])
        match = re.search(r"Committed revision (\d+)", output)
        return match.group(1) if match else ""

    def create_tag(self, name: str, message: str) -> None:
        self._svn("copy", self._relative_url(), f"^/tags/{name}", "-m", message)


def _is_svn_working_copy(path: Path) -> bool:
    try:
        result = subprocess.run(
            ["svn", "--non-interactive", "info", str(path)],
            capture_output=True,
            text=True,
        )
    except FileNotFoundError:
        return False
    return result.returncode == 0


def open_repository(path: Path, kind: str = "AUTO") -> Repository:
    """Open the working copy at ``path`` with the configured or detected VCS."""
    kind = kind.upper()
    if kind == "GIT":
        return GitRepository(path)
    if kind == "SVN":
        return SvnRepository(path)
    try:
        return GitRepository(path)
    except ConfigError:
        if _is_svn_working_copy(path):
            return SvnRepository(path)
    raise ConfigError(f"No git or svn working copy found at {path}")
