"""Observer pattern for release operations."""

from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from .semver import VersionChange


class ReleaseObserver(ABC):
    """Abstract base class for release operation observers."""

    @abstractmethod
    def on_version_written(self, change: VersionChange, path: Path) -> None:
        """Called when the version file has been rewritten."""
        pass

    @abstractmethod
    def on_changelog_updated(self, path: Path, tag: str) -> None:
        pass

    @abstractmethod
    def on_commit_created(self, revision: str, message: str) -> None:
        pass

    @abstractmethod
    def on_tag_created(self, tag: str) -> None:
        pass

    @abstractmethod
    def on_repo_info_written(self, path: Path, fields: List[str]) -> None:
        pass


class ConsoleLogObserver(ReleaseObserver):
    """Observer that logs release operations to the console."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def on_version_written(self, change: VersionChange, path: Path) -> None:
        self.console.print(
            f"[green]Updated {path}: {change.previous} -> {change.current}[/green]"
        )

    def on_changelog_updated(self, path: Path, tag: str) -> None:
        self.console.print(f"[green]Updated changelog {path} for {tag}[/green]")

    def on_commit_created(self, revision: str, message: str) -> None:
        self.console.print(f"[green]Created commit {revision}: {message.splitlines()[0]}[/green]")

    def on_tag_created(self, tag: str) -> None:
        self.console.print(f"[green]Created tag {tag}[/green]")

    def on_repo_info_written(self, path: Path, fields: List[str]) -> None:
        self.console.print(f"[green]Updated {path}: {', '.join(fields)}[/green]")


class FileLogObserver(ReleaseObserver):
    """Observer that logs release operations to a file."""

    def __init__(self, log_file: str):
        self.log_file = Path(log_file)
        self.log_file.parent.mkdir(parents=True, exist_ok=True)

    def _log(self, message: str) -> None:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        with self.log_file.open("a") as f:
            f.write(f"{timestamp} - {message}\n")

    def on_version_written(self, change: VersionChange, path: Path) -> None:
        self._log(f"Updated {path}: {change.previous} -> {change.current}")

    def on_changelog_updated(self, path: Path, tag: str) -> None:
        self._log(f"Updated changelog {path} for {tag}")

    def on_commit_created(self, revision: str, message: str) -> None:
        self._log(f"Created commit {revision}: {message.splitlines()[0]}")

    def on_tag_created(self, tag: str) -> None:
        self._log(f"Created tag {tag}")

    def on_repo_info_written(self, path: Path, fields: List[str]) -> None:
        self._log(f"Updated {path}: {', '.join(fields)}")
