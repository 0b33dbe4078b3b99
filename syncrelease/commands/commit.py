"""Command for committing the release files."""

from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console

from ..vcs import Repository
from .base import ReleaseCommand


class CommitCommand(ReleaseCommand):
    """Stage the given files and commit them with the release message.

    Attributes:
        paths (Sequence[Path]): Files to stage
        message (str): Full commit message
        revision (Optional[str]): Identifier of the created commit
    """

    def __init__(
        self,
        repository: Repository,
        paths: Sequence[Path],
        message: str,
        console: Optional[Console] = None,
    ):
        super().__init__(repository, console)
        self.paths = list(paths)
        self.message = message
        self.revision: Optional[str] = None

    def execute(self) -> str:
        self.console.print(f"[dim]Committing {', '.join(str(p) for p in self.paths)}[/dim]")
        self.revision = self.repository.commit(self.paths, self.message)
        for observer in self.observers:
            observer.on_commit_created(self.revision, self.message)
        return self.revision
