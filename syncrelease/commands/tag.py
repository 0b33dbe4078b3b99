"""Command for creating the annotated release tag."""

from typing import Optional

from rich.console import Console

from ..vcs import Repository
from .base import ReleaseCommand


class TagCommand(ReleaseCommand):
    def __init__(
        self,
        repository: Repository,
        name: str,
        message: str,
        console: Optional[Console] = None,
    ):
        super().__init__(repository, console)
        self.name = name
        self.message = message

    def execute(self) -> str:
        self.console.print(f"[dim]Tagging {self.name}[/dim]")
        self.repository.create_tag(self.name, self.message)
        for observer in self.observers:
            observer.on_tag_created(self.name)
        return self.name
