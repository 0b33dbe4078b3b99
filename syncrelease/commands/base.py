"""Base command class for release VCS operations.

This module provides the abstract base class for the commands that change
the repository, implementing the Command Pattern with observer support.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from rich.console import Console

from ..observers import ReleaseObserver
from ..vcs import Repository


class ReleaseCommand(ABC):
    """Abstract base class for release commands.

    Commands do not catch VCS errors: a failure propagates to the caller and
    nothing already done is rolled back.

    Attributes:
        repository (Repository): The working copy to operate on
        console (Console): Rich console for output
        observers (List[ReleaseObserver]): List of observers to notify
    """

    def __init__(self, repository: Repository, console: Optional[Console] = None):
        self.repository = repository
        self.console = console or Console()
        self.observers: List[ReleaseObserver] = []

    def add_observer(self, observer: ReleaseObserver) -> None:
        self.observers.append(observer)

    def remove_observer(self, observer: ReleaseObserver) -> None:
        self.observers.remove(observer)

    @abstractmethod
    def execute(self) -> str:
        """Execute the command.

        Returns:
            str: Identifier of what was created (revision or tag name)
        """
        pass
