"""Operator prompts.

Every question carries a key so that non-interactive runs can answer it from
the ``[answers]`` table of the configuration file.
"""
from abc import ABC, abstractmethod
from typing import Mapping, Optional

from rich.console import Console
from rich.prompt import Confirm, Prompt

from .config import parse_bool

CONFIRM_BRANCH = "confirm_branch"
UPDATE_CHANGELOG = "update_changelog"
ACCEPT_VERSION = "accept_version"
COMMIT_RELEASE = "commit_release"


class Prompter(ABC):
    """Asks the operator a question and returns the answer."""

    @abstractmethod
    def ask(self, key: str, question: str, default: str = "") -> str:
        pass

    @abstractmethod
    def confirm(self, key: str, question: str, default: bool = True) -> bool:
        pass


class ConsolePrompter(Prompter):
    """Blocking prompts on the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def ask(self, key: str, question: str, default: str = "") -> str:
        return Prompt.ask(question, default=default, console=self.console)

    def confirm(self, key: str, question: str, default: bool = True) -> bool:
        return Confirm.ask(question, default=default, console=self.console)


class DefaultsPrompter(Prompter):
    """Answers every prompt with its default, or a configured override."""

    def __init__(self, answers: Optional[Mapping[str, str]] = None):
        self.answers = dict(answers or {})

    def ask(self, key: str, question: str, default: str = "") -> str:
        return str(self.answers.get(key, default))

    def confirm(self, key: str, question: str, default: bool = True) -> bool:
        if key not in self.answers:
            return default
        return parse_bool(self.answers[key])
