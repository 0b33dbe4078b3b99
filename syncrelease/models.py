"""Shared models for syncrelease."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class CommitType(str, Enum):
    FIX = "fix"
    FEAT = "feat"
    BREAK = "break"
    CI = "ci"
    DOCS = "docs"
    TEST = "test"
    BUILD = "build"
    PERF = "perf"
    STYLE = "style"
    CHORE = "chore"
    REVERT = "revert"
    REFACTOR = "refactor"
    WIP = "WIP"

    @classmethod
    def values(cls) -> Tuple[str, ...]:
        return tuple(member.value for member in cls)


class FooterKind(str, Enum):
    CLOSE = "CLOSE"
    KNOWN_ISSUE = "KNOWN ISSUE"
    BREAKING_CHANGES = "BREAKING CHANGES"


@dataclass(frozen=True)
class FooterEntry:
    kind: FooterKind
    ref: Optional[int]
    text: str


@dataclass(frozen=True)
class CommitRecord:
    hexsha: str
    message: str


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one commit message.

    ``rule`` names the handler that rejected the message and is ``None``
    for accepted messages. ``warnings`` carries advisory findings that never
    cause a rejection.
    """

    valid: bool
    rule: Optional[str] = None
    reason: str = ""
    warnings: Tuple[str, ...] = ()
