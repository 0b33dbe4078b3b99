"""Parsing of commit message text into header, paragraphs and footer."""
import re
from dataclasses import dataclass
from typing import List, Optional

from ..models import FooterEntry, FooterKind

COMMENT_CHAR = "#"
SCISSORS_PATTERN = re.compile(r"^# -+ >8 -+$")
SIGNOFF_PATTERN = re.compile(r"^Signed-off-by: \S.*$")
HEADER_PATTERN = re.compile(
    r"^(?P<type>[^\s():]+)(?:\((?P<scope>[^()]*)\))?: (?P<subject>.*)$"
)
SCOPE_PATTERN = re.compile(r"^(?:\*|[\w.-]+)$")
FOOTER_TOKEN_PATTERN = re.compile(
    r"^\[(?P<kind>CLOSE|KNOWN ISSUE|BREAKING CHANGES)(?:#(?P<ref>\d+))?\]"
)


@dataclass(frozen=True)
class Header:
    type: str
    scope: Optional[str]
    subject: str


def parse_header(line: str) -> Optional[Header]:
    match = HEADER_PATTERN.match(line)
    if not match:
        return None
    return Header(match.group("type"), match.group("scope"), match.group("subject"))


def parse_footer_entry(line: str) -> Optional[FooterEntry]:
    """Parse one footer line, returning ``None`` if it has no valid token."""
    match = FOOTER_TOKEN_PATTERN.match(line)
    if not match:
        return None
    ref = match.group("ref")
    if ref is not None and int(ref) < 1:
        return None
    return FooterEntry(
        kind=FooterKind(match.group("kind")),
        ref=int(ref) if ref is not None else None,
        text=line[match.end():].strip(),
    )


def strip_comments(text: str) -> List[str]:
    """Drop comment lines and everything below a scissors line."""
    lines = []
    for line in text.splitlines():
        if SCISSORS_PATTERN.match(line):
            break
        if line.startswith(COMMENT_CHAR):
            continue
        lines.append(line.rstrip())
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return lines


@dataclass
class CommitMessage:
    lines: List[str]

    @classmethod
    def parse(cls, text: str) -> "CommitMessage":
        return cls(strip_comments(text))

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def header(self) -> str:
        return self.lines[0] if self.lines else ""

    @property
    def signoffs(self) -> List[str]:
        return [line for line in self.lines if SIGNOFF_PATTERN.match(line)]

    def paragraphs(self) -> List[List[str]]:
        """Blank-line separated blocks after the header, sign-offs excluded."""
        blocks: List[List[str]] = []
        current: List[str] = []
        for line in self.lines[1:]:
            if SIGNOFF_PATTERN.match(line):
                continue
            if not line.strip():
                if current:
                    blocks.append(current)
                    current = []
                continue
            current.append(line)
        if current:
            blocks.append(current)
        return blocks

    @property
    def footer(self) -> Optional[List[str]]:
        """The final block when it starts with a ``[`` token, else ``None``."""
        blocks = self.paragraphs()
        if blocks and blocks[-1][0].startswith("["):
            return blocks[-1]
        return None

    @property
    def body(self) -> List[List[str]]:
        blocks = self.paragraphs()
        return blocks[:-1] if self.footer is not None else blocks

    def footer_entries(self) -> List[FooterEntry]:
        entries = []
        for line in self.footer or []:
            entry = parse_footer_entry(line)
            if entry is not None:
                entries.append(entry)
        return entries
