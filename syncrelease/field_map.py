"""Tracked fields inside a line-oriented source file.

The file is split once into literal spans and tracked fields. Each tracked
field is located by its *anchor*: the literal text that precedes the value,
e.g. ``static const char semver_major[] =`` in::

    static const char semver_major[] = "1";

Only the value between the quotes (or the bare token when unquoted) is a
tracked field; the anchor, whitespace, quotes and trailing text stay in the
surrounding literal spans and are written back unchanged.
"""
import os
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Pattern, Union

from .errors import ConfigError, FieldNotFoundError

VALUE_PATTERN = (
    r"[ \t]*(?:"
    r"\"(?P<dq>[^\"\r\n]*)\""
    r"|'(?P<sq>[^'\r\n]*)'"
    r"|(?P<bare>[^\s;,\"']*)"
    r")"
)


@dataclass
class LiteralSpan:
    text: str


@dataclass
class TrackedField:
    name: str
    value: str
    original: str = field(default="", repr=False)

    def __post_init__(self):
        self.original = self.value

    @property
    def changed(self) -> bool:
        return self.value != self.original


Token = Union[LiteralSpan, TrackedField]


def anchor_pattern(anchor: str) -> Pattern:
    """Compile an anchor; any whitespace run in it matches spaces or tabs."""
    words = anchor.split()
    if not words:
        raise ConfigError("Anchor must not be empty")
    body = r"[ \t]+".join(re.escape(word) for word in words)
    return re.compile(body + VALUE_PATTERN)


def _value_group(match: re.Match) -> str:
    for group in ("dq", "sq", "bare"):
        if match.group(group) is not None:
            return group
    return "bare"


class FieldMap:
    """A parsed source file whose tracked fields can be read and replaced by name."""

    def __init__(self, tokens: List[Token], anchors: Mapping[str, str]):
        self.tokens = tokens
        self.anchors = dict(anchors)
        self._fields: Dict[str, TrackedField] = {
            token.name: token for token in tokens if isinstance(token, TrackedField)
        }

    @classmethod
    def parse(cls, text: str, anchors: Mapping[str, str]) -> "FieldMap":
        """Split ``text`` on the first occurrence of each anchor.

        Fields whose anchor does not occur are simply absent; use
        :meth:`require` for mandatory ones.
        """
        spans = []
        for name, anchor in anchors.items():
            match = anchor_pattern(anchor).search(text)
            if match is None:
                continue
            group = _value_group(match)
            spans.append((match.start(group), match.end(group), name))
        spans.sort()

        tokens: List[Token] = []
        position = 0
        for start, end, name in spans:
            if start < position:
                raise ConfigError(f"Anchor for field '{name}' overlaps another field")
            if start > position:
                tokens.append(LiteralSpan(text[position:start]))
            tokens.append(TrackedField(name, text[start:end]))
            position = end
        if position < len(text):
            tokens.append(LiteralSpan(text[position:]))
        return cls(tokens, anchors)

    @classmethod
    def load(cls, path: Path, anchors: Mapping[str, str]) -> "FieldMap":
        if not path.is_file():
            raise ConfigError(f"Target file not found: {path}")
        with open(path, "r", encoding="utf-8", newline="") as f:
            return cls.parse(f.read(), anchors)

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    def __getitem__(self, name: str) -> str:
        return self._fields[name].value

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        tracked = self._fields.get(name)
        return tracked.value if tracked is not None else default

    def require(self, name: str) -> str:
        if name not in self._fields:
            raise FieldNotFoundError(name, self.anchors.get(name, ""))
        return self._fields[name].value

    def set(self, name: str, value: str) -> bool:
        """Replace a field value; returns True if the value differs."""
        if name not in self._fields:
            raise FieldNotFoundError(name, self.anchors.get(name, ""))
        tracked = self._fields[name]
        tracked.value = str(value)
        return tracked.changed

    @property
    def changed(self) -> bool:
        return any(tracked.changed for tracked in self._fields.values())

    def changed_fields(self) -> List[str]:
        return [name for name, tracked in self._fields.items() if tracked.changed]

    def render(self) -> str:
        return "".join(
            token.text if isinstance(token, LiteralSpan) else token.value
            for token in self.tokens
        )

    def save(self, path: Path) -> None:
        """Write the file back, keeping a backup until the new content is in place."""
        backup = path.with_name(path.name + ".bak")
        staging = path.with_name(f".{path.name}.tmp")
        shutil.copy2(path, backup)
        with open(staging, "w", encoding="utf-8", newline="") as f:
            f.write(self.render())
        shutil.copymode(backup, staging)
        os.replace(staging, path)
        backup.unlink()
        for tracked in self._fields.values():
            tracked.original = tracked.value
