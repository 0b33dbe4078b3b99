"""Semantic versions, pre-release tweaks and release tags."""
import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence

from .errors import DuplicateTagError, GrammarError

LIFECYCLE_LABELS = (
    "dev",
    "pre",
    "nightly",
    "alpha",
    "beta",
    "rc",
    "stable",
    "release",
    "lts",
    "eol",
)
LEGACY_LABELS = ("pre", "alpha", "beta", "rc", "eol")

VOCABULARIES = {
    "lifecycle": LIFECYCLE_LABELS,
    "legacy": LEGACY_LABELS,
}

VERSION_FIELDS = ("major", "minor", "patch", "tweak")

# label[.counter][+hash], counter[+hash] or +hash
TWEAK_PATTERN = re.compile(
    r"^(?P<label>[a-z]+)?"
    r"(?:(?(label)\.)(?P<counter>\d+))?"
    r"(?:\+(?P<hash>[0-9a-f]+))?$"
)

VERSION_PATTERN = re.compile(
    r"^v?(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)"
    r"(?:-(?P<pre>[^+\s]+))?"
    r"(?:\+(?P<build>\S+))?$"
)

SEMVER_PATTERN = re.compile(
    r"^(\d+)\.(\d+)\.(\d+)"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

DATE_COUNTER_FORMAT = "%Y%m%d"


def is_valid_semver(text: str) -> bool:
    """Check that ``text`` is a syntactically valid semantic version."""
    return bool(SEMVER_PATTERN.match(text.strip()))


def looks_like_date(counter: Optional[str]) -> bool:
    if not counter or len(counter) != 8 or not counter.isdigit():
        return False
    try:
        datetime.strptime(counter, DATE_COUNTER_FORMAT)
    except ValueError:
        return False
    return True


def parse_number(name: str, text: str) -> int:
    text = str(text).strip()
    if not text.isdigit():
        raise GrammarError(f"{name} must be a non-negative integer, got {text!r}")
    return int(text)


@dataclass(frozen=True)
class Tweak:
    """Pre-release segment: optional label, counter and commit-hash suffix."""

    label: Optional[str] = None
    counter: Optional[str] = None
    commit_hash: Optional[str] = None

    @classmethod
    def parse(
        cls, text: str, vocabulary: Sequence[str] = LIFECYCLE_LABELS
    ) -> Optional["Tweak"]:
        """Parse tweak text, returning ``None`` for an empty tweak.

        Raises:
            GrammarError: if the text does not follow the tweak grammar or
                the label is outside ``vocabulary``.
        """
        text = (text or "").strip()
        if not text:
            return None
        match = TWEAK_PATTERN.match(text)
        if not match:
            raise GrammarError(
                f"Invalid tweak {text!r}: expected label[.counter][+hash]"
            )
        label = match.group("label")
        if label is not None and label not in vocabulary:
            raise GrammarError(
                f"Unknown tweak label {label!r}, expected one of: {' '.join(vocabulary)}"
            )
        return cls(label, match.group("counter"), match.group("hash"))

    @property
    def base(self) -> str:
        """The tweak without its commit-hash suffix."""
        if self.label and self.counter is not None:
            return f"{self.label}.{self.counter}"
        return self.label or self.counter or ""

    @property
    def is_empty(self) -> bool:
        return not self.base and not self.commit_hash

    @property
    def metadata_only(self) -> bool:
        return not self.base and bool(self.commit_hash)

    def with_hash(self, commit_hash: Optional[str]) -> "Tweak":
        return replace(self, commit_hash=commit_hash or None)

    def bump_counter(self) -> "Tweak":
        if self.counter is None:
            return self
        bumped = str(int(self.counter) + 1).zfill(len(self.counter))
        return replace(self, counter=bumped)

    def refresh_date(self, today: date) -> "Tweak":
        """Replace a ``YYYYMMDD`` counter with ``today``."""
        if not looks_like_date(self.counter):
            return self
        return replace(self, counter=today.strftime(DATE_COUNTER_FORMAT))

    def __str__(self) -> str:
        suffix = f"+{self.commit_hash}" if self.commit_hash else ""
        return self.base + suffix


@dataclass(frozen=True)
class SemVer:
    major: int
    minor: int
    patch: int
    tweak: Optional[Tweak] = None

    def __post_init__(self):
        for name in ("major", "minor", "patch"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise GrammarError(f"{name} must be a non-negative integer, got {value!r}")
        if self.tweak is not None and self.tweak.is_empty:
            object.__setattr__(self, "tweak", None)

    @classmethod
    def parse(
        cls, text: str, vocabulary: Sequence[str] = LIFECYCLE_LABELS
    ) -> "SemVer":
        """Parse ``M.N.P[-tweak][+hash]`` (an optional leading ``v`` is allowed)."""
        match = VERSION_PATTERN.match(text.strip())
        if not match:
            raise GrammarError(f"Invalid version: {text!r}")
        tweak_text = match.group("pre") or ""
        if match.group("build"):
            tweak_text += f"+{match.group('build')}"
        return cls(
            int(match.group("major")),
            int(match.group("minor")),
            int(match.group("patch")),
            Tweak.parse(tweak_text, vocabulary),
        )

    @classmethod
    def from_fields(
        cls,
        major: str,
        minor: str,
        patch: str,
        tweak: str = "",
        vocabulary: Sequence[str] = LIFECYCLE_LABELS,
    ) -> "SemVer":
        return cls(
            parse_number("major", major),
            parse_number("minor", minor),
            parse_number("patch", patch),
            Tweak.parse(tweak, vocabulary),
        )

    @property
    def core(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    @property
    def tag(self) -> str:
        """Full release tag; metadata-only tweaks use ``+hash`` with no hyphen."""
        return f"v{self}"

    @property
    def short_tag(self) -> str:
        """Release tag without the commit-hash suffix."""
        if self.tweak is not None and self.tweak.base:
            return f"v{self.core}-{self.tweak.base}"
        return f"v{self.core}"

    def fields(self) -> Dict[str, str]:
        return {
            "major": str(self.major),
            "minor": str(self.minor),
            "patch": str(self.patch),
            "tweak": str(self.tweak) if self.tweak else "",
        }

    def __str__(self) -> str:
        text = self.core
        if self.tweak is None:
            return text
        if self.tweak.base:
            text += f"-{self.tweak.base}"
        if self.tweak.commit_hash:
            text += f"+{self.tweak.commit_hash}"
        return text


@dataclass(frozen=True)
class VersionChange:
    """Result of negotiating a new version, consumed by the persist steps."""

    previous: SemVer
    current: SemVer
    previous_tag: Optional[str] = None
    tag: Optional[str] = None
    short_tag: Optional[str] = None
    changed_fields: List[str] = field(default_factory=list, compare=False)

    def __post_init__(self):
        before, after = self.previous.fields(), self.current.fields()
        names = [name for name in VERSION_FIELDS if before[name] != after[name]]
        object.__setattr__(self, "changed_fields", names)

    @property
    def changed(self) -> bool:
        return bool(self.changed_fields)


def select_release_tag(version: SemVer, existing: Iterable[str]) -> str:
    """Pick the tag to create for ``version``.

    The short tag (no commit hash) wins when it is unique. Otherwise the full
    tag must be unique.
    """
    existing = set(existing)
    if version.short_tag not in existing:
        return version.short_tag
    if version.tag != version.short_tag and version.tag not in existing:
        return version.tag
    raise DuplicateTagError(*sorted({version.short_tag, version.tag}))
