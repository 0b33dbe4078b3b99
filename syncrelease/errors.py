"""Errors raised by the release tools."""


class SyncReleaseError(Exception):
    """Base class for every fatal error reported by the CLIs."""


class ConfigError(SyncReleaseError):
    """Missing or inconsistent configuration, or a path outside the repository."""


class GrammarError(SyncReleaseError):
    """Malformed header, footer, tweak or version text."""


class StateError(SyncReleaseError):
    """The repository or target file is not in a state we can release from."""


class FieldNotFoundError(StateError):
    def __init__(self, field: str, anchor: str):
        super().__init__(f"Field '{field}' not found (anchor: {anchor!r})")
        self.field = field
        self.anchor = anchor


class DuplicateTagError(StateError):
    def __init__(self, *tags: str):
        super().__init__(f"Release tag already exists: {', '.join(tags)}")
        self.tags = tags


class UserAbort(SyncReleaseError):
    """The operator declined a confirmation."""
