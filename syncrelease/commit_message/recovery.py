"""Caching of rejected commit messages so they can be reused."""
import os
from pathlib import Path
from typing import Optional

from ..vcs import Repository

REJECTED_MESSAGE_FILENAME = "COMMIT_EDITMSG.rejected"


def can_cache(cache_dir: Path, repository: Optional[Repository] = None) -> bool:
    """The cache directory must exist, be writable and not be tracked by the VCS."""
    if not cache_dir.is_dir() or not os.access(cache_dir, os.W_OK):
        return False
    if repository is not None and repository.is_tracked(cache_dir):
        return False
    return True


def cache_rejected_message(
    text: str, cache_dir: Path, repository: Optional[Repository] = None
) -> Optional[Path]:
    """Save ``text`` to the cache directory, returning the path written."""
    if not can_cache(cache_dir, repository):
        return None
    cached = cache_dir / REJECTED_MESSAGE_FILENAME
    cached.write_text(text, encoding="utf-8")
    return cached


def restore_rejected_message(cache_dir: Path, message_file: Path) -> bool:
    """Copy a cached message into ``message_file`` and drop the cache."""
    cached = cache_dir / REJECTED_MESSAGE_FILENAME
    if not cached.is_file():
        return False
    message_file.write_text(cached.read_text(encoding="utf-8"), encoding="utf-8")
    cached.unlink()
    return True
