"""Release commands using the Command Pattern.

Example:
    ```python
    from syncrelease.commands import CommitCommand, TagCommand
    from syncrelease.observers import FileLogObserver

    commit_cmd = CommitCommand(repository, [version_file], message)
    commit_cmd.add_observer(FileLogObserver("release.log"))
    commit_cmd.execute()

    TagCommand(repository, "v1.3.0", message).execute()
    ```
"""

from .base import ReleaseCommand
from .commit import CommitCommand
from .tag import TagCommand

__all__ = [
    "ReleaseCommand",
    "CommitCommand",
    "TagCommand",
]
