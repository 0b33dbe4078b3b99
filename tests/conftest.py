import tempfile
from pathlib import Path
from types import SimpleNamespace

import pytest
from git import Repo

VERSION_HEADER = """\
/* Update by sync-release */
static const char semver_major[] = "{major}";
static const char semver_minor[] = "{minor}";
static const char semver_patch[] = "{patch}";
static const char semver_tweak[] = "{tweak}";
"""

RELEASE_ANCHORS = {
    "major": "static const char semver_major[] =",
    "minor": "static const char semver_minor[] =",
    "patch": "static const char semver_patch[] =",
    "tweak": "static const char semver_tweak[] =",
}


def commit_file(repo: Repo, name: str, content: str, message: str) -> str:
    """Write a file inside the repository and commit it."""
    path = Path(repo.working_tree_dir) / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    repo.index.add([name])
    return repo.index.commit(message).hexsha


def write_config(root: Path, name: str = ".sync-release.toml", **settings) -> Path:
    """Write a TOML configuration file; tables are given as dicts."""
    lines = []
    tables = {}
    for key, value in settings.items():
        if isinstance(value, dict):
            tables[key] = value
        elif isinstance(value, bool):
            lines.append(f"{key} = {'true' if value else 'false'}")
        elif isinstance(value, int):
            lines.append(f"{key} = {value}")
        else:
            lines.append(f'{key} = "{value}"')
    for table, values in tables.items():
        lines.append(f"\n[{table}]")
        for key, value in values.items():
            lines.append(f'{key} = "{value}"')
    path = root / name
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def temp_git_repo():
    """Create a temporary git repository for testing."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        repo = Repo.init(tmp_dir)
        with repo.config_writer() as writer:
            writer.set_value("user", "name", "Test User")
            writer.set_value("user", "email", "test@example.com")

        commit_file(repo, "test.txt", "Initial content", "chore: initial commit")

        yield tmp_dir


@pytest.fixture
def release_repo(temp_git_repo):
    """A repository holding version.h at 1.2.3 and a matching configuration."""
    root = Path(temp_git_repo)
    repo = Repo(temp_git_repo)
    commit_file(
        repo,
        "version.h",
        VERSION_HEADER.format(major=1, minor=2, patch=3, tweak=""),
        "build: add version header",
    )
    config_path = write_config(
        root,
        repo_dir=".",
        repo_vcs="GIT",
        vs_vfile="version.h",
        testing=True,
        anchors=RELEASE_ANCHORS,
        answers={"commit_release": "no"},
    )
    return SimpleNamespace(
        root=root,
        repo=repo,
        version_file=root / "version.h",
        config_path=config_path,
    )
