"""Tests for the release and repository-info synchronizers."""
import socket
from datetime import date, datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from rich.console import Console

from syncrelease.config import Config
from syncrelease.core import (
    ReleaseSynchronizer,
    RepoInfoSynchronizer,
    SyncState,
    compose_release_message,
    format_time,
)
from syncrelease.errors import (
    ConfigError,
    DuplicateTagError,
    FieldNotFoundError,
    GrammarError,
    UserAbort,
)
from syncrelease.history import ConventionalHistory, HistoryTool
from syncrelease.observers import ReleaseObserver
from syncrelease.prompts import DefaultsPrompter
from syncrelease.semver import SemVer, VersionChange
from syncrelease.vcs import GitRepository

from conftest import VERSION_HEADER, commit_file

TODAY = date(2026, 10, 17)


class StubHistory(HistoryTool):
    """History tool returning a fixed next version."""

    def __init__(self, version=None):
        self.version = version
        self.changelog_updates = []

    def next_version(self, current):
        return self.version or str(current)

    def update_changelog(self, path):
        self.changelog_updates.append(path)
        path.write_text("# Changelog\n\n## [Unreleased] - 2026-10-17\n")


def make_synchronizer(release_repo, history=None, **answers):
    config = Config.load(release_repo.config_path)
    config.answers.update(answers)
    repository = GitRepository(release_repo.root)
    if history is None:
        history = ConventionalHistory(repository, today=TODAY)
    return ReleaseSynchronizer(
        config,
        repository,
        history,
        DefaultsPrompter(config.answers),
        Console(quiet=True),
        today=TODAY,
    )


def write_version(release_repo, major=1, minor=2, patch=3, tweak=""):
    release_repo.version_file.write_text(
        VERSION_HEADER.format(major=major, minor=minor, patch=patch, tweak=tweak)
    )


def test_release_feature_commit(release_repo):
    commit_file(release_repo.repo, "scan.c", "int scan;", "feat(parser): add incremental scan")
    synchronizer = make_synchronizer(release_repo, commit_release="yes")
    observer = Mock(spec=ReleaseObserver)
    synchronizer.add_observer(observer)

    change = synchronizer.run()

    assert str(change.current) == "1.3.0"
    assert change.tag == "v1.3.0"
    assert change.changed_fields == ["minor", "patch"]
    assert synchronizer.state == SyncState.COMMIT_TAGGED
    assert release_repo.version_file.read_text() == VERSION_HEADER.format(
        major=1, minor=3, patch=0, tweak=""
    )

    repo = release_repo.repo
    assert "v1.3.0" in [tag.name for tag in repo.tags]
    assert repo.head.commit.message.startswith("chore(release): v1.3.0\n")
    assert "- update version.h" in repo.head.commit.message
    assert not repo.is_dirty()

    observer.on_version_written.assert_called_once()
    observer.on_commit_created.assert_called_once()
    observer.on_tag_created.assert_called_once_with("v1.3.0")
    observer.on_changelog_updated.assert_not_called()


def test_release_without_commit(release_repo):
    commit_file(release_repo.repo, "eof.c", "int eof;", "fix(io): handle eof")
    synchronizer = make_synchronizer(release_repo)

    change = synchronizer.run()

    assert change.tag == "v1.2.4"
    assert synchronizer.state == SyncState.PERSISTED
    assert not release_repo.repo.tags
    assert release_repo.repo.is_dirty()


def test_unchanged_version_is_not_written(release_repo):
    before = release_repo.version_file.read_bytes()
    mtime = release_repo.version_file.stat().st_mtime_ns
    synchronizer = make_synchronizer(release_repo, history=StubHistory())

    change = synchronizer.run()

    assert not change.changed
    assert release_repo.version_file.read_bytes() == before
    assert release_repo.version_file.stat().st_mtime_ns == mtime


def test_branch_declined(release_repo):
    synchronizer = make_synchronizer(release_repo, confirm_branch="no")

    with pytest.raises(UserAbort):
        synchronizer.run()
    assert synchronizer.state == SyncState.LOADED


def test_override_fields(release_repo):
    synchronizer = make_synchronizer(
        release_repo,
        accept_version="no",
        major="2",
        minor="0",
        patch="0",
        tweak="rc.1",
    )

    change = synchronizer.run()

    assert str(change.current) == "2.0.0-rc.1"
    assert change.tag == "v2.0.0-rc.1"
    assert release_repo.version_file.read_text() == VERSION_HEADER.format(
        major=2, minor=0, patch=0, tweak="rc.1"
    )


@pytest.mark.parametrize("answers", [{"tweak": "gamma.1"}, {"minor": "x"}])
def test_override_rejects_bad_fields(release_repo, answers):
    before = release_repo.version_file.read_text()
    synchronizer = make_synchronizer(release_repo, accept_version="no", **answers)

    with pytest.raises(GrammarError):
        synchronizer.run()
    assert release_repo.version_file.read_text() == before


def test_changed_tweak_gets_commit_hash(release_repo):
    write_version(release_repo, tweak="rc.1")
    synchronizer = make_synchronizer(release_repo, history=StubHistory("1.2.3-rc.2"))
    head = release_repo.repo.head.commit.hexsha[:10]

    change = synchronizer.run()

    assert str(change.current) == f"1.2.3-rc.2+{head}"
    assert change.tag == "v1.2.3-rc.2"
    assert f'semver_tweak[] = "rc.2+{head}";' in release_repo.version_file.read_text()


def test_unchanged_tweak_keeps_its_hash(release_repo):
    write_version(release_repo, tweak="rc.1+abc1234567")
    synchronizer = make_synchronizer(release_repo, history=StubHistory())

    change = synchronizer.run()

    assert str(change.current) == "1.2.3-rc.1+abc1234567"
    assert not change.changed


def test_date_counter_refreshed(release_repo):
    write_version(release_repo, tweak="beta.20250611")
    synchronizer = make_synchronizer(release_repo, history=StubHistory())

    change = synchronizer.run()

    assert change.current.tweak.base == "beta.20261017"
    assert change.current.tweak.commit_hash == release_repo.repo.head.commit.hexsha[:10]


def test_stamp_drops_hash_when_tweak_removed():
    config = Config(hash_length=8)
    repository = Mock()
    repository.head_hash.return_value = "01234567"
    synchronizer = ReleaseSynchronizer(
        config, repository, StubHistory(), console=Console(quiet=True), today=TODAY
    )

    stamped = synchronizer.stamp(SemVer.parse("1.2.3-rc.1+abc"), SemVer.parse("1.3.0"))
    assert stamped.tweak is None

    stamped = synchronizer.stamp(SemVer.parse("1.2.3"), SemVer.parse("1.2.3-rc.1"))
    assert str(stamped) == "1.2.3-rc.1+01234567"
    repository.head_hash.assert_called_once_with(8)


def test_duplicate_tag_stops_before_writing(release_repo):
    release_repo.repo.create_tag("v1.2.4", message="release v1.2.4")
    before = release_repo.version_file.read_text()
    synchronizer = make_synchronizer(release_repo, history=StubHistory("1.2.4"))

    with pytest.raises(DuplicateTagError):
        synchronizer.run()
    assert synchronizer.state == SyncState.NEGOTIATED
    assert release_repo.version_file.read_text() == before


def test_full_tag_used_when_short_tag_exists(release_repo):
    release_repo.repo.create_tag("v1.2.3", message="release v1.2.3")
    write_version(release_repo, tweak="+abc1234567")
    synchronizer = make_synchronizer(release_repo, history=StubHistory())

    change = synchronizer.run()

    assert change.tag == "v1.2.3+abc1234567"
    assert change.short_tag == "v1.2.3"
    assert change.previous_tag == "v1.2.3"


def test_release_candidate_then_final(release_repo):
    candidate = make_synchronizer(
        release_repo,
        accept_version="no",
        commit_release="yes",
        major="2",
        minor="0",
        patch="0",
        tweak="rc.1",
    ).run()
    assert candidate.tag == "v2.0.0-rc.1"

    final = make_synchronizer(
        release_repo,
        accept_version="no",
        commit_release="yes",
        major="2",
        minor="0",
        patch="0",
        tweak="",
    ).run()

    assert final.tag == "v2.0.0"
    assert final.previous_tag == "v2.0.0-rc.1"
    tags = sorted(tag.name for tag in release_repo.repo.tags)
    assert tags == ["v2.0.0", "v2.0.0-rc.1"]


def test_month_end_date_counter_refreshed(release_repo):
    write_version(release_repo, tweak="nightly.20250131")
    synchronizer = make_synchronizer(release_repo)

    change = synchronizer.run()

    assert change.current.tweak.base == "nightly.20261017"
    assert 'semver_tweak[] = "nightly.20261017+' in release_repo.version_file.read_text()


def test_tweak_without_anchor_stops_before_writing(release_repo):
    before = release_repo.version_file.read_text()
    synchronizer = make_synchronizer(
        release_repo,
        accept_version="no",
        major="2",
        minor="0",
        patch="0",
        tweak="rc.1",
    )
    del synchronizer.config.anchors["tweak"]

    with pytest.raises(FieldNotFoundError) as excinfo:
        synchronizer.run()
    assert excinfo.value.field == "tweak"
    assert synchronizer.state == SyncState.NEGOTIATED
    assert release_repo.version_file.read_text() == before


def test_missing_field(release_repo):
    release_repo.version_file.write_text(
        'static const char semver_major[] = "1";\n'
        'static const char semver_minor[] = "2";\n'
    )
    synchronizer = make_synchronizer(release_repo)

    with pytest.raises(FieldNotFoundError) as excinfo:
        synchronizer.run()
    assert excinfo.value.field == "patch"


def test_changelog_updated_and_committed(release_repo):
    commit_file(release_repo.repo, "eof.c", "int eof;", "fix(io): handle eof")
    synchronizer = make_synchronizer(release_repo, commit_release="yes")
    synchronizer.config.changelog = release_repo.root / "CHANGELOG.md"

    synchronizer.run()

    content = (release_repo.root / "CHANGELOG.md").read_text()
    assert content.startswith("# Changelog\n\n## [v1.2.4] - 2026-10-17\n")
    assert "- **io**: handle eof" in content
    assert not release_repo.repo.is_dirty()
    assert release_repo.repo.git.ls_files("CHANGELOG.md") == "CHANGELOG.md"


def test_changelog_declined(release_repo):
    history = StubHistory("1.2.4")
    synchronizer = make_synchronizer(release_repo, history=history, update_changelog="no")
    synchronizer.config.changelog = release_repo.root / "CHANGELOG.md"

    synchronizer.run()

    assert history.changelog_updates == []
    assert not (release_repo.root / "CHANGELOG.md").exists()


def test_compose_release_message(tmp_path):
    change = VersionChange(
        SemVer.parse("1.2.3"),
        SemVer.parse("1.3.0"),
        previous_tag="v1.2.3",
        tag="v1.3.0",
    )
    message = compose_release_message(change, [tmp_path / "version.h"], tmp_path)
    assert message == (
        "chore(release): v1.3.0\n"
        "\n"
        "- update version.h\n"
        "\n"
        "Changes since v1.2.3 (1.2.3 -> 1.3.0)"
    )


INFO_TEMPLATE = """\
#define REPO_URL "{repo_url}"
#define REPO_HASH "{repo_hash}"
#define BUILD_USER "{build_user}"
#define BUILD_TIME "{build_time}"
#define HOST_NAME "{host_name}"
"""

INFO_ANCHORS = {
    "repo_url": "#define REPO_URL",
    "repo_hash": "#define REPO_HASH",
    "build_user": "#define BUILD_USER",
    "build_time": "#define BUILD_TIME",
    "host_name": "#define HOST_NAME",
}


@pytest.fixture
def info_config(release_repo):
    info_file = release_repo.root / "info.h"
    info_file.write_text(
        INFO_TEMPLATE.format(repo_url="", repo_hash="", build_user="", build_time="", host_name="")
    )
    return Config(
        repo_dir=release_repo.root,
        vs_vfile=info_file,
        anchors=INFO_ANCHORS,
    )


def test_repo_info_written(release_repo, info_config):
    release_repo.repo.create_remote("origin", "https://example.com/project.git")
    now = datetime(2026, 10, 17, 9, 30, tzinfo=timezone(timedelta(hours=2)))
    synchronizer = RepoInfoSynchronizer(
        info_config, GitRepository(release_repo.root), Console(quiet=True), now=now
    )
    observer = Mock(spec=ReleaseObserver)
    synchronizer.add_observer(observer)

    changed = synchronizer.run()

    assert sorted(changed) == sorted(INFO_ANCHORS)
    assert info_config.vs_vfile.read_text() == INFO_TEMPLATE.format(
        repo_url="https://example.com/project.git",
        repo_hash=release_repo.repo.head.commit.hexsha[:7],
        build_user="Test User <test@example.com>",
        build_time="2026-10-17 09:30:00 +0200",
        host_name=socket.gethostname(),
    )
    observer.on_repo_info_written.assert_called_once()

    # Same inputs leave the file alone
    assert synchronizer.run() == []
    observer.on_repo_info_written.assert_called_once()


def test_repo_info_configured_user(release_repo, info_config):
    info_config.user_name = "Release Bot"
    info_config.user_email = ""
    synchronizer = RepoInfoSynchronizer(info_config, GitRepository(release_repo.root))
    assert synchronizer.build_user() == "Release Bot"

    info_config.user_name = "Jane; rm -rf"
    with pytest.raises(ConfigError):
        synchronizer.build_user()


def test_repo_info_missing_anchor(release_repo, info_config):
    info_config.vs_vfile.write_text('#define REPO_URL ""\n')
    synchronizer = RepoInfoSynchronizer(
        info_config, GitRepository(release_repo.root), Console(quiet=True)
    )

    with pytest.raises(FieldNotFoundError):
        synchronizer.run()


def test_repo_info_requires_anchors(release_repo):
    config = Config(repo_dir=release_repo.root, vs_vfile=release_repo.version_file)
    synchronizer = RepoInfoSynchronizer(config, GitRepository(release_repo.root))

    with pytest.raises(ConfigError, match="anchors"):
        synchronizer.run()


def test_format_time():
    moment = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert format_time(moment) == "2026-01-02 03:04:05 +0000"
