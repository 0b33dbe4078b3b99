"""Configuration management for syncrelease."""
import os
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Literal, Optional, Tuple

import tomli
import tomli_w
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError
from .semver import VOCABULARIES

DEFAULT_RELEASE_CONFIG = ".sync-release.toml"
DEFAULT_REPO_INFO_CONFIG = ".sync-repo-info.toml"

RELEASE_FIELDS = ("major", "minor", "patch", "tweak", "semver")
REPO_INFO_FIELDS = (
    "repo_url",
    "repo_hash",
    "modify_time",
    "build_user",
    "build_time",
    "host_name",
    "host_user",
    "host_osnv",
)

INVOCATION_KEYS = ("CONFIG", "INTERACTIVE", "TESTING")

TRUE_VALUES = ("true", "1", "yes", "y", "on")
FALSE_VALUES = ("false", "0", "no", "n", "off")


def parse_bool(value: str) -> bool:
    lowered = str(value).strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ConfigError(f"Expected a boolean value, got {value!r}")


def parse_invocation(tokens: Iterable[str]) -> Dict[str, str]:
    """Parse ``KEY=value`` command line tokens.

    Raises:
        ConfigError: for a token without ``=`` or an unknown key.
    """
    settings = {}
    for token in tokens:
        key, sep, value = token.partition("=")
        if not sep:
            raise ConfigError(f"Expected KEY=value, got {token!r}")
        key = key.strip().upper()
        if key not in INVOCATION_KEYS:
            raise ConfigError(
                f"Unknown setting {key!r}, expected one of: {', '.join(INVOCATION_KEYS)}"
            )
        settings[key] = value.strip()
    return settings


def is_within(path: Path, root: Path) -> bool:
    try:
        path.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    return True


class Config(BaseModel):
    """Configuration settings for the release tools.

    Values come from a TOML file, then ``SYNC_RELEASE_*`` environment
    variables, then command line settings, each overriding the previous.
    """

    repo_dir: Path = Field(
        default=Path("."),
        description="Root directory of the repository working copy"
    )

    repo_vcs: str = Field(
        default="auto",
        description="Version control system: GIT, SVN or auto"
    )

    vs_vfile: Optional[Path] = Field(
        default=None,
        description="File holding the tracked version or repository-info fields"
    )

    changelog: Optional[Path] = Field(
        default=None,
        description="Changelog file updated on release"
    )

    tweak_vocabulary: Literal["lifecycle", "legacy"] = Field(
        default="lifecycle",
        description="Pre-release label vocabulary accepted in the tweak field"
    )

    hash_length: int = Field(
        default=10,
        ge=4,
        le=40,
        description="Number of commit-hash characters appended to a changed tweak"
    )

    require_signoff: bool = Field(
        default=False,
        description="Reject commit messages without a Signed-off-by trailer"
    )

    message_cache_dir: Optional[Path] = Field(
        default=None,
        description="Directory where rejected commit messages are kept for reuse"
    )

    user_name: Optional[str] = Field(
        default=None,
        description="Build user name; detected from the VCS when unset"
    )

    user_email: Optional[str] = Field(
        default=None,
        description="Build user email; detected from the VCS when unset"
    )

    interactive: bool = Field(
        default=True,
        description="Prompt the operator; otherwise use default answers"
    )

    testing: bool = Field(
        default=False,
        description="Deterministic default answers and no console output"
    )

    always_log: bool = Field(
        default=False,
        description="Whether to always generate log files"
    )

    log_file: Optional[str] = Field(
        default=None,
        description="Path to log file (if not using automatic log file generation)"
    )

    anchors: Dict[str, str] = Field(
        default_factory=dict,
        description="Literal text preceding each tracked field value"
    )

    answers: Dict[str, str] = Field(
        default_factory=dict,
        description="Default answers used in non-interactive mode, by prompt key"
    )

    config_path: Optional[Path] = Field(default=None, exclude=True)

    @field_validator("repo_vcs")
    @classmethod
    def _check_vcs(cls, value: str) -> str:
        value = value.strip().upper()
        if value not in ("GIT", "SVN", "AUTO"):
            raise ValueError("repo_vcs must be GIT, SVN or auto")
        return value

    @field_validator("anchors")
    @classmethod
    def _check_anchors(cls, value: Dict[str, str]) -> Dict[str, str]:
        known = RELEASE_FIELDS + REPO_INFO_FIELDS
        unknown = sorted(set(value) - set(known))
        if unknown:
            raise ValueError(f"unknown anchor field(s): {', '.join(unknown)}")
        return value

    def __init__(self, **data):
        """Initialize config with environment variable support."""
        env_data = {}

        env_mapping = {
            'SYNC_RELEASE_INTERACTIVE': 'interactive',
            'SYNC_RELEASE_TESTING': 'testing',
            'SYNC_RELEASE_REQUIRE_SIGNOFF': 'require_signoff',
            'SYNC_RELEASE_MESSAGE_CACHE_DIR': 'message_cache_dir',
            'SYNC_RELEASE_ALWAYS_LOG': 'always_log',
            'SYNC_RELEASE_LOG_FILE': 'log_file',
            'SYNC_RELEASE_USER_NAME': 'user_name',
            'SYNC_RELEASE_USER_EMAIL': 'user_email',
        }

        for env_var, field_name in env_mapping.items():
            if env_var in os.environ:
                value = os.environ[env_var]
                if field_name in ['interactive', 'testing', 'require_signoff', 'always_log']:
                    value = parse_bool(value)
                env_data[field_name] = value

        merged_data = {**data, **env_data}

        super().__init__(**merged_data)

    @classmethod
    def load(cls, config_path: Path) -> 'Config':
        """Load configuration from a TOML file.

        Relative paths inside the file are resolved against the directory
        holding it, which is also the default ``repo_dir``.

        Raises:
            ConfigError: if the file is missing or invalid
        """
        if not config_path.is_file():
            raise ConfigError(f"Configuration file not found: {config_path}")

        try:
            with config_path.open('rb') as f:
                config_data = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigError(f"Invalid configuration file {config_path}: {e}") from e

        base = config_path.resolve().parent
        for key in ('repo_dir', 'vs_vfile', 'changelog', 'message_cache_dir'):
            if isinstance(config_data.get(key), str):
                config_data[key] = base / config_data[key]
        config_data.setdefault('repo_dir', base)

        try:
            config = cls(**config_data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration file {config_path}: {e}") from e
        config.config_path = config_path
        return config

    @classmethod
    def load_optional(cls, config_path: Path) -> 'Config':
        """Load ``config_path`` when it exists, otherwise use defaults."""
        if config_path.is_file():
            return cls.load(config_path)
        return cls()

    def save(self, config_path: Path) -> None:
        """Save configuration to a TOML file."""
        config_dict = {
            k: (str(v) if isinstance(v, Path) else v)
            for k, v in self.model_dump(exclude={'config_path', 'interactive', 'testing'}).items()
            if v is not None
        }
        with config_path.open('wb') as f:
            tomli_w.dump(config_dict, f)

    def apply_invocation(self, settings: Dict[str, str]) -> None:
        """Apply ``INTERACTIVE``/``TESTING`` command line settings."""
        if 'INTERACTIVE' in settings:
            self.interactive = parse_bool(settings['INTERACTIVE'])
        if 'TESTING' in settings:
            self.testing = parse_bool(settings['TESTING'])
        if self.testing:
            self.interactive = False

    @property
    def vocabulary(self) -> Tuple[str, ...]:
        return VOCABULARIES[self.tweak_vocabulary]

    def release_anchors(self) -> Dict[str, str]:
        return {k: v for k, v in self.anchors.items() if k in RELEASE_FIELDS}

    def repo_info_anchors(self) -> Dict[str, str]:
        return {k: v for k, v in self.anchors.items() if k in REPO_INFO_FIELDS}

    def check_release_anchors(self) -> None:
        missing = [name for name in ("major", "minor", "patch") if name not in self.anchors]
        if missing:
            raise ConfigError(f"Missing anchor(s) for: {', '.join(missing)}")

    def check_paths(self, repo_root: Path) -> None:
        """Verify the configured paths against the VCS working-copy root.

        Raises:
            ConfigError: for a mismatched root, a missing version file or a
                path outside the repository
        """
        if self.repo_dir.resolve() != repo_root.resolve():
            raise ConfigError(
                f"Configured repo_dir {self.repo_dir} does not match repository root {repo_root}"
            )
        if self.vs_vfile is None:
            raise ConfigError("vs_vfile is not configured")
        if not self.vs_vfile.is_file():
            raise ConfigError(f"Target file not found: {self.vs_vfile}")
        for path in (self.vs_vfile, self.changelog, self.message_cache_dir):
            if path is not None and not is_within(path, repo_root):
                raise ConfigError(f"Path is outside the repository: {path}")

    def get_log_file(self) -> Optional[Path]:
        """Get the path to the log file.

        If always_log is True, generates a timestamped log file name.
        Otherwise, returns the configured log_file path if set.
        """
        if self.always_log:
            timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
            return Path(f"sync-release-{timestamp}.log")
        elif self.log_file:
            return Path(self.log_file)
        return None
