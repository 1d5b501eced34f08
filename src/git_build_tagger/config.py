"""Tagging configuration backed by the `buildtag.*` git config namespace."""

from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path

from .errors import ConfigError
from .git import git_config


class BaseBuildStrategy(str, Enum):
    """Where the base build number of the next tag comes from."""

    LOG = "log"
    TAG = "tag"


class RevertBehavior(str, Enum):
    """What happens to a repository after a revert was requested."""

    STOP = "stop"
    CONTINUE = "continue"


class LogStyle(str, Enum):
    """Line format of the version log."""

    VERSION = "version"
    TAG = "tag"
    DETAILED = "detailed"


@dataclass
class TaggerConfig:
    log_file: str = "build_version.txt"
    prefix: str = "build"
    major: int = 1
    minor: int = 0
    revert_to: str | None = None
    strategy: BaseBuildStrategy = BaseBuildStrategy.LOG
    revert_behavior: RevertBehavior = RevertBehavior.STOP
    cascade_submodules: bool = False
    force_push: bool = False
    force_tag: bool = False
    log_style: LogStyle = LogStyle.VERSION
    create_missing_log: bool = True
    max_probes: int = 1000
    remote: str = "origin"
    main_branch: str = "main"
    ignore_file: str = ".buildtagignore"

    def __post_init__(self):
        self.strategy = _coerce_enum(BaseBuildStrategy, self.strategy, "strategy")
        self.revert_behavior = _coerce_enum(RevertBehavior, self.revert_behavior, "revert_behavior")
        self.log_style = _coerce_enum(LogStyle, self.log_style, "log_style")

        if self.major < 0 or self.minor < 0:
            raise ConfigError("major and minor must be non-negative")
        if self.max_probes < 1:
            raise ConfigError("max_probes must be at least 1")
        if not self.prefix:
            raise ConfigError("tag prefix must not be empty")
        if not self.log_file:
            raise ConfigError("version log file name must not be empty")


# Dataclass field -> key under `buildtag.` in git config
CONFIG_KEYS = {
    "log_file": "logFile",
    "prefix": "prefix",
    "major": "major",
    "minor": "minor",
    "strategy": "strategy",
    "revert_behavior": "revertBehavior",
    "cascade_submodules": "cascade",
    "force_push": "forcePush",
    "force_tag": "forceTag",
    "log_style": "logStyle",
    "create_missing_log": "createMissingLog",
    "max_probes": "maxProbes",
    "remote": "remote",
    "main_branch": "mainBranch",
    "ignore_file": "ignoreFile",
}

_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0"}


def _coerce_enum(enum_cls, value, name: str):
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise ConfigError(f"invalid {name} {value!r}; expected one of: {choices}") from None


def _parse_bool(key: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"buildtag.{key}: expected a boolean, got {value!r}")


def _parse_int(key: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"buildtag.{key}: expected an integer, got {value!r}") from None


def get_buildtag_config(
    key: str,
    repo: Path | None = None,
    default: str | None = None,
) -> str | None:
    """
    Get a tagging configuration value.

    Reads from git config under the `buildtag.*` namespace.

    Args:
        key: Config key without the "buildtag." prefix (e.g., "prefix").
        repo: Optional repository path. If None, uses current directory.
        default: Default value if config key is not set.

    Returns:
        Config value if set, otherwise default.

    Example:
        prefix = get_buildtag_config("prefix", default="build")

    """
    return git_config(f"buildtag.{key}", repo=repo, default=default)


def load_config(repo: Path | None = None, **overrides) -> TaggerConfig:
    """
    Build a `TaggerConfig` from git config defaults and explicit overrides.

    Resolution order for every field:
    1. Non-None keyword override (usually a command line option)
    2. `buildtag.<key>` from git config
    3. The dataclass default

    Args:
        repo: Repository whose config is read. If None, uses current
              directory (global and system config outside a repository).
        **overrides: Field values; None means "not given".

    Raises:
        ConfigError: On unknown fields or unparseable values.

    """
    field_names = {f.name for f in fields(TaggerConfig)}
    unknown = set(overrides) - field_names
    if unknown:
        raise ConfigError(f"unknown configuration fields: {', '.join(sorted(unknown))}")

    values = {}
    for name, key in CONFIG_KEYS.items():
        if overrides.get(name) is not None:
            continue
        if (raw := get_buildtag_config(key, repo=repo)) is None:
            continue
        default = getattr(TaggerConfig, name)
        if isinstance(default, bool):
            values[name] = _parse_bool(key, raw)
        elif isinstance(default, int):
            values[name] = _parse_int(key, raw)
        else:
            values[name] = raw

    values.update({k: v for k, v in overrides.items() if v is not None})
    return TaggerConfig(**values)
