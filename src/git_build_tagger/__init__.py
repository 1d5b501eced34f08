"""Build version tagging for one or more git repositories.

Every operation takes the repository path explicitly, so the helpers work
on any working copy regardless of the current directory.
"""

# Re-export all public functions from submodules
from .config import (
    BaseBuildStrategy,
    LogStyle,
    RevertBehavior,
    TaggerConfig,
    load_config,
)
from .errors import (
    BackendError,
    BuildTagError,
    CloneError,
    ConfigError,
    MissingLogError,
    PushError,
    RevertTargetNotFoundError,
    TagSpaceExhaustedError,
)
from .resolver import (
    next_available_build,
    resolve_next_tag,
)
from .revert import revert_to_tag
from .sync import (
    select_branch,
    sync_branch,
    sync_submodules,
)
from .version import VersionTag
from .version_log import (
    append_entry,
    ensure_log,
    last_build,
    parse_entry,
)
from .workflow import (
    BatchResult,
    RepoResult,
    process_repo,
    run_batch,
)

__all__ = (
    "BackendError",
    "BaseBuildStrategy",
    "BatchResult",
    "BuildTagError",
    "CloneError",
    "ConfigError",
    "LogStyle",
    "MissingLogError",
    "PushError",
    "RepoResult",
    "RevertBehavior",
    "RevertTargetNotFoundError",
    "TagSpaceExhaustedError",
    "TaggerConfig",
    "VersionTag",
    "append_entry",
    "ensure_log",
    "last_build",
    "load_config",
    "next_available_build",
    "parse_entry",
    "process_repo",
    "resolve_next_tag",
    "revert_to_tag",
    "run_batch",
    "select_branch",
    "sync_branch",
    "sync_submodules",
)
