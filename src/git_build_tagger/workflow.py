"""
Per-repository tagging workflow and the batch driver around it.

Each repository goes through

    ACQUIRING -> SUBMODULES_SYNCING -> (REVERTING | BRANCH_SYNCING)
      -> VERSION_RESOLVING -> COMMITTING -> TAGGING -> PUSHING -> DONE

and ends in ABORTED from any step that fails. Repositories are processed
one after another; a failure aborts only that repository, except a failed
push, which ends the batch.

"""

import logging
import subprocess
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from .config import RevertBehavior, TaggerConfig
from .errors import (
    BackendError,
    BuildTagError,
    CloneError,
    PushError,
    RevertTargetNotFoundError,
)
from .git import (
    clone,
    commit_paths,
    create_tag,
    current_branch,
    has_submodules,
    last_commit_message,
    push,
)
from .paths import is_absolute_repo_path, is_remote_reference, resolve_repo
from .resolver import resolve_next_tag
from .revert import revert_to_tag
from .sync import SUBMODULE_REMOTE, direct_submodules, select_branch, sync_submodules
from .version import VersionTag
from .version_log import append_entry, ensure_log, format_entry, log_path

logger = logging.getLogger(__name__)


class WorkflowState(str, Enum):
    ACQUIRING = "acquiring"
    SUBMODULES_SYNCING = "submodules_syncing"
    REVERTING = "reverting"
    BRANCH_SYNCING = "branch_syncing"
    VERSION_RESOLVING = "version_resolving"
    COMMITTING = "committing"
    TAGGING = "tagging"
    PUSHING = "pushing"
    DONE = "done"
    ABORTED = "aborted"


class Outcome(str, Enum):
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class RepositoryHandle:
    """
    A working copy being processed.

    `temporary` is set for fresh clones; their directory is left on disk.

    """

    reference: str
    path: Path
    branch: str = ""
    temporary: bool = False


@dataclass
class RepoResult:
    """Structured outcome of processing one repository reference."""

    reference: str
    outcome: Outcome = Outcome.ABORTED
    state: WorkflowState = WorkflowState.ACQUIRING
    failed_at: WorkflowState | None = None
    path: Path | None = None
    branch: str | None = None
    tag: str | None = None
    reason: str | None = None
    reverted: bool = False
    log_created: bool = False
    fatal: bool = False
    submodules: dict[str, bool] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.DONE

    def to_dict(self) -> dict[str, Any]:
        return {
            "repository": self.reference,
            "outcome": self.outcome.value,
            "state": self.state.value,
            "failed_at": self.failed_at.value if self.failed_at else None,
            "path": str(self.path) if self.path else None,
            "branch": self.branch,
            "tag": self.tag,
            "reason": self.reason,
            "reverted": self.reverted,
            "log_created": self.log_created,
            "submodules": dict(self.submodules),
        }


@dataclass
class BatchResult:
    """Results of a whole run, in processing order."""

    results: list[RepoResult] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)
    fatal: str | None = None

    @property
    def succeeded(self) -> list[RepoResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> list[RepoResult]:
        return [r for r in self.results if not r.ok]

    @property
    def ok(self) -> bool:
        return not self.failed and not self.pending and self.fatal is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": len(self.results) + len(self.pending),
            "succeeded": len(self.succeeded),
            "failed": [r.reference for r in self.failed],
            "pending": list(self.pending),
            "fatal": self.fatal,
        }


def acquire(reference: str) -> RepositoryHandle:
    """
    Get a working copy for a repository reference.

    Remote references are cloned into a fresh temporary directory; local
    ones are used in place.

    Raises:
        CloneError: If cloning fails.
        BuildTagError: If a local reference is not a git working copy.

    """
    if is_remote_reference(reference):
        destination = Path(tempfile.mkdtemp(prefix="build-tag-"))
        logger.info("Cloning %s into %s", reference, destination)
        try:
            path = clone(reference, destination)
        except subprocess.CalledProcessError as e:
            raise CloneError(f"Failed to clone {reference}: {(e.stderr or '').strip()}") from e
        return RepositoryHandle(reference, path, temporary=True)

    try:
        path = resolve_repo(reference)
    except NotADirectoryError as e:
        raise BuildTagError(str(e)) from e
    return RepositoryHandle(reference, path)


def record_release(
    repo: Path,
    tag: VersionTag,
    config: TaggerConfig,
    branch: str,
) -> None:
    """Append the release to the version log and commit it."""
    line = format_entry(
        config.log_style,
        tag=tag,
        summary=last_commit_message(repo),
        workdir=repo,
        branch=branch,
    )
    append_entry(log_path(repo, config.log_file), line)
    logger.info("Appended new version log to %s.", config.log_file)
    commit_paths([config.log_file], f"Increment version to {tag.version}", repo=repo)


def push_release(repo: Path, tag: VersionTag, branch: str, config: TaggerConfig) -> None:
    """
    Push the branch and the tag.

    Raises:
        PushError: If either push fails.

    """
    try:
        if branch:
            push(branch, repo, config.remote, force=config.force_push)
        else:
            logger.warning("Detached HEAD in %s; pushing only the tag", repo)
        push(f"refs/tags/{tag}", repo, config.remote, force=config.force_push or config.force_tag)
    except subprocess.CalledProcessError as e:
        raise PushError(
            f"Failed to push tag {tag} to {config.remote}: {(e.stderr or '').strip()}"
        ) from e
    logger.info("Pushed %s to %s", tag, config.remote)


def cascade_release(repo: Path, tag: VersionTag, config: TaggerConfig) -> dict[str, bool]:
    """
    Record, tag and push the same release in every direct submodule.

    The tag is always recreated with force inside submodules and pushed to
    their own `origin`, whatever `config.remote` names. Pushes only
    overwrite remote state when `config.force_push` is set; otherwise a
    conflicting remote tag makes that submodule fail. Failures are reported
    per submodule and never raised.

    Returns:
        Mapping of submodule path to success.

    """
    outcomes = {}
    for path in direct_submodules(repo, config.ignore_file):
        sub = repo / path
        if not is_absolute_repo_path(sub):
            logger.warning("Submodule %s is not checked out; not tagging it", path)
            outcomes[path] = False
            continue

        try:
            ensure_log(sub, config.log_file, create=config.create_missing_log)
            branch = current_branch(sub)
            record_release(sub, tag, config, branch)
            create_tag(tag.name, sub, force=True)
            if branch:
                push(branch, sub, SUBMODULE_REMOTE, force=config.force_push)
            push(f"refs/tags/{tag}", sub, SUBMODULE_REMOTE, force=config.force_push)
        except subprocess.CalledProcessError as e:
            logger.warning("Could not tag submodule %s: %s", path, (e.stderr or "").strip())
            outcomes[path] = False
        except BuildTagError as e:
            logger.warning("Could not tag submodule %s: %s", path, e)
            outcomes[path] = False
        else:
            logger.info("Tagged submodule %s with %s", path, tag)
            outcomes[path] = True
    return outcomes


class RepoWorkflow:
    """
    Run the tagging workflow for one repository reference.

    Example:
        result = RepoWorkflow("https://example.com/repo.git", TaggerConfig()).run()
        if result.ok:
            print(result.tag)

    """

    def __init__(self, reference: str, config: TaggerConfig):
        self.reference = reference
        self.config = config
        self.result = RepoResult(reference=reference)
        self.handle: RepositoryHandle | None = None

    def _enter(self, state: WorkflowState) -> None:
        logger.debug("%s: %s", self.reference, state.value)
        self.result.state = state

    def run(self) -> RepoResult:
        logger.info("Processing repository: %s", self.reference)
        try:
            self._run()
        except PushError as e:
            self._abort(e)
            self.result.fatal = True
        except BuildTagError as e:
            self._abort(e)
        except subprocess.CalledProcessError as e:
            self._abort(BackendError.from_called_process(e))
        return self.result

    def _abort(self, error: BuildTagError) -> None:
        logger.error("%s: %s", self.reference, error)
        self.result.failed_at = self.result.state
        self.result.state = WorkflowState.ABORTED
        self.result.outcome = Outcome.ABORTED
        self.result.reason = str(error)

    def _finish(self) -> None:
        self.result.state = WorkflowState.DONE
        self.result.outcome = Outcome.DONE

    def _run(self) -> None:
        config = self.config

        self._enter(WorkflowState.ACQUIRING)
        self.handle = handle = acquire(self.reference)
        self.result.path = handle.path

        self._enter(WorkflowState.SUBMODULES_SYNCING)
        sync_submodules(handle.path, ignore_file=config.ignore_file)

        if config.revert_to:
            self._enter(WorkflowState.REVERTING)
            reverted = revert_to_tag(handle.path, config.revert_to, ignore_file=config.ignore_file)
            self.result.reverted = reverted.found
            self.result.submodules = reverted.submodules
            if config.revert_behavior is RevertBehavior.STOP:
                if not reverted.found:
                    raise RevertTargetNotFoundError(config.revert_to)
                self.result.tag = config.revert_to
                self._finish()
                return

        self._enter(WorkflowState.BRANCH_SYNCING)
        handle.branch = select_branch(
            handle.path, remote=config.remote, main_branch=config.main_branch,
        )
        self.result.branch = handle.branch

        self._enter(WorkflowState.VERSION_RESOLVING)
        self.result.log_created = ensure_log(
            handle.path, config.log_file, create=config.create_missing_log,
        )
        tag = resolve_next_tag(handle.path, config)
        self.result.tag = tag.name

        self._enter(WorkflowState.COMMITTING)
        record_release(handle.path, tag, config, handle.branch)

        self._enter(WorkflowState.TAGGING)
        logger.info("Creating tag: %s", tag)
        create_tag(tag.name, handle.path)

        self._enter(WorkflowState.PUSHING)
        push_error = None
        try:
            push_release(handle.path, tag, handle.branch, config)
        except PushError as e:
            push_error = e

        if config.cascade_submodules and has_submodules(handle.path):
            self.result.submodules = cascade_release(handle.path, tag, config)

        if push_error is not None:
            raise push_error

        self._finish()


def process_repo(reference: str, config: TaggerConfig) -> RepoResult:
    """Process one repository reference and return its structured result."""
    return RepoWorkflow(reference, config).run()


def run_batch(references: Iterable[str], config: TaggerConfig) -> BatchResult:
    """
    Process repository references in order.

    A failed push stops the run: the remaining references stay in
    `pending` and are not processed.

    """
    references = list(references)
    batch = BatchResult()

    for index, reference in enumerate(references):
        result = process_repo(reference, config)
        batch.results.append(result)
        if result.fatal:
            batch.fatal = result.reason
            batch.pending = references[index + 1:]
            logger.error("Stopping: %s", result.reason)
            break

    if batch.ok:
        logger.info("Tagging completed for all repositories.")
    else:
        failed = ", ".join(r.reference for r in batch.failed) or "none"
        logger.error("Tagging failed for: %s", failed)
    return batch
