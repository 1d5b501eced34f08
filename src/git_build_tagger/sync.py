"""Bringing working copies and their submodules in line with the remote."""

import logging
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from .git import (
    checkout,
    current_branch,
    fetch,
    filter_paths_by_ignore_file,
    has_remote_branch,
    has_submodules,
    has_uncommitted_changes,
    list_submodules,
    merge_ff_only,
    reset_hard,
    stash_pop,
    stash_push,
    submodule_update,
)
from .paths import is_absolute_repo_path

logger = logging.getLogger(__name__)

DEFAULT_SUBMODULE_BRANCHES = ("main", "master")
# Submodules are cloned by `git submodule update`, which names their remote origin
SUBMODULE_REMOTE = "origin"


@dataclass
class SubmoduleSyncResult:
    """
    Outcome of synchronizing a repository's submodules.

    `updated` maps each direct submodule path to the branch it was
    fast-forwarded to, or None when it was left untouched.

    """

    has_submodules: bool = False
    updated: dict[str, str | None] = field(default_factory=dict)


@dataclass
class BranchSyncResult:
    branch: str
    stashed: bool = False
    reapplied: bool = True


def direct_submodules(repo: Path, ignore_file: str | None = None) -> list[str]:
    """
    Paths of the direct submodules of `repo`, minus ignored ones.

    Args:
        repo: Repository root.
        ignore_file: Name of a gitignore-style file listing submodule
                     paths to skip. None disables filtering.

    """
    paths = list_submodules(repo)
    if ignore_file and paths:
        kept = list(filter_paths_by_ignore_file(paths, repo, ignore_file))
        for skipped in set(paths) - set(kept):
            logger.info("Skipping ignored submodule %s", skipped)
        return kept
    return paths


def sync_submodules(
    repo: Path,
    *,
    remote: str = SUBMODULE_REMOTE,
    branches: Sequence[str] = DEFAULT_SUBMODULE_BRANCHES,
    ignore_file: str | None = None,
) -> SubmoduleSyncResult:
    """
    Initialize submodules and fast-forward each direct one to its remote branch.

    For every direct submodule the first of `branches` that exists on the
    remote is checked out and fast-forwarded. Submodules with none of them,
    or whose fast-forward fails, are left as they are. The parent's
    recorded submodule pointers are not staged.

    A repository without `.gitmodules` is not an error.

    Args:
        repo: Repository root.
        remote: Remote name inside the submodules.
        branches: Candidate branch names in order of preference.
        ignore_file: Gitignore-style file naming submodules to skip.

    Returns:
        SubmoduleSyncResult describing what was done.

    Raises:
        subprocess.CalledProcessError: If `git submodule update` fails.

    """
    if not has_submodules(repo):
        logger.info("No submodules found in %s", repo)
        return SubmoduleSyncResult(has_submodules=False)

    logger.info("Updating submodules in %s", repo)
    submodule_update(repo)

    result = SubmoduleSyncResult(has_submodules=True)
    for path in direct_submodules(repo, ignore_file):
        result.updated[path] = _fast_forward_submodule(repo / path, remote, branches)
    return result


def _fast_forward_submodule(sub: Path, remote: str, branches: Sequence[str]) -> str | None:
    if not is_absolute_repo_path(sub):
        logger.warning("Submodule %s is not checked out", sub.name)
        return None
    try:
        fetch(sub, remote)
        for branch in branches:
            if not has_remote_branch(branch, sub, remote):
                continue
            checkout(branch, sub)
            merge_ff_only(f"{remote}/{branch}", sub)
            logger.info("Submodule %s is at %s/%s", sub.name, remote, branch)
            return branch
    except subprocess.CalledProcessError as e:
        logger.warning("Could not update submodule %s: %s", sub, (e.stderr or "").strip())
        return None

    logger.info("Submodule %s has no %s branch; leaving it as is", sub.name, "/".join(branches))
    return None


def sync_branch(repo: Path, branch: str, *, remote: str = "origin") -> BranchSyncResult:
    """
    Switch to `branch` and hard-reset it to `{remote}/{branch}`, keeping local edits if possible.

    Local modifications (including untracked files) are stashed before the
    switch and the reset, and popped afterwards. A pop that conflicts is
    undone, leaving the working copy at `{remote}/{branch}` and the changes
    in the stash.

    Raises:
        subprocess.CalledProcessError: If fetching, switching or resetting fails.

    """
    fetch(repo, remote)
    target = f"{remote}/{branch}"

    stashed = has_uncommitted_changes(repo)
    if stashed:
        logger.info("Stashing local changes before syncing %s", branch)
        stash_push(repo)

    if current_branch(repo) != branch:
        checkout(branch, repo)
        logger.info("Switched to branch: %s", branch)
    reset_hard(target, repo)
    logger.info("Reset %s to %s", branch, target)

    if not stashed:
        return BranchSyncResult(branch=branch)

    reapplied = stash_pop(repo)
    if reapplied:
        logger.info("Reapplied local changes on top of %s", target)
    else:
        # A conflicting pop leaves unmerged paths behind; the stash entry is kept
        reset_hard(target, repo)
        logger.warning("Local changes conflict with %s; they remain in the stash", target)
    return BranchSyncResult(branch=branch, stashed=True, reapplied=reapplied)


def select_branch(
    repo: Path,
    *,
    remote: str = "origin",
    main_branch: str = "main",
) -> str:
    """
    Move the working copy onto the remote main branch when there is one.

    When `{remote}/{main_branch}` exists and the working copy is on another
    branch (or detached), it is moved there with `sync_branch`. A working
    copy already on `main_branch` only fetches, so unpushed local commits
    survive. Without a remote main it stays on the current branch.

    Returns:
        The branch the working copy ends up on (empty when detached).

    """
    branch = current_branch(repo)

    if not has_remote_branch(main_branch, repo, remote):
        logger.info(
            "No '%s' branch found. Staying on the current branch: %s",
            main_branch, branch or "(detached HEAD)",
        )
        return branch

    if branch == main_branch:
        fetch(repo, remote)
        logger.info("Already on %s; keeping local commits", main_branch)
        return branch

    sync_branch(repo, main_branch, remote=remote)
    return main_branch
