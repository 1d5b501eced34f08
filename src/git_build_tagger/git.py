"""Core git operations."""

import logging
import re
import shlex
import subprocess
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

from .paths import resolve_repo

logger = logging.getLogger(__name__)


def run_git(
    *args: str,
    repo: Path | None = None,
    check: bool = True,
    capture: bool = False,
    **kwargs: Any,
) -> subprocess.CompletedProcess:
    """
    Run a git command and return the result.

    Args:
        *args: Git command arguments (e.g., "status", "--porcelain")
        repo: Optional repository path. If None, runs in current directory.
        check: Whether to raise CalledProcessError on non-zero exit (default: True)
        capture: Whether to capture stdout/stderr (default: False)
        **kwargs: Additional arguments to pass to subprocess.run()

    Returns:
        CompletedProcess result

    Example:
        # Run in current directory
        run_git("status", "--short", capture=True)

        # Run in specific repo
        run_git("fetch", "origin", repo=Path("/path/to/repo"))
    """
    cmd = ["git"]

    # Add -C flag if repo is specified
    if repo is not None:
        cmd.extend(["-C", str(repo)])

    cmd.extend(args)
    logger.debug("$ %s", shlex.join(cmd))

    # Set up capture if requested
    if capture:
        return subprocess.run(
            cmd, capture_output=True, text=True, check=check, **kwargs
        )

    return subprocess.run(cmd, check=check, **kwargs)


def git_config(
    key: str,
    repo: Path | None = None,
    default: str | None = None,
) -> str | None:
    """
    Get a git config value.

    Args:
        key: Config key to retrieve (e.g., "user.name", "buildtag.prefix")
        repo: Optional repository path. If None, uses current directory.
        default: Default value if config key is not set.

    Returns:
        Config value if set, otherwise default.

    Example:
        prefix = git_config("buildtag.prefix", default="build")
    """
    result = run_git("config", key, repo=repo, capture=True, check=False)
    if result.returncode == 0 and result.stdout.strip():
        return result.stdout.strip()
    return default


def current_branch(repo: Path | None = None) -> str:
    """
    Get the currently checked out branch name.

    Args:
        repo: Optional repository path. If None, uses current directory.

    Returns:
        Name of the current branch, empty string on a detached HEAD.

    Example:
        branch = current_branch(Path("/path/to/repo"))
    """
    result = run_git("branch", "--show-current", repo=repo, capture=True)
    return result.stdout.strip()


def has_uncommitted_changes(repo: Path | None = None) -> bool:
    """
    Check if there are uncommitted changes in the working tree.

    This includes both tracked and untracked files.

    Args:
        repo: Optional repository path. If None, uses current directory.

    Returns:
        True if there are uncommitted changes, False otherwise
    """
    result = run_git("status", "--porcelain", repo=repo, capture=True)
    return bool(result.stdout.strip())


def fetch(repo: Path | None = None, remote: str = "origin") -> None:
    """
    Fetch a remote including its tags.

    Unlike `git fetch --prune --tags`, local tags that were never pushed
    are left alone.

    Args:
        repo: Optional repository path. If None, uses current directory.
        remote: Remote to fetch (default: "origin").
    """
    run_git("fetch", "--tags", remote, repo=repo, capture=True)


def clone(url: str, destination: Path) -> Path:
    """
    Clone a repository into `destination` and return the working copy path.

    Example:
        path = clone("https://example.com/repo.git", Path("/tmp/build-tag-x"))
    """
    run_git("clone", url, str(destination), capture=True)
    return destination.resolve()


def find_branches(
    pattern: str,
    repo: str | Path | None = None,
    remote_name: str = "origin",
) -> list[str]:
    """
    Find all branches (local and remote) matching a pattern.

    For simple names (no wildcards), searches for both local branch and
    remote_name/branch. For patterns with wildcards, passes through to git.
    Returns all matches - caller decides priority.

    Args:
        pattern: Branch name or pattern to search for.
        repo: Path to the Git repository. Defaults to current directory.
        remote_name: Name of the remote to search (default: "origin").

    Returns:
        List of matching branch names with ref prefixes removed
        (e.g., "main" instead of "refs/heads/main" or "origin/main"
        instead of "refs/remotes/origin/main").

    Example:
        branches = find_branches("main")
        if "origin/main" in branches:
            ...
    """
    repo_path = resolve_repo(repo)
    if not pattern:
        raise ValueError("branch pattern must not be empty")

    # Check if pattern contains git wildcards
    has_wildcards = bool(set("*?[") & set(pattern))

    if has_wildcards:
        patterns_to_search = [pattern]
    else:
        patterns_to_search = [
            pattern,  # Local: main
            f"{remote_name}/{pattern}",  # Remote: origin/main
        ]

    all_matches = []
    for search_pattern in patterns_to_search:
        result = run_git(
            "branch",
            "--format=%(refname)",
            "--all",
            "--list",
            search_pattern,
            repo=repo_path,
            capture=True,
        )

        all_matches.extend([
            match.removeprefix("refs/heads/").removeprefix("refs/remotes/")
            for line in result.stdout.splitlines()
            if (match := line.strip())
        ])

    # Remove duplicates while preserving order
    seen = set()
    return [m for m in all_matches if not (m in seen or seen.add(m))]


def has_remote_branch(branch: str, repo: Path | None = None, remote: str = "origin") -> bool:
    """Check whether `{remote}/{branch}` exists as a remote-tracking branch."""
    return f"{remote}/{branch}" in find_branches(branch, repo, remote_name=remote)


def checkout(ref: str, repo: Path | None = None) -> None:
    """Check out a branch, tag or commit."""
    run_git("checkout", ref, repo=repo, capture=True)


def reset_hard(ref: str, repo: Path | None = None) -> None:
    """Reset the working tree and index to `ref`, discarding local changes."""
    run_git("reset", "--hard", ref, repo=repo, capture=True)


def merge_ff_only(ref: str, repo: Path | None = None) -> None:
    """Fast-forward the current branch to `ref`; fails if histories diverged."""
    run_git("merge", "--ff-only", ref, repo=repo, capture=True)


def stash_push(repo: Path | None = None, message: str = "build-tag autostash") -> None:
    """Shelve tracked and untracked local modifications."""
    run_git("stash", "push", "--include-untracked", "-m", message, repo=repo, capture=True)


def stash_pop(repo: Path | None = None) -> bool:
    """
    Reapply the most recent stash.

    Returns:
        True if the stash applied cleanly. On conflict git keeps the stash
        entry and False is returned.
    """
    result = run_git("stash", "pop", repo=repo, capture=True, check=False)
    return result.returncode == 0


def tag_exists(tag: str, repo: Path | None = None) -> bool:
    """
    Check if a tag exists in the repository.

    Example:
        if tag_exists("build-1.0.3", repo):
            ...
    """
    result = run_git(
        "show-ref", "--tags", "--verify", "--quiet", f"refs/tags/{tag}",
        repo=repo,
        check=False,
        capture=True,
    )
    return result.returncode == 0


def list_tags(
    pattern: str | None = None,
    repo: Path | None = None,
    sort: str = "-v:refname",
) -> list[str]:
    """
    List tags, optionally filtered by a glob pattern.

    Args:
        pattern: Glob pattern passed to `git tag --list` (e.g., "build-*").
        repo: Optional repository path. If None, uses current directory.
        sort: Sort key for `git tag --sort` (default: descending version order).

    Returns:
        Tag names in the requested order.
    """
    args = ["tag", "--list", f"--sort={sort}"]
    if pattern:
        args.append(pattern)
    result = run_git(*args, repo=repo, capture=True)
    return [tag for line in result.stdout.splitlines() if (tag := line.strip())]


def create_tag(tag: str, repo: Path | None = None, *, force: bool = False) -> None:
    """Create a lightweight tag at HEAD, replacing an existing one when `force`."""
    args = ["tag"]
    if force:
        args.append("--force")
    args.append(tag)
    run_git(*args, repo=repo, capture=True)


def commit_paths(
    paths: Iterable[str | Path],
    message: str,
    repo: Path | None = None,
) -> None:
    """Stage the given paths and commit them with `message`."""
    run_git("add", "--", *(str(p) for p in paths), repo=repo, capture=True)
    run_git("commit", "-m", message, repo=repo, capture=True)


def push(
    ref: str,
    repo: Path | None = None,
    remote: str = "origin",
    *,
    force: bool = False,
) -> None:
    """
    Push a ref (branch name or `refs/tags/<tag>`) to a remote.

    Raises:
        subprocess.CalledProcessError: If git push fails.
    """
    args = ["push"]
    if force:
        args.append("--force")
    args.extend([remote, ref])
    run_git(*args, repo=repo, capture=True)


def last_commit_message(repo: Path | None = None) -> str | None:
    """
    Get the full message of the HEAD commit.

    Returns:
        Full commit message (subject + body), or None on an unborn branch.
    """
    result = run_git("log", "-1", "--format=%B", repo=repo, capture=True, check=False)
    if result.returncode == 0 and (msg := result.stdout.strip()):
        return msg
    return None


def has_submodules(repo: Path) -> bool:
    """Check whether the working copy declares submodules."""
    return (repo / ".gitmodules").is_file()


def list_submodules(repo: Path) -> list[str]:
    """
    List the paths of the direct submodules declared in `.gitmodules`.

    Args:
        repo: Repository path.

    Returns:
        Submodule paths relative to the repository root, in manifest order.
        Empty list if there is no `.gitmodules`.

    """
    if not has_submodules(repo):
        return []

    result = run_git(
        "config", "--file", ".gitmodules", "--get-regexp", r"^submodule\..*\.path$",
        repo=repo,
        capture=True,
        check=False,
    )

    if result.returncode != 0 or not result.stdout.strip():
        return []

    # Output format: "submodule.NAME.path VALUE"
    pattern = re.compile(r"^submodule\..+\.path\s+(.+)$")
    return [
        match.group(1).strip()
        for line in result.stdout.splitlines()
        if (match := pattern.match(line))
    ]


def submodule_update(repo: str | Path | None = None) -> None:
    """
    Initialize and update submodules in the repository recursively.

    Args:
        repo: Path to the Git repository. Defaults to current directory.
    """
    repo_path = resolve_repo(repo)

    run_git(
        "submodule",
        "update",
        "--init",
        "--recursive",
        repo=repo_path,
        capture=True,
    )


def filter_paths_by_ignore_file(
    paths: Iterable[str],
    root_dir: str | Path,
    ignore_filename: str,
) -> Iterator[str]:
    """
    Filter repository-relative paths based on gitignore-style ignore files.

    Ignore files are read hierarchically from root_dir upward, with
    patterns in deeper directories taking precedence. Supports wildcards,
    negation (`!path`) and `#` comments.

    Args:
        paths: Paths relative to root_dir (e.g., submodule paths).
        root_dir: Repository root used to find ignore files.
        ignore_filename: Name of ignore file to look for (e.g., ".buildtagignore").

    Yields:
        Paths that are not ignored

    Example:
        kept = list(filter_paths_by_ignore_file(["libs/a", "vendor/b"], repo, ".buildtagignore"))
    """
    import pathspec

    root_dir = Path(root_dir).resolve()

    ignore_files = []
    for parent in [root_dir] + list(root_dir.parents):
        ignore_file = parent / ignore_filename
        if ignore_file.is_file():
            ignore_files.append(ignore_file)

    # Read in reverse order (root first) so deeper files override
    ignore_files.reverse()

    patterns = []
    for ignore_file in ignore_files:
        with open(ignore_file) as f:
            patterns.extend(f.read().splitlines())

    if not patterns:
        yield from paths
        return

    spec = pathspec.PathSpec.from_lines("gitwildmatch", patterns)

    for path in paths:
        if not spec.match_file(path):
            yield path
