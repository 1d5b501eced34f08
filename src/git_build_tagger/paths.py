"""Path and repository resolution utilities."""

import re
from pathlib import Path

_REMOTE_RE = re.compile(r"^(?:(?:https?|ssh|git|file)://|[\w.-]+@[\w.-]+:)")


def resolve_path(path: str | Path | None = None) -> Path:
    """
    Resolve a path to an absolute Path object.

    Args:
        path: Path to resolve. If None or empty string, returns current directory.

    Returns:
        Absolute Path object

    Example:
        resolve_path("~/projects")  # Returns /home/user/projects
        resolve_path(None)           # Returns current directory
    """
    if not path:
        return Path.cwd()

    return Path(path).expanduser().resolve()


def is_absolute_repo_path(repo: Path) -> bool:
    """
    Check if the given path is an absolute path to a git working copy.

    Submodule checkouts carry a `.git` file instead of a directory; both count.

    Args:
        repo: Path to check

    Returns:
        True if path is absolute, is a directory, and contains .git
    """
    return (
        repo.is_absolute()
        and repo.is_dir()
        and (repo / ".git").exists()
    )


def resolve_repo(repo: str | Path | None = None) -> Path:
    """
    Resolve a path to a Git repository and validate it exists.

    Args:
        repo: Path to repository. Uses current directory if not provided.

    Returns:
        Absolute path to the repository.

    Raises:
        NotADirectoryError: If the path doesn't point to a git working copy.

    Example:
        repo = resolve_repo()  # Current directory
        repo = resolve_repo("~/projects/myrepo")
    """
    repo_path = resolve_path(repo)
    if not is_absolute_repo_path(repo_path):
        raise NotADirectoryError(f"Not a git repository: {repo_path}")
    return repo_path


def is_remote_reference(reference: str) -> bool:
    """
    Check whether a repository reference must be cloned rather than opened.

    URLs (`https://`, `ssh://`, `git://`, `file://`) and scp-style
    `user@host:path` references are remote; everything else is a local path.

    >>> is_remote_reference("https://github.com/user/repo.git")
    True
    >>> is_remote_reference("git@github.com:user/repo.git")
    True
    >>> is_remote_reference("~/develop/repo")
    False

    """
    return bool(_REMOTE_RE.match(reference.strip()))
