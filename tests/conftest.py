"""Shared pytest fixtures for git-build-tagger tests."""

import subprocess

import pytest


def git(cwd, *args):
    """Run a git command in `cwd` for test setup."""
    return subprocess.run(
        ["git", *args], cwd=cwd, check=True, capture_output=True, text=True,
    )


@pytest.fixture
def git_cmd():
    """Helper running git commands for test setup: `git_cmd(repo, "tag", "x")`."""
    return git


@pytest.fixture(autouse=True)
def git_env(tmp_path, monkeypatch):
    """
    Isolate git from the user's configuration.

    Commits get a fixed identity, the default branch is main and local
    submodule URLs are allowed.
    """
    global_config = tmp_path / "gitconfig"
    global_config.touch()
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(global_config))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_CONFIG_COUNT", "2")
    monkeypatch.setenv("GIT_CONFIG_KEY_0", "protocol.file.allow")
    monkeypatch.setenv("GIT_CONFIG_VALUE_0", "always")
    monkeypatch.setenv("GIT_CONFIG_KEY_1", "init.defaultBranch")
    monkeypatch.setenv("GIT_CONFIG_VALUE_1", "main")
    return global_config


@pytest.fixture
def git_repo(tmp_path):
    """
    Create a temporary git repository for testing.

    Returns:
        Path: Path to the temporary git repository
    """
    repo = tmp_path / "test-repo"
    repo.mkdir()

    git(repo, "init", "-b", "main")

    # Create initial commit
    (repo / "README.md").write_text("# Test Repo\n")
    git(repo, "add", "README.md")
    git(repo, "commit", "-m", "Initial commit")

    return repo


@pytest.fixture
def git_repo_with_remote(tmp_path, git_repo):
    """
    Create a git repository with a remote (bare repo).

    Returns:
        tuple: (main_repo_path, remote_repo_path)
    """
    remote_repo = tmp_path / "remote"
    remote_repo.mkdir()
    git(remote_repo, "init", "--bare", "-b", "main")

    git(git_repo, "remote", "add", "origin", str(remote_repo))
    git(git_repo, "push", "-u", "origin", "main")

    return git_repo, remote_repo


@pytest.fixture
def submodule_remote(tmp_path):
    """
    Create a bare repository with one commit on main, usable as a submodule.

    Returns:
        Path: Path to the bare repository
    """
    remote = tmp_path / "lib-remote"
    remote.mkdir()
    git(remote, "init", "--bare", "-b", "main")

    work = tmp_path / "lib-work"
    git(tmp_path, "clone", str(remote), str(work))
    git(work, "symbolic-ref", "HEAD", "refs/heads/main")
    (work / "lib.txt").write_text("lib\n")
    git(work, "add", "lib.txt")
    git(work, "commit", "-m", "Add lib")
    git(work, "push", "-u", "origin", "main")

    return remote


@pytest.fixture
def repo_with_submodule(git_repo_with_remote, submodule_remote):
    """
    Create a repository with a remote and one submodule at `libs/lib`.

    Returns:
        tuple: (main_repo_path, remote_repo_path, submodule_remote_path)
    """
    repo, remote = git_repo_with_remote
    git(repo, "submodule", "add", str(submodule_remote), "libs/lib")
    git(repo, "commit", "-m", "Add lib submodule")
    git(repo, "push", "origin", "main")
    return repo, remote, submodule_remote
