"""Tests for sync module."""

import logging

import pytest

from git_build_tagger.git import current_branch, has_uncommitted_changes
from git_build_tagger.sync import (
    direct_submodules,
    select_branch,
    sync_branch,
    sync_submodules,
)


@pytest.fixture
def other_clone(tmp_path, git_cmd):
    """Return a function cloning a bare remote into a second working copy."""
    def make(remote, name="other"):
        path = tmp_path / name
        git_cmd(tmp_path, "clone", str(remote), str(path))
        return path
    return make


def advance_remote(clone, git_cmd, filename="remote.txt", content="remote\n"):
    (clone / filename).write_text(content)
    git_cmd(clone, "add", filename)
    git_cmd(clone, "commit", "-m", f"Add {filename}")
    git_cmd(clone, "push", "origin", "HEAD")
    return git_cmd(clone, "rev-parse", "HEAD").stdout.strip()


class TestSyncSubmodules:
    """Tests for sync_submodules function."""

    def test_no_submodules_is_a_noop(self, git_repo, caplog):
        with caplog.at_level(logging.INFO):
            result = sync_submodules(git_repo)
        assert result.has_submodules is False
        assert result.updated == {}
        assert "No submodules found" in caplog.text

    def test_initializes_and_fast_forwards(self, repo_with_submodule, other_clone, git_cmd):
        repo, remote, lib_remote = repo_with_submodule
        clone = other_clone(remote, "parent-clone")
        lib_head = advance_remote(other_clone(lib_remote, "lib-clone"), git_cmd)

        result = sync_submodules(clone)

        sub = clone / "libs" / "lib"
        assert result.has_submodules is True
        assert result.updated == {"libs/lib": "main"}
        assert git_cmd(sub, "rev-parse", "HEAD").stdout.strip() == lib_head
        assert current_branch(sub) == "main"

    def test_parent_pointer_is_not_staged(self, repo_with_submodule, other_clone, git_cmd):
        repo, remote, lib_remote = repo_with_submodule
        clone = other_clone(remote, "parent-clone")
        advance_remote(other_clone(lib_remote, "lib-clone"), git_cmd)

        sync_submodules(clone)

        staged = git_cmd(clone, "diff", "--cached", "--name-only").stdout.strip()
        assert staged == ""

    def test_falls_back_to_master(self, git_repo_with_remote, tmp_path, git_cmd):
        repo, _ = git_repo_with_remote
        lib_remote = tmp_path / "master-lib"
        lib_remote.mkdir()
        git_cmd(lib_remote, "init", "--bare", "-b", "master")
        work = tmp_path / "master-work"
        git_cmd(tmp_path, "clone", str(lib_remote), str(work))
        git_cmd(work, "symbolic-ref", "HEAD", "refs/heads/master")
        (work / "a.txt").write_text("a")
        git_cmd(work, "add", "a.txt")
        git_cmd(work, "commit", "-m", "a")
        git_cmd(work, "push", "-u", "origin", "master")
        git_cmd(repo, "submodule", "add", str(lib_remote), "libs/old")
        git_cmd(repo, "commit", "-m", "Add old lib")

        result = sync_submodules(repo)

        assert result.updated == {"libs/old": "master"}

    def test_ignored_submodule_is_skipped(self, repo_with_submodule):
        repo, _, _ = repo_with_submodule
        (repo / ".buildtagignore").write_text("libs/lib\n")

        result = sync_submodules(repo, ignore_file=".buildtagignore")

        assert result.has_submodules is True
        assert result.updated == {}
        assert direct_submodules(repo, ".buildtagignore") == []


class TestSyncBranch:
    """Tests for sync_branch function."""

    def test_clean_tree_is_reset_to_remote(self, git_repo_with_remote, other_clone, git_cmd):
        repo, remote = git_repo_with_remote
        head = advance_remote(other_clone(remote), git_cmd)

        result = sync_branch(repo, "main")

        assert result.stashed is False
        assert git_cmd(repo, "rev-parse", "HEAD").stdout.strip() == head

    def test_local_commits_are_discarded(self, git_repo_with_remote, git_cmd):
        repo, remote = git_repo_with_remote
        remote_head = git_cmd(repo, "rev-parse", "origin/main").stdout.strip()
        git_cmd(repo, "commit", "--allow-empty", "-m", "local only")

        sync_branch(repo, "main")

        assert git_cmd(repo, "rev-parse", "HEAD").stdout.strip() == remote_head

    def test_local_changes_are_reapplied(self, git_repo_with_remote, other_clone, git_cmd):
        repo, remote = git_repo_with_remote
        head = advance_remote(other_clone(remote), git_cmd)
        (repo / "notes.txt").write_text("work in progress\n")

        result = sync_branch(repo, "main")

        assert result.stashed is True
        assert result.reapplied is True
        assert git_cmd(repo, "rev-parse", "HEAD").stdout.strip() == head
        assert (repo / "notes.txt").read_text() == "work in progress\n"

    def test_switches_branch_with_untracked_file(self, git_repo_with_remote, git_cmd):
        repo, _ = git_repo_with_remote
        git_cmd(repo, "checkout", "-b", "feature")
        (repo / "notes.txt").write_text("work in progress\n")

        result = sync_branch(repo, "main")

        assert result.stashed is True
        assert result.reapplied is True
        assert current_branch(repo) == "main"
        assert (repo / "notes.txt").read_text() == "work in progress\n"

    def test_dirty_tree_does_not_block_switch(self, git_repo_with_remote, git_cmd):
        repo, _ = git_repo_with_remote
        git_cmd(repo, "checkout", "-b", "feature")
        (repo / "README.md").write_text("# Feature\n")
        git_cmd(repo, "commit", "-am", "Feature README")
        (repo / "README.md").write_text("# Dirty\n")

        result = sync_branch(repo, "main")

        assert result.stashed is True
        assert result.reapplied is False
        assert current_branch(repo) == "main"
        assert git_cmd(repo, "status", "--porcelain").stdout.strip() == ""
        assert "# Dirty" in git_cmd(repo, "stash", "show", "-p").stdout

    def test_conflicting_changes_stay_in_stash(self, git_repo_with_remote, other_clone, git_cmd, caplog):
        repo, remote = git_repo_with_remote
        advance_remote(other_clone(remote), git_cmd, filename="README.md", content="# Remote\n")
        (repo / "README.md").write_text("# Local\n")

        with caplog.at_level(logging.WARNING):
            result = sync_branch(repo, "main")

        assert result.stashed is True
        assert result.reapplied is False
        assert git_cmd(repo, "stash", "list").stdout.strip() != ""
        assert git_cmd(repo, "status", "--porcelain").stdout.strip() == ""
        assert "remain in the stash" in caplog.text


class TestSelectBranch:
    """Tests for select_branch function."""

    def test_stays_without_remote_main(self, git_repo, git_cmd):
        git_cmd(git_repo, "checkout", "-b", "feature")
        assert select_branch(git_repo) == "feature"
        assert current_branch(git_repo) == "feature"

    def test_switches_to_main(self, git_repo_with_remote, git_cmd):
        repo, _ = git_repo_with_remote
        git_cmd(repo, "checkout", "-b", "feature")

        assert select_branch(repo) == "main"
        assert current_branch(repo) == "main"
        assert has_uncommitted_changes(repo) is False

    def test_leaves_detached_head_on_main(self, git_repo_with_remote, git_cmd):
        repo, _ = git_repo_with_remote
        git_cmd(repo, "checkout", "--detach")
        assert select_branch(repo) == "main"
        assert current_branch(repo) == "main"

    def test_keeps_unpushed_commits_on_main(self, git_repo_with_remote, git_cmd):
        repo, _ = git_repo_with_remote
        git_cmd(repo, "commit", "--allow-empty", "-m", "Local unpushed work")
        local_head = git_cmd(repo, "rev-parse", "HEAD").stdout.strip()

        assert select_branch(repo) == "main"
        assert git_cmd(repo, "rev-parse", "HEAD").stdout.strip() == local_head

    def test_fetches_remote_tags_when_on_main(self, git_repo_with_remote, other_clone, git_cmd):
        repo, remote = git_repo_with_remote
        clone = other_clone(remote)
        git_cmd(clone, "tag", "build-1.0.7")
        git_cmd(clone, "push", "origin", "build-1.0.7")

        select_branch(repo)

        assert "build-1.0.7" in git_cmd(repo, "tag").stdout.split()
