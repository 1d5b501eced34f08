"""Checking out a previously created tag."""

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from .git import checkout, has_submodules, tag_exists
from .paths import is_absolute_repo_path
from .sync import direct_submodules

logger = logging.getLogger(__name__)


@dataclass
class RevertResult:
    """
    Outcome of a revert.

    `submodules` maps each direct submodule path to whether it was moved to
    the same tag. Submodules are not required to carry the parent's tags.

    """

    tag: str
    found: bool = False
    submodules: dict[str, bool] = field(default_factory=dict)


def revert_to_tag(
    repo: Path,
    tag: str,
    *,
    cascade_submodules: bool = True,
    ignore_file: str | None = None,
) -> RevertResult:
    """
    Check out `tag` in the repository and, where present, in its submodules.

    A tag missing from the repository is reported and nothing is changed.

    Raises:
        subprocess.CalledProcessError: If checking out the parent's tag fails.

    """
    if not tag_exists(tag, repo):
        logger.info("Tag %s not found in %s. Skipping revert.", tag, repo)
        return RevertResult(tag=tag, found=False)

    logger.info("Reverting %s to tag %s", repo, tag)
    checkout(tag, repo)
    result = RevertResult(tag=tag, found=True)

    if cascade_submodules and has_submodules(repo):
        for path in direct_submodules(repo, ignore_file):
            result.submodules[path] = _revert_submodule(repo / path, tag)

    return result


def _revert_submodule(sub: Path, tag: str) -> bool:
    if not is_absolute_repo_path(sub):
        logger.warning("Submodule %s is not checked out", sub.name)
        return False
    if not tag_exists(tag, sub):
        logger.warning("Tag %s not found in submodule %s", tag, sub.name)
        return False
    try:
        checkout(tag, sub)
    except subprocess.CalledProcessError as e:
        logger.warning("Could not check out %s in submodule %s: %s", tag, sub.name, (e.stderr or "").strip())
        return False
    logger.info("Submodule %s reverted to %s", sub.name, tag)
    return True
