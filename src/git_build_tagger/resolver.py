"""Next-tag resolution."""

import logging
from collections.abc import Callable
from functools import partial
from pathlib import Path

from .config import BaseBuildStrategy, TaggerConfig
from .errors import TagSpaceExhaustedError
from .git import list_tags, tag_exists
from .version import VersionTag
from .version_log import last_build, log_path

logger = logging.getLogger(__name__)

DEFAULT_MAX_PROBES = 1000


def next_available_build(
    prefix: str,
    major: int,
    minor: int,
    base_build: int,
    exists: Callable[[str], bool],
    *,
    max_probes: int = DEFAULT_MAX_PROBES,
) -> int:
    """
    Find the smallest build number >= base_build whose tag is free.

    Probes `{prefix}-{major}.{minor}.{build}` one build number at a time.

    Args:
        prefix: Tag prefix (e.g., "build").
        major: Major version number.
        minor: Minor version number.
        base_build: First build number to try.
        exists: Predicate telling whether a tag name is already taken.
        max_probes: Number of candidates to try before giving up.

    Returns:
        The first free build number.

    Raises:
        ValueError: If base_build is negative.
        TagSpaceExhaustedError: If max_probes consecutive candidates are taken.

    Example:
        build = next_available_build("build", 1, 0, 3, {"build-1.0.3"}.__contains__)
        # Returns: 4

    """
    if base_build < 0:
        raise ValueError("base_build must be non-negative")

    build = base_build
    for _ in range(max_probes):
        candidate = f"{prefix}-{major}.{minor}.{build}"
        if not exists(candidate):
            return build
        logger.debug("Tag %s already exists", candidate)
        build += 1

    raise TagSpaceExhaustedError(prefix, major, minor, base_build, max_probes)


def base_from_log(repo: Path, log_file: str, prefix: str, major: int, minor: int) -> VersionTag:
    """Base tag carrying the build number of the last version log entry."""
    build = last_build(log_path(repo, log_file))
    return VersionTag(prefix, major, minor, build)


def highest_tag(repo: Path, prefix: str) -> VersionTag | None:
    """Highest `{prefix}-M.m.b` tag in version-sort order, or None."""
    for name in list_tags(f"{prefix}-*", repo=repo):
        if tag := VersionTag.parse(name, prefix):
            return tag
    return None


def base_from_tags(repo: Path, prefix: str, major: int, minor: int) -> VersionTag:
    """
    Base tag derived from the highest existing tag for the prefix.

    Major and minor come from that tag and the build is bumped by one. With
    no matching tag, the given major/minor start at build 0.

    """
    if latest := highest_tag(repo, prefix):
        logger.info("Latest %s tag is %s", prefix, latest)
        return latest.with_build(latest.build + 1)
    return VersionTag(prefix, major, minor, 0)


def resolve_next_tag(repo: Path, config: TaggerConfig) -> VersionTag:
    """
    Resolve the tag the next release of `repo` gets.

    Raises:
        TagSpaceExhaustedError: If no free build number is found.

    """
    if config.strategy is BaseBuildStrategy.TAG:
        base = base_from_tags(repo, config.prefix, config.major, config.minor)
    else:
        base = base_from_log(repo, config.log_file, config.prefix, config.major, config.minor)

    build = next_available_build(
        base.prefix,
        base.major,
        base.minor,
        base.build,
        partial(tag_exists, repo=repo),
        max_probes=config.max_probes,
    )
    return base.with_build(build)
