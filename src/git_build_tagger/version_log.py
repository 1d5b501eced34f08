"""
Append-only version log kept in each tagged repository.

Each release adds one line. Three line styles exist:

    version:   Version: 1.0.4, Timestamp: 2024-05-01 12:00:00, Last Commit: "Fix parser"
    tag:       2024-05-01 12:00:00, build-1.0.4
    detailed:  2024-05-01 12:00:00, build-1.0.4, /tmp/build-tag-x1y2, main

The last line decides the base build number of the next release. All styles
stay readable by the legacy rule of taking the digits of the final
dot-delimited field.

"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .config import LogStyle
from .errors import MissingLogError
from .git import commit_paths
from .version import VersionTag

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_VERSION_LINE_RE = re.compile(
    r'^Version:\s*(?P<version>\d+\.\d+\.\d+),\s*Timestamp:\s*(?P<ts>[^,]*),'
    r'\s*Last Commit:\s*"(?P<summary>.*)"\s*$'
)
_VERSION_RE = re.compile(r"Version:\s*\d+\.\d+\.(\d+)")
_TAG_RE = re.compile(r"-(\d+)\.(\d+)\.(\d+)\b")


@dataclass
class VersionLogEntry:
    """One parsed line of the version log."""

    raw: str
    timestamp: str | None = None
    version: str | None = None
    tag: str | None = None
    summary: str | None = None
    workdir: str | None = None
    branch: str | None = None
    build: int | None = None


def log_path(repo: Path, filename: str) -> Path:
    return repo / filename


def timestamp_now() -> str:
    return datetime.now().strftime(TIMESTAMP_FORMAT)


def _escape_summary(summary: str) -> str:
    # A log line must stay on one line
    flattened = "".join(summary.splitlines())
    return flattened.replace('"', '\\"')


def format_entry(
    style: LogStyle | str,
    *,
    tag: VersionTag,
    timestamp: str | None = None,
    summary: str | None = None,
    workdir: str | Path | None = None,
    branch: str | None = None,
) -> str:
    """
    Format a version log line in the requested style.

    >>> format_entry("tag", tag=VersionTag("build", 1, 0, 4), timestamp="2024-05-01 12:00:00")
    '2024-05-01 12:00:00, build-1.0.4'

    """
    style = LogStyle(style)
    timestamp = timestamp or timestamp_now()

    if style is LogStyle.VERSION:
        return (
            f"Version: {tag.version}, Timestamp: {timestamp}, "
            f'Last Commit: "{_escape_summary(summary or "")}"'
        )
    if style is LogStyle.TAG:
        return f"{timestamp}, {tag.name}"
    return f"{timestamp}, {tag.name}, {workdir or ''}, {branch or ''}"


def _legacy_build(line: str) -> int | None:
    digits = re.sub(r"\D", "", line.rsplit(".", 1)[-1])
    return int(digits) if digits else None


def parse_entry(line: str) -> VersionLogEntry:
    """
    Parse one log line of any style.

    The build number is taken from `Version: M.m.b` when present, otherwise
    from the first `-M.m.b` tag, otherwise from the digits of the final
    dot-delimited field. Lines without any of these have `build=None`.

    """
    line = line.rstrip("\n")
    entry = VersionLogEntry(raw=line)

    if match := _VERSION_LINE_RE.match(line):
        entry.version = match.group("version")
        entry.timestamp = match.group("ts").strip()
        entry.summary = match.group("summary").replace('\\"', '"')
        entry.build = int(entry.version.rsplit(".", 1)[1])
        return entry

    if match := _VERSION_RE.search(line):
        entry.build = int(match.group(1))
        return entry

    parts = [part.strip() for part in line.split(",")]
    if len(parts) >= 2 and _TAG_RE.search(parts[1]):
        entry.timestamp = parts[0]
        entry.tag = parts[1]
        if len(parts) >= 4:
            entry.workdir = parts[2] or None
            entry.branch = parts[3] or None

    if match := _TAG_RE.search(line):
        entry.version = ".".join(match.groups())
        entry.build = int(match.group(3))
        return entry

    entry.build = _legacy_build(line)
    return entry


def read_entries(path: Path) -> list[VersionLogEntry]:
    """Read all non-blank log lines in file order. Missing file reads as empty."""
    if not path.is_file():
        return []
    with open(path) as f:
        return [parse_entry(line) for line in f if line.strip()]


def last_build(path: Path) -> int:
    """
    Build number recorded by the last log entry.

    Returns 0 if the log is missing, empty, or its last line has no number.

    """
    entries = read_entries(path)
    if not entries or entries[-1].build is None:
        return 0
    return entries[-1].build


def append_entry(path: Path, line: str) -> None:
    """Append one line, adding a separating newline if the file lacks a trailing one."""
    prefix = ""
    if path.is_file() and path.stat().st_size:
        with open(path, "rb") as f:
            f.seek(-1, 2)
            if f.read(1) != b"\n":
                prefix = "\n"
    with open(path, "a") as f:
        f.write(f"{prefix}{line}\n")


def ensure_log(repo: Path, filename: str, *, create: bool = True) -> bool:
    """
    Make sure the version log exists in the working copy.

    A missing log is created empty and committed on its own.

    Args:
        repo: Working copy root.
        filename: Log file name relative to the root.
        create: Whether a missing log may be created.

    Returns:
        True if the log was created by this call.

    Raises:
        MissingLogError: If the log is missing and `create` is False.

    """
    path = log_path(repo, filename)
    if path.is_file():
        return False

    if not create:
        raise MissingLogError(repo, filename)

    logger.info("Creating version log %s in %s", filename, repo)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.touch()
    commit_paths([filename], f"Add version log {filename}", repo=repo)
    return True
