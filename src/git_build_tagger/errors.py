"""
Exceptions raised while tagging repositories.

Every error carries the process exit code the command line should use when
the error ends the run.
"""

import subprocess

SUCCESS = 0
GENERAL_ERROR = 1
CONFIG_ERROR = 1


class BuildTagError(Exception):
    """Base class for failures while processing a repository."""

    exit_code = GENERAL_ERROR
    fatal = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigError(BuildTagError):
    """Raised when the tagging configuration is invalid."""

    exit_code = CONFIG_ERROR


class MissingLogError(BuildTagError):
    """Raised when the version log is absent and may not be created."""

    def __init__(self, repo, log_file: str):
        super().__init__(f"{log_file} not found in {repo}")
        self.repo = repo
        self.log_file = log_file


class CloneError(BuildTagError):
    """Raised when a remote repository cannot be cloned."""


class BackendError(BuildTagError):
    """Raised when a git command fails during a workflow step."""

    @classmethod
    def from_called_process(cls, exc: subprocess.CalledProcessError) -> "BackendError":
        cmd = " ".join(exc.cmd) if isinstance(exc.cmd, (list, tuple)) else str(exc.cmd)
        detail = (exc.stderr or "").strip() if isinstance(exc.stderr, str) else ""
        message = f"`{cmd}` exited with {exc.returncode}"
        if detail:
            message = f"{message}: {detail}"
        return cls(message)


class RevertTargetNotFoundError(BuildTagError):
    """Raised when the requested revert tag does not exist."""

    def __init__(self, tag: str):
        super().__init__(f"tag {tag} not found")
        self.tag = tag


class TagSpaceExhaustedError(BuildTagError):
    """Raised when the tag probe runs out of attempts."""

    def __init__(self, prefix: str, major: int, minor: int, start: int, attempts: int):
        super().__init__(
            f"no free build number for {prefix}-{major}.{minor}.* "
            f"in {attempts} attempts starting at {start}"
        )
        self.attempts = attempts


class PushError(BuildTagError):
    """Raised when pushing the new tag or branch fails. Ends the whole batch."""

    fatal = True
