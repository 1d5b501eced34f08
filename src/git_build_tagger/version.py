"""Version tag value type."""

import re
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class VersionTag:
    """
    A `{prefix}-{major}.{minor}.{build}` release tag.

    >>> str(VersionTag("build", 1, 0, 4))
    'build-1.0.4'

    """

    prefix: str
    major: int
    minor: int
    build: int

    def __post_init__(self):
        for name in ("major", "minor", "build"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

    @property
    def name(self) -> str:
        return f"{self.prefix}-{self.version}"

    @property
    def version(self) -> str:
        return f"{self.major}.{self.minor}.{self.build}"

    def with_build(self, build: int) -> "VersionTag":
        return replace(self, build=build)

    def __str__(self) -> str:
        return self.name

    @classmethod
    def parse(cls, name: str, prefix: str) -> "VersionTag | None":
        """
        Parse a tag name carrying the given prefix.

        Returns None if the name does not have the exact
        `{prefix}-{major}.{minor}.{build}` shape.

        >>> VersionTag.parse("build-1.2.3", "build")
        VersionTag(prefix='build', major=1, minor=2, build=3)
        >>> VersionTag.parse("release-1.2.3", "build") is None
        True

        """
        match = re.fullmatch(rf"{re.escape(prefix)}-(\d+)\.(\d+)\.(\d+)", name.strip())
        if not match:
            return None
        major, minor, build = (int(g) for g in match.groups())
        return cls(prefix, major, minor, build)
