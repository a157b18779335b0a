"""
Path canonicalisation for directory-containment checks.

A PathResolver turns a path into its canonical form: absolute, with every
symlink and ``..`` component resolved. The path must exist. Resolvers are
injected into WithinDirectory matchers so tests can substitute a fake.

Security Note:
    Containment is only meaningful on canonical paths. Comparing unresolved
    paths lets a symlink inside an allowed directory point anywhere.
"""

from pathlib import Path
from typing import Protocol


class PathResolver(Protocol):
    """Capability to canonicalise a filesystem path."""

    def canonicalize(self, path: Path) -> Path:
        """
        Return the canonical form of path.

        Raises:
            OSError: If the path does not exist or cannot be accessed
            RuntimeError: If resolution loops (symlink cycle)
        """
        ...


class RealPathResolver:
    """Resolves paths against the real filesystem."""

    def canonicalize(self, path: Path) -> Path:
        # strict=True fails on missing paths instead of guessing. "~" is a
        # literal directory name here, as it is for a process cwd.
        return Path(path).resolve(strict=True)

    def __repr__(self) -> str:
        return "RealPathResolver()"
