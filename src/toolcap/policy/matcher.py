"""
Matchers: predicates over operations.

Every matcher answers one question, ``matches(operation) -> bool``. Matchers
are immutable and hold no state between calls, so one instance can be shared
by many rules and threads.

Only execute operations are matched today. Every matcher, composites
included, returns False for any other operation kind.

Example:
    >>> m = Matcher.command("git").with_subcommands(["push"]).with_flag("--force")
    >>> m.matches(Operation.execute("git push --force origin"))
    True
"""

import dataclasses
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from toolcap.operation import ExecuteOperation, Operation
from toolcap.policy.paths import PathResolver, RealPathResolver

logger = logging.getLogger(__name__)


class Matcher(ABC):
    """
    Abstract base class for all matchers.

    Subclasses implement matches() and describe(). The static builders on
    this class are the preferred way to construct matchers.
    """

    @abstractmethod
    def matches(self, operation: Operation) -> bool:
        """Return True if this matcher applies to the operation."""
        ...

    @abstractmethod
    def describe(self) -> str:
        """Return a short human-readable description."""
        ...

    # -------------------------------------------------------------------------
    # Builders
    # -------------------------------------------------------------------------

    @staticmethod
    def any_execute() -> "AnyExecute":
        return AnyExecute()

    @staticmethod
    def command(name: str) -> "CommandMatcher":
        return CommandMatcher(name=name)

    @staticmethod
    def within_directory(
        path: Path | str,
        resolver: PathResolver | None = None,
    ) -> "WithinDirectory":
        return WithinDirectory(
            path=Path(path),
            resolver=resolver if resolver is not None else RealPathResolver(),
        )

    @staticmethod
    def and_(matchers: Iterable["Matcher"]) -> "AndMatcher":
        return AndMatcher(tuple(matchers))

    @staticmethod
    def or_(matchers: Iterable["Matcher"]) -> "OrMatcher":
        return OrMatcher(tuple(matchers))


@dataclass(frozen=True)
class AnyExecute(Matcher):
    """Matches every execute operation."""

    def matches(self, operation: Operation) -> bool:
        return isinstance(operation, ExecuteOperation)

    def describe(self) -> str:
        return "any command"


@dataclass(frozen=True)
class CommandMatcher(Matcher):
    """
    Matches an execute operation by command name, subcommand and flags.

    The first token must equal name exactly (case-sensitive, no path
    normalisation, so "/usr/bin/git" does not match "git"). When subcommands
    is set the second token must be one of them. Every required flag must
    appear verbatim among the arguments; "-fd" does not satisfy "-f".

    Attributes:
        name: Command name to match
        subcommands: Allowed subcommands, or None for any
        required_flags: Flags that must all be present
    """

    name: str
    subcommands: frozenset[str] | None = None
    required_flags: tuple[str, ...] = ()

    def with_subcommand(self, subcommand: str) -> "CommandMatcher":
        """Restrict to a single subcommand, replacing any earlier set."""
        return dataclasses.replace(self, subcommands=frozenset({subcommand}))

    def with_subcommands(self, subcommands: Iterable[str]) -> "CommandMatcher":
        """Restrict to a set of subcommands, replacing any earlier set."""
        return dataclasses.replace(self, subcommands=frozenset(subcommands))

    def with_flag(self, flag: str) -> "CommandMatcher":
        """Require a flag to be present."""
        return dataclasses.replace(self, required_flags=(*self.required_flags, flag))

    def matches(self, operation: Operation) -> bool:
        if not isinstance(operation, ExecuteOperation):
            return False
        if operation.command_name() != self.name:
            return False
        if self.subcommands is not None and operation.subcommand() not in self.subcommands:
            return False
        return all(operation.has_flag(flag) for flag in self.required_flags)

    def describe(self) -> str:
        parts = [self.name]
        if self.subcommands is not None:
            parts.append("{" + ",".join(sorted(self.subcommands)) + "}")
        parts.extend(self.required_flags)
        return "command " + " ".join(parts)


@dataclass(frozen=True)
class WithinDirectory(Matcher):
    """
    Matches execute operations whose working directory is inside path.

    Both the working directory and path are canonicalised on every call,
    so the answer tracks the filesystem as it is now. Any resolution failure
    (missing path, permission error, symlink loop) means no match.

    Security Note:
        Comparison is on canonical paths, so a symlink inside path that
        points elsewhere is judged by its target, and a symlink outside
        path that points inside it is accepted.
    """

    path: Path
    resolver: PathResolver = field(default_factory=RealPathResolver, compare=False)

    def matches(self, operation: Operation) -> bool:
        if not isinstance(operation, ExecuteOperation):
            return False
        if operation.working_dir is None:
            return False

        try:
            working_dir = self.resolver.canonicalize(operation.working_dir)
            boundary = self.resolver.canonicalize(self.path)
        except (OSError, RuntimeError, ValueError) as e:
            logger.debug("cannot canonicalize for containment check: %s", e)
            return False

        return working_dir == boundary or working_dir.is_relative_to(boundary)

    def describe(self) -> str:
        return f"within {self.path}"


@dataclass(frozen=True)
class AndMatcher(Matcher):
    """All children must match. Empty means match every execute operation."""

    matchers: tuple[Matcher, ...] = ()

    def matches(self, operation: Operation) -> bool:
        if not isinstance(operation, ExecuteOperation):
            return False
        # Every child is evaluated; no short-circuit
        results = [m.matches(operation) for m in self.matchers]
        return all(results)

    def describe(self) -> str:
        if not self.matchers:
            return "all of ()"
        return "all of (" + "; ".join(m.describe() for m in self.matchers) + ")"


@dataclass(frozen=True)
class OrMatcher(Matcher):
    """Any child may match. Empty never matches."""

    matchers: tuple[Matcher, ...] = ()

    def matches(self, operation: Operation) -> bool:
        if not isinstance(operation, ExecuteOperation):
            return False
        results = [m.matches(operation) for m in self.matchers]
        return any(results)

    def describe(self) -> str:
        if not self.matchers:
            return "any of ()"
        return "any of (" + "; ".join(m.describe() for m in self.matchers) + ")"
