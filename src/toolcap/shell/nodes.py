"""
Syntax tree types for parsed shell command lines.

A ShellAst is built fresh for each evaluation and owns its strings. Leaves
are ParsedCommand values with fully literal arguments; inner nodes are the
four compound kinds (pipeline, and-list, or-list, sequence).
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ParsedCommand:
    """
    A single simple command: executable name plus literal arguments.

    Attributes:
        name: The command word (e.g., "git", "/usr/bin/env")
        args: Arguments after the command word, quoting already resolved
    """

    name: str
    args: tuple[str, ...] = ()

    def subcommand(self) -> str | None:
        """Return the first argument, if any (e.g., "status" in "git status")."""
        return self.args[0] if self.args else None

    def has_flag(self, flag: str) -> bool:
        """Check whether an argument equals flag exactly."""
        return flag in self.args

    def words(self) -> tuple[str, ...]:
        """Return name and arguments as one tuple."""
        return (self.name, *self.args)


class ShellAst(ABC):
    """Base class for all syntax tree nodes."""

    def commands(self) -> Iterator[ParsedCommand]:
        """Yield every simple command in this tree, in source order."""
        return iter(())

    def is_simple(self) -> bool:
        return False

    def as_simple(self) -> ParsedCommand | None:
        return None

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready description of this node."""


@dataclass(frozen=True)
class Simple(ShellAst):
    """A leaf holding one simple command."""

    command: ParsedCommand

    def commands(self) -> Iterator[ParsedCommand]:
        yield self.command

    def is_simple(self) -> bool:
        return True

    def as_simple(self) -> ParsedCommand | None:
        return self.command

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "simple",
            "name": self.command.name,
            "args": list(self.command.args),
        }


@dataclass(frozen=True)
class CompoundAst(ShellAst):
    """
    A node combining several children.

    All compound kinds share the same evaluation semantics; they differ only
    in what they record about the source.
    """

    children: tuple[ShellAst, ...]

    label = "compound"

    def commands(self) -> Iterator[ParsedCommand]:
        for child in self.children:
            yield from child.commands()

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.label,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class Pipeline(CompoundAst):
    """cmd1 | cmd2 | ..."""

    label = "pipeline"


@dataclass(frozen=True)
class And(CompoundAst):
    """cmd1 && cmd2 && ..."""

    label = "and"


@dataclass(frozen=True)
class Or(CompoundAst):
    """cmd1 || cmd2 || ..."""

    label = "or"


@dataclass(frozen=True)
class Sequence(CompoundAst):
    """cmd1; cmd2; ... (also background '&' and newlines)"""

    label = "sequence"


@dataclass(frozen=True)
class Unsupported(ShellAst):
    """A construct kept only as a description; always evaluates to UNKNOWN."""

    description: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "unsupported", "description": self.description}
