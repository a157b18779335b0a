"""
Operations: what an agent is attempting to do.

Each operation kind is a frozen Pydantic model with a literal ``kind`` tag.
Construction never fails on content: a malformed command string still
produces an ExecuteOperation, and parsing is deferred to evaluation time.

Example:
    >>> op = Operation.execute("git status")
    >>> op.command_name()
    'git'
    >>> Operation.read("/etc/passwd").kind
    'read'
"""

import shlex
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from toolcap.shell.nodes import ParsedCommand


class OperationKind(str, Enum):
    """The kinds of action an agent can attempt."""

    READ = "read"
    EDIT = "edit"
    DELETE = "delete"
    MOVE = "move"
    SEARCH = "search"
    EXECUTE = "execute"
    FETCH = "fetch"
    THINK = "think"
    SWITCH_MODE = "switch_mode"
    OTHER = "other"


class Operation(BaseModel):
    """
    Base class for all operations.

    Use the classmethod constructors rather than instantiating subclasses
    directly; they mirror the operation kinds one to one.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def execute(cls, command: str) -> "ExecuteOperation":
        """Create an execute operation from a shell command string."""
        return ExecuteOperation(command=command)

    @classmethod
    def execute_in(cls, command: str, working_dir: Path | str) -> "ExecuteOperation":
        """Create an execute operation with a working directory."""
        return ExecuteOperation(command=command, working_dir=Path(working_dir))

    @classmethod
    def read(cls, path: Path | str) -> "ReadOperation":
        return ReadOperation(path=Path(path))

    @classmethod
    def edit(cls, path: Path | str) -> "EditOperation":
        return EditOperation(path=Path(path))

    @classmethod
    def delete(cls, path: Path | str) -> "DeleteOperation":
        return DeleteOperation(path=Path(path))

    @classmethod
    def move(cls, source: Path | str, destination: Path | str) -> "MoveOperation":
        return MoveOperation(source=Path(source), destination=Path(destination))

    @classmethod
    def search(cls, query: str) -> "SearchOperation":
        return SearchOperation(query=query)

    @classmethod
    def fetch(cls, url: str) -> "FetchOperation":
        return FetchOperation(url=url)

    @classmethod
    def think(cls) -> "ThinkOperation":
        return ThinkOperation()

    @classmethod
    def switch_mode(cls, mode: str) -> "SwitchModeOperation":
        return SwitchModeOperation(mode=mode)

    @classmethod
    def other(cls, name: str, description: str | None = None) -> "OtherOperation":
        return OtherOperation(name=name, description=description)

    def summary(self) -> str:
        """Short human-readable description for logs."""
        return self.kind


class ExecuteOperation(Operation):
    """
    Running a command.

    The raw command text is authoritative. The accessors below tokenize it
    naively on whitespace, which is enough for matching one simple command;
    the ruleset uses the full shell parser for compound commands and builds
    per-command operations with from_parsed().

    Attributes:
        command: The raw command string
        working_dir: Directory the command runs in, if known
        words: Exact words for operations built from a parsed command
    """

    kind: Literal["execute"] = "execute"
    command: str
    working_dir: Path | None = None
    words: tuple[str, ...] | None = Field(default=None, repr=False)

    @classmethod
    def from_parsed(
        cls,
        parsed: "ParsedCommand",
        working_dir: Path | None = None,
    ) -> "ExecuteOperation":
        """Build an operation for one command taken from a parsed tree."""
        words = parsed.words()
        return cls(command=shlex.join(words), working_dir=working_dir, words=words)

    def with_working_dir(self, working_dir: Path | str) -> "ExecuteOperation":
        return self.model_copy(update={"working_dir": Path(working_dir)})

    def tokens(self) -> list[str]:
        if self.words is not None:
            return list(self.words)
        return self.command.split()

    def command_name(self) -> str | None:
        """Return the first word, or None for a blank command."""
        tokens = self.tokens()
        return tokens[0] if tokens else None

    def args(self) -> list[str]:
        """Return the words after the command name."""
        return self.tokens()[1:]

    def subcommand(self) -> str | None:
        """Return the first argument (e.g., "status" for "git status")."""
        args = self.args()
        return args[0] if args else None

    def has_flag(self, flag: str) -> bool:
        """Check whether an argument equals flag exactly."""
        return flag in self.args()

    def summary(self) -> str:
        return f"execute:{self.command}"


class ReadOperation(Operation):
    kind: Literal["read"] = "read"
    path: Path

    def summary(self) -> str:
        return f"read:{self.path}"


class EditOperation(Operation):
    kind: Literal["edit"] = "edit"
    path: Path

    def summary(self) -> str:
        return f"edit:{self.path}"


class DeleteOperation(Operation):
    kind: Literal["delete"] = "delete"
    path: Path

    def summary(self) -> str:
        return f"delete:{self.path}"


class MoveOperation(Operation):
    kind: Literal["move"] = "move"
    source: Path
    destination: Path

    def summary(self) -> str:
        return f"move:{self.source}->{self.destination}"


class SearchOperation(Operation):
    kind: Literal["search"] = "search"
    query: str


class FetchOperation(Operation):
    kind: Literal["fetch"] = "fetch"
    url: str

    def summary(self) -> str:
        return f"fetch:{self.url}"


class ThinkOperation(Operation):
    """Internal reasoning; carries no payload."""

    kind: Literal["think"] = "think"


class SwitchModeOperation(Operation):
    kind: Literal["switch_mode"] = "switch_mode"
    mode: str


class OtherOperation(Operation):
    """Anything that does not fit another kind."""

    kind: Literal["other"] = "other"
    name: str
    description: str | None = None


AnyOperation = Annotated[
    Union[
        ExecuteOperation,
        ReadOperation,
        EditOperation,
        DeleteOperation,
        MoveOperation,
        SearchOperation,
        FetchOperation,
        ThinkOperation,
        SwitchModeOperation,
        OtherOperation,
    ],
    Field(discriminator="kind"),
]
