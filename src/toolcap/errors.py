"""
Exception hierarchy for Toolcap.

All Toolcap exceptions inherit from ToolcapError, allowing callers to catch
all Toolcap-specific exceptions with a single except clause.

Exception Categories:
    - ShellParseError: A command string could not be reduced to a static tree
    - RulesetLoadError: A ruleset file could not be read or validated
    - PermissionRequestError: A protocol request payload was malformed

Design Principles:
    - All errors have error codes for programmatic handling
    - All errors include context (command, path, detail where applicable)
    - Parse errors never escape Ruleset.evaluate(); they become UNKNOWN there
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Parse errors: 1xxx
ERROR_PARSE_EMPTY = 1001
ERROR_PARSE_SYNTAX = 1002
ERROR_PARSE_UNSUPPORTED = 1003

# Configuration errors: 2xxx
ERROR_RULESET_LOAD = 2001

# Protocol errors: 3xxx
ERROR_PERMISSION_REQUEST = 3001


class ParseErrorKind(str, Enum):
    """The three ways a command string can fail to parse."""

    EMPTY = "empty"
    SYNTAX = "syntax"
    UNSUPPORTED = "unsupported"


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class ToolcapError(Exception):
    """
    Base exception for all Toolcap errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Parse Errors
# =============================================================================


@dataclass
class ShellParseError(ToolcapError):
    """
    Raised when a command string cannot be turned into a ShellAst.

    The ruleset never lets this escape: any parse failure evaluates to
    UNKNOWN so the operation is escalated.

    Attributes:
        command: The raw command text that failed to parse
    """

    command: str = ""

    kind = ParseErrorKind.SYNTAX

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context.update({
            "command": self.command,
            "kind": self.kind.value,
        })


@dataclass
class EmptyCommandError(ShellParseError):
    """Raised when the command is empty or whitespace only."""

    kind = ParseErrorKind.EMPTY

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = "empty command"
        if self.code == 0:
            self.code = ERROR_PARSE_EMPTY
        super().__post_init__()


@dataclass
class ShellSyntaxError(ShellParseError):
    """Raised when the command is not valid shell grammar."""

    detail: str = ""

    kind = ParseErrorKind.SYNTAX

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"syntax error: {self.detail}"
        if self.code == 0:
            self.code = ERROR_PARSE_SYNTAX
        super().__post_init__()
        self.context["detail"] = self.detail


@dataclass
class UnsupportedConstructError(ShellParseError):
    """
    Raised when the command is valid shell but cannot be analyzed statically.

    Covers expansions, substitutions, control structures, subshells,
    here-documents and similar constructs whose effect depends on runtime
    state.
    """

    construct: str = ""

    kind = ParseErrorKind.UNSUPPORTED

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"unsupported: {self.construct}"
        if self.code == 0:
            self.code = ERROR_PARSE_UNSUPPORTED
        if not self.suggestion:
            self.suggestion = "Rewrite the command with literal arguments or approve it manually"
        super().__post_init__()
        self.context["construct"] = self.construct


# =============================================================================
# Configuration Errors
# =============================================================================


@dataclass
class RulesetLoadError(ToolcapError):
    """
    Raised when a YAML ruleset cannot be loaded.

    Wraps unreadable files, malformed YAML and schema violations.

    Attributes:
        path: The file that was being loaded (empty for string input)
        underlying_error: The original error text
    """

    path: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            source = self.path or "<string>"
            self.message = f"Failed to load ruleset from {source}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_RULESET_LOAD
        if not self.suggestion:
            self.suggestion = "Check the file against the ruleset format in the README"
        self.context.update({
            "path": self.path,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Protocol Errors
# =============================================================================


@dataclass
class PermissionRequestError(ToolcapError):
    """Raised when a permission request payload does not match the protocol."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid permission request: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_PERMISSION_REQUEST
        self.context["underlying_error"] = self.underlying_error
