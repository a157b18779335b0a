"""
Shell command parsing for fine-grained permission matching.

Key concepts:
    - parse(): raw command text -> ShellAst, or a typed ShellParseError
    - ShellAst: Simple leaves combined by Pipeline, And, Or and Sequence
    - ParsedCommand: a command name with literal arguments

Commands whose meaning depends on runtime state (expansions, substitutions,
control structures) are rejected so they can be escalated for review.
"""

from toolcap.shell.nodes import (
    And,
    CompoundAst,
    Or,
    ParsedCommand,
    Pipeline,
    Sequence,
    ShellAst,
    Simple,
    Unsupported,
)
from toolcap.shell.parser import parse

__all__ = [
    "And",
    "CompoundAst",
    "Or",
    "ParsedCommand",
    "Pipeline",
    "Sequence",
    "ShellAst",
    "Simple",
    "Unsupported",
    "parse",
]
