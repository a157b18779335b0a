"""
Static shell command parser.

Turns a raw command line into a ShellAst, or raises a ShellParseError
subclass when the line cannot be reduced to literal commands.

How it works:
    1. bashlex builds a full bash syntax tree (nothing is executed or expanded)
    2. The tree is walked; lists, pipelines and simple commands are converted
    3. Any node that carries runtime-dependent meaning is rejected

Supported:
    - Simple commands: git status, cargo build --release
    - Pipelines: find . | grep foo | head -10
    - && / || chains, flattened left to right
    - ; & and newline separated sequences
    - Quoting and escapes (resolved to literal text)
    - Globs and tilde (kept as literal text)
    - Redirections (parsed, dropped from the argument list)

Rejected as unsupported:
    - $VAR, ${...}, $(...), `...`, $((...)), <(...), >(...)
    - if/for/while/until/case, subshells, brace groups, functions, coproc
    - here-documents
    - commands with only assignments or redirects

Security Note:
    This module is part of the security boundary. Unknown bashlex node kinds
    are rejected, never ignored.
"""

import shlex

import bashlex
import bashlex.errors

from toolcap.errors import (
    EmptyCommandError,
    ShellSyntaxError,
    UnsupportedConstructError,
)
from toolcap.shell.nodes import (
    And,
    Or,
    ParsedCommand,
    Pipeline,
    Sequence,
    ShellAst,
    Simple,
)

# bashlex node kinds that are whole compound commands
_COMPOUND_KINDS = {
    "compound": "subshells and brace groups",
    "if": "if/then/fi conditionals",
    "for": "for loops",
    "while": "while loops",
    "until": "until loops",
    "case": "case statements",
    "function": "function definitions",
}

# bashlex word-part kinds that depend on runtime state
_EXPANSION_KINDS = {
    "parameter": "parameter expansion",
    "commandsubstitution": "command substitution",
    "processsubstitution": "process substitution",
    "arithmetic": "arithmetic expansion",
}

_HEREDOC_REDIRECTS = {"<<", "<<-"}

# Words that bash treats as syntax when they start a command
_RESERVED_COMMAND_WORDS = {
    "!", "[[", "]]", "((", "{", "}",
    "case", "coproc", "do", "done", "elif", "else", "esac", "fi", "for",
    "function", "if", "in", "select", "then", "time", "until", "while",
}

_SEPARATORS = {";", "&", "\n"}
_CHAIN_OPERATORS = {"&&": And, "||": Or}


def parse(command: str) -> ShellAst:
    """
    Parse a shell command line into a ShellAst.

    Args:
        command: The raw command text

    Returns:
        The syntax tree. A single command is returned as a Simple leaf.

    Raises:
        EmptyCommandError: If the input is blank
        ShellSyntaxError: If the input is not valid shell grammar
        UnsupportedConstructError: If the input needs runtime expansion or
            uses a compound construct

    Example:
        >>> parse("git status").as_simple()
        ParsedCommand(name='git', args=('status',))
    """
    text = command.strip()
    if not text:
        raise EmptyCommandError(command=command)

    try:
        trees = bashlex.parse(text)
    except bashlex.errors.ParsingError as e:
        raise ShellSyntaxError(command=command, detail=str(e)) from e
    except NotImplementedError as e:
        # bashlex raises this for grammar it recognizes but does not model
        raise UnsupportedConstructError(command=command, construct=str(e) or "unmodeled construct") from e
    except Exception as e:
        # Malformed input can surface as assorted internal bashlex errors
        raise ShellSyntaxError(command=command, detail=f"{type(e).__name__}: {e}") from e

    segments = [_convert_node(tree, command, text) for tree in trees]
    if not segments:
        raise EmptyCommandError(command=command)
    return _sequence(segments)


# =============================================================================
# Tree conversion
# =============================================================================


def _convert_node(node, command: str, text: str) -> ShellAst:
    kind = node.kind

    if kind == "list":
        return _convert_list(node.parts, command, text)
    if kind == "pipeline":
        return _convert_pipeline(node.parts, command, text)
    if kind == "command":
        return _convert_command(node.parts, command, text)
    if kind in _COMPOUND_KINDS:
        raise UnsupportedConstructError(command=command, construct=_COMPOUND_KINDS[kind])
    if kind == "reservedword":
        raise UnsupportedConstructError(command=command, construct=f"shell keyword {node.word!r}")

    raise UnsupportedConstructError(command=command, construct=f"shell construct {kind!r}")


def _convert_list(parts, command: str, text: str) -> ShellAst:
    """
    Convert a flat bashlex list into and/or chains split by separators.

    bashlex keeps && and || at equal precedence in one flat list, so chains
    are folded left to right: a && b || c becomes Or[And[a, b], c].
    """
    segments: list[ShellAst] = []
    current: ShellAst | None = None
    pending: str | None = None

    for part in parts:
        if part.kind == "operator":
            if part.op in _SEPARATORS:
                if pending is not None:
                    raise ShellSyntaxError(command=command, detail=f"missing command after {pending!r}")
                if current is not None:
                    segments.append(current)
                current = None
            elif part.op in _CHAIN_OPERATORS:
                if current is None:
                    raise ShellSyntaxError(command=command, detail=f"missing command before {part.op!r}")
                pending = part.op
            else:
                raise UnsupportedConstructError(command=command, construct=f"operator {part.op!r}")
            continue

        node = _convert_node(part, command, text)
        if current is None:
            current = node
        elif pending is not None:
            current = _chain(_CHAIN_OPERATORS[pending], current, node)
        else:
            raise ShellSyntaxError(command=command, detail="missing operator between commands")
        pending = None

    if pending is not None:
        raise ShellSyntaxError(command=command, detail=f"missing command after {pending!r}")
    if current is not None:
        segments.append(current)
    if not segments:
        raise ShellSyntaxError(command=command, detail="empty command list")

    return _sequence(segments)


def _chain(cls: type, left: ShellAst, right: ShellAst) -> ShellAst:
    # Extend an existing chain of the same operator instead of nesting
    if type(left) is cls:
        return cls(left.children + (right,))
    return cls((left, right))


def _sequence(segments: list[ShellAst]) -> ShellAst:
    flattened: list[ShellAst] = []
    for segment in segments:
        if isinstance(segment, Sequence):
            flattened.extend(segment.children)
        else:
            flattened.append(segment)
    if len(flattened) == 1:
        return flattened[0]
    return Sequence(tuple(flattened))


def _convert_pipeline(parts, command: str, text: str) -> ShellAst:
    children: list[ShellAst] = []
    for part in parts:
        if part.kind == "pipe":
            continue
        if part.kind == "reservedword":
            # '!' negation or 'time' prefix
            raise UnsupportedConstructError(command=command, construct=f"pipeline keyword {part.word!r}")
        children.append(_convert_node(part, command, text))

    if len(children) == 1:
        return children[0]
    return Pipeline(tuple(children))


def _convert_command(parts, command: str, text: str) -> ShellAst:
    words: list[str] = []

    for part in parts:
        if part.kind == "redirect":
            _check_redirect(part, command)
        elif part.kind == "assignment" and not words:
            # Leading NAME=value pairs set the environment, not the executable
            _check_expansions(part, command)
        elif part.kind in ("word", "assignment"):
            _check_expansions(part, command)
            words.append(_literal_word(part, command, text))
        else:
            raise UnsupportedConstructError(command=command, construct=f"command element {part.kind!r}")

    if not words:
        raise UnsupportedConstructError(
            command=command,
            construct="commands with only environment variables or redirects",
        )

    name, *args = words
    if name in _RESERVED_COMMAND_WORDS:
        raise UnsupportedConstructError(command=command, construct=f"shell keyword {name!r}")

    return Simple(ParsedCommand(name=name, args=tuple(args)))


def _check_redirect(node, command: str) -> None:
    if node.type in _HEREDOC_REDIRECTS:
        raise UnsupportedConstructError(command=command, construct="here-documents")
    # Targets like '> $FILE' are dynamic; numeric fd targets (2>&1) are ints
    target = getattr(node, "output", None)
    if hasattr(target, "kind"):
        _check_expansions(target, command)


def _check_expansions(node, command: str) -> None:
    for part in getattr(node, "parts", None) or ():
        if part.kind in _EXPANSION_KINDS:
            raise UnsupportedConstructError(command=command, construct=_EXPANSION_KINDS[part.kind])
        if part.kind in _COMPOUND_KINDS:
            raise UnsupportedConstructError(command=command, construct=_COMPOUND_KINDS[part.kind])
        _check_expansions(part, command)


def _literal_word(node, command: str, text: str) -> str:
    """
    Quote-remove a word from its own source span.

    bashlex's ``word`` attribute keeps inner quotes when quoted pieces are
    adjacent ("--"'force' comes back as --'force'), so the word is
    re-tokenized from the input instead. Expansions have already been
    rejected, which leaves only quoting and escapes to resolve.
    """
    start, end = node.pos
    source = text[start:end]
    if "$'" in source or '$"' in source:
        raise UnsupportedConstructError(command=command, construct="ANSI-C and locale quoting")

    try:
        tokens = shlex.split(source, posix=True)
    except ValueError as e:
        raise ShellSyntaxError(command=command, detail=f"cannot resolve quoting in {source!r}: {e}") from e

    if len(tokens) != 1:
        raise ShellSyntaxError(command=command, detail=f"word {source!r} does not resolve to a single argument")
    return tokens[0]
