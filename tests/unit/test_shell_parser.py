"""
Unit tests for the shell parser.

Tests cover:
- Simple commands, quoting, redirections, globs
- Pipelines, && / || chains and sequences
- Rejection of expansions and control structures
- Error kinds and error codes
"""

import pytest

from toolcap.errors import (
    ERROR_PARSE_EMPTY,
    ERROR_PARSE_UNSUPPORTED,
    EmptyCommandError,
    ParseErrorKind,
    ShellParseError,
    UnsupportedConstructError,
)
from toolcap.shell import And, Or, ParsedCommand, Pipeline, Sequence, ShellAst, Simple, parse


def names(tree) -> list[str]:
    return [command.name for command in tree.commands()]


# =============================================================================
# Simple Commands
# =============================================================================


class TestSimpleCommands:
    """Tests for single commands."""

    def test_git_status(self) -> None:
        tree = parse("git status")
        assert tree.is_simple()
        assert tree.as_simple() == ParsedCommand(name="git", args=("status",))
        assert list(tree.commands()) == [ParsedCommand("git", ("status",))]

    def test_surrounding_whitespace(self) -> None:
        assert parse("   ls -la   ").as_simple() == ParsedCommand("ls", ("-la",))

    def test_double_quotes_keep_inner_whitespace(self) -> None:
        tree = parse('grep "hello   world" notes.txt')
        assert tree.as_simple().args == ("hello   world", "notes.txt")

    def test_single_quotes_are_literal(self) -> None:
        tree = parse("find . -name '*.rs'")
        assert tree.as_simple().args == (".", "-name", "*.rs")

    def test_single_quoted_dollar_is_literal(self) -> None:
        assert parse("echo '$HOME'").as_simple().args == ("$HOME",)

    def test_escaped_space_is_one_argument(self) -> None:
        tree = parse(r"cat my\ file.txt")
        assert len(tree.as_simple().args) == 1

    @pytest.mark.parametrize(
        ("command", "expected"),
        [
            ("echo \"a\"'b'c", ("abc",)),
            ("echo 'a''b'", ("ab",)),
            ("echo \"a\"\"b\"", ("ab",)),
            ("echo a'b'\"c\"d", ("abcd",)),
            (r"echo my\ file.txt", ("my file.txt",)),
            ("echo \"it's\"", ("it's",)),
        ],
    )
    def test_adjacent_quoted_pieces_join(self, command: str, expected: tuple[str, ...]) -> None:
        assert parse(command).as_simple().args == expected

    def test_split_quoted_flag_resolved(self) -> None:
        tree = parse("git push \"--\"'force'")
        assert tree.as_simple() == ParsedCommand("git", ("push", "--force"))

    def test_split_quoted_command_name_resolved(self) -> None:
        assert parse("\"g\"'it' status").as_simple().name == "git"

    def test_quote_removal_in_later_segments(self) -> None:
        tree = parse("ls && git push \"--\"'force'")
        assert [c.args for c in tree.commands()] == [(), ("push", "--force")]

    @pytest.mark.parametrize("command", ["echo $'\\x41'", "echo $\"hello\""])
    def test_ansi_c_quoting_rejected(self, command: str) -> None:
        with pytest.raises(ShellParseError):
            parse(command)

    def test_glob_and_tilde_kept(self) -> None:
        tree = parse("ls *.py ~/src")
        assert tree.as_simple().args == ("*.py", "~/src")

    def test_redirections_dropped(self) -> None:
        tree = parse("echo hello > out.txt")
        assert tree.as_simple() == ParsedCommand("echo", ("hello",))

    def test_leading_assignment_dropped(self) -> None:
        tree = parse("RUST_LOG=debug cargo test")
        assert tree.as_simple() == ParsedCommand("cargo", ("test",))

    def test_absolute_command_path_kept(self) -> None:
        assert parse("/usr/bin/git status").as_simple().name == "/usr/bin/git"

    def test_trailing_separator_not_wrapped(self) -> None:
        assert isinstance(parse("ls;"), Simple)

    def test_to_dict(self) -> None:
        assert parse("git log -n 5").to_dict() == {
            "type": "simple",
            "name": "git",
            "args": ["log", "-n", "5"],
        }


# =============================================================================
# Compound Commands
# =============================================================================


class TestCompoundCommands:
    """Tests for pipelines, chains and sequences."""

    def test_three_stage_pipeline(self) -> None:
        tree = parse("find . | grep foo | head -10")
        assert isinstance(tree, Pipeline)
        assert len(tree.children) == 3
        assert names(tree) == ["find", "grep", "head"]
        assert tree.children[2].as_simple().args == ("-10",)

    def test_pipeline_with_fd_redirect(self) -> None:
        tree = parse("cargo build 2>&1 | tail -5")
        assert isinstance(tree, Pipeline)
        assert tree.children[0].as_simple() == ParsedCommand("cargo", ("build",))

    def test_and_chain_is_flat(self) -> None:
        tree = parse("a && b && c")
        assert isinstance(tree, And)
        assert len(tree.children) == 3
        assert all(child.is_simple() for child in tree.children)

    def test_or_chain(self) -> None:
        tree = parse("make || echo failed")
        assert isinstance(tree, Or)
        assert names(tree) == ["make", "echo"]

    def test_mixed_chain_folds_left_to_right(self) -> None:
        tree = parse("a && b || c")
        assert isinstance(tree, Or)
        assert len(tree.children) == 2
        assert isinstance(tree.children[0], And)
        assert names(tree.children[0]) == ["a", "b"]
        assert tree.children[1].as_simple().name == "c"

    def test_pipeline_binds_tighter_than_and(self) -> None:
        tree = parse("ls | wc -l && echo done")
        assert isinstance(tree, And)
        assert isinstance(tree.children[0], Pipeline)
        assert names(tree) == ["ls", "wc", "echo"]

    def test_semicolon_sequence(self) -> None:
        tree = parse("cd src; ls; pwd")
        assert isinstance(tree, Sequence)
        assert names(tree) == ["cd", "ls", "pwd"]

    def test_sequence_of_chains(self) -> None:
        tree = parse("a && b; c")
        assert isinstance(tree, Sequence)
        assert isinstance(tree.children[0], And)
        assert names(tree) == ["a", "b", "c"]

    def test_newline_sequence(self) -> None:
        tree = parse("git status\ngit diff")
        assert isinstance(tree, Sequence)
        assert names(tree) == ["git", "git"]

    def test_compound_to_dict(self) -> None:
        data = parse("ls | wc").to_dict()
        assert data["type"] == "pipeline"
        assert [child["name"] for child in data["children"]] == ["ls", "wc"]


# =============================================================================
# Rejected Input
# =============================================================================


class TestEmptyInput:
    """Tests for empty command strings."""

    @pytest.mark.parametrize("command", ["", "   ", "\t\n"])
    def test_blank_is_empty(self, command: str) -> None:
        with pytest.raises(EmptyCommandError) as exc_info:
            parse(command)
        assert exc_info.value.kind == ParseErrorKind.EMPTY
        assert exc_info.value.code == ERROR_PARSE_EMPTY


class TestUnsupportedConstructs:
    """Constructs whose meaning depends on runtime state are rejected."""

    @pytest.mark.parametrize(
        "command",
        [
            "echo $HOME",
            "echo ${HOME}",
            'echo "$HOME"',
            "echo $(whoami)",
            "echo `whoami`",
            "ls $(pwd)/src",
        ],
    )
    def test_expansions(self, command: str) -> None:
        with pytest.raises(UnsupportedConstructError) as exc_info:
            parse(command)
        assert exc_info.value.kind == ParseErrorKind.UNSUPPORTED
        assert exc_info.value.code == ERROR_PARSE_UNSUPPORTED

    @pytest.mark.parametrize(
        "command",
        [
            "if true; then ls; fi",
            "(cd /tmp && ls)",
            "{ ls; pwd; }",
            "for f in a b; do echo $f; done",
            "while true; do ls; done",
        ],
    )
    def test_control_structures(self, command: str) -> None:
        with pytest.raises(UnsupportedConstructError):
            parse(command)

    def test_only_assignment(self) -> None:
        with pytest.raises(UnsupportedConstructError):
            parse("FOO=bar")

    def test_substitution_inside_pipeline(self) -> None:
        with pytest.raises(UnsupportedConstructError):
            parse("ls | grep $(whoami)")

    @pytest.mark.parametrize(
        "command",
        [
            "echo $((1 + 2))",
            "cat <<EOF\nhello\nEOF",
            "diff <(ls a) <(ls b)",
            "case x in x) ls;; esac",
            "f() { ls; }",
            "! ls",
            "[[ -f x ]]",
        ],
    )
    def test_other_constructs_fail_closed(self, command: str) -> None:
        """Whatever the exact error kind, these never parse."""
        with pytest.raises(ShellParseError):
            parse(command)


class TestSyntaxErrors:
    """Invalid grammar raises a parse error."""

    @pytest.mark.parametrize(
        "command",
        [
            "echo 'unterminated",
            'echo "unterminated',
            "ls &&",
            "&& ls",
            "ls | | wc",
            "ls )",
        ],
    )
    def test_invalid_grammar(self, command: str) -> None:
        with pytest.raises(ShellParseError):
            parse(command)

    def test_error_carries_command(self) -> None:
        with pytest.raises(ShellParseError) as exc_info:
            parse("echo 'unterminated")
        assert exc_info.value.context["command"] == "echo 'unterminated"


class TestNodeTypes:
    """Tests for the syntax tree base class."""

    def test_base_class_is_abstract(self) -> None:
        with pytest.raises(TypeError):
            ShellAst()

    def test_node_without_to_dict_cannot_be_built(self) -> None:
        class Incomplete(ShellAst):
            pass

        with pytest.raises(TypeError):
            Incomplete()

    def test_every_parsed_node_serializes(self) -> None:
        tree = parse("ls | wc && echo a; pwd")
        assert tree.to_dict()["type"] == "sequence"
