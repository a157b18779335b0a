"""
CLI entry point for Toolcap.

This module provides the Typer-based command-line interface for Toolcap.

Commands:
    check       Evaluate a shell command against a ruleset
    parse       Show how a shell command is parsed
    rules       List the rules of a ruleset
    decide      Answer an ACP session/request_permission message

Rulesets come from --rules, then the TOOLCAP_RULES environment variable,
then the built-in default ruleset.

Exit codes for check:
    0 allow, 1 deny, 2 unknown, 3 ruleset could not be loaded
"""

import json
import logging
import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.tree import Tree

from toolcap import __version__
from toolcap.acp import PermissionGate, parse_permission_request
from toolcap.bundles import default_ruleset
from toolcap.errors import PermissionRequestError, RulesetLoadError, ShellParseError
from toolcap.operation import Operation
from toolcap.outcome import Outcome
from toolcap.policy.ruleset import Decision, Ruleset
from toolcap.schema import load_ruleset
from toolcap.shell.nodes import ShellAst
from toolcap.shell.parser import parse

app = typer.Typer(
    name="toolcap",
    help="Decide whether agent tool calls are allowed, denied, or need a human.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

EXIT_CODES = {
    Outcome.ALLOW: 0,
    Outcome.DENY: 1,
    Outcome.UNKNOWN: 2,
}

# Ruleset load failures; distinct from every outcome code
EXIT_CONFIG_ERROR = 3

OUTCOME_STYLES = {
    Outcome.ALLOW: "green",
    Outcome.DENY: "red",
    Outcome.UNKNOWN: "yellow",
}

RulesOption = Annotated[
    Optional[Path],
    typer.Option(
        "--rules",
        "-r",
        help="Path to a ruleset YAML file. Defaults to the built-in ruleset.",
        envvar="TOOLCAP_RULES",
    ),
]

JsonOption = Annotated[
    bool,
    typer.Option(
        "--json",
        help="Output results in JSON format.",
    ),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]toolcap[/bold] version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Send library logs to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Log every decision to stderr.",
        ),
    ] = False,
) -> None:
    """
    Toolcap - permission rules for agent tool calls.

    Classify shell commands and other agent actions as allow, deny or
    unknown using an ordered ruleset.
    """
    configure_logging(verbose)


# =============================================================================
# check
# =============================================================================


@app.command()
def check(
    command: Annotated[
        str,
        typer.Argument(help="The shell command to evaluate (quote it)."),
    ],
    cwd: Annotated[
        Optional[Path],
        typer.Option(
            "--cwd",
            help="Working directory the command would run in.",
        ),
    ] = None,
    rules_path: RulesOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    Evaluate a shell command against a ruleset.

    Exits 0 if allowed, 1 if denied, 2 if no rule decides it.

    Example:
        $ toolcap check "git status && cargo test"
    """
    ruleset = _load_rules(rules_path, json_output)

    operation = Operation.execute(command)
    if cwd is not None:
        operation = operation.with_working_dir(cwd)

    decision = ruleset.decide(operation)

    if json_output:
        print(json.dumps(decision.model_dump(mode="json"), indent=2))
    else:
        _display_decision(decision)

    raise typer.Exit(code=EXIT_CODES[decision.outcome])


def _display_decision(decision: Decision) -> None:
    style = OUTCOME_STYLES[decision.outcome]
    console.print(f"[bold {style}]{decision.outcome.value.upper()}[/bold {style}]  {decision.reason}")

    if len(decision.matches) < 2:
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Command", style="cyan")
    table.add_column("Outcome", width=8)
    table.add_column("Rule")

    for match in decision.matches:
        match_style = OUTCOME_STYLES[match.outcome]
        if match.rule_index is None:
            rule = "[dim]no match[/dim]"
        else:
            rule = f"#{match.rule_index}"
            if match.rule_name:
                rule += f" {match.rule_name}"
        table.add_row(match.command, f"[{match_style}]{match.outcome.value}[/{match_style}]", rule)

    console.print(table)


# =============================================================================
# parse
# =============================================================================


@app.command(name="parse")
def parse_command(
    command: Annotated[
        str,
        typer.Argument(help="The shell command to parse (quote it)."),
    ],
    json_output: JsonOption = False,
) -> None:
    """
    Show the parse tree for a shell command.

    Exits 1 if the command cannot be analyzed.

    Example:
        $ toolcap parse "find . | grep foo | head -10"
    """
    try:
        tree = parse(command)
    except ShellParseError as e:
        if json_output:
            print(json.dumps({"error": True, **e.to_dict()}, indent=2))
        else:
            console.print(f"[red]Cannot analyze command ({e.kind.value}): {e.message}[/red]")
        raise typer.Exit(code=1)

    if json_output:
        print(json.dumps(tree.to_dict(), indent=2))
    else:
        console.print(_render_tree(tree))


def _render_tree(node: ShellAst, parent: Tree | None = None) -> Tree:
    data = node.to_dict()
    if data["type"] == "simple":
        label = " ".join([f"[cyan]{data['name']}[/cyan]", *data["args"]])
    elif data["type"] == "unsupported":
        label = f"[yellow]unsupported[/yellow] {data['description']}"
    else:
        label = f"[bold]{data['type']}[/bold]"

    branch = Tree(label) if parent is None else parent.add(label)
    for child in getattr(node, "children", ()):
        _render_tree(child, branch)
    return branch


# =============================================================================
# rules
# =============================================================================


@app.command()
def rules(
    rules_path: RulesOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    List the rules of the active ruleset in evaluation order.

    Example:
        $ toolcap rules --rules ./toolcap.yaml
    """
    ruleset = _load_rules(rules_path, json_output)

    if json_output:
        output = [
            {
                "index": index,
                "name": rule.name,
                "outcome": rule.outcome.value,
                "matcher": rule.matcher.describe(),
            }
            for index, rule in enumerate(ruleset)
        ]
        print(json.dumps(output, indent=2))
        return

    if not len(ruleset):
        console.print("[dim]Ruleset is empty; every operation is unknown.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="dim", width=3)
    table.add_column("Name", style="cyan")
    table.add_column("Outcome", width=8)
    table.add_column("Matcher")

    for index, rule in enumerate(ruleset):
        style = OUTCOME_STYLES[rule.outcome]
        table.add_row(
            str(index),
            rule.name or "[dim]-[/dim]",
            f"[{style}]{rule.outcome.value}[/{style}]",
            rule.matcher.describe(),
        )

    console.print(table)


# =============================================================================
# decide
# =============================================================================


@app.command()
def decide(
    request_file: Annotated[
        str,
        typer.Argument(help="File holding the request JSON, or '-' for stdin."),
    ] = "-",
    rules_path: RulesOption = None,
    remember: Annotated[
        bool,
        typer.Option(
            "--remember",
            help="Prefer 'always' options so the client stops asking.",
        ),
    ] = False,
) -> None:
    """
    Answer an ACP session/request_permission message.

    Accepts a full JSON-RPC message or just its params. Prints the
    permission response, or an escalation marker when a human must decide.

    Example:
        $ toolcap decide request.json --remember
    """
    ruleset = _load_rules(rules_path, json_output=True)

    try:
        if request_file == "-":
            payload = sys.stdin.buffer.read()
        else:
            payload = Path(request_file).read_bytes()
    except OSError as e:
        _output_json_error("request_read_error", str(e))
        raise typer.Exit(code=1)

    try:
        request = parse_permission_request(payload)
    except PermissionRequestError as e:
        _output_json_error("permission_request_error", e.message)
        raise typer.Exit(code=1)

    decision = PermissionGate(ruleset, remember=remember).handle_permission_request(request)

    if decision.escalate:
        output = {
            "escalate": True,
            "outcome": decision.outcome.value,
            "reason": decision.reason,
        }
    else:
        output = decision.response.to_wire()
    print(json.dumps(output, indent=2))


# =============================================================================
# Helpers
# =============================================================================


def _load_rules(rules_path: Path | None, json_output: bool) -> Ruleset:
    if rules_path is None:
        return default_ruleset()

    try:
        return load_ruleset(rules_path)
    except RulesetLoadError as e:
        if json_output:
            _output_json_error("ruleset_load_error", e.message)
        else:
            console.print(f"[red]Error loading ruleset: {e.message}[/red]")
        raise typer.Exit(code=EXIT_CONFIG_ERROR)


def _output_json_error(error_type: str, message: str) -> None:
    """Output an error in JSON format."""
    output = {
        "error": True,
        "error_type": error_type,
        "message": message,
    }
    print(json.dumps(output, indent=2))


if __name__ == "__main__":
    app()
